"""Host instantiation: turning spec classes and CLI targets into spec objects."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import sys
from pathlib import Path
from types import ModuleType

from specnest.exceptions import SpecConfigurationError
from specnest.spec import Spec


def load_spec(spec_class: type) -> Spec:
    """Construct ``spec_class`` with no arguments and check it declares a suite.

    Raises:
        SpecConfigurationError: If the class cannot be constructed, is not a
            ``Spec``, or does not override ``declare``.
    """
    name = getattr(spec_class, "__name__", repr(spec_class))
    try:
        instance = spec_class()
    except Exception as e:
        raise SpecConfigurationError(
            f"The spec class {name} must have a no-argument constructor: {e}"
        ) from e

    if not isinstance(instance, Spec):
        raise SpecConfigurationError(f"The spec class {name} must subclass specnest.Spec")
    if not type(instance).declares_suite():
        raise SpecConfigurationError(
            f"The spec class {name} must override declare() to declare a suite"
        )
    return instance


def is_spec_class(obj: object) -> bool:
    """Whether ``obj`` is a concrete, collectable ``Spec`` subclass."""
    return (
        inspect.isclass(obj)
        and issubclass(obj, Spec)
        and obj is not Spec
        and not inspect.isabstract(obj)
        and getattr(obj, "__test__", True)
    )


def _import_module(module_ref: str) -> ModuleType:
    if module_ref.endswith(".py") or "/" in module_ref or "\\" in module_ref:
        path = Path(module_ref)
        if not path.exists():
            raise SpecConfigurationError(f"Spec file not found: {path}")
        module_name = f"_specnest_target_{path.stem}"
        module_spec = importlib.util.spec_from_file_location(module_name, path)
        if module_spec is None or module_spec.loader is None:
            raise SpecConfigurationError(f"Cannot import spec file: {path}")
        module = importlib.util.module_from_spec(module_spec)
        sys.modules[module_name] = module
        try:
            module_spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[module_name]
            raise SpecConfigurationError(f"Error importing {path}: {e}") from e
        return module

    try:
        return importlib.import_module(module_ref)
    except Exception as e:
        raise SpecConfigurationError(f"Error importing {module_ref}: {e}") from e


def load_spec_classes(target: str) -> list[type[Spec]]:
    """Resolve ``path/to/file.py[:Class]`` or ``dotted.module[:Class]``.

    Without a class name every spec class defined in the module is returned,
    in definition order.
    """
    module_ref, _, class_name = target.partition(":")
    if not module_ref:
        raise SpecConfigurationError(f"Invalid spec target: {target!r}")
    module = _import_module(module_ref)

    if class_name:
        spec_class = getattr(module, class_name, None)
        if spec_class is None:
            raise SpecConfigurationError(
                f"Spec class {class_name} not found in {module_ref}"
            )
        if not (inspect.isclass(spec_class) and issubclass(spec_class, Spec)):
            raise SpecConfigurationError(
                f"{class_name} in {module_ref} must subclass specnest.Spec"
            )
        return [spec_class]

    classes = [
        obj
        for obj in vars(module).values()
        if is_spec_class(obj) and obj.__module__ == module.__name__
    ]
    if not classes:
        raise SpecConfigurationError(f"No spec classes found in {module_ref}")
    return classes
