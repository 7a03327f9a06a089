"""Base class for user spec declarations."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from specnest.builders import SuiteBuilder


class Spec:
    """A user-declared suite of nested groups, hooks and tests.

    Subclasses override :meth:`declare` and issue declarations on the builder
    they receive. ``declare`` is called once per walk (planning or executing),
    so it must declare the same structure every time. Any state the tests
    share belongs in closures created inside ``declare`` or on ``self``.

    Example::

        class StackSpec(Spec):
            def declare(self, s):
                @s.spec("Stack")
                def _(s):
                    stack = []
                    s.before_each(stack.clear)
                    s.should("be empty when created", lambda: assert_empty(stack))

    The root group is named after the class unless ``description`` is set.
    """

    description: str | None = None

    def declare(self, s: SuiteBuilder) -> None:
        raise NotImplementedError

    @classmethod
    def root_description(cls) -> str:
        return cls.description or cls.__name__

    @classmethod
    def declares_suite(cls) -> bool:
        """Whether the class overrides :meth:`declare`."""
        return cls.declare is not Spec.declare
