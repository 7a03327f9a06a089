"""Suite builders: the declaration surface spec code calls into.

``SuiteBuilder`` declares the operations available to spec code. Two
variants implement them:

- ``PlanningBuilder`` walks the declarations to discover structure and
  never invokes a hook or test body.
- ``ExecutingBuilder`` runs hooks and tests as they are declared, keeping a
  stack of open groups so nested groups inherit their ancestors' hooks.
"""

from __future__ import annotations

import functools
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from specnest.exceptions import SpecDeclarationError, SpecnestError
from specnest.notifier import Notifier
from specnest.outcomes import (
    Failed,
    HookFailure,
    Passed,
    Skipped,
    TestResult,
)
from specnest.tree import (
    Body,
    LateHook,
    PlannedTest,
    SpecNode,
    TestCase,
    TestIdentity,
    TestPlan,
)

logger = logging.getLogger(__name__)

IGNORED_REASON = "ignored"

PER_TEST_HOOKS = ("before_each", "after_each")

Closure = Callable[["SuiteBuilder"], object]


def _attempt(body: Callable[[], object]) -> Exception | None:
    """Call ``body`` and return the error it raised, if any."""
    try:
        body()
    except Exception as exc:
        return exc
    return None


def _spread(param: Any) -> tuple[Any, ...]:
    return param if isinstance(param, tuple) else (param,)


class SuiteBuilder(ABC):
    """Operations available to spec code while it declares a suite.

    Hook registrations return the hook, so they double as decorators.
    ``should`` and ``spec`` return a decorator when called without a body::

        @s.spec("Stack")
        def _(s):
            @s.should("be empty when created")
            def _():
                assert Stack().empty
    """

    @property
    @abstractmethod
    def current_path(self) -> tuple[str, ...]:
        """Group path of the currently open group."""

    @abstractmethod
    def _add_hook(self, kind: str, body: Body) -> None: ...

    @abstractmethod
    def _add_test(self, description: str, body: Body, ignored: bool) -> None: ...

    @abstractmethod
    def _add_group(self, description: str, closure: Closure, ignored: bool) -> None: ...

    def before_all(self, body: Body) -> Body:
        """Run ``body`` once before the tests of the current group."""
        self._add_hook("before_all", body)
        return body

    def before_each(self, body: Body) -> Body:
        """Run ``body`` before every test in the current group and its subgroups."""
        self._add_hook("before_each", body)
        return body

    def after_each(self, body: Body) -> Body:
        """Run ``body`` after every test in the current group and its subgroups."""
        self._add_hook("after_each", body)
        return body

    def after_all(self, body: Body) -> Body:
        """Run ``body`` once after the current group has finished."""
        self._add_hook("after_all", body)
        return body

    def should(self, description: str, body: Body | None = None) -> Any:
        """Declare a test case in the current group."""
        return self._test(description, body, ignored=False)

    def xshould(self, description: str, body: Body | None = None) -> Any:
        """Declare a test case that is planned but reported as ignored."""
        return self._test(description, body, ignored=True)

    def spec(self, description: str, closure: Closure | None = None) -> Any:
        """Open a nested group and declare its contents with ``closure``."""
        return self._group(description, closure, ignored=False)

    def xspec(self, description: str, closure: Closure | None = None) -> Any:
        """Open a nested group whose tests are all reported as ignored."""
        return self._group(description, closure, ignored=True)

    def should_throw(
        self,
        expected: type[BaseException],
        description: str,
        body: Body | None = None,
        *,
        match: str | None = None,
    ) -> Any:
        """Declare a test that passes only if ``body`` raises ``expected``.

        With ``match``, the string form of the raised exception must also
        contain a match for that regular expression, as with
        ``pytest.raises(match=...)``.
        """
        return self._throwing(expected, description, body, match, ignored=False)

    def xshould_throw(
        self,
        expected: type[BaseException],
        description: str,
        body: Body | None = None,
        *,
        match: str | None = None,
    ) -> Any:
        """Like :meth:`should_throw`, but planned and reported as ignored."""
        return self._throwing(expected, description, body, match, ignored=True)

    def should_each(
        self,
        description: str,
        params: Any,
        body: Callable[..., object] | None = None,
    ) -> Any:
        """Declare one test per parameter.

        A tuple parameter is spread into positional arguments of both
        ``description.format`` and ``body``; anything else is passed as the
        single argument.
        """

        def register(func: Callable[..., object]) -> Callable[..., object]:
            for param in params:
                args = _spread(param)
                try:
                    formatted = description.format(*args)
                except (KeyError, IndexError, ValueError) as e:
                    raise SpecDeclarationError(
                        f"Cannot format test description {description!r} "
                        f"with {args!r}: {e!r}",
                        self.current_path,
                    ) from e
                self._test(formatted, functools.partial(func, *args), ignored=False)
            return func

        if body is None:
            return register
        return register(body)

    def _throwing(
        self,
        expected: type[BaseException],
        description: str,
        body: Body | None,
        match: str | None,
        ignored: bool,
    ) -> Any:
        def register(func: Body) -> Body:
            @functools.wraps(func)
            def expecting() -> None:
                try:
                    func()
                except expected as e:
                    if match is not None and not re.search(match, str(e)):
                        raise AssertionError(
                            f"Regex pattern {match!r} did not match {str(e)!r}"
                        ) from e
                    return
                raise AssertionError(
                    f"Expected {expected.__name__} to be raised, but nothing was"
                )

            self._test(description, expecting, ignored)
            return func

        if body is None:
            return register
        return register(body)

    def _test(self, description: str, body: Body | None, ignored: bool) -> Any:
        self._check_description(description, "Test")
        if body is None:

            def decorator(func: Body) -> Body:
                self._add_test(description, func, ignored)
                return func

            return decorator
        self._add_test(description, body, ignored)
        return body

    def _group(self, description: str, closure: Closure | None, ignored: bool) -> Any:
        self._check_description(description, "Group")
        if closure is None:

            def decorator(func: Closure) -> Closure:
                self._add_group(description, func, ignored)
                return func

            return decorator
        self._add_group(description, closure, ignored)
        return closure

    def _check_description(self, description: str, what: str) -> None:
        if not isinstance(description, str) or not description.strip():
            raise SpecDeclarationError(
                f"{what} description must be a non-empty string, got {description!r}",
                self.current_path,
            )


class PlanningBuilder(SuiteBuilder):
    """Records the declared structure without running any user code.

    Hook bodies are discarded and test bodies are stored but never called, so
    building a plan is side-effect free and can be repeated.
    """

    def __init__(self, root_description: str) -> None:
        self.root = SpecNode(root_description, root=True)
        self._stack: list[SpecNode] = [self.root]
        self._ignored_depth = 0
        self._planned: list[PlannedTest] = []
        self._late_hooks: list[LateHook] = []

    @property
    def current_path(self) -> tuple[str, ...]:
        return self._stack[-1].child_path()

    def build(self, declare: Closure) -> TestPlan:
        """Walk ``declare`` and return the resulting plan."""
        try:
            declare(self)
        except SpecnestError:
            raise
        except Exception as exc:
            raise SpecDeclarationError(
                f"Spec declaration raised {exc!r}", self.current_path
            ) from exc
        self.root.seal()
        return TestPlan(
            root=self.root,
            tests=tuple(self._planned),
            late_hooks=tuple(self._late_hooks),
        )

    def _add_hook(self, kind: str, body: Body) -> None:
        node = self._stack[-1]
        if kind in PER_TEST_HOOKS and node.members:
            self._late_hooks.append(
                LateHook(kind, node.child_path(), len(node.members))
            )

    def _add_test(self, description: str, body: Body, ignored: bool) -> None:
        node = self._stack[-1]
        ignored = ignored or self._ignored_depth > 0
        node.add_test(TestCase(description, body, ignored))
        identity = TestIdentity(node.child_path(), description)
        self._planned.append(PlannedTest(identity, ignored))

    def _add_group(self, description: str, closure: Closure, ignored: bool) -> None:
        parent = self._stack[-1]
        child = SpecNode(description, parent.child_path())
        parent.add_child(child)
        self._stack.append(child)
        if ignored:
            self._ignored_depth += 1
        try:
            closure(self)
        except SpecnestError:
            raise
        except Exception as exc:
            raise SpecDeclarationError(
                f"Group closure raised {exc!r}", child.child_path()
            ) from exc
        finally:
            if ignored:
                self._ignored_depth -= 1
            self._stack.pop()
            child.seal()


@dataclass
class _Frame:
    """One open group on the live hook chain."""

    node: SpecNode
    ignored: bool = False
    entered: bool = False
    before_all_run: int = 0
    skip: Skipped | None = None


class ExecutingBuilder(SuiteBuilder):
    """Runs hooks and tests in declaration order, reporting to a notifier.

    ``before_all`` hooks run lazily, right before the first test inside their
    group. A failing ``before_all`` marks its group skipped: every remaining
    test below it is reported ignored and no further hooks of that group run.
    """

    def __init__(self, root_description: str, notifier: Notifier) -> None:
        self.root = SpecNode(root_description, root=True)
        self._notifier = notifier
        self._frames: list[_Frame] = [_Frame(self.root)]
        self._results: list[TestResult] = []
        self._group_failures: list[HookFailure] = []

    @property
    def current_path(self) -> tuple[str, ...]:
        return self._frames[-1].node.child_path()

    @property
    def results(self) -> tuple[TestResult, ...]:
        return tuple(self._results)

    @property
    def group_failures(self) -> tuple[HookFailure, ...]:
        return tuple(self._group_failures)

    def run(self, declare: Closure) -> tuple[TestResult, ...]:
        """Walk ``declare``, running every test; never raises for user errors."""
        root = self._frames[0]
        error = _attempt(lambda: declare(self))
        if error is not None:
            self._report_group_failure("spec", root.node, error)
        self._close(root)
        self.root.seal()
        return self.results

    def _add_hook(self, kind: str, body: Body) -> None:
        add = getattr(self._frames[-1].node, f"add_{kind}")
        add(body)

    def _add_test(self, description: str, body: Body, ignored: bool) -> None:
        node = self._frames[-1].node
        node.add_test(TestCase(description, body, ignored))
        identity = TestIdentity(node.child_path(), description)

        skipped = Skipped(IGNORED_REASON) if ignored else self._inherited_skip()
        if skipped is None:
            skipped = self._enter_groups()
        if skipped is not None:
            self._notifier.test_ignored(identity, skipped.reason)
            self._results.append(TestResult(identity, skipped))
            return

        self._results.append(self._run_test(identity, body))

    def _add_group(self, description: str, closure: Closure, ignored: bool) -> None:
        parent = self._frames[-1]
        child = SpecNode(description, parent.node.child_path())
        parent.node.add_child(child)
        frame = _Frame(child, ignored=ignored)
        self._frames.append(frame)
        logger.debug("Entering group %s", " > ".join(child.child_path()))
        try:
            error = _attempt(lambda: closure(self))
            if error is not None:
                self._report_group_failure("spec", child, error)
            self._close(frame)
        finally:
            self._frames.pop()
            child.seal()
        logger.debug("Leaving group %s", " > ".join(child.child_path()))

    def _inherited_skip(self) -> Skipped | None:
        for frame in self._frames:
            if frame.skip is not None:
                return frame.skip
            if frame.ignored:
                return Skipped(IGNORED_REASON)
        return None

    def _enter_groups(self) -> Skipped | None:
        """Run pending ``before_all`` hooks of every open group, outermost first."""
        for frame in self._frames:
            frame.entered = True
            hooks = frame.node.before_all
            while frame.before_all_run < len(hooks):
                hook = hooks[frame.before_all_run]
                frame.before_all_run += 1
                error = _attempt(hook)
                if error is not None:
                    where = " > ".join(frame.node.child_path()) or frame.node.description
                    logger.warning("before_all hook failed in %s: %r", where, error)
                    frame.skip = Skipped(
                        f"before_all hook failed in '{where}': {error!r}", error
                    )
                    return frame.skip
        return None

    def _run_test(self, identity: TestIdentity, body: Body) -> TestResult:
        self._notifier.test_started(identity)

        cause = None
        for hook in self._before_each_chain():
            cause = _attempt(hook)
            if cause is not None:
                break
        else:
            cause = _attempt(body)

        if cause is not None:
            self._notifier.test_failed(identity, cause)

        hook_failures = []
        for hook in self._after_each_chain():
            error = _attempt(hook)
            if error is not None:
                failure = HookFailure("after_each", identity.path, error, identity)
                logger.warning("%s", failure.describe())
                hook_failures.append(failure)
                self._notifier.hook_failed(failure)

        self._notifier.test_finished(identity)
        outcome = Passed() if cause is None else Failed(cause)
        return TestResult(identity, outcome, tuple(hook_failures))

    def _before_each_chain(self) -> list[Body]:
        return [hook for frame in self._frames for hook in frame.node.before_each]

    def _after_each_chain(self) -> list[Body]:
        return [
            hook for frame in reversed(self._frames) for hook in frame.node.after_each
        ]

    def _close(self, frame: _Frame) -> None:
        if not frame.entered or frame.skip is not None:
            return
        for hook in frame.node.after_all:
            error = _attempt(hook)
            if error is not None:
                self._report_group_failure("after_all", frame.node, error)

    def _report_group_failure(
        self, kind: str, node: SpecNode, error: BaseException
    ) -> None:
        failure = HookFailure(kind, node.child_path(), error)
        logger.warning("%s", failure.describe())
        self._group_failures.append(failure)
        self._notifier.hook_failed(failure)
