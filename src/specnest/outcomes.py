"""Structured outcomes produced by an execution walk."""

from __future__ import annotations

from dataclasses import dataclass

from specnest.tree import TestIdentity, TestPlan


@dataclass(frozen=True)
class Passed:
    """The test body returned normally."""

    status = "passed"


@dataclass(frozen=True)
class Failed:
    """The test body or one of its ``before_each`` hooks raised."""

    cause: BaseException
    status = "failed"


@dataclass(frozen=True)
class Skipped:
    """The test never ran: it was ignored or an enclosing ``before_all`` failed."""

    reason: str
    cause: BaseException | None = None
    status = "skipped"


TestOutcome = Passed | Failed | Skipped


@dataclass(frozen=True)
class HookFailure:
    """A hook error that is not the outcome of any single test.

    ``identity`` is set for ``after_each`` failures and ``None`` for
    group-level failures (``after_all`` hooks and group closures).
    """

    kind: str
    path: tuple[str, ...]
    cause: BaseException
    identity: TestIdentity | None = None

    def describe(self) -> str:
        where = self.identity.full_name if self.identity else " > ".join(self.path)
        return f"{self.kind} hook failed in '{where or '<root>'}': {self.cause!r}"


@dataclass(frozen=True)
class TestResult:
    """Final outcome of one test plus any secondary hook failures."""

    __test__ = False

    identity: TestIdentity
    outcome: TestOutcome
    hook_failures: tuple[HookFailure, ...] = ()

    @property
    def status(self) -> str:
        return self.outcome.status


@dataclass(frozen=True)
class RunResult:
    """Everything one ``execute_tests`` call reported."""

    plan: TestPlan
    results: tuple[TestResult, ...]
    group_failures: tuple[HookFailure, ...] = ()

    def _count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def passed(self) -> int:
        return self._count("passed")

    @property
    def failed(self) -> int:
        return self._count("failed")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def hook_failures(self) -> tuple[HookFailure, ...]:
        """Every hook failure, test-attached ones first."""
        attached = tuple(
            failure for result in self.results for failure in result.hook_failures
        )
        return attached + self.group_failures

    @property
    def ok(self) -> bool:
        return self.failed == 0 and not self.hook_failures
