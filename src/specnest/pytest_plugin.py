"""pytest plugin: collects ``Spec`` subclasses and reports their tests as items.

Each planned test becomes one item. The spec is executed once, when the first
of its items runs; every item then replays the outcome recorded for it.
"""

from __future__ import annotations

import logging
import warnings
from collections import Counter
from collections.abc import Iterator
from typing import Any

import pytest

from specnest.config import SpecnestConfig, load_config
from specnest.exceptions import (
    SpecConfigurationError,
    SpecHookWarning,
    SpecnestError,
)
from specnest.loader import is_spec_class, load_spec
from specnest.notifier import NullNotifier
from specnest.outcomes import Failed, HookFailure, RunResult, Skipped, TestResult
from specnest.runner import SpecRunner
from specnest.tree import PlannedTest, TestIdentity

logger = logging.getLogger(__name__)

DUPLICATES_INI = "specnest_duplicate_descriptions"
LATE_HOOKS_INI = "specnest_late_hooks"

CHECK_INI_OPTIONS = {
    DUPLICATES_INI: "duplicate_descriptions",
    LATE_HOOKS_INI: "late_hooks",
}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addini(
        DUPLICATES_INI,
        help="How to report duplicate test descriptions: ignore, warn or error.",
        default="",
    )
    parser.addini(
        LATE_HOOKS_INI,
        help="How to report before_each/after_each hooks declared after tests: "
        "ignore, warn or error.",
        default="",
    )


def pytest_configure(config: pytest.Config) -> None:
    try:
        specnest_config = load_config(config.rootpath / "pyproject.toml")
        overrides = {
            field: config.getini(name)
            for name, field in CHECK_INI_OPTIONS.items()
            if config.getini(name)
        }
        if overrides:
            specnest_config = SpecnestConfig.model_validate(
                {**specnest_config.model_dump(), **overrides}
            )
    except SpecConfigurationError as e:
        raise pytest.UsageError(str(e)) from e
    except ValueError as e:
        raise pytest.UsageError(f"Invalid specnest ini option: {e}") from e

    config._specnest_config = specnest_config  # type: ignore[attr-defined]
    config._specnest_runs = []  # type: ignore[attr-defined]


def pytest_pycollect_makeitem(
    collector: pytest.Collector, name: str, obj: object
) -> SpecCollector | None:
    if is_spec_class(obj):
        return SpecCollector.from_parent(collector, name=name, spec_class=obj)
    return None


def pytest_terminal_summary(terminalreporter: Any, config: pytest.Config) -> None:
    runs: list[tuple[str, RunResult]] = getattr(config, "_specnest_runs", [])
    if not runs:
        return

    terminalreporter.write_sep("-", "specnest")
    for name, run in runs:
        line = (
            f"{name}: {len(run.plan)} planned, {run.passed} passed, "
            f"{run.failed} failed, {run.skipped} skipped"
        )
        if run.hook_failures:
            line += f", {len(run.hook_failures)} hook failures"
        terminalreporter.write_line(line)


class _WarningNotifier(NullNotifier):
    """Surfaces group-level hook failures as warnings.

    ``after_each`` failures are raised as warnings by the item they belong to.
    """

    def hook_failed(self, failure: HookFailure) -> None:
        if failure.identity is None:
            warnings.warn(failure.describe(), SpecHookWarning, stacklevel=2)


class SpecCollector(pytest.Collector):
    """Collects the planned tests of one spec class."""

    def __init__(self, *, spec_class: type, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.spec_class = spec_class
        self._runner: SpecRunner | None = None
        self._results: dict[TestIdentity, list[TestResult]] | None = None

    def collect(self) -> Iterator[SpecItem]:
        specnest_config: SpecnestConfig = getattr(
            self.config, "_specnest_config", SpecnestConfig()
        )
        try:
            self._runner = SpecRunner(load_spec(self.spec_class), specnest_config)
            plan = self._runner.test_plan()
        except SpecnestError as e:
            raise self.CollectError(f"{self.spec_class.__name__}: {e}") from e

        logger.debug("Collected %d tests from %s", len(plan), self.name)
        seen: Counter[TestIdentity] = Counter()
        for planned in plan:
            seen[planned.identity] += 1
            occurrence = seen[planned.identity]
            name = planned.identity.full_name
            if occurrence > 1:
                name = f"{name}[{occurrence}]"
            yield SpecItem.from_parent(
                self, name=name, planned=planned, occurrence=occurrence
            )

    def result_for(self, identity: TestIdentity, occurrence: int) -> TestResult:
        """Return the recorded result, executing the spec on first use."""
        if self._results is None:
            self._results = self._execute()
        return self._results[identity][occurrence - 1]

    def _execute(self) -> dict[TestIdentity, list[TestResult]]:
        assert self._runner is not None
        run = self._runner.execute_tests(_WarningNotifier())
        self.config._specnest_runs.append((self.name, run))  # type: ignore[attr-defined]

        by_identity: dict[TestIdentity, list[TestResult]] = {}
        for result in run.results:
            by_identity.setdefault(result.identity, []).append(result)
        return by_identity


class SpecItem(pytest.Item):
    """One planned spec test."""

    def __init__(self, *, planned: PlannedTest, occurrence: int, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.planned = planned
        self.occurrence = occurrence

    def runtest(self) -> None:
        assert isinstance(self.parent, SpecCollector)
        result = self.parent.result_for(self.planned.identity, self.occurrence)

        for failure in result.hook_failures:
            warnings.warn(failure.describe(), SpecHookWarning, stacklevel=2)

        outcome = result.outcome
        if isinstance(outcome, Skipped):
            pytest.skip(outcome.reason)
        if isinstance(outcome, Failed):
            raise outcome.cause

    def reportinfo(self) -> tuple[Any, int | None, str]:
        return self.path, None, self.name
