"""Test runner: plans a spec, then executes it against a notifier."""

from __future__ import annotations

import logging
from collections import Counter

from specnest.builders import ExecutingBuilder, PlanningBuilder
from specnest.config import SpecnestConfig
from specnest.notifier import Notifier
from specnest.outcomes import RunResult, Skipped, TestResult
from specnest.spec import Spec
from specnest.tree import TestIdentity, TestPlan
from specnest.validator import check_duplicates, check_late_hooks

logger = logging.getLogger(__name__)

UNREACHED_REASON = "not reached during execution"


class SpecRunner:
    """Runs one spec instance.

    ``test_plan`` can be called any number of times; each call performs a
    fresh planning walk and never invokes hook or test bodies.
    ``execute_tests`` performs a fresh executing walk and reports every
    planned test to the notifier exactly once.
    """

    def __init__(self, spec: Spec, config: SpecnestConfig | None = None) -> None:
        self.spec = spec
        self.config = config or SpecnestConfig()

    @property
    def name(self) -> str:
        return type(self.spec).root_description()

    def test_plan(self) -> TestPlan:
        """Return the ordered list of tests the spec declares.

        Raises:
            SpecDeclarationError: If the declarations are malformed.
        """
        plan = PlanningBuilder(self.name).build(self.spec.declare)
        check_duplicates(plan, self.config.duplicate_descriptions)
        check_late_hooks(plan, self.config.late_hooks)
        return plan

    def execute_tests(self, notifier: Notifier) -> RunResult:
        """Run every test, reporting outcomes to ``notifier``.

        Test, hook and group failures are reported, never raised.
        """
        plan = self.test_plan()
        builder = ExecutingBuilder(self.name, notifier)
        results = list(builder.run(self.spec.declare))

        for identity in _unreached(plan, results):
            logger.warning("Planned test %s was not reached", identity.full_name)
            notifier.test_ignored(identity, UNREACHED_REASON)
            results.append(TestResult(identity, Skipped(UNREACHED_REASON)))

        return RunResult(
            plan=plan,
            results=tuple(results),
            group_failures=builder.group_failures,
        )


def _unreached(plan: TestPlan, results: list[TestResult]) -> list[TestIdentity]:
    reported = Counter(result.identity for result in results)
    unreached: list[TestIdentity] = []
    for identity in plan.identities():
        if reported[identity]:
            reported[identity] -= 1
        else:
            unreached.append(identity)
    return unreached
