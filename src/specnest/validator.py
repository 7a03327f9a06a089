"""Validation helpers for test plans."""

from __future__ import annotations

import warnings
from collections import Counter
from dataclasses import dataclass

from specnest.config import CheckMode
from specnest.exceptions import (
    DuplicateTestWarning,
    LateHookWarning,
    SpecDeclarationError,
)
from specnest.tree import TestIdentity, TestPlan, iter_groups


@dataclass(frozen=True)
class PlanStats:
    """Summary statistics for a test plan."""

    group_count: int
    test_count: int
    ignored_count: int
    max_depth: int


def collect_plan_stats(plan: TestPlan) -> PlanStats:
    """Collect aggregate statistics for a test plan."""
    group_count = 0
    max_depth = 0
    for _, depth in iter_groups(plan.root):
        group_count += 1
        max_depth = max(max_depth, depth + 1)

    return PlanStats(
        group_count=group_count,
        test_count=len(plan),
        ignored_count=sum(1 for planned in plan if planned.ignored),
        max_depth=max_depth,
    )


def find_duplicate_tests(plan: TestPlan) -> list[TestIdentity]:
    """Return identities declared more than once, in first-declaration order."""
    counts = Counter(plan.identities())
    return [identity for identity, count in counts.items() if count > 1]


def _report(messages: list[str], mode: CheckMode, category: type[Warning]) -> None:
    if mode == "ignore":
        return

    for message in messages:
        if mode == "error":
            raise SpecDeclarationError(message)
        warnings.warn(message, category, stacklevel=4)


def check_duplicates(plan: TestPlan, mode: CheckMode = "warn") -> None:
    """Report duplicate test identities according to ``mode``."""
    messages = [
        f"Duplicate test description: {identity.full_name}"
        for identity in find_duplicate_tests(plan)
    ]
    _report(messages, mode, DuplicateTestWarning)


def check_late_hooks(plan: TestPlan, mode: CheckMode = "warn") -> None:
    """Report per-test hooks declared after members they cannot wrap."""
    _report([late.describe() for late in plan.late_hooks], mode, LateHookWarning)
