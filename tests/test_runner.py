"""Tests for SpecRunner planning and execution.

Tests cover:
- Plan idempotence and plan/execution identity parity
- Hook ordering and inheritance across nested groups
- Failure isolation for before_all, before_each, after_each and after_all
- Ignored tests, should_throw and parametrized tests
- Notifier event sequences
"""

from __future__ import annotations

import warnings

import pytest
from sample_specs import (
    AfterAllFailureSpec,
    AfterEachFailureSpec,
    BeforeAllFailureSpec,
    BeforeEachFailureSpec,
    BodyFailureSpec,
    ChangingDeclarationSpec,
    DuplicateSpec,
    HooksOnlySpec,
    IgnoredSpec,
    LateBeforeAllSpec,
    LateHooksSpec,
    NamedSpec,
    NestedHooksSpec,
    ParametrizedSpec,
    StackSpec,
    ThrowingSpec,
)

from specnest import (
    DuplicateTestWarning,
    Failed,
    LateHook,
    LateHookWarning,
    NullNotifier,
    Passed,
    RecordingNotifier,
    Skipped,
    SpecDeclarationError,
    SpecnestConfig,
    SpecRunner,
    TestIdentity,
)
from specnest.runner import UNREACHED_REASON


# =============================================================================
# Test: Test plan
# =============================================================================


class TestTestPlan:
    """Tests for SpecRunner.test_plan."""

    def test_stack_plan(self) -> None:
        plan = SpecRunner(StackSpec()).test_plan()

        assert plan.identities() == (
            TestIdentity(("Stack",), "is empty when created"),
            TestIdentity(("Stack",), "throws on pop when empty"),
        )

    def test_plan_is_idempotent(self) -> None:
        runner = SpecRunner(NestedHooksSpec())

        assert runner.test_plan() == runner.test_plan()
        assert runner.test_plan().identities() == runner.test_plan().identities()

    def test_planning_has_no_side_effects(self) -> None:
        spec = NestedHooksSpec()
        SpecRunner(spec).test_plan()

        assert spec.log == []

    def test_nested_plan_path(self) -> None:
        plan = SpecRunner(BeforeAllFailureSpec()).test_plan()

        assert plan.identities()[0] == TestIdentity(("A", "B"), "t")

    def test_root_description(self) -> None:
        assert SpecRunner(StackSpec()).test_plan().root.description == "StackSpec"
        assert SpecRunner(NamedSpec()).test_plan().root.description == "Calculator"

    def test_duplicate_descriptions_warn(self) -> None:
        with pytest.warns(DuplicateTestWarning, match="same"):
            plan = SpecRunner(DuplicateSpec()).test_plan()

        assert len(plan) == 2

    def test_duplicate_descriptions_error_mode(self) -> None:
        config = SpecnestConfig(duplicate_descriptions="error")

        with pytest.raises(SpecDeclarationError, match="Duplicate"):
            SpecRunner(DuplicateSpec(), config).test_plan()


# =============================================================================
# Test: Execution scenarios
# =============================================================================


class TestExecution:
    """Tests for SpecRunner.execute_tests."""

    def test_stack_scenario(self, execute, notifier: RecordingNotifier) -> None:
        run = execute(StackSpec())

        passed, failed = run.results
        assert isinstance(passed.outcome, Passed)
        assert isinstance(failed.outcome, Failed)
        assert isinstance(failed.outcome.cause, IndexError)
        assert [(event, identity.description) for event, identity, _ in notifier.events] == [
            ("started", "is empty when created"),
            ("finished", "is empty when created"),
            ("started", "throws on pop when empty"),
            ("failed", "throws on pop when empty"),
            ("finished", "throws on pop when empty"),
        ]
        assert notifier.of_kind("failed")[0][2] is failed.outcome.cause

    def test_plan_execution_parity(self, execute, notifier: RecordingNotifier) -> None:
        spec = NestedHooksSpec()
        plan = SpecRunner(spec).test_plan()

        execute(spec)

        assert tuple(notifier.started()) == plan.identities()

    def test_hook_order_and_inheritance(self, execute) -> None:
        spec = NestedHooksSpec()
        run = execute(spec)

        assert run.ok
        assert spec.log == [
            "outer before_all",
            "outer before_each",
            "first",
            "outer after_each",
            "inner before_all",
            "outer before_each",
            "inner before_each",
            "second",
            "inner after_each",
            "outer after_each",
            "inner after_all",
            "outer before_each",
            "third",
            "outer after_each",
            "outer after_all",
        ]

    def test_before_all_failure_skips_subtree(
        self, execute, notifier: RecordingNotifier
    ) -> None:
        spec = BeforeAllFailureSpec()
        run = execute(spec)

        skipped, sibling = run.results
        assert skipped.identity == TestIdentity(("A", "B"), "t")
        assert isinstance(skipped.outcome, Skipped)
        assert isinstance(skipped.outcome.cause, RuntimeError)
        assert "boom" in skipped.outcome.reason
        assert isinstance(sibling.outcome, Passed)
        assert spec.log == ["C runs"]
        assert notifier.of_kind("ignored") == [
            ("ignored", skipped.identity, skipped.outcome.reason)
        ]
        assert skipped.identity not in notifier.started()
        assert not notifier.of_kind("failed")

    def test_after_each_failure_keeps_passed(
        self, execute, notifier: RecordingNotifier
    ) -> None:
        run = execute(AfterEachFailureSpec())

        (result,) = run.results
        assert isinstance(result.outcome, Passed)
        (failure,) = result.hook_failures
        assert failure.kind == "after_each"
        assert failure.identity == result.identity
        assert str(failure.cause) == "teardown broke"
        assert [event for event, _, _ in notifier.events] == [
            "started",
            "hook_failed",
            "finished",
        ]
        assert not run.ok

    def test_after_each_runs_innermost_first_on_failure(self, execute) -> None:
        spec = BodyFailureSpec()
        run = execute(spec)

        (result,) = run.results
        assert isinstance(result.outcome, Failed)
        assert spec.log == [
            "inner after_each",
            "outer after_each 1",
            "outer after_each 2",
            "root after_each",
        ]

    def test_before_each_failure(self, execute, notifier: RecordingNotifier) -> None:
        spec = BeforeEachFailureSpec()
        run = execute(spec)

        first, second = run.results
        assert isinstance(first.outcome, Failed)
        assert str(first.outcome.cause) == "setup broke"
        assert isinstance(second.outcome, Passed)
        assert spec.log == [
            "after_each",
            "setup ok",
            "second before_each",
            "second body",
            "after_each",
        ]

    def test_after_all_failure_is_group_level(
        self, execute, notifier: RecordingNotifier
    ) -> None:
        run = execute(AfterAllFailureSpec())

        assert run.passed == 1
        (failure,) = run.group_failures
        assert failure.kind == "after_all"
        assert failure.path == ("resources",)
        assert failure.identity is None
        assert notifier.of_kind("hook_failed") == [("hook_failed", None, failure)]

    def test_ignored_tests(self, execute, notifier: RecordingNotifier) -> None:
        spec = IgnoredSpec()
        run = execute(spec)

        assert [result.status for result in run.results] == [
            "passed",
            "skipped",
            "skipped",
        ]
        assert spec.log == ["runs"]
        assert [identity.full_name for _, identity, _ in notifier.of_kind("ignored")] == [
            "is ignored",
            "pending > nested",
        ]

    def test_should_throw(self, execute) -> None:
        spec = ThrowingSpec()
        run = execute(spec)

        expected, nothing, wrong, matched, mismatched, ignored = run.results
        assert isinstance(expected.outcome, Passed)
        assert isinstance(nothing.outcome, Failed)
        assert isinstance(nothing.outcome.cause, AssertionError)
        assert isinstance(wrong.outcome, Failed)
        assert isinstance(wrong.outcome.cause, RuntimeError)
        assert isinstance(matched.outcome, Passed)
        assert isinstance(mismatched.outcome, Failed)
        assert isinstance(mismatched.outcome.cause, AssertionError)
        assert "^network" in str(mismatched.outcome.cause)
        assert isinstance(mismatched.outcome.cause.__cause__, RuntimeError)
        assert isinstance(ignored.outcome, Skipped)
        assert ignored.outcome.reason == "ignored"
        assert spec.log == []

    def test_should_each(self, execute) -> None:
        spec = ParametrizedSpec()
        run = execute(spec)

        assert [result.identity.description for result in run.results] == [
            "adds 1 and 2",
            "adds 3 and 4",
            "squares 5",
        ]
        assert spec.log == ["1+2=3", "3+4=7", "5^2=25"]

    def test_unreached_tests_reported_skipped(
        self, execute, notifier: RecordingNotifier
    ) -> None:
        run = execute(ChangingDeclarationSpec())

        assert [result.status for result in run.results] == ["passed", "skipped"]
        assert run.results[1].outcome.reason == UNREACHED_REASON
        (failure,) = run.group_failures
        assert failure.kind == "spec"
        assert failure.path == ("group",)
        assert len(notifier.of_kind("ignored")) == 1

    def test_every_planned_test_reported_once(self) -> None:
        for spec_class in (BeforeAllFailureSpec, IgnoredSpec, StackSpec):
            notifier = RecordingNotifier()
            runner = SpecRunner(spec_class())
            plan = runner.test_plan()

            runner.execute_tests(notifier)

            reported = [
                identity
                for event, identity, _ in notifier.events
                if event in ("started", "ignored")
            ]
            assert sorted(reported, key=str) == sorted(plan.identities(), key=str)

    def test_run_result_counts(self) -> None:
        run = SpecRunner(IgnoredSpec()).execute_tests(NullNotifier())

        assert (run.passed, run.failed, run.skipped) == (1, 0, 2)
        assert run.ok
        assert len(run.plan) == 3

    def test_keyboard_interrupt_propagates(self) -> None:
        class InterruptedSpec(StackSpec):
            def declare(self, s):
                def interrupt():
                    raise KeyboardInterrupt

                s.should("interrupted", interrupt)

        with pytest.raises(KeyboardInterrupt):
            SpecRunner(InterruptedSpec()).execute_tests(NullNotifier())


# =============================================================================
# Test: Hooks registered after tests
# =============================================================================


class TestHookRegistrationOrder:
    """Tests for hooks declared after tests or groups of the same group."""

    def test_per_test_hooks_only_wrap_later_tests(self) -> None:
        spec = LateHooksSpec()

        with pytest.warns(LateHookWarning) as record:
            run = SpecRunner(spec).execute_tests(NullNotifier())

        assert run.ok
        assert spec.log == ["t1", "setup", "t2", "teardown"]
        assert any("before_each hook in 'G'" in str(w.message) for w in record)
        assert any("after_each hook in 'G'" in str(w.message) for w in record)

    def test_late_hooks_recorded_in_plan(self) -> None:
        config = SpecnestConfig(late_hooks="ignore")
        plan = SpecRunner(LateHooksSpec(), config).test_plan()

        assert plan.late_hooks == (
            LateHook("before_each", ("G",), 1),
            LateHook("after_each", ("G",), 1),
        )

    def test_late_hooks_error_mode(self) -> None:
        config = SpecnestConfig(late_hooks="error")

        with pytest.raises(SpecDeclarationError, match="before_each hook in 'G'"):
            SpecRunner(LateHooksSpec(), config).test_plan()

    def test_late_before_all_runs_before_next_test(self, execute) -> None:
        spec = LateBeforeAllSpec()

        with warnings.catch_warnings():
            warnings.simplefilter("error", LateHookWarning)
            run = execute(spec)

        assert [result.status for result in run.results] == [
            "passed",
            "passed",
            "passed",
            "skipped",
            "skipped",
            "passed",
        ]
        assert spec.log == ["first", "setup", "second", "runs", "after the group"]

    def test_late_before_all_failure_skips_only_remaining_tests(
        self, execute, notifier: RecordingNotifier
    ) -> None:
        run = execute(LateBeforeAllSpec())

        earlier, skipped, also_skipped = run.results[2:5]
        assert earlier.identity == TestIdentity(("broken",), "runs before the failure")
        assert isinstance(earlier.outcome, Passed)
        for result in (skipped, also_skipped):
            assert isinstance(result.outcome, Skipped)
            assert isinstance(result.outcome.cause, RuntimeError)
            assert "late setup broke" in result.outcome.reason
        assert [identity.description for _, identity, _ in notifier.of_kind("ignored")] == [
            "skipped",
            "also skipped",
        ]
        assert not run.group_failures

    def test_groups_without_runnable_tests_run_no_hooks(self, execute) -> None:
        spec = HooksOnlySpec()
        run = execute(spec)

        assert spec.log == []
        assert run.skipped == 1
        assert not run.group_failures
