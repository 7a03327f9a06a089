"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from specnest import RecordingNotifier, RunResult, Spec, SpecRunner

pytest_plugins = ["pytester"]


@pytest.fixture
def notifier() -> RecordingNotifier:
    """A notifier that records every event it receives."""
    return RecordingNotifier()


@pytest.fixture
def execute(notifier: RecordingNotifier) -> Callable[[Spec], RunResult]:
    """Run a spec instance against the recording notifier."""

    def _execute(spec: Spec) -> RunResult:
        return SpecRunner(spec).execute_tests(notifier)

    return _execute
