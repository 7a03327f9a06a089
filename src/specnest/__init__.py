"""specnest - nested behaviour-driven specs for Python."""

import logging

from specnest.builders import ExecutingBuilder, PlanningBuilder, SuiteBuilder
from specnest.config import SpecnestConfig, load_config
from specnest.exceptions import (
    DuplicateTestWarning,
    LateHookWarning,
    SpecConfigurationError,
    SpecDeclarationError,
    SpecHookWarning,
    SpecnestError,
)
from specnest.loader import load_spec, load_spec_classes
from specnest.notifier import Notifier, NullNotifier, RecordingNotifier
from specnest.outcomes import (
    Failed,
    HookFailure,
    Passed,
    RunResult,
    Skipped,
    TestOutcome,
    TestResult,
)
from specnest.runner import SpecRunner
from specnest.spec import Spec
from specnest.tree import (
    LateHook,
    PlannedTest,
    SpecNode,
    TestCase,
    TestIdentity,
    TestPlan,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DuplicateTestWarning",
    "ExecutingBuilder",
    "Failed",
    "HookFailure",
    "LateHook",
    "LateHookWarning",
    "Notifier",
    "NullNotifier",
    "Passed",
    "PlannedTest",
    "PlanningBuilder",
    "RecordingNotifier",
    "RunResult",
    "Skipped",
    "Spec",
    "SpecConfigurationError",
    "SpecDeclarationError",
    "SpecHookWarning",
    "SpecNode",
    "SpecRunner",
    "SpecnestConfig",
    "SpecnestError",
    "SuiteBuilder",
    "TestCase",
    "TestIdentity",
    "TestOutcome",
    "TestPlan",
    "TestResult",
    "__version__",
    "load_config",
    "load_spec",
    "load_spec_classes",
]
