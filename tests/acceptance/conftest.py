"""Shared pytest fixtures for CLI acceptance tests."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from click.testing import CliRunner


@dataclass
class SpecFiles:
    """Paths to spec modules created by acceptance test fixtures."""

    spec_path: Path
    workspace: Path


@pytest.fixture
def acceptance_workspace() -> Iterator[tuple[CliRunner, Path]]:
    """Provide an isolated workspace for CLI runs."""
    runner = CliRunner()
    with runner.isolated_filesystem():
        yield runner, Path.cwd()


def _write_spec(workspace: Path, name: str, content: str) -> Path:
    spec_path = workspace / name
    spec_path.write_text(content)
    return spec_path


# =============================================================================
# Passing specs
# =============================================================================

_PASSING_SPEC = """\
from specnest import Spec


class CalculatorSpec(Spec):
    def declare(self, s):
        @s.spec("Calculator")
        def _(s):
            @s.spec("addition")
            def _(s):
                s.should("add two numbers", lambda: None)
                s.should("add zero", lambda: None)

            s.xshould("divide by zero", lambda: None)
"""


@pytest.fixture
def passing_spec(
    acceptance_workspace: tuple[CliRunner, Path],
) -> Iterator[tuple[CliRunner, Path, SpecFiles]]:
    """A spec module whose tests all pass or are ignored."""
    runner, workspace = acceptance_workspace
    spec_path = _write_spec(workspace, "calculator_spec.py", _PASSING_SPEC)
    yield runner, workspace, SpecFiles(spec_path=spec_path, workspace=workspace)


# =============================================================================
# Failing specs
# =============================================================================

_FAILING_SPEC = """\
from specnest import Spec


def _boom():
    raise RuntimeError("boom")


class StackSpec(Spec):
    def declare(self, s):
        @s.spec("Stack")
        def _(s):
            s.should("is empty when created", lambda: None)
            s.should("throws on pop when empty", lambda: [].pop())


class TeardownSpec(Spec):
    def declare(self, s):
        s.after_all(_boom)
        s.should("passes", lambda: None)
"""


@pytest.fixture
def failing_spec(
    acceptance_workspace: tuple[CliRunner, Path],
) -> Iterator[tuple[CliRunner, Path, SpecFiles]]:
    """A spec module with a failing test and a failing after_all hook."""
    runner, workspace = acceptance_workspace
    spec_path = _write_spec(workspace, "stack_spec.py", _FAILING_SPEC)
    yield runner, workspace, SpecFiles(spec_path=spec_path, workspace=workspace)


# =============================================================================
# Broken specs
# =============================================================================

_BROKEN_SPEC = """\
from specnest import Spec


class EmptyNameSpec(Spec):
    def declare(self, s):
        s.should("", lambda: None)


class NoSuiteSpec(Spec):
    pass
"""


@pytest.fixture
def broken_spec(
    acceptance_workspace: tuple[CliRunner, Path],
) -> Iterator[tuple[CliRunner, Path, SpecFiles]]:
    """A spec module with declaration and configuration errors."""
    runner, workspace = acceptance_workspace
    spec_path = _write_spec(workspace, "broken_spec.py", _BROKEN_SPEC)
    yield runner, workspace, SpecFiles(spec_path=spec_path, workspace=workspace)
