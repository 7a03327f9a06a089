"""specnest CLI - plan and run nested specs from the command line."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import click
from jinja2 import Environment, FileSystemLoader, Template

from specnest import __version__
from specnest.config import SpecnestConfig, load_config
from specnest.exceptions import (
    SpecConfigurationError,
    SpecDeclarationError,
)
from specnest.loader import load_spec, load_spec_classes
from specnest.notifier import NullNotifier
from specnest.outcomes import Failed, HookFailure, RunResult, Skipped, TestResult
from specnest.runner import SpecRunner
from specnest.tree import SpecNode, TestCase, TestIdentity, TestPlan
from specnest.validator import PlanStats, collect_plan_stats

CLI_VERSION = __version__


@dataclass(frozen=True)
class PlannedSpec:
    """A loaded spec class together with its plan."""

    name: str
    runner: SpecRunner
    plan: TestPlan


@dataclass(frozen=True)
class TreeRow:
    """One line of a rendered plan tree."""

    depth: int
    kind: str
    description: str
    ignored: bool = False

    @property
    def indent(self) -> str:
        return "  " * self.depth


class ConsoleNotifier:
    """Prints one line per test as the run progresses."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self._failed: set[TestIdentity] = set()

    def test_ignored(self, identity: TestIdentity, reason: str) -> None:
        click.secho(f"  - {identity.full_name} (skipped: {reason})", fg="yellow")

    def test_started(self, identity: TestIdentity) -> None:
        self._failed.discard(identity)

    def test_failed(self, identity: TestIdentity, cause: BaseException) -> None:
        self._failed.add(identity)
        click.secho(f"  ✗ {identity.full_name}", fg="red")
        if self.verbose:
            click.echo(f"      {type(cause).__name__}: {cause}")

    def test_finished(self, identity: TestIdentity) -> None:
        if identity not in self._failed:
            click.secho(f"  ✓ {identity.full_name}", fg="green")

    def hook_failed(self, failure: HookFailure) -> None:
        click.secho(f"  ⚠ {failure.describe()}", fg="yellow")


def _load_report_template() -> Template:
    templates_dir = Path(__file__).parent.parent / "templates"
    env = Environment(
        loader=FileSystemLoader(templates_dir),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    return env.get_template("plan_report.md.jinja2")


def _load_planned_specs(target: str, config: SpecnestConfig) -> list[PlannedSpec]:
    planned: list[PlannedSpec] = []
    for spec_class in load_spec_classes(target):
        runner = SpecRunner(load_spec(spec_class), config)
        planned.append(
            PlannedSpec(name=runner.name, runner=runner, plan=runner.test_plan())
        )
    return planned


def _iter_tree_rows(node: SpecNode, depth: int = 0) -> Iterator[TreeRow]:
    for member in node.members:
        if isinstance(member, TestCase):
            yield TreeRow(depth, "test", member.description, member.ignored)
        else:
            yield TreeRow(depth, "group", member.description)
            yield from _iter_tree_rows(member, depth + 1)


def _stats_payload(stats: PlanStats) -> dict[str, int]:
    return {
        "groups": stats.group_count,
        "tests": stats.test_count,
        "ignored": stats.ignored_count,
        "max_depth": stats.max_depth,
    }


def _build_plan_json(specs: list[PlannedSpec]) -> dict[str, object]:
    return {
        "specs": [
            {
                "name": spec.name,
                "tests": [
                    {
                        "path": list(planned.path),
                        "description": planned.description,
                        "full_name": planned.identity.full_name,
                        "ignored": planned.ignored,
                    }
                    for planned in spec.plan
                ],
            }
            for spec in specs
        ],
        "summary": {
            "specs": len(specs),
            "tests": sum(len(spec.plan) for spec in specs),
        },
    }


def _print_plan_tree(specs: list[PlannedSpec]) -> None:
    for spec in specs:
        click.secho(f"{spec.name} ({len(spec.plan)} tests)", bold=True)
        for row in _iter_tree_rows(spec.plan.root):
            line = f"  {row.indent}"
            if row.kind == "group":
                click.secho(f"{line}{row.description}", fg="cyan")
            elif row.ignored:
                click.secho(f"{line}- {row.description} (ignored)", fg="yellow")
            else:
                click.echo(f"{line}- {row.description}")


def _render_plan_markdown(specs: list[PlannedSpec]) -> str:
    template = _load_report_template()
    return template.render(
        specs=[
            {
                "name": spec.name,
                "rows": list(_iter_tree_rows(spec.plan.root)),
                "stats": _stats_payload(collect_plan_stats(spec.plan)),
            }
            for spec in specs
        ],
        version=CLI_VERSION,
    )


def _hook_failure_json(failure: HookFailure) -> dict[str, object]:
    return {
        "kind": failure.kind,
        "path": list(failure.path),
        "test": failure.identity.full_name if failure.identity else None,
        "error": repr(failure.cause),
    }


def _result_json(result: TestResult) -> dict[str, object]:
    payload: dict[str, object] = {
        "path": list(result.identity.path),
        "description": result.identity.description,
        "full_name": result.identity.full_name,
        "status": result.status,
    }
    outcome = result.outcome
    if isinstance(outcome, Failed):
        payload["error"] = repr(outcome.cause)
    elif isinstance(outcome, Skipped):
        payload["reason"] = outcome.reason
    if result.hook_failures:
        payload["hook_failures"] = [
            _hook_failure_json(failure) for failure in result.hook_failures
        ]
    return payload


def _build_run_json(runs: list[tuple[str, RunResult]]) -> dict[str, object]:
    return {
        "specs": [
            {
                "name": name,
                "passed": run.passed,
                "failed": run.failed,
                "skipped": run.skipped,
                "results": [_result_json(result) for result in run.results],
                "group_failures": [
                    _hook_failure_json(failure) for failure in run.group_failures
                ],
            }
            for name, run in runs
        ],
        "summary": {
            "passed": sum(run.passed for _, run in runs),
            "failed": sum(run.failed for _, run in runs),
            "skipped": sum(run.skipped for _, run in runs),
            "hook_failures": sum(len(run.hook_failures) for _, run in runs),
        },
        "ok": all(run.ok for _, run in runs),
    }


def _print_run_summary(runs: list[tuple[str, RunResult]]) -> None:
    passed = sum(run.passed for _, run in runs)
    failed = sum(run.failed for _, run in runs)
    skipped = sum(run.skipped for _, run in runs)
    hook_failures = sum(len(run.hook_failures) for _, run in runs)

    click.echo("")
    click.secho("Summary:", fg="cyan")
    click.echo(f"  Passed: {passed}")
    click.echo(f"  Failed: {failed}")
    click.echo(f"  Skipped: {skipped}")
    if hook_failures:
        click.echo(f"  Hook failures: {hook_failures}")

    if all(run.ok for _, run in runs):
        click.secho("\n✓ All specs passed", fg="green")
    else:
        click.secho("\n✗ Some specs failed", fg="red")


def _exit_with_error(format_type: str, message: str) -> NoReturn:
    if format_type == "json":
        click.echo(json.dumps({"status": "error", "message": message}, indent=2))
    else:
        click.secho(f"✗ {message}", fg="red", err=True)
    sys.exit(1)


def _load_or_exit(target: str, config_path: str, format_type: str) -> list[PlannedSpec]:
    try:
        config = load_config(config_path)
        return _load_planned_specs(target, config)
    except SpecConfigurationError as e:
        _exit_with_error(format_type, f"Unable to load specs: {e}")
    except SpecDeclarationError as e:
        _exit_with_error(format_type, f"Invalid spec declaration: {e}")
    except Exception as e:
        _exit_with_error(format_type, f"Unexpected error loading specs: {e}")


_target_argument = click.argument("target")
_config_option = click.option(
    "--config",
    "config_path",
    default="pyproject.toml",
    show_default=True,
    help="Path to the pyproject.toml holding [tool.specnest] settings.",
)


def _format_option(*choices: str) -> Any:
    return click.option(
        "--format",
        "format_type",
        type=click.Choice(list(choices), case_sensitive=False),
        default="table",
        show_default=True,
        help=f"Output format: {', '.join(repr(c) for c in choices)}.",
    )


@click.group()
@click.version_option(version=CLI_VERSION, prog_name="specnest")
def cli() -> None:
    """specnest - Nested behaviour-driven specs for Python."""
    pass


@cli.command("plan")
@_target_argument
@_config_option
@_format_option("table", "json", "markdown")
def plan(target: str, config_path: str, format_type: str) -> None:
    """Show the tests a spec declares without running anything.

    TARGET is a file path or dotted module name, optionally followed by
    ':ClassName'.
    """
    specs = _load_or_exit(target, config_path, format_type)

    if format_type == "json":
        click.echo(json.dumps(_build_plan_json(specs), indent=2))
    elif format_type == "markdown":
        click.echo(_render_plan_markdown(specs))
    else:
        _print_plan_tree(specs)


@cli.command("run")
@_target_argument
@_config_option
@_format_option("table", "json")
@click.option("--verbose", is_flag=True, help="Show failure details.")
def run(target: str, config_path: str, format_type: str, verbose: bool) -> None:
    """Run the tests a spec declares.

    Exits with 0 when every test passed and no hook failed, 1 otherwise.
    """
    specs = _load_or_exit(target, config_path, format_type)

    runs: list[tuple[str, RunResult]] = []
    for spec in specs:
        if format_type == "json":
            runs.append((spec.name, spec.runner.execute_tests(NullNotifier())))
            continue
        click.secho(spec.name, bold=True)
        runs.append((spec.name, spec.runner.execute_tests(ConsoleNotifier(verbose))))

    if format_type == "json":
        click.echo(json.dumps(_build_run_json(runs), indent=2))
    else:
        _print_run_summary(runs)

    sys.exit(0 if all(result.ok for _, result in runs) else 1)


@cli.command("stats")
@_target_argument
@_config_option
@_format_option("table", "json")
def stats(target: str, config_path: str, format_type: str) -> None:
    """Show statistics about the tests a spec declares."""
    specs = _load_or_exit(target, config_path, format_type)

    if format_type == "json":
        payload = {
            "specs": [
                {"name": spec.name, **_stats_payload(collect_plan_stats(spec.plan))}
                for spec in specs
            ]
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for spec in specs:
        spec_stats = collect_plan_stats(spec.plan)
        click.secho(f"{spec.name}:", fg="cyan")
        click.echo(f"  Groups: {spec_stats.group_count}")
        click.echo(f"  Tests: {spec_stats.test_count}")
        click.echo(f"  Ignored: {spec_stats.ignored_count}")
        click.echo(f"  Max depth: {spec_stats.max_depth}")


if __name__ == "__main__":
    cli()
