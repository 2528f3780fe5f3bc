"""
Rendering of run reports and stack diffs.
"""

import json
from typing import List

from rich.markup import escape

from stackwright.cli.ux import console, header
from stackwright.config import Settings, get_settings
from stackwright.core.errors import StackwrightError, format_error_message
from stackwright.orchestration import (
    DiffKind,
    Difference,
    OrchestrationExecutor,
    OutcomeKind,
    RunReport,
)
from stackwright.remote import CloudFormationStackClient

OUTCOME_STYLES = {
    OutcomeKind.APPLIED: ("success", "✓", "applied"),
    OutcomeKind.UNCHANGED: ("muted", "=", "unchanged"),
    OutcomeKind.SKIPPED: ("warning", "~", "changes pending"),
    OutcomeKind.FAILED: ("error", "✗", "failed"),
}


def build_executor(settings: Settings | None = None) -> OrchestrationExecutor:
    """Executor wired to CloudFormation using the current settings."""
    settings = settings or get_settings()
    return OrchestrationExecutor(
        CloudFormationStackClient(settings),
        poll_interval=settings.poll_interval_seconds,
    )


def _render_value(value: object) -> str:
    return json.dumps(value, default=str, sort_keys=True)


def _describe_error(cause: BaseException) -> str:
    if isinstance(cause, StackwrightError):
        return format_error_message(cause)
    return str(cause)


def print_changes(stacks_file: str, stack_name: str, changes: List[Difference]) -> None:
    """Print a unified-style diff of one stack's live vs declared state."""
    console.print(f"[bold]--- live {stack_name}[/bold]")
    console.print(f"[bold]+++ {stacks_file} {stack_name}[/bold]")
    for change in changes:
        console.print(f" {change.dotted_path}", highlight=False)
        if change.kind in (DiffKind.REMOVED, DiffKind.CHANGED):
            console.print(f"[removed]-{_render_value(change.old)}[/removed]", highlight=False)
        if change.kind in (DiffKind.ADDED, DiffKind.CHANGED):
            console.print(f"[added]+{_render_value(change.new)}[/added]", highlight=False)


def print_report(report: RunReport, stacks_file: str, show_diffs: bool = True) -> None:
    """Print per-stack outcomes, diffs and failures."""
    if show_diffs:
        for name, outcome in report.outcomes.items():
            if outcome.changes:
                print_changes(stacks_file, name, outcome.changes)

    header(f"{report.action.capitalize()}: {stacks_file}")
    for name, outcome in report.outcomes.items():
        style, icon, label = OUTCOME_STYLES[outcome.kind]
        detail = ""
        if outcome.state is not None and outcome.kind is not OutcomeKind.FAILED:
            detail = f" [muted]{outcome.state.status}[/muted]"
        if outcome.change_set_id:
            detail += f" [muted]change set {outcome.change_set_id}[/muted]"
        if outcome.kind is OutcomeKind.SKIPPED:
            label = f"{len(outcome.changes)} changes pending"
        console.print(f"  [{style}]{icon} {name:<24}[/{style}] {label}{detail}")

    console.print()
    if report.success:
        console.print(
            f"[bold green]{report.action.capitalize()} finished for "
            f"{len(report.outcomes)} stacks in {report.duration_seconds:.1f}s[/bold green]"
        )
    else:
        console.print(f"[bold red]{report.failed_count} stacks failed[/bold red]")
        for name, cause in report.failures:
            console.print(f"  [error]•[/error] {name}: {escape(_describe_error(cause))}")
    console.print()


def print_report_json(report: RunReport) -> None:
    print(json.dumps(report.to_dict(), indent=2))
