"""
CLI commands for applying stacks and previewing their changes.
"""

import asyncio
from typing import List, Optional

from stackwright.cli.report import build_executor, print_report, print_report_json
from stackwright.core.errors import OrchestrationError, main_with_error_handling
from stackwright.loader import load_declarations
from stackwright.orchestration import RunReport


def _show(report: RunReport, stacks_file: str, output_format: str) -> None:
    if output_format == "json":
        print_report_json(report)
    else:
        print_report(report, stacks_file)


@main_with_error_handling()
def apply_command(
    stacks_file: str,
    only: Optional[List[str]] = None,
    diff: bool = False,
    change_set: bool = False,
    output_format: str = "text",
) -> int:
    """
    Apply declared stacks, creating or updating those that differ.

    Args:
        stacks_file: Path to the stacks file
        only: Restrict the run to these stacks (default: all)
        diff: Show differences without applying them
        change_set: Create change sets instead of updating existing stacks
        output_format: Output format (text, json)

    Returns:
        Exit code (0 for success)
    """
    declarations = load_declarations(stacks_file)
    executor = build_executor()

    try:
        report = asyncio.run(
            executor.apply(declarations, only, diff_only=diff, change_set=change_set)
        )
    except OrchestrationError as exc:
        _show(exc.report, stacks_file, output_format)
        raise

    _show(report, stacks_file, output_format)
    return 0


def plan_command(
    stacks_file: str,
    only: Optional[List[str]] = None,
    output_format: str = "text",
) -> int:
    """Show what apply would change, without changing anything."""
    return apply_command(stacks_file, only=only, diff=True, output_format=output_format)
