"""
CLI command for destroying stacks.
"""

import asyncio
from typing import Dict, List, Optional

from stackwright.cli.report import build_executor, print_report
from stackwright.cli.ux import confirm, console, print_table, warning
from stackwright.core.errors import BlockedError, OrchestrationError, main_with_error_handling
from stackwright.loader import load_declarations
from stackwright.remote import StackResource


def print_resources(resources: Dict[str, List[StackResource]]) -> None:
    """Show what each stack would take down."""
    for stack_name, items in resources.items():
        if not items:
            console.print(f"[muted]{stack_name}: no resources[/muted]")
            continue
        print_table(
            f"Resources to be deleted: {stack_name}",
            ["Type", "Logical ID", "Physical ID"],
            [
                [r.resource_type, r.logical_resource_id, r.physical_resource_id or ""]
                for r in items
            ],
        )


@main_with_error_handling()
def destroy_command(
    stacks_file: str,
    only: Optional[List[str]] = None,
    yes: bool = False,
) -> int:
    """
    Delete the selected stacks, dependents first.

    Args:
        stacks_file: Path to the stacks file
        only: Restrict the run to these stacks (default: all)
        yes: Skip the confirmation prompt

    Returns:
        Exit code (0 for success)
    """
    declarations = load_declarations(stacks_file)
    executor = build_executor()

    resources = asyncio.run(executor.preview_destroy(declarations, only))
    print_resources(resources)

    if not yes and not confirm("Are you sure you want to delete these stacks?"):
        warning("Destroy was not confirmed; no stacks were deleted")
        raise BlockedError("Aborting destroy", details={"stacks": sorted(resources)})

    try:
        report = asyncio.run(executor.destroy(declarations, only))
    except OrchestrationError as exc:
        print_report(exc.report, stacks_file, show_diffs=False)
        raise

    print_report(report, stacks_file, show_diffs=False)
    return 0
