"""
CLI command for creating stacks from scratch.
"""

import asyncio
from typing import List, Optional

from stackwright.cli.report import build_executor, print_report
from stackwright.core.errors import OrchestrationError, main_with_error_handling
from stackwright.loader import load_declarations


@main_with_error_handling()
def create_command(stacks_file: str, only: Optional[List[str]] = None) -> int:
    """Create the selected stacks; a stack that fails to create is deleted."""
    declarations = load_declarations(stacks_file)
    executor = build_executor()

    try:
        report = asyncio.run(executor.create(declarations, only))
    except OrchestrationError as exc:
        print_report(exc.report, stacks_file, show_diffs=False)
        raise

    print_report(report, stacks_file, show_diffs=False)
    return 0
