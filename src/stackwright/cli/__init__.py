"""
CLI commands for Stackwright.
"""

from stackwright.cli.apply import apply_command, plan_command
from stackwright.cli.create import create_command
from stackwright.cli.destroy import destroy_command
from stackwright.cli.validate import validate_command

__all__ = [
    "apply_command",
    "plan_command",
    "create_command",
    "destroy_command",
    "validate_command",
]
