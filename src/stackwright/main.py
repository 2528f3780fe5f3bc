"""
Command line entry point for Stackwright.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from stackwright import __version__
from stackwright.config import get_settings
from stackwright.logging import bind_context, configure_logging


def _add_stack_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("stacks_file", help="Path to the stacks file (YAML or JSON)")
    parser.add_argument(
        "--only", action="append", metavar="STACK",
        help="Only run this stack (repeatable; default: all stacks)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stackwright", description="Stackwright CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Log level (default: from settings)")
    parser.add_argument(
        "--log-format", choices=["json", "console"], help="Log format (default: from settings)"
    )
    subparsers = parser.add_subparsers(dest="command")

    apply_parser = subparsers.add_parser(
        "apply", help="Create or update stacks to match their declarations"
    )
    _add_stack_arguments(apply_parser)
    apply_parser.add_argument("--diff", action="store_true",
                              help="Show differences without applying them")
    apply_parser.add_argument("--change-set", action="store_true",
                              help="Create change sets instead of updating existing stacks")
    apply_parser.add_argument("--output", choices=["text", "json"], default="text",
                              help="Output format")

    plan_parser = subparsers.add_parser("plan", help="Preview changes (same as apply --diff)")
    _add_stack_arguments(plan_parser)
    plan_parser.add_argument("--output", choices=["text", "json"], default="text",
                             help="Output format")

    create_parser = subparsers.add_parser(
        "create", help="Create stacks; stacks that fail to create are deleted"
    )
    _add_stack_arguments(create_parser)

    destroy_parser = subparsers.add_parser("destroy", help="Delete stacks, dependents first")
    _add_stack_arguments(destroy_parser)
    destroy_parser.add_argument("-y", "--yes", action="store_true",
                                help="Do not ask for confirmation")

    validate_parser = subparsers.add_parser("validate", help="Validate a template")
    validate_parser.add_argument("--template", required=True, help="Path to the template file")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, args.log_format or settings.log_format)
    bind_context(command=args.command).debug("command_started")

    if args.command == "apply":
        from stackwright.cli.apply import apply_command
        sys.exit(apply_command(
            args.stacks_file,
            only=args.only,
            diff=args.diff,
            change_set=args.change_set,
            output_format=args.output,
        ))

    if args.command == "plan":
        from stackwright.cli.apply import plan_command
        sys.exit(plan_command(args.stacks_file, only=args.only, output_format=args.output))

    if args.command == "create":
        from stackwright.cli.create import create_command
        sys.exit(create_command(args.stacks_file, only=args.only))

    if args.command == "destroy":
        from stackwright.cli.destroy import destroy_command
        sys.exit(destroy_command(args.stacks_file, only=args.only, yes=args.yes))

    if args.command == "validate":
        from stackwright.cli.validate import validate_command
        sys.exit(validate_command(args.template))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
