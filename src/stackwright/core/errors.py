"""
Unified error handling for Stackwright.

This module provides the error taxonomy used by the orchestration core,
standardized exit codes, and error reporting for CLI commands.

Exit Codes:
- 0: Success
- 1: Warning (advisory, operation succeeded with warnings)
- 2: Blocked (operation aborted, e.g. destroy not confirmed)
- 10: Configuration error
- 11: Provider error (provisioning API failure)
- 12: Validation error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Iterable, TypeVar

import structlog

if TYPE_CHECKING:
    from stackwright.orchestration.results import RunReport

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    BLOCKED = 2
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class StackwrightError(Exception):
    """Base exception for Stackwright errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StackwrightError):
    """Raised for configuration-related errors.

    Always raised before any remote call is attempted.
    """

    exit_code = ExitCode.CONFIG_ERROR


class UnknownStackError(ConfigurationError):
    """Raised when a selection or ``dependsOn`` entry names an undeclared stack."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(
            f"Unknown stacks: {','.join(self.names)}",
            details={"unknown": self.names},
        )


class DependencyCycleError(ConfigurationError):
    """Raised when the selected stacks depend on each other in a loop."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            f"Dependency cycle: {' -> '.join(cycle)}",
            details={"cycle": cycle},
        )


class BlockedError(StackwrightError):
    """Raised when an operation is aborted before it starts."""

    exit_code = ExitCode.BLOCKED


class ValidationError(StackwrightError):
    """Raised when the provider rejects a template."""

    exit_code = ExitCode.VALIDATION_ERROR


class DependencyResolutionError(StackwrightError):
    """A stack cannot proceed because an upstream input is unavailable."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(self, stack_name: str, dependency: str, cause: BaseException | str):
        self.stack_name = stack_name
        self.dependency = dependency
        self.cause = cause
        super().__init__(
            f"Error from dependency {dependency}: {cause}",
            details={"stack": stack_name, "dependency": dependency},
        )


class RemoteOperationError(StackwrightError):
    """Raised when the provisioning API rejects or fails an operation."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        *,
        stack_name: str | None = None,
        code: str | None = None,
        reason: str | None = None,
    ):
        self.stack_name = stack_name
        self.code = code
        self.reason = reason
        details = {k: v for k, v in {"stack": stack_name, "code": code}.items() if v}
        super().__init__(message, details=details)


class NoChangesError(RemoteOperationError):
    """The provider reported that an update would change nothing."""


class StackFailedError(RemoteOperationError):
    """A stack reached a terminal ``*_FAILED`` status."""


class UnknownStatusError(RemoteOperationError):
    """A stack reported a status outside the recognized set."""

    def __init__(self, status: str, reason: str | None = None, *, stack_name: str | None = None):
        self.status = status
        super().__init__(
            f"Unknown status: {status}: {reason}",
            stack_name=stack_name,
            code=status,
            reason=reason,
        )


class OrchestrationError(StackwrightError):
    """Aggregate failure of an orchestration run."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(self, action: str, report: RunReport):
        self.report = report
        failures = report.failures
        super().__init__(
            f"Failed to {action} {len(failures)} stacks",
            details={"failed": [name for name, _ in failures]},
        )


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Catches exceptions and converts them to appropriate exit codes with
    consistent error reporting.

    Exit codes:
        - StackwrightError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except StackwrightError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=int(e.exit_code),
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130  # Standard exit code for SIGINT
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=int(ExitCode.UNKNOWN_ERROR),
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: StackwrightError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
