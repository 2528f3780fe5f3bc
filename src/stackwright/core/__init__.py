"""Core modules for Stackwright - centralized error definitions."""

from stackwright.core.errors import (
    BlockedError,
    ConfigurationError,
    DependencyCycleError,
    DependencyResolutionError,
    ExitCode,
    NoChangesError,
    OrchestrationError,
    RemoteOperationError,
    StackFailedError,
    StackwrightError,
    UnknownStackError,
    UnknownStatusError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "StackwrightError",
    "ConfigurationError",
    "UnknownStackError",
    "DependencyCycleError",
    "DependencyResolutionError",
    "RemoteOperationError",
    "NoChangesError",
    "StackFailedError",
    "UnknownStatusError",
    "OrchestrationError",
    "ValidationError",
    "BlockedError",
    "main_with_error_handling",
    "format_error_message",
]
