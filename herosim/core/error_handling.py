"""
Centralized error handling for the resolution engines.

Faults inside an engine are recorded and converted to conservative default
results; precondition failures are returned to the caller as Refusal values
so a combat round is never interrupted by an exception.
"""

import functools
import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Enumeration of error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class EngineError:
    """Represents an engine error with severity, context, and optional exception information."""

    message: str
    severity: ErrorSeverity
    context: dict[str, Any]
    exception: Optional[Exception] = None


class Refusal(BaseModel):
    """A resolution that was refused before any roll was made."""

    reason: str = Field(
        description="User-facing explanation of why the action was refused.",
    )
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Identifiers of the character and power involved.",
    )

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return self.reason


class ErrorHandler:
    """Centralized error handling for the engines."""

    def __init__(self) -> None:
        """Initialize the ErrorHandler with a logger and empty error history."""
        self.logger = logging.getLogger("herosim.errors")
        self.error_history: list[EngineError] = []

    def handle(
        self,
        message: str,
        severity: ErrorSeverity,
        context: Optional[dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> None:
        """Record an error and log it according to its severity."""
        error = EngineError(
            message=message,
            severity=severity,
            context=context or {},
            exception=exception,
        )
        self.error_history.append(error)

        # Prefix context keys to avoid conflicts with logging system reserved keys
        safe_context = {f"ctx_{key}": value for key, value in error.context.items()}

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"CRITICAL: {error.message}", extra=safe_context)
            if error.exception:
                self.logger.critical(
                    "".join(traceback.format_exception(error.exception))
                )
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"ERROR: {error.message}", extra=safe_context)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"WARNING: {error.message}", extra=safe_context)
        else:
            self.logger.info(f"INFO: {error.message}", extra=safe_context)

    def safe_execute(
        self,
        operation: Callable[[], T],
        default: T,
        error_message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[dict] = None,
    ) -> T:
        """Execute an operation, returning the default value if it raises."""
        try:
            return operation()
        except Exception as e:
            self.handle(f"{error_message}: {e!s}", severity, context, e)
            return default

    def clear(self) -> None:
        """Forget every recorded error."""
        self.error_history.clear()


# Global error handler instance
ERROR_HANDLER = ErrorHandler()

# Returned by safe_execute when the wrapped operation raised.
_FAILED = object()


def safe_operation(
    default_value: Any = None,
    error_message: str = "Operation failed",
    severity: ErrorSeverity = ErrorSeverity.HIGH,
) -> Callable:
    """
    Decorator for safe operation execution.

    Args:
        default_value (Any): Value returned when the operation raises. A
            callable is invoked with the original arguments to build it.
        error_message (str): Error message prefix for logging.
        severity (ErrorSeverity): Severity level for errors.

    Returns:
        Callable: The decorator function.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            result = ERROR_HANDLER.safe_execute(
                lambda: func(*args, **kwargs),
                _FAILED,
                error_message,
                severity,
                {"operation": func.__name__},
            )
            if result is not _FAILED:
                return result
            if callable(default_value):
                return default_value(*args, **kwargs)
            return default_value

        return wrapper

    return decorator


def log_info(
    message: str,
    context: Optional[dict[str, Any]] = None,
    exception: Optional[Exception] = None,
) -> None:
    """Log an info-level message."""
    ERROR_HANDLER.handle(message, ErrorSeverity.LOW, context, exception)


def log_warning(
    message: str,
    context: Optional[dict[str, Any]] = None,
    exception: Optional[Exception] = None,
) -> None:
    """Log a warning-level message."""
    ERROR_HANDLER.handle(message, ErrorSeverity.MEDIUM, context, exception)


def log_error(
    message: str,
    context: Optional[dict[str, Any]] = None,
    exception: Optional[Exception] = None,
) -> None:
    """Log an error-level message."""
    ERROR_HANDLER.handle(message, ErrorSeverity.HIGH, context, exception)


def log_critical(
    message: str,
    context: Optional[dict[str, Any]] = None,
    exception: Optional[Exception] = None,
) -> None:
    """Log a critical-level message."""
    ERROR_HANDLER.handle(message, ErrorSeverity.CRITICAL, context, exception)


# ==============================================================================
# VALIDATION HELPERS
# ==============================================================================


def require_non_empty_string(
    value: Any, param_name: str, context: Optional[dict[str, Any]] = None
) -> str:
    """
    Validates that a value is a non-empty string.

    Args:
        value: The value to validate
        param_name: Human-readable parameter name for error messages
        context: Additional context for logging

    Returns:
        str: The validated string value

    Raises:
        ValueError: If validation fails
    """
    if not value or not isinstance(value, str):
        log_error(
            f"{param_name} must be a non-empty string, got: {value}",
            {**(context or {}), "param_name": param_name, "value": value},
        )
        raise ValueError(f"Invalid {param_name}: {value}")
    return value


def ensure_non_negative_int(
    value: Any, param_name: str, default: int = 0, context: Optional[dict[str, Any]] = None
) -> int:
    """
    Ensures a value is a non-negative integer, correcting if needed.

    Args:
        value: The value to ensure is a non-negative integer
        param_name: Human-readable parameter name for error messages
        default: Default value if correction is needed
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        log_warning(
            f"{param_name} must be non-negative integer, got: {value}, correcting",
            {**(context or {}), "param_name": param_name, "value": value},
        )
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return max(0, int(value))
        return default
    return value


def ensure_int_in_range(
    value: Any,
    param_name: str,
    min_val: int,
    max_val: Optional[int] = None,
    default: Optional[int] = None,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """
    Ensures a value is an integer within the specified range, correcting if needed.

    Args:
        value: The value to validate
        param_name: Human-readable parameter name for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive), None for no maximum
        default: Default value if the value cannot be converted, min_val if None
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    if default is None:
        default = min_val
    if (
        isinstance(value, int)
        and not isinstance(value, bool)
        and value >= min_val
        and (max_val is None or value <= max_val)
    ):
        return value

    range_desc = f">= {min_val}" if max_val is None else f"between {min_val} and {max_val}"
    log_warning(
        f"{param_name} must be integer {range_desc}, got: {value}, correcting",
        {**(context or {}), "param_name": param_name, "value": value},
    )
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return default
    converted = int(value)
    if converted < min_val:
        return min_val
    if max_val is not None and converted > max_val:
        return max_val
    return converted
