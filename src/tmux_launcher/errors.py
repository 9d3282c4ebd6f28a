"""Error handling types (Result + ErrorReport) and the launcher exceptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


# =============================================================================
# Error Handling Types (Result + ErrorReport)
# =============================================================================


class ErrorType(Enum):
    FILE_NOT_FOUND = "file_not_found"
    PARSE_ERROR = "parse_error"
    VALIDATION_ERROR = "validation_error"
    EXTERNAL_TOOL_ERROR = "external_tool_error"
    PERMISSION_ERROR = "permission_error"
    TIMEOUT_ERROR = "timeout_error"
    NOT_AVAILABLE = "not_available"


@dataclass
class Error:
    error_type: ErrorType
    message: str
    context: dict = field(default_factory=dict)
    original_exception: Exception = None


@dataclass
class Result(Generic[T]):
    success: bool
    value: T = None
    error: Error = None

    @staticmethod
    def ok(value: T) -> 'Result[T]':
        return Result(success=True, value=value)

    @staticmethod
    def err(error: Error) -> 'Result[T]':
        return Result(success=False, error=error)

    def is_ok(self) -> bool:
        return self.success

    def is_err(self) -> bool:
        return not self.success


@dataclass
class ErrorReport:
    errors: list[Error] = field(default_factory=list)
    warnings: list[Error] = field(default_factory=list)

    def add_error(self, error: Error):
        self.errors.append(error)
        # Message goes through str.format when extras are given
        logger.error(
            "{}",
            error.message,
            operation="error_report",
            status="error",
            error_type=error.error_type.value,
            **error.context
        )

    def add_warning(self, error: Error):
        self.warnings.append(error)
        logger.warning(
            "{}",
            error.message,
            operation="error_report",
            status="warning",
            error_type=error.error_type.value,
            **error.context
        )

    def collect_result(self, result: Result) -> bool:
        """Collect error from Result into report if failed."""
        if result.is_err():
            self.add_error(result.error)
            return False
        return True

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def log_summary(self, op_trace_id: str):
        logger.info(
            "Operation complete",
            operation="error_report",
            status="complete",
            trace_id=op_trace_id,
            metrics={
                "total_errors": len(self.errors),
                "total_warnings": len(self.warnings)
            }
        )


# =============================================================================
# Exceptions
# =============================================================================


class LauncherError(Exception):
    """Base class for launcher failures. Converts to an Error for Result.err()."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_error(self) -> Error:
        return Error(
            error_type=self.error_type,
            message=str(self),
            context=dict(self.context),
            original_exception=self
        )


class ConfigLoadError(LauncherError):
    """Configuration file missing, unreadable or not valid TOML."""

    error_type = ErrorType.PARSE_ERROR


class ExternalToolError(LauncherError):
    """A tmux (or editor) invocation exited non-zero."""

    error_type = ErrorType.EXTERNAL_TOOL_ERROR

    def __init__(self, message: str, step: str = None, target: str = None,
                 stderr: str = "", returncode: int = None, **context):
        super().__init__(message, step=step, target=target, **context)
        self.step = step
        self.target = target
        self.stderr = stderr
        self.returncode = returncode

    def __str__(self) -> str:
        if self.stderr:
            return f"{self.message}: {self.stderr}"
        return self.message


class ExternalToolTimeout(ExternalToolError):
    """A tmux invocation did not finish within its timeout."""

    error_type = ErrorType.TIMEOUT_ERROR


class LayoutParseError(LauncherError):
    """Grid layout string is not COLSxROWS with positive dimensions."""

    error_type = ErrorType.PARSE_ERROR


class PaneCountMismatch(LauncherError):
    """A template supplies fewer panes than its grid requires."""


class NoEditorFoundError(LauncherError):
    """None of the preferred editors is installed."""

    error_type = ErrorType.NOT_AVAILABLE
