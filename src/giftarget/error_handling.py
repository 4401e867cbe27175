"""Standardized Error Handling Utilities

Provides the exception taxonomy used across giftarget together with the
helpers that log and transform foreign exceptions into it. Every error carries
an :class:`ErrorKind` so programmatic callers can branch on identity while the
orchestration boundary renders a stable user-facing message.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """Stable identity of a giftarget failure."""

    INPUT_NOT_FOUND = "input_not_found"
    NOT_A_GIF = "not_a_gif"
    TRUNCATED = "truncated"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    BACKEND_INVOCATION_FAILED = "backend_invocation_failed"
    NO_VALID_RESULTS = "no_valid_results"
    TEMP_STORAGE_FAILED = "temp_storage_failed"
    IO_ERROR = "io_error"


class GiftargetError(Exception):
    """Base exception class for all giftarget errors."""

    kind: ErrorKind = ErrorKind.IO_ERROR

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class InputNotFoundError(GiftargetError):
    """Raised when the input file does not exist."""

    kind = ErrorKind.INPUT_NOT_FOUND


class NotAGifError(GiftargetError):
    """Raised when a file lacks the GIF87a/GIF89a signature."""

    kind = ErrorKind.NOT_A_GIF


class TruncatedGifError(GiftargetError):
    """Raised when a GIF block stream ends in the middle of a block."""

    kind = ErrorKind.TRUNCATED


class BackendUnavailableError(GiftargetError):
    """Raised when the compression backend binary cannot be found."""

    kind = ErrorKind.BACKEND_UNAVAILABLE


class BackendInvocationError(GiftargetError):
    """Raised when a single backend invocation fails.

    Absorbed per trial by the worker pool; only fatal when every trial fails.
    """

    kind = ErrorKind.BACKEND_INVOCATION_FAILED


class NoValidResultsError(GiftargetError):
    """Raised when no trial outcome survives the selection filters."""

    kind = ErrorKind.NO_VALID_RESULTS


class TempStorageError(GiftargetError):
    """Raised when scoped temporary storage cannot be created."""

    kind = ErrorKind.TEMP_STORAGE_FAILED


class GifIOError(GiftargetError):
    """Raised for filesystem failures outside the categories above."""

    kind = ErrorKind.IO_ERROR


_USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INPUT_NOT_FOUND: "Input file does not exist",
    ErrorKind.NOT_A_GIF: "Input file is not a GIF",
    ErrorKind.TRUNCATED: "Input GIF is truncated or corrupted",
    ErrorKind.BACKEND_UNAVAILABLE: "gifsicle was not found, please install it first",
    ErrorKind.BACKEND_INVOCATION_FAILED: "gifsicle failed to compress the GIF",
    ErrorKind.NO_VALID_RESULTS: "No valid compression result was found",
    ErrorKind.TEMP_STORAGE_FAILED: "Could not create temporary working storage",
    ErrorKind.IO_ERROR: "A file system error occurred",
}


def user_message(error: GiftargetError) -> str:
    """Render *error* as a stable, user-facing sentence."""
    return f"Compression failed: {_USER_MESSAGES[error.kind]} ({error})"


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[GiftargetError] = GifIOError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> GiftargetError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of GiftargetError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        GiftargetError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"{operation.capitalize()} failed: {error}"
    context_str = ", ".join(
        f"{k}={v}" for k, v in error_context.items() if k != "operation"
    )
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


@contextmanager
def error_context(
    operation: str,
    error_type: type[GiftargetError] = GifIOError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
) -> Iterator[None]:
    """Context manager for standardized error handling.

    Usage:
        with error_context("create working directory", TempStorageError):
            tempfile.mkdtemp()

    giftarget errors pass through unchanged; any other exception is logged and
    re-raised as *error_type*.
    """
    try:
        yield
    except GiftargetError:
        raise
    except Exception as e:
        handle_error(e, operation, error_type, level, context, logger, reraise=True)
