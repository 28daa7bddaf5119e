"""
Error taxonomy and error handling for cargo-scorecard.

Defines the lookup errors raised by the registry and scorecard clients,
the fatal errors that abort a run, and a categorized error handler that
logs problems and keeps statistics without interrupting the batch.
"""

import logging
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import urlparse


class DependencyLookupError(Exception):
    """A single registry or scorecard lookup failed."""

    kind = "lookup"

    def __init__(
        self, subject: str, message: str, cause: Optional[BaseException] = None
    ):
        self.subject = subject
        self.message = message
        self.cause = cause
        super().__init__(f"{message} ({subject})")


class TransportError(DependencyLookupError):
    """The upstream API could not be reached."""

    kind = "transport"


class HttpStatusError(DependencyLookupError):
    """The upstream API answered with a non-success status code."""

    kind = "http_status"

    def __init__(
        self,
        subject: str,
        status_code: int,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.status_code = status_code
        super().__init__(subject, message or f"HTTP {status_code}", cause)


class ParseError(DependencyLookupError):
    """The response body did not have the expected JSON shape."""

    kind = "parse"


class ListerError(Exception):
    """The dependency list could not be produced."""


class ClientConstructionError(Exception):
    """The shared HTTP client could not be built."""


@dataclass(frozen=True)
class BatchItemError:
    """A lookup failure tied to one dependency of the batch."""

    dependency: str
    stage: str  # "resolve" or "score"
    error: DependencyLookupError

    def __str__(self) -> str:
        return f"{self.dependency} [{self.stage}] {self.error}"


class ErrorLevel(Enum):
    """Error severity levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ErrorCategory(Enum):
    """Error categories for better classification."""

    NETWORK = "NETWORK"
    PARSING = "PARSING"
    LISTER = "LISTER"
    CONFIGURATION = "CONFIGURATION"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None
    traceback_info: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error context to dictionary for logging."""
        return {
            "level": self.level.value,
            "category": self.category.value,
            "message": self.message,
            "module": self.module,
            "function": self.function,
            "details": self.details,
            "exception_type": type(self.exception).__name__ if self.exception else None,
            "exception_message": str(self.exception) if self.exception else None,
            "traceback": self.traceback_info,
        }


_LEVEL_MAP = {
    ErrorLevel.DEBUG: logging.DEBUG,
    ErrorLevel.INFO: logging.INFO,
    ErrorLevel.WARNING: logging.WARNING,
    ErrorLevel.ERROR: logging.ERROR,
    ErrorLevel.CRITICAL: logging.CRITICAL,
}


class ErrorHandler:
    """
    Centralized error handler for consistent error management.

    Logs categorized errors and counts them per category and level.
    """

    def __init__(
        self,
        logger_name: str = "cargo_scorecard",
        log_level: int = logging.WARNING,
    ):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(log_level)
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

        self.error_stats: Dict[str, int] = {}

    def handle_error(
        self,
        level: ErrorLevel,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ErrorContext:
        """
        Log an error and count it.

        Args:
            level: Error severity level
            category: Error category
            message: Error message
            module: Module where error occurred
            function: Function where error occurred
            exception: Optional exception object
            details: Additional error details

        Returns:
            ErrorContext: The created error context
        """
        context = ErrorContext(
            level=level,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=(
                "".join(traceback.format_exception_only(type(exception), exception)).strip()
                if exception
                else None
            ),
        )

        stat_key = f"{category.value}_{level.value}"
        self.error_stats[stat_key] = self.error_stats.get(stat_key, 0) + 1

        log_data = {
            "category": category.value,
            "module": module,
            "function": function,
            "details": context.details,
        }
        if exception is not None:
            log_data["exception"] = type(exception).__name__
        self.logger.log(_LEVEL_MAP[level], f"{message} | {log_data}")

        return context

    def warning(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle warning level error."""
        return self.handle_error(
            ErrorLevel.WARNING, category, message, module, function, **kwargs
        )

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        **kwargs,
    ) -> ErrorContext:
        """Handle error level error."""
        return self.handle_error(
            ErrorLevel.ERROR, category, message, module, function, **kwargs
        )

    def get_error_stats(self) -> Dict[str, int]:
        """Get error statistics."""
        return self.error_stats.copy()


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(
    log_level: int = logging.WARNING,
    logger_name: str = "cargo_scorecard",
) -> ErrorHandler:
    """
    Setup global error handling configuration.

    Args:
        log_level: Logging level
        logger_name: Logger name

    Returns:
        ErrorHandler: Configured error handler
    """
    global _global_error_handler
    _global_error_handler = ErrorHandler(logger_name, log_level)
    return _global_error_handler


def _sanitize_url(url: str) -> str:
    """Drop credentials and query strings from a URL before logging it."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return url
    sanitized = f"{parsed.scheme}://{parsed.hostname}"
    if parsed.port:
        sanitized += f":{parsed.port}"
    return sanitized + parsed.path


def log_lookup_error(
    error: DependencyLookupError,
    stage: str,
    dependency: str,
    module: str,
    function: str,
) -> ErrorContext:
    """
    Convenience function for logging a failed registry or scorecard lookup.

    Parse failures are filed under PARSING, everything else under NETWORK.
    """
    details: Dict[str, Any] = {
        "dependency": dependency,
        "stage": stage,
        "subject": _sanitize_url(error.subject),
        "kind": error.kind,
    }
    if isinstance(error, HttpStatusError):
        details["status_code"] = error.status_code

    category = (
        ErrorCategory.PARSING if isinstance(error, ParseError) else ErrorCategory.NETWORK
    )
    return get_error_handler().warning(
        category,
        error.message,
        module,
        function,
        details=details,
        exception=error.cause or error,
    )
