"""
Structured logging configuration for cargo-scorecard.

Emits one JSON object per event so enrichment runs can be inspected or
shipped to a log pipeline. Logs go to stderr; stdout is reserved for reports.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ScorecardLogger:
    """Event-style logger: every call names an event and attaches fields."""

    def __init__(self, name: str = "cargo_scorecard"):
        self.logger = logging.getLogger(f"cargo_scorecard.{name}")
        self.logger.propagate = False
        self.run_context: Dict[str, Any] = {}
        self._setup_logger()

    def _setup_logger(self, enable_json: bool = True) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            self.logger.addHandler(handler)
        formatter = (
            StructuredFormatter()
            if enable_json
            else logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(event_type)s")
        )
        for handler in self.logger.handlers:
            handler.setFormatter(formatter)

    def set_run_context(
        self, run_id: Optional[str] = None, total_dependencies: Optional[int] = None
    ) -> None:
        """Set context fields attached to every event of a run."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if total_dependencies is not None:
            self.run_context["total_dependencies"] = total_dependencies

    def clear_run_context(self) -> None:
        self.run_context.clear()

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        self.logger.log(level, "", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log(logging.WARNING, event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log(logging.ERROR, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log(logging.DEBUG, event_type, **kwargs)


_registry_logger = ScorecardLogger("registry")
_scorecard_logger = ScorecardLogger("scorecard")
_enrichment_logger = ScorecardLogger("enrichment")

_ALL_LOGGERS = (_registry_logger, _scorecard_logger, _enrichment_logger)


def get_registry_logger() -> ScorecardLogger:
    """Get the crates.io lookup logger."""
    return _registry_logger


def get_scorecard_logger() -> ScorecardLogger:
    """Get the scorecard lookup logger."""
    return _scorecard_logger


def get_enrichment_logger() -> ScorecardLogger:
    """Get the enrichment pipeline logger."""
    return _enrichment_logger


def log_lookup(
    stage: str,
    subject: str,
    found: bool,
    response_time_ms: Optional[int] = None,
) -> None:
    """Log the result of a successful registry or scorecard call."""
    logger = _registry_logger if stage == "resolve" else _scorecard_logger
    log_data: Dict[str, Any] = {"subject": subject, "found": found}
    if response_time_ms is not None:
        log_data["response_time_ms"] = response_time_ms
    logger.debug(f"{stage}_completed", **log_data)


def log_enrichment_start(run_id: str, total_dependencies: int) -> None:
    """Log the start of an enrichment run and set the run context."""
    for logger in _ALL_LOGGERS:
        logger.set_run_context(run_id, total_dependencies)
    _enrichment_logger.info("enrichment_started")


def log_enrichment_complete(
    duration_ms: int,
    scored: int,
    missing_repository: int,
    error_count: int,
) -> None:
    """Log the end of an enrichment run and clear the run context."""
    _enrichment_logger.info(
        "enrichment_completed",
        duration_ms=duration_ms,
        scored=scored,
        missing_repository=missing_repository,
        error_count=error_count,
    )
    for logger in _ALL_LOGGERS:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure level and format of every cargo-scorecard logger."""
    level = getattr(logging, log_level.upper(), logging.WARNING)
    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        logger._setup_logger(enable_json)


configure_logging()
