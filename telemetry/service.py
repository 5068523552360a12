"""
Telemetry service for structured logging.

This module provides structured JSON logging and a helper that records one
log entry per session store operation, with its duration and outcome.
"""

import logging
import json
import sys
from datetime import datetime
from typing import Any, Optional, Dict


class JSONFormatter(logging.Formatter):
    """
    Log formatter that outputs logs in JSON format.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry

    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


class TelemetryService:
    """
    Centralized logging for the session store.

    Attributes:
        settings: Settings providing ``log_level``; INFO when absent
    """

    def __init__(self, settings: Optional[Any] = None, configure_root: bool = True):
        """
        Initialize the telemetry service.

        Args:
            settings: Settings containing the log_level configuration
            configure_root: Install the JSON handler on the root logger.
                Disable when the host application owns logging setup.
        """
        self.settings = settings
        self._logger = logging.getLogger("telemetry")
        if configure_root:
            self._setup_logging()

    def _setup_logging(self) -> None:
        """Install a stdout handler with JSONFormatter on the root logger."""
        log_level_str = "INFO"
        if self.settings and hasattr(self.settings, "log_level"):
            log_level_str = self.settings.log_level

        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicate logs
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(log_level)
        stdout_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(stdout_handler)

        self._logger.info("Telemetry service initialized", extra={
            "extra_data": {"log_level": log_level_str}
        })

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger with the specified name."""
        return logging.getLogger(name)

    def log_store_operation(
        self,
        operation: str,
        session_id: Optional[str],
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
        error_code: Optional[str] = None
    ) -> None:
        """
        Log a session store operation with its outcome.

        A missing session is an expected answer, so DOCUMENT_NOT_FOUND
        failures are logged at INFO rather than ERROR.

        Args:
            operation: Name of the operation (get, set, touch, destroy, cleanup)
            session_id: Session the operation targeted, if any
            duration_ms: Execution duration in milliseconds
            success: Whether the operation succeeded
            error: Error message if the operation failed
            error_code: ErrorCode value of the failure, if any
        """
        log_data: Dict[str, Any] = {
            "operation": operation,
            "session_id": session_id,
            "duration_ms": round(duration_ms, 2),
            "success": success,
        }
        if error:
            log_data["error"] = error
        if error_code:
            log_data["error_code"] = error_code

        if success or error_code == "DOCUMENT_NOT_FOUND":
            level = logging.INFO
        else:
            level = logging.ERROR
        self._logger.log(
            level,
            f"Session store operation: {operation}",
            extra={"extra_data": log_data}
        )


_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """Get the global telemetry service instance, or None if not initialized."""
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """
    Initialize the global telemetry service.

    Args:
        settings: Settings for configuration

    Returns:
        The initialized telemetry service
    """
    global _telemetry_service
    _telemetry_service = TelemetryService(settings)
    return _telemetry_service
