"""
Telemetry module for structured logging and store signals.

This module provides:
- JSONFormatter for structured JSON log output
- TelemetryService for logging setup and per-operation store logging
- StoreEvents for connect/disconnect/error signals
"""

from telemetry.events import CONNECT, DISCONNECT, ERROR, StoreEvents
from telemetry.service import (
    JSONFormatter,
    TelemetryService,
    get_telemetry_service,
    initialize_telemetry,
)

__all__ = [
    "CONNECT",
    "DISCONNECT",
    "ERROR",
    "JSONFormatter",
    "StoreEvents",
    "TelemetryService",
    "get_telemetry_service",
    "initialize_telemetry",
]
