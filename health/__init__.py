"""
Health module for the session store.

This module provides the connection monitor that probes document store
reachability and emits connect/disconnect signals.
"""

from health.service import (
    ConnectionMonitor,
    DependencyHealth,
)

__all__ = [
    "ConnectionMonitor",
    "DependencyHealth",
]
