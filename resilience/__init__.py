"""
Resilience patterns for the session store.

Document store round trips are guarded by a circuit breaker so that an
unreachable store fails fast instead of piling up pending sessions.
"""

from resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenException,
    CircuitState,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitOpenException",
    "CircuitState",
]
