"""
Circuit breaker guarding document store round trips.

The breaker has three states:
- CLOSED: Normal operation, store calls pass through
- OPEN: The store is failing, calls are rejected immediately
- HALF_OPEN: A single probe call decides whether the store recovered

Expected outcomes of a store call, such as a missing document or a stale
revision, are configured as ``excluded_exceptions``: they propagate to the
caller unchanged and never count towards opening the circuit.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """
    Enumeration of circuit breaker states.

    - CLOSED -> OPEN: After failure_threshold consecutive failures
    - OPEN -> HALF_OPEN: After recovery_timeout has elapsed
    - HALF_OPEN -> CLOSED: On successful probe
    - HALF_OPEN -> OPEN: On failed probe
    """
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """
    Configuration for a circuit breaker.

    Attributes:
        failure_threshold: Number of consecutive failures before opening
            the circuit.
        recovery_timeout: Time to wait before letting a probe through.
        half_open_max_calls: Maximum number of probe calls allowed in
            half-open state.
        excluded_exceptions: Exception types that are re-raised without
            being recorded as failures.
    """
    failure_threshold: int = 3
    recovery_timeout: timedelta = field(default_factory=lambda: timedelta(seconds=30))
    half_open_max_calls: int = 1
    excluded_exceptions: Tuple[Type[BaseException], ...] = ()


class CircuitOpenException(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, circuit_name: str, time_until_retry: Optional[timedelta] = None):
        """
        Initialize a CircuitOpenException.

        Args:
            circuit_name: The name of the circuit breaker that is open
            time_until_retry: Optional time until the circuit will let a
                probe through
        """
        self.circuit_name = circuit_name
        self.time_until_retry = time_until_retry

        message = f"Circuit breaker '{circuit_name}' is open"
        if time_until_retry is not None:
            seconds = int(time_until_retry.total_seconds())
            message += f", retry in {seconds} seconds"

        super().__init__(message)


class CircuitBreaker:
    """
    Circuit breaker for calls against the document store.

    Example:
        breaker = CircuitBreaker(
            "elasticsearch",
            CircuitBreakerConfig(excluded_exceptions=(NotFoundError,)),
        )
        response = await breaker.execute(client.get, index="sessions", id="sess:1")
    """

    def __init__(self, name: str, config: Optional[CircuitBreakerConfig] = None):
        """
        Initialize a circuit breaker.

        Args:
            name: A descriptive name for this circuit breaker (e.g., "elasticsearch")
            config: Configuration options. Uses defaults if not provided.
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Get the current circuit state."""
        return self._state

    @property
    def failure_count(self) -> int:
        """Get the current failure count."""
        return self._failure_count

    @property
    def last_failure_time(self) -> Optional[datetime]:
        """Get the time of the last failure."""
        return self._last_failure_time

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return True

        elapsed = datetime.utcnow() - self._last_failure_time
        return elapsed >= self.config.recovery_timeout

    def _get_time_until_retry(self) -> Optional[timedelta]:
        if self._last_failure_time is None:
            return None

        elapsed = datetime.utcnow() - self._last_failure_time
        remaining = self.config.recovery_timeout - elapsed

        if remaining.total_seconds() <= 0:
            return None

        return remaining

    def _on_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.CLOSED
            self._half_open_calls = 0
            logger.info(f"Circuit '{self.name}' closed, store recovered")
        self._failure_count = 0

    def _on_failure(self) -> None:
        self._last_failure_time = datetime.utcnow()

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            self._half_open_calls = 0
            logger.warning(f"Circuit '{self.name}' reopened, probe call failed")
        elif self._state == CircuitState.CLOSED:
            self._failure_count += 1
            if self._failure_count >= self.config.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning(
                    f"Circuit '{self.name}' opened after {self._failure_count} consecutive failures",
                    extra={"extra_data": {
                        "circuit_name": self.name,
                        "recovery_timeout_seconds": self.config.recovery_timeout.total_seconds()
                    }}
                )

    async def execute(
        self,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any
    ) -> Any:
        """
        Execute an async function with circuit breaker protection.

        Args:
            func: The async function to execute
            *args: Positional arguments to pass to the function
            **kwargs: Keyword arguments to pass to the function

        Returns:
            The result of the function call

        Raises:
            CircuitOpenException: If the circuit is open and not ready
                to let a probe through
            Exception: Any exception raised by the underlying function
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._state = CircuitState.HALF_OPEN
                    self._half_open_calls = 0
                else:
                    raise CircuitOpenException(
                        self.name,
                        self._get_time_until_retry()
                    )

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.config.half_open_max_calls:
                    raise CircuitOpenException(
                        self.name,
                        self._get_time_until_retry()
                    )
                self._half_open_calls += 1

        # The call itself runs outside the lock
        try:
            result = await func(*args, **kwargs)
        except self.config.excluded_exceptions:
            # The store answered; the answer just was not a success
            async with self._lock:
                self._on_success()
            raise
        except Exception:
            async with self._lock:
                self._on_failure()
            raise

        async with self._lock:
            self._on_success()
        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None
        self._half_open_calls = 0

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self._state.value}, "
            f"failure_count={self._failure_count})"
        )
