"""
Circuit breaker for Vault backend reads.

This module provides a wrapper around aiobreaker so that an unavailable
Vault backend fails fast instead of tying up every sync sequence until its
timeout. State changes are exported as a Prometheus gauge.
"""

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

import aiobreaker
from aiobreaker.state import CircuitHalfOpenState, CircuitOpenState
from opentelemetry import trace

from vault_operator.observability.metrics import CIRCUIT_BREAKER_STATE

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _state_value(state: Any) -> int:
    """Map a breaker state to the gauge value (0=closed, 1=open, 2=half-open)."""
    name = getattr(state, "name", "")
    name = name.lower() if isinstance(name, str) else ""
    if isinstance(state, CircuitOpenState) or name == "open":
        return 1
    if isinstance(state, CircuitHalfOpenState) or name in ("half-open", "half_open"):
        return 2
    return 0


class _MetricsListener(aiobreaker.CircuitBreakerListener):
    def __init__(self, backend: str):
        self.backend = backend

    def state_change(self, breaker, old, new):
        try:
            old_name = getattr(old, "name", type(old).__name__)
            new_name = getattr(new, "name", type(new).__name__)

            logger.warning(
                f"Circuit breaker state changed: {old_name} -> {new_name} "
                f"(backend={self.backend})"
            )
            CIRCUIT_BREAKER_STATE.labels(backend=self.backend).set(_state_value(new))
        except Exception as e:
            logger.error(f"Error in circuit breaker listener: {e}")


class VaultCircuitBreaker:
    """
    Circuit breaker wrapper for the Vault client.

    Wraps aiobreaker.CircuitBreaker and updates Prometheus metrics
    on state changes.
    """

    def __init__(self, backend: str, fail_max: int, timeout_duration: int):
        """
        Initialize circuit breaker.

        Args:
            backend: Backend label, usually the Vault base URL
            fail_max: Number of failures before opening the circuit
            timeout_duration: Seconds to wait before attempting recovery (half-open)
        """
        self.backend = backend
        self._breaker = aiobreaker.CircuitBreaker(
            fail_max=fail_max,
            timeout_duration=timedelta(seconds=timeout_duration),
            listeners=[_MetricsListener(backend)],
        )
        CIRCUIT_BREAKER_STATE.labels(backend=backend).set(0)

    async def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Call a function with circuit breaker protection.

        Raises:
            aiobreaker.CircuitBreakerError: If the circuit is open
            Exception: Whatever the function raises
        """
        with tracer.start_as_current_span("circuit_breaker_call") as span:
            span.set_attribute("circuit_breaker.backend", self.backend)
            span.set_attribute("circuit_breaker.state", self.current_state)

            try:
                return await self._breaker.call_async(func, *args, **kwargs)
            except aiobreaker.CircuitBreakerError:
                span.set_attribute("error", True)
                span.set_attribute("circuit_breaker.error", "open")
                raise
            except Exception as e:
                span.set_attribute("error", True)
                span.record_exception(e)
                raise

    @property
    def current_state(self) -> str:
        """Get current state name (lowercase)."""
        return str(self._breaker.current_state.name).lower()
