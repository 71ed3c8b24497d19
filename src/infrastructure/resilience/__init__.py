"""Resilience patterns - Circuit Breaker."""

from src.infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitOpenError,
    CircuitState,
    get_all_breakers,
    get_circuit_breaker,
    reset_all_breakers,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitOpenError",
    "CircuitState",
    "get_circuit_breaker",
    "get_all_breakers",
    "reset_all_breakers",
]
