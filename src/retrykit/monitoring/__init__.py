"""Prometheus metrics for retry executions."""

from retrykit.monitoring.metrics import (
    retry_attempts_total,
    retry_delay_seconds,
    retry_outcomes_total,
)

__all__ = [
    "retry_attempts_total",
    "retry_delay_seconds",
    "retry_outcomes_total",
]
