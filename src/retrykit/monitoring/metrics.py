"""Custom Prometheus metrics for retry executions.

Registered on the default registry; expose them with
prometheus_client.start_http_server() or the host application's /metrics.
Alert rules worth configuring:
- retry_outcomes_total{status="exhausted"} (operations giving up)
- retry_attempts_total (high failure rate of a dependency)
"""

from prometheus_client import Counter, Histogram

# === Attempt Metrics ===

retry_attempts_total = Counter(
    "retry_attempts_total",
    "Total failed attempts that were handed to the retry policies",
    ["operation"],
)
"""
Failed attempts counter by operation name.

Labels:
- operation: Retrier name (e.g. "http GET", "db connect")
"""

# === Outcome Metrics ===

retry_outcomes_total = Counter(
    "retry_outcomes_total",
    "Total retry executions by terminal status",
    ["operation", "status"],
)
"""
Terminal outcomes counter.

Labels:
- operation: Retrier name
- status: succeeded, aborted, exhausted
"""

# === Delay Metrics ===

retry_delay_seconds = Histogram(
    "retry_delay_seconds",
    "Wait applied between attempts",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)
"""
Delay histogram by operation name (only positive delays are observed).
"""
