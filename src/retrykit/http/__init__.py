"""HTTP collaborator: httpx clients whose requests run through the retry engine."""

from retrykit.http.client import (
    AsyncRetryingClient,
    RetryingClient,
    check_response,
    is_retryable_status,
)

__all__ = [
    "RetryingClient",
    "AsyncRetryingClient",
    "check_response",
    "is_retryable_status",
]
