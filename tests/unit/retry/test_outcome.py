"""
Unit tests for RetryOutcome invariants and unwrap().
"""

from datetime import timedelta

import pytest

from retrykit.retry.exceptions import RetryExhausted, StopRetrying
from retrykit.retry.outcome import RetryOutcome, RetryStatus


def test_succeeded_unwrap_returns_value():
    outcome = RetryOutcome(status=RetryStatus.SUCCEEDED, value={"id": 1})

    assert outcome.ok
    assert outcome.unwrap() == {"id": 1}
    assert outcome.last_error is None
    assert outcome.calls == 1


def test_exhausted_unwrap_raises_chained():
    """Test unwrap() raises RetryExhausted from the last error."""
    errors = (ConnectionError("a"), TimeoutError("b"))
    outcome = RetryOutcome(
        status=RetryStatus.EXHAUSTED,
        attempts=2,
        errors=errors,
        elapsed=timedelta(milliseconds=1500),
    )

    with pytest.raises(RetryExhausted) as exc_info:
        outcome.unwrap()

    assert exc_info.value.outcome is outcome
    assert exc_info.value.__cause__ is errors[-1]
    assert exc_info.value.details == {
        "attempts": 2,
        "elapsed_ms": 1500,
        "error_types": ["ConnectionError", "TimeoutError"],
        "errors_dropped": 0,
    }


def test_failed_attempts_need_an_error():
    with pytest.raises(ValueError, match="attempts"):
        RetryOutcome(status=RetryStatus.SUCCEEDED, attempts=1)


def test_errors_cannot_outnumber_attempts():
    with pytest.raises(ValueError, match="attempts"):
        RetryOutcome(status=RetryStatus.SUCCEEDED, attempts=1, errors=(OSError(), OSError()))


def test_truncated_history_is_allowed():
    """Test a bounded history may hold fewer errors than attempts."""
    outcome = RetryOutcome(
        status=RetryStatus.EXHAUSTED, attempts=7, errors=(OSError("6"), OSError("7"))
    )

    assert outcome.errors_dropped == 5
    assert outcome.calls == 7
    assert str(outcome.last_error) == "7"


def test_skipped_outcome_made_no_calls():
    outcome = RetryOutcome(status=RetryStatus.SUCCEEDED, skipped=True)

    assert outcome.calls == 0
    assert outcome.unwrap() is None


def test_only_clean_success_can_be_skipped():
    with pytest.raises(ValueError, match="skipped"):
        RetryOutcome(status=RetryStatus.ABORTED, stop=StopRetrying(), skipped=True)


def test_exhausted_requires_error():
    with pytest.raises(ValueError, match="exhausted"):
        RetryOutcome(status=RetryStatus.EXHAUSTED)


@pytest.mark.parametrize(
    "status,stop",
    [
        (RetryStatus.ABORTED, None),
        (RetryStatus.SUCCEEDED, StopRetrying()),
    ],
)
def test_stop_only_on_aborted(status, stop):
    """Test the sentinel is present exactly when the outcome is aborted."""
    with pytest.raises(ValueError, match="stop"):
        RetryOutcome(status=status, stop=stop)


def test_status_values_are_strings():
    assert [s.value for s in RetryStatus] == ["succeeded", "aborted", "exhausted"]
    assert RetryStatus("exhausted") is RetryStatus.EXHAUSTED
