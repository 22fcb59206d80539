"""
Unit tests for stop strategies.

Tests MaxAttempts, Timeout, Deadline and the Any/All combinators. Time-based
stoppers use the FakeClock fixture instead of the wall clock.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from retrykit.retry.stop import (
    AllStopper,
    AnyStopper,
    DeadlineStopper,
    MaxAttemptsStopper,
    all_of,
    any_of,
    deadline,
    max_attempts,
    timeout,
)

ERROR = ConnectionError("boom")


def constant(result: bool) -> MagicMock:
    """Stopper mock that always answers ``result``."""
    stopper = MagicMock()
    stopper.stop.return_value = result
    return stopper


# ============================================================================
# Leaf Strategies
# ============================================================================


@pytest.mark.parametrize("n", [1, 3, 10])
@pytest.mark.parametrize("attempts", [0, 1, 2, 3, 4, 10, 11])
def test_max_attempts(n, attempts, fake_clock):
    """Test MaxAttempts(n).stop(*, a, *) == (a >= n)."""
    assert max_attempts(n).stop(fake_clock(), attempts, ERROR) == (attempts >= n)


def test_max_attempts_is_class_instance():
    assert max_attempts(2) == MaxAttemptsStopper(2)


def test_timeout_stops_after_elapsed(fake_clock):
    """Test Timeout is false until now passes start + timeout."""
    start = fake_clock()
    stopper = timeout(timedelta(milliseconds=50), clock=fake_clock)

    assert stopper.stop(start, 1, ERROR) is False

    fake_clock.advance(timedelta(milliseconds=50))
    assert stopper.stop(start, 1, ERROR) is False  # not *after* yet

    fake_clock.advance(timedelta(microseconds=1))
    assert stopper.stop(start, 1, ERROR) is True


def test_timeout_ignores_attempts(fake_clock):
    """Test Timeout depends only on the clock."""
    stopper = timeout(timedelta(seconds=1), clock=fake_clock)

    assert stopper.stop(fake_clock(), 1_000_000, ERROR) is False


@pytest.mark.parametrize("limit", [timedelta.max, timedelta(days=999_999_000)])
def test_timeout_near_timedelta_max_never_overflows(limit, fake_clock):
    """Test a timeout past year 9999 compares elapsed time instead of raising."""
    start = fake_clock()
    stopper = timeout(limit, clock=fake_clock)

    fake_clock.advance(timedelta(days=365))
    assert stopper.stop(start, 1, ERROR) is False


def test_deadline_stops_after_absolute_time(fake_clock):
    """Test Deadline compares now against a fixed point in time."""
    start = fake_clock()
    stopper = deadline(start + timedelta(seconds=5), clock=fake_clock)

    fake_clock.advance(timedelta(seconds=4))
    assert stopper.stop(start, 1, ERROR) is False

    fake_clock.advance(timedelta(seconds=2))
    assert stopper.stop(start, 1, ERROR) is True


def test_deadline_ignores_start_time(fake_clock):
    """Test Deadline does not move with the start time."""
    stopper = deadline(fake_clock() - timedelta(seconds=1), clock=fake_clock)

    assert stopper.stop(fake_clock() + timedelta(days=1), 1, ERROR) is True


def test_deadline_naive_datetime_is_made_aware():
    """Test a naive deadline is interpreted as local time."""
    stopper = DeadlineStopper(datetime(2030, 1, 1, 0, 0, 0))

    assert stopper.deadline.tzinfo is not None
    assert stopper.stop(datetime.now(timezone.utc), 1, ERROR) is False


def test_timeout_with_wall_clock():
    """Test the default clock is the real UTC wall clock."""
    start = datetime.now(timezone.utc) - timedelta(seconds=10)

    assert timeout(timedelta(seconds=1)).stop(start, 1, ERROR) is True
    assert timeout(timedelta(hours=1)).stop(start, 1, ERROR) is False


# ============================================================================
# Combinators
# ============================================================================


@pytest.mark.parametrize(
    "answers",
    [(False,), (True,), (False, False), (False, True), (True, False), (True, True, False)],
)
def test_any_and_all_truth_tables(answers, fake_clock):
    """Test Any is true iff one member is true; All iff every member is true."""
    members = [constant(a) for a in answers]

    assert AnyStopper(tuple(members)).stop(fake_clock(), 1, ERROR) == any(answers)
    assert AllStopper(tuple(members)).stop(fake_clock(), 1, ERROR) == all(answers)


def test_any_short_circuits(fake_clock):
    """Test Any stops evaluating at the first true member."""
    first, second = constant(True), constant(False)

    assert any_of(first, second).stop(fake_clock(), 2, ERROR) is True
    first.stop.assert_called_once_with(fake_clock(), 2, ERROR)
    second.stop.assert_not_called()


def test_all_short_circuits(fake_clock):
    """Test All stops evaluating at the first false member."""
    first, second = constant(False), constant(True)

    assert all_of(first, second).stop(fake_clock(), 2, ERROR) is False
    second.stop.assert_not_called()


def test_combinators_drop_absent_members(fake_clock):
    """Test None members are ignored and a single survivor is returned as-is."""
    only = max_attempts(3)

    assert any_of(None, only, None) is only
    assert all_of(only, None) is only


def test_combinators_of_nothing_are_absent():
    """Test empty combinators yield no stopper."""
    assert any_of() is None
    assert all_of() is None
    assert any_of(None, None) is None


def test_any_of_attempts_or_timeout(fake_clock):
    """Test a typical production pairing: attempts OR overall timeout."""
    start = fake_clock()
    stopper = any_of(max_attempts(100), timeout(timedelta(seconds=1), clock=fake_clock))

    assert stopper.stop(start, 5, ERROR) is False
    assert stopper.stop(start, 100, ERROR) is True

    fake_clock.advance(timedelta(seconds=2))
    assert stopper.stop(start, 5, ERROR) is True
