"""
Unit tests for the per-domain circuit breaker.
"""
import pytest

from conftest import FakeClock
from crawler.exceptions import CircuitOpenError
from crawler.fetch import CircuitBreaker, CircuitState


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(failure_threshold=3, reset_timeout=60, half_open_requests=1, clock=clock)


def test_opens_after_threshold_and_half_opens_after_cooldown(breaker, clock):
    for _ in range(3):
        breaker.record_failure('x.com')

    assert breaker.get_state('x.com') == CircuitState.OPEN
    assert breaker.can_request('x.com') is False

    clock.advance(61)
    assert breaker.can_request('x.com') is True
    assert breaker.get_state('x.com') == CircuitState.HALF_OPEN


def test_stays_closed_below_threshold(breaker):
    breaker.record_failure('x.com')
    breaker.record_failure('x.com')
    assert breaker.get_state('x.com') == CircuitState.CLOSED
    assert breaker.can_request('x.com') is True


def test_blocked_until_cooldown_elapses(breaker, clock):
    for _ in range(3):
        breaker.record_failure('x.com')
    clock.advance(59)
    assert breaker.can_request('x.com') is False


def test_single_success_closes_when_one_trial_required(breaker, clock):
    for _ in range(3):
        breaker.record_failure('x.com')
    clock.advance(61)
    breaker.can_request('x.com')

    breaker.record_success('x.com')
    assert breaker.get_state('x.com') == CircuitState.CLOSED


def test_single_success_keeps_half_open_when_two_trials_required():
    clock = FakeClock()
    breaker = CircuitBreaker(failure_threshold=3, reset_timeout=60, half_open_requests=2, clock=clock)
    for _ in range(3):
        breaker.record_failure('x.com')
    clock.advance(61)
    breaker.can_request('x.com')

    breaker.record_success('x.com')
    assert breaker.get_state('x.com') == CircuitState.HALF_OPEN
    breaker.record_success('x.com')
    assert breaker.get_state('x.com') == CircuitState.CLOSED


def test_failure_in_half_open_reopens_and_restarts_cooldown(breaker, clock):
    for _ in range(3):
        breaker.record_failure('x.com')
    clock.advance(61)
    breaker.can_request('x.com')

    breaker.record_failure('x.com')
    assert breaker.get_state('x.com') == CircuitState.OPEN
    assert breaker.can_request('x.com') is False

    clock.advance(30)
    assert breaker.can_request('x.com') is False
    clock.advance(31)
    assert breaker.can_request('x.com') is True


def test_domains_are_isolated(breaker):
    for _ in range(3):
        breaker.record_failure('bad.com')
    assert breaker.can_request('bad.com') is False
    assert breaker.can_request('good.com') is True


def test_call_raises_when_open_and_records_outcomes(breaker):
    def boom():
        raise ValueError('nope')

    for _ in range(3):
        with pytest.raises(ValueError):
            breaker.call('x.com', boom)

    with pytest.raises(CircuitOpenError):
        breaker.call('x.com', lambda: 'never')

    assert breaker.call('y.com', lambda: 42) == 42


def test_stats_and_reset(breaker):
    breaker.record_failure('x.com')
    stats = breaker.get_stats()
    assert stats['x.com']['state'] == 'closed'
    assert stats['x.com']['failures'] == 1

    breaker.reset_all()
    assert breaker.get_stats() == {}
