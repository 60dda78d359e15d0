# crawler/fetch/circuit_breaker.py
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, TypeVar

from crawler.exceptions import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CircuitState(str, Enum):
    CLOSED = 'closed'
    OPEN = 'open'
    HALF_OPEN = 'half-open'


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    successes: int = 0
    last_failure: Optional[float] = None
    last_success: Optional[float] = None
    opened_at: Optional[float] = None


class CircuitBreaker:
    """
    Per-key circuit breaker (one circuit per domain)

    closed -> open after `failure_threshold` failures,
    open -> half-open once `reset_timeout` seconds have passed,
    half-open -> closed after `half_open_requests` successes,
    half-open -> open on any failure.
    """

    def __init__(self, failure_threshold: int = 5, reset_timeout: float = 60.0,
                 half_open_requests: int = 2, clock: Callable[[], float] = time.monotonic):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.half_open_requests = half_open_requests
        self._clock = clock
        self._circuits: Dict[str, _Circuit] = {}
        self._lock = threading.Lock()

    def _get(self, name: str) -> _Circuit:
        circuit = self._circuits.get(name)
        if circuit is None:
            circuit = self._circuits[name] = _Circuit()
        return circuit

    def can_request(self, name: str) -> bool:
        with self._lock:
            circuit = self._get(name)

            if circuit.state == CircuitState.CLOSED:
                return True

            if circuit.state == CircuitState.OPEN:
                if self._clock() - (circuit.opened_at or 0) >= self.reset_timeout:
                    circuit.state = CircuitState.HALF_OPEN
                    circuit.successes = 0
                    logger.info(f"Circuit {name}: open -> half-open")
                    return True
                return False

            # half-open: allow a bounded number of trial requests
            return circuit.successes < self.half_open_requests

    def record_success(self, name: str):
        with self._lock:
            circuit = self._get(name)
            circuit.last_success = self._clock()

            if circuit.state == CircuitState.HALF_OPEN:
                circuit.successes += 1
                if circuit.successes >= self.half_open_requests:
                    circuit.state = CircuitState.CLOSED
                    circuit.failures = 0
                    circuit.successes = 0
                    logger.info(f"Circuit {name}: half-open -> closed")
            elif circuit.state == CircuitState.CLOSED:
                circuit.failures = max(0, circuit.failures - 1)

    def record_failure(self, name: str):
        with self._lock:
            circuit = self._get(name)
            now = self._clock()
            circuit.last_failure = now

            if circuit.state == CircuitState.HALF_OPEN:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = now
                circuit.successes = 0
                logger.warning(f"Circuit {name}: half-open -> open")
                return

            circuit.failures += 1
            if circuit.state == CircuitState.CLOSED and circuit.failures >= self.failure_threshold:
                circuit.state = CircuitState.OPEN
                circuit.opened_at = now
                logger.warning(f"Circuit {name}: closed -> open after {circuit.failures} failures")

    def call(self, name: str, fn: Callable[[], T]) -> T:
        """Run fn under the circuit for `name`, raising CircuitOpenError when blocked"""
        if not self.can_request(name):
            raise CircuitOpenError(f"Circuit open for {name}")
        try:
            result = fn()
        except Exception:
            self.record_failure(name)
            raise
        self.record_success(name)
        return result

    def get_state(self, name: str) -> CircuitState:
        with self._lock:
            return self._get(name).state

    def get_stats(self) -> Dict[str, Dict]:
        with self._lock:
            return {
                name: {
                    'state': c.state.value,
                    'failures': c.failures,
                    'successes': c.successes,
                    'last_failure': c.last_failure,
                    'last_success': c.last_success,
                }
                for name, c in self._circuits.items()
            }

    def reset(self, name: str):
        with self._lock:
            self._circuits.pop(name, None)

    def reset_all(self):
        with self._lock:
            self._circuits.clear()
