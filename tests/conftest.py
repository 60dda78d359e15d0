"""
Shared fixtures: a throwaway JobStore, a scripted HTTP session and a
manually advanced clock, so nothing here touches the network or sleeps.
"""
import sys
from pathlib import Path

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from crawler.config import CrawlerConfig
from crawler.fetch import ResilientFetcher
from database.db_manager import JobStore


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = ''):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """
    Stand-in for requests.Session

    `routes` maps a URL to a response, an exception instance, or a list of
    those consumed one per call (the last one repeats). Unknown URLs 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.closed = False

    def _respond(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        outcome = self.routes.get(url, FakeResponse(404, 'not found'))
        if isinstance(outcome, list):
            outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get(self, url, **kwargs):
        return self._respond('GET', url, kwargs)

    def head(self, url, **kwargs):
        return self._respond('HEAD', url, kwargs)

    def post(self, url, **kwargs):
        return self._respond('POST', url, kwargs)

    def close(self):
        self.closed = True

    def urls(self, method='GET'):
        return [u for m, u, _ in self.calls if m == method]


def no_sleep(seconds):
    pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return CrawlerConfig(
        retry_delay=0,
        use_proxy=False,
        detail_delay=0,
        detail_jitter=0,
        db_path=tmp_path / 'jobs.db',
        log_dir=tmp_path / 'logs',
    )


@pytest.fixture
def store(tmp_path):
    return JobStore(tmp_path / 'jobs.db')


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def fetcher(config, session, clock):
    return ResilientFetcher(config, session=session, sleep=no_sleep, clock=clock)


@pytest.fixture
def timeout_error():
    return requests.Timeout('read timed out')
