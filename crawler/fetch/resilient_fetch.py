# crawler/fetch/resilient_fetch.py
import json
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import feedparser
import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    wait_random,
    retry_if_exception,
    before_sleep_log
)
from urllib3.util.retry import Retry

from crawler.config import CrawlerConfig
from crawler.exceptions import (
    CircuitOpenError,
    CrawlerError,
    FetchError,
    FetchTimeoutError,
    HttpClientError,
    NetworkError,
    ParseError,
    RateLimitError,
    ServerError,
    is_retryable
)
from crawler.fetch.circuit_breaker import CircuitBreaker
from crawler.fetch.error_tracker import CrawlerErrorRecord, ErrorTracker
from crawler.fetch.proxy_manager import ProxyConfig, ProxyManager
from crawler.utils import get_domain

logger = logging.getLogger(__name__)

ACCEPT_LANGUAGES = [
    "en-US,en;q=0.9",
    "en-GB,en;q=0.9,en-US;q=0.8",
    "en-US,en;q=0.9,ko;q=0.8",
]


@dataclass
class FetchResult:
    """Outcome of a fetch: either a value or the error that stopped it"""
    url: str
    value: Any = None
    error: Optional[CrawlerError] = None
    status_code: Optional[int] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class ResilientFetcher:
    """
    HTTP fetcher combining a per-domain circuit breaker, proxy rotation
    and exponential-backoff retry.

    `fetch*` methods never raise; failures are returned on FetchResult.error.
    """

    def __init__(self, config: Optional[CrawlerConfig] = None,
                 session: Optional[requests.Session] = None,
                 circuit_breaker: Optional[CircuitBreaker] = None,
                 proxy_manager: Optional[ProxyManager] = None,
                 error_tracker: Optional[ErrorTracker] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or CrawlerConfig()
        self.session = session or self._create_session()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=self.config.circuit_failure_threshold,
            reset_timeout=self.config.circuit_reset_timeout,
            half_open_requests=self.config.circuit_half_open_requests,
            clock=clock,
        )
        self.proxy_manager = proxy_manager or ProxyManager.from_string(
            self.config.proxies,
            max_failures=self.config.proxy_max_failures,
            cooldown=self.config.proxy_cooldown,
            clock=clock,
        )
        self.error_tracker = error_tracker or ErrorTracker()
        self._sleep = sleep
        self._clock = clock
        self._ua_idx = 0

    def _create_session(self) -> requests.Session:
        """Pooled session; retries are handled by tenacity, not urllib3"""
        session = requests.Session()
        adapter = HTTPAdapter(
            max_retries=Retry(total=0, raise_on_status=False),
            pool_connections=10,
            pool_maxsize=10
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _get_headers(self, use_browser_headers: bool,
                     extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if use_browser_headers:
            self._ua_idx = (self._ua_idx + 1) % len(self.config.user_agents)
            headers = {
                "User-Agent": self.config.user_agents[self._ua_idx],
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": random.choice(ACCEPT_LANGUAGES),
                "Accept-Encoding": "gzip, deflate",
                "Connection": "keep-alive",
                "Upgrade-Insecure-Requests": "1",
            }
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _classify_status(url: str, status: int) -> Optional[FetchError]:
        if status < 400:
            return None
        if status == 429:
            return RateLimitError(f"HTTP 429 for {url}", url=url, status_code=status)
        if status >= 500:
            return ServerError(f"HTTP {status} for {url}", url=url, status_code=status)
        return HttpClientError(f"HTTP {status} for {url}", url=url, status_code=status)

    def _track(self, source: str, domain: str, error: CrawlerError, url: str):
        self.error_tracker.track(CrawlerErrorRecord(
            source=source,
            domain=domain,
            error_kind=getattr(error, 'error_kind', 'unknown'),
            message=str(error)[:500],
            url=url,
            status_code=getattr(error, 'status_code', None),
        ))

    def _attempt(self, url: str, *, timeout: float, headers: Dict[str, str],
                 use_proxy: bool, source: str, domain: str) -> requests.Response:
        proxy: Optional[ProxyConfig] = None
        if use_proxy and self.proxy_manager.has_proxies:
            proxy = self.proxy_manager.get_next_proxy()

        started = self._clock()
        try:
            response = self.session.get(
                url,
                headers=headers,
                timeout=timeout,
                proxies=proxy.as_requests_proxies() if proxy else None,
                allow_redirects=True
            )
        except requests.Timeout as e:
            error: FetchError = FetchTimeoutError(f"Timeout fetching {url}: {e}", url=url)
        except requests.RequestException as e:
            error = NetworkError(f"Network error fetching {url}: {e}", url=url)
        else:
            error = self._classify_status(url, response.status_code)
            if error is None:
                if proxy:
                    self.proxy_manager.report_success(proxy, (self._clock() - started) * 1000)
                return response

        if proxy and (isinstance(error, (NetworkError, RateLimitError)) or error.status_code == 403):
            self.proxy_manager.report_failure(proxy)
        self._track(source, domain, error, url)
        raise error

    def fetch(self, url: str, *, timeout: Optional[float] = None,
              max_retries: Optional[int] = None, retry_delay: Optional[float] = None,
              use_browser_headers: Optional[bool] = None, use_proxy: Optional[bool] = None,
              headers: Optional[Dict[str, str]] = None, source: str = 'unknown') -> FetchResult:
        """Fetch a URL and return its body text on FetchResult.value"""
        timeout = timeout if timeout is not None else self.config.request_timeout
        max_retries = max_retries if max_retries is not None else self.config.max_retries
        retry_delay = retry_delay if retry_delay is not None else self.config.retry_delay
        if use_browser_headers is None:
            use_browser_headers = self.config.use_browser_headers
        if use_proxy is None:
            use_proxy = self.config.use_proxy

        domain = get_domain(url)
        if not self.circuit_breaker.can_request(domain):
            error = CircuitOpenError(f"Circuit open for {domain}, skipping {url}", url=url)
            logger.warning(str(error))
            self._track(source, domain, error, url)
            return FetchResult(url=url, error=error)

        request_headers = self._get_headers(use_browser_headers, headers)
        retrying = Retrying(
            stop=stop_after_attempt(max(1, max_retries)),
            wait=wait_exponential(multiplier=retry_delay) + wait_random(0, retry_delay / 2),
            retry=retry_if_exception(is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True
        )

        try:
            response = retrying(
                self._attempt, url,
                timeout=timeout, headers=request_headers,
                use_proxy=use_proxy, source=source, domain=domain
            )
        except FetchError as e:
            self.circuit_breaker.record_failure(domain)
            attempts = retrying.statistics.get('attempt_number', 1)
            logger.error(f"Fetch failed after {attempts} attempt(s): {e}")
            return FetchResult(url=url, error=e, status_code=e.status_code, attempts=attempts)

        self.circuit_breaker.record_success(domain)
        return FetchResult(
            url=url,
            value=response.text,
            status_code=response.status_code,
            attempts=retrying.statistics.get('attempt_number', 1)
        )

    def fetch_json(self, url: str, **kwargs) -> FetchResult:
        """Fetch and decode a JSON document"""
        headers = dict(kwargs.pop('headers', None) or {})
        headers.setdefault('Accept', 'application/json')
        result = self.fetch(url, headers=headers, **kwargs)
        if not result.ok:
            return result

        try:
            result.value = json.loads(result.value)
        except ValueError as e:
            error = ParseError(f"Invalid JSON from {url}: {e}", url=url)
            self._track(kwargs.get('source', 'unknown'), get_domain(url), error, url)
            return FetchResult(url=url, error=error, status_code=result.status_code,
                               attempts=result.attempts)
        return result

    def fetch_html(self, url: str, **kwargs) -> FetchResult:
        """Fetch a page and parse it into a BeautifulSoup tree"""
        result = self.fetch(url, **kwargs)
        if result.ok:
            result.value = BeautifulSoup(result.value, 'html.parser')
        return result

    def fetch_feed(self, url: str, **kwargs) -> FetchResult:
        """Fetch an RSS/Atom feed and parse it with feedparser"""
        headers = dict(kwargs.pop('headers', None) or {})
        headers.setdefault('Accept', 'application/rss+xml, application/xml;q=0.9, */*;q=0.8')
        result = self.fetch(url, headers=headers, **kwargs)
        if not result.ok:
            return result

        feed = feedparser.parse(result.value)
        if feed.bozo and not feed.entries:
            error = ParseError(f"Malformed feed from {url}: {feed.get('bozo_exception')}", url=url)
            self._track(kwargs.get('source', 'unknown'), get_domain(url), error, url)
            return FetchResult(url=url, error=error, status_code=result.status_code,
                               attempts=result.attempts)
        result.value = feed
        return result

    def head_status(self, url: str, *, timeout: Optional[float] = None,
                    source: str = 'liveness') -> FetchResult:
        """Single HEAD request; status code on FetchResult.status_code, no retries"""
        domain = get_domain(url)
        if not self.circuit_breaker.can_request(domain):
            return FetchResult(url=url, error=CircuitOpenError(f"Circuit open for {domain}", url=url))

        try:
            response = self.session.head(
                url,
                headers=self._get_headers(True),
                timeout=timeout if timeout is not None else self.config.request_timeout,
                allow_redirects=True
            )
        except requests.Timeout as e:
            return FetchResult(url=url, error=FetchTimeoutError(str(e), url=url), attempts=1)
        except requests.RequestException as e:
            self.circuit_breaker.record_failure(domain)
            return FetchResult(url=url, error=NetworkError(str(e), url=url), attempts=1)

        if response.status_code >= 500:
            self.circuit_breaker.record_failure(domain)
        else:
            self.circuit_breaker.record_success(domain)
        return FetchResult(url=url, status_code=response.status_code, attempts=1)

    def close(self):
        self.session.close()
