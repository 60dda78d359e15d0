# crawler/fetch/__init__.py
from crawler.fetch.circuit_breaker import CircuitBreaker, CircuitState
from crawler.fetch.proxy_manager import ProxyConfig, ProxyManager, parse_proxies
from crawler.fetch.error_tracker import ErrorTracker, CrawlerErrorRecord
from crawler.fetch.resilient_fetch import ResilientFetcher, FetchResult

__all__ = [
    'CircuitBreaker', 'CircuitState',
    'ProxyConfig', 'ProxyManager', 'parse_proxies',
    'ErrorTracker', 'CrawlerErrorRecord',
    'ResilientFetcher', 'FetchResult',
]
