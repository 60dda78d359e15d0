# crawler/fetch/proxy_manager.py
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

LATENCY_SMOOTHING = 0.2


@dataclass(frozen=True)
class ProxyConfig:
    host: str
    port: int
    username: Optional[str] = None
    password: Optional[str] = None
    protocol: str = 'http'

    @property
    def key(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        if self.username and self.password:
            return f"{self.protocol}://{self.username}:{self.password}@{self.host}:{self.port}"
        return f"{self.protocol}://{self.host}:{self.port}"

    def as_requests_proxies(self) -> Dict[str, str]:
        return {'http': self.url, 'https': self.url}


@dataclass
class ProxyHealth:
    success_count: int = 0
    fail_count: int = 0
    avg_latency: float = 0.0
    last_used: Optional[float] = None
    last_failed: Optional[float] = None


def parse_proxies(proxy_string: Optional[str]) -> List[ProxyConfig]:
    """Parse "host:port[:user:pass],..." into ProxyConfig entries, skipping malformed ones"""
    proxies = []
    if not proxy_string:
        return proxies

    for entry in proxy_string.split(','):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(':')
        if len(parts) not in (2, 4):
            logger.warning(f"Skipping malformed proxy entry: {entry!r}")
            continue
        try:
            port = int(parts[1])
        except ValueError:
            logger.warning(f"Skipping proxy with invalid port: {entry!r}")
            continue
        if len(parts) == 4:
            proxies.append(ProxyConfig(parts[0], port, parts[2], parts[3]))
        else:
            proxies.append(ProxyConfig(parts[0], port))

    return proxies


class ProxyManager:
    """Round-robin proxy rotation with failure cooldown and latency tracking"""

    def __init__(self, proxies: Optional[List[ProxyConfig]] = None, max_failures: int = 3,
                 cooldown: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.proxies = list(proxies or [])
        self.max_failures = max_failures
        self.cooldown = cooldown
        self._clock = clock
        self._health: Dict[str, ProxyHealth] = {p.key: ProxyHealth() for p in self.proxies}
        self._index = 0
        self._lock = threading.Lock()

        if self.proxies:
            logger.info(f"Loaded {len(self.proxies)} proxies")

    @classmethod
    def from_string(cls, proxy_string: Optional[str], **kwargs) -> 'ProxyManager':
        return cls(parse_proxies(proxy_string), **kwargs)

    @property
    def has_proxies(self) -> bool:
        return bool(self.proxies)

    def _in_cooldown(self, health: ProxyHealth, now: float) -> bool:
        return (
            health.fail_count >= self.max_failures
            and health.last_failed is not None
            and now - health.last_failed < self.cooldown
        )

    def get_next_proxy(self) -> Optional[ProxyConfig]:
        with self._lock:
            if not self.proxies:
                return None

            now = self._clock()
            for _ in range(len(self.proxies)):
                proxy = self.proxies[self._index]
                self._index = (self._index + 1) % len(self.proxies)
                health = self._health[proxy.key]
                if not self._in_cooldown(health, now):
                    health.last_used = now
                    return proxy

            # every proxy is cooling down: fall back to the one that failed longest ago
            proxy = min(self.proxies, key=lambda p: self._health[p.key].last_failed or 0)
            self._health[proxy.key].last_used = now
            logger.warning(f"All proxies cooling down, using {proxy.key}")
            return proxy

    def report_success(self, proxy: ProxyConfig, latency_ms: float):
        with self._lock:
            health = self._health.get(proxy.key)
            if health is None:
                return
            health.success_count += 1
            health.fail_count = max(0, health.fail_count - 1)
            if health.avg_latency == 0:
                health.avg_latency = latency_ms
            else:
                health.avg_latency = (
                    health.avg_latency * (1 - LATENCY_SMOOTHING) + latency_ms * LATENCY_SMOOTHING
                )

    def report_failure(self, proxy: ProxyConfig):
        with self._lock:
            health = self._health.get(proxy.key)
            if health is None:
                return
            health.fail_count += 1
            health.last_failed = self._clock()
            if health.fail_count == self.max_failures:
                logger.warning(f"Proxy {proxy.key} entering cooldown for {self.cooldown:.0f}s")

    def get_stats(self) -> List[Dict]:
        with self._lock:
            now = self._clock()
            return [
                {
                    'proxy': p.key,
                    'success_count': self._health[p.key].success_count,
                    'fail_count': self._health[p.key].fail_count,
                    'avg_latency_ms': round(self._health[p.key].avg_latency, 1),
                    'healthy': not self._in_cooldown(self._health[p.key], now),
                }
                for p in self.proxies
            ]
