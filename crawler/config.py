# crawler/config.py
import os
import logging
from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional
from pathlib import Path
import yaml

logger = logging.getLogger(__name__)


DEFAULT_SOURCE_PRIORITY: Dict[str, int] = {
    'greenhouse': 100,
    'lever': 100,
    'ashby': 100,
    'official': 90,
    'company website': 90,
    'wanted': 70,
    'linkedin': 60,
    'cryptojobslist': 50,
    'cryptocurrencyjobs': 50,
    'web3.career': 50,
    'web3career': 50,
    'remoteok': 40,
}

DEFAULT_VERIFIED_BACKERS: List[str] = ['Hashed', 'a16z', 'Paradigm']


@dataclass
class CrawlerConfig:
    """Centralized crawler configuration"""
    # Fetch
    request_timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 1.0
    use_browser_headers: bool = True
    use_proxy: bool = True
    user_agents: List[str] = None

    # Circuit breaker (per domain)
    circuit_failure_threshold: int = 3
    circuit_reset_timeout: float = 30.0
    circuit_half_open_requests: int = 1

    # Proxies, "host:port[:user:pass],..."
    proxies: Optional[str] = None
    proxy_max_failures: int = 3
    proxy_cooldown: float = 60.0

    # Politeness
    detail_delay: float = 1.0
    detail_jitter: float = 0.5
    max_pages: int = 3

    # Orchestration
    max_concurrency: int = 3
    source_timeout: float = 300.0
    source_timeouts: Dict[str, float] = None
    total_timeout: float = 1800.0
    enabled_sources: List[str] = None
    company_boards: List[Dict[str, str]] = None  # {platform, slug, company}
    companies_file: Optional[Path] = None  # extra registry companies, see CompanyRegistry.from_yaml

    # Dedup / badges
    source_priority: Dict[str, int] = None
    verified_backers: List[str] = None

    # Notifications
    discord_webhook_url: Optional[str] = None

    # Storage
    db_path: Path = Path("data/jobs.db")
    log_dir: Path = Path("data/logs")
    log_level: str = "INFO"

    def __post_init__(self):
        if self.user_agents is None:
            self.user_agents = [
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
                "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
                "Mozilla/5.0 (X11; Ubuntu; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
            ]

        if self.source_timeouts is None:
            # web3.career walks three pages and fetches every detail page
            self.source_timeouts = {'web3.career': 900.0}

        if self.company_boards is None:
            self.company_boards = []

        if self.source_priority is None:
            self.source_priority = dict(DEFAULT_SOURCE_PRIORITY)

        if self.verified_backers is None:
            self.verified_backers = list(DEFAULT_VERIFIED_BACKERS)

        self.db_path = Path(self.db_path)
        self.log_dir = Path(self.log_dir)

    def timeout_for(self, source_name: str) -> float:
        return self.source_timeouts.get(source_name, self.source_timeout)

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> 'CrawlerConfig':
        """Override fields from environment variables"""
        env = os.environ if environ is None else environ

        if env.get('CRAWLER_DB_PATH'):
            self.db_path = Path(env['CRAWLER_DB_PATH'])
        if env.get('DISCORD_WEBHOOK_URL'):
            self.discord_webhook_url = env['DISCORD_WEBHOOK_URL']
        if env.get('CRAWLER_PROXIES'):
            self.proxies = env['CRAWLER_PROXIES']
        if env.get('CRAWLER_LOG_LEVEL'):
            self.log_level = env['CRAWLER_LOG_LEVEL']

        for key, attr, cast in (
            ('CRAWL_SOURCE_TIMEOUT', 'source_timeout', float),
            ('CRAWL_TOTAL_TIMEOUT', 'total_timeout', float),
            ('CRAWL_MAX_CONCURRENCY', 'max_concurrency', int),
        ):
            value = env.get(key)
            if not value:
                continue
            try:
                setattr(self, attr, cast(value))
            except ValueError:
                logger.warning(f"Ignoring invalid {key}={value!r}")

        return self

    @classmethod
    def from_yaml(cls, path: str):
        """Load configuration from YAML file"""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        section = data.get('crawler', {}) or {}
        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            logger.warning(f"Unknown config keys ignored: {sorted(unknown)}")

        return cls(**{k: v for k, v in section.items() if k in known})


def get_config(path: Optional[str] = None) -> CrawlerConfig:
    """Get crawler configuration from YAML (if present), then environment"""
    config_path = path or os.getenv('CRAWLER_CONFIG', 'config/crawler.yaml')

    if os.path.exists(config_path):
        config = CrawlerConfig.from_yaml(config_path)
    else:
        config = CrawlerConfig()

    return config.apply_env()
