# crawler/notifier.py
import logging
from typing import Dict, List, Optional

import requests

from crawler.models import CrawlSummary
from crawler.utils import utcnow

logger = logging.getLogger(__name__)

COLOR_INFO = 0x3498DB
COLOR_SUCCESS = 0x2ECC71
COLOR_WARNING = 0xF1C40F
COLOR_ERROR = 0xE74C3C

MAX_FIELD_LENGTH = 1024


class DiscordNotifier:
    """Post crawl status embeds to a Discord webhook; never raises"""

    def __init__(self, webhook_url: Optional[str], timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send(self, title: str, description: str = '', color: int = COLOR_INFO,
             fields: Optional[List[Dict]] = None) -> bool:
        if not self.enabled:
            logger.debug(f"Discord webhook not configured, skipping '{title}'")
            return False

        embed = {
            'title': title,
            'description': description,
            'color': color,
            'fields': fields or [],
            'timestamp': utcnow().isoformat(),
        }
        try:
            response = self.session.post(self.webhook_url, json={'embeds': [embed]}, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Discord notification failed: {e}")
            return False
        return True

    def notify_start(self, source_names: List[str]) -> bool:
        return self.send(
            'Crawl started',
            f"Running {len(source_names)} sources: {', '.join(source_names)}",
            COLOR_INFO
        )

    def notify_finish(self, summary: CrawlSummary) -> bool:
        if not summary.failed:
            title, color = 'Crawl completed', COLOR_SUCCESS
        elif summary.succeeded:
            title, color = 'Crawl completed with failures', COLOR_WARNING
        else:
            title, color = 'Crawl failed', COLOR_ERROR

        per_source = '\n'.join(
            f"{r.source}: {r.status} ({r.jobs_saved}/{r.jobs_found} saved, {r.jobs_new} new)"
            for r in summary.results
        )
        fields = [
            {'name': 'Processed', 'value': str(summary.total_processed), 'inline': True},
            {'name': 'New', 'value': str(summary.total_new), 'inline': True},
            {'name': 'Saved', 'value': str(summary.total_saved), 'inline': True},
            {'name': 'Duration', 'value': f"{summary.duration_seconds:.0f}s", 'inline': True},
            {'name': 'Sources', 'value': per_source[:MAX_FIELD_LENGTH] or '-', 'inline': False},
        ]
        if summary.error_summary:
            top = '\n'.join(
                f"{e['source']} / {e['domain']} / {e['error_kind']}: {e['count']}"
                for e in summary.error_summary[:10]
            )
            fields.append({'name': 'Fetch errors', 'value': top[:MAX_FIELD_LENGTH], 'inline': False})

        return self.send(title, '', color, fields)

    def notify_fatal(self, error: BaseException) -> bool:
        return self.send('Crawl aborted', f"{type(error).__name__}: {error}"[:2000], COLOR_ERROR)
