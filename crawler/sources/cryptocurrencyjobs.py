# crawler/sources/cryptocurrencyjobs.py
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from crawler.exceptions import ParseError
from crawler.models import RawJob
from crawler.sources.html_source import HtmlListingSource

logger = logging.getLogger(__name__)

TITLE_AT_COMPANY = re.compile(r'^(.+?)\s+at\s+(.+)$', re.IGNORECASE)

# feed descriptions shorter than this are teasers; fetch the posting instead
MIN_FEED_DESCRIPTION = 200


def split_title(full_title: str) -> Tuple[str, Optional[str]]:
    """Split "Rust Engineer at Acme" into ("Rust Engineer", "Acme")"""
    match = TITLE_AT_COMPANY.match(full_title.strip())
    if match:
        return match.group(1).strip(), match.group(2).strip()
    return full_title.strip(), None


class CryptocurrencyJobsSource(HtmlListingSource):
    """cryptocurrencyjobs.co RSS feed, detail pages for short descriptions"""

    name = 'cryptocurrencyjobs'
    base_url = 'https://cryptocurrencyjobs.co'
    feed_url = 'https://cryptocurrencyjobs.co/index.xml'
    detail_selectors = ('.prose', 'article', 'main')

    def strategies(self):
        # listings come from the feed; only detail pages are parsed as HTML
        return []

    def fetch_jobs(self) -> List[RawJob]:
        feed = self.unwrap(self.fetcher.fetch_feed(self.feed_url, source=self.name))
        self.pages_fetched += 1

        jobs = []
        for entry in feed.entries:
            job = self._parse_entry(entry)
            if job is not None:
                jobs.append(job)

        if not jobs and feed.entries:
            raise ParseError(f"No usable entries in {self.feed_url}")

        short = [j for j in jobs if len(j.description or '') < MIN_FEED_DESCRIPTION]
        teasers = {j.url: j.description for j in short}
        for job in short:
            job.description = None
        self.fill_descriptions(short)
        for job in short:
            job.description = job.description or teasers[job.url]
        return jobs

    def _parse_entry(self, entry) -> Optional[RawJob]:
        url = entry.get('link') or entry.get('id')
        title, company = split_title(entry.get('title') or '')
        if not url or not title:
            return None

        if not company:
            company = entry.get('author') or self._company_from_url(url)
        if not company:
            logger.debug(f"No company for feed entry {url}")
            return None

        return RawJob(
            title=title,
            company=company,
            url=url,
            source=self.name,
            description=entry.get('summary') or entry.get('description'),
            tags=[t.get('term') for t in entry.get('tags') or [] if t.get('term')],
            posted_date=entry.get('published') or entry.get('updated'),
        )

    @staticmethod
    def _company_from_url(url: str) -> Optional[str]:
        # /{category}/{company}-{job-title}/ : the slug is ambiguous, only take a single-word company
        parts = [p for p in urlparse(url).path.split('/') if p]
        if len(parts) < 2:
            return None
        first = parts[1].split('-')[0]
        return first.capitalize() if first else None
