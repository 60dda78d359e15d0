# crawler/sources/base.py
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from crawler.config import CrawlerConfig
from crawler.exceptions import CrawlerError
from crawler.fetch.resilient_fetch import FetchResult, ResilientFetcher
from crawler.models import RawJob, SourceResult
from crawler.utils import delay_with_jitter, utcnow

logger = logging.getLogger(__name__)


class BaseSource(ABC):
    """
    Base class for all job sources

    Subclasses implement `fetch_jobs`, raising a CrawlerError when the
    source cannot be read at all. `crawl` turns that into a SourceResult so
    callers can tell "no jobs today" apart from "fetch failed".
    """

    name: str = ''

    def __init__(self, fetcher: ResilientFetcher, config: Optional[CrawlerConfig] = None,
                 cancel_event: Optional[threading.Event] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.fetcher = fetcher
        self.config = config or fetcher.config
        self.cancel_event = cancel_event or threading.Event()
        self._sleep = sleep
        self.pages_fetched = 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    @abstractmethod
    def fetch_jobs(self) -> List[RawJob]:
        """Return every job currently listed by the source"""
        pass

    def crawl(self) -> SourceResult:
        started = utcnow()
        self.pages_fetched = 0
        logger.info(f"Crawling {self.name}")

        try:
            jobs = self.fetch_jobs()
        except CrawlerError as e:
            logger.error(f"{self.name}: crawl failed: {e}")
            return SourceResult(source=self.name, error=str(e), pages_fetched=self.pages_fetched)

        duration = (utcnow() - started).total_seconds()
        logger.info(f"{self.name}: {len(jobs)} jobs in {duration:.1f}s")
        return SourceResult(source=self.name, jobs=jobs, pages_fetched=self.pages_fetched)

    def polite_delay(self):
        """Fixed delay plus jitter between sequential requests to the same site"""
        delay_with_jitter(self.config.detail_delay, self.config.detail_jitter, sleep=self._sleep)

    @staticmethod
    def unwrap(result: FetchResult) -> Any:
        if not result.ok:
            raise result.error
        return result.value

    def paginate(self, fetch_page: Callable[[int], List[RawJob]],
                 max_pages: Optional[int] = None) -> List[RawJob]:
        """
        Fetch pages 1..max_pages sequentially

        Stops on an empty page, a page with nothing new, cancellation or
        the page cap. A failure on the first page propagates; later
        failures end pagination and keep what was collected.
        """
        max_pages = max_pages or self.config.max_pages
        jobs: List[RawJob] = []
        seen_urls = set()

        for page in range(1, max_pages + 1):
            if self.cancelled:
                logger.info(f"{self.name}: cancelled before page {page}")
                break
            if page > 1:
                self.polite_delay()

            try:
                page_jobs = fetch_page(page)
            except CrawlerError as e:
                if page == 1:
                    raise
                logger.warning(f"{self.name}: page {page} failed, stopping: {e}")
                break
            self.pages_fetched += 1

            new_jobs = [j for j in page_jobs if j.url not in seen_urls]
            if not new_jobs:
                logger.info(f"{self.name}: no new jobs on page {page}, stopping")
                break

            seen_urls.update(j.url for j in new_jobs)
            jobs.extend(new_jobs)
            logger.info(f"{self.name}: page {page} -> {len(new_jobs)} jobs")

        return jobs
