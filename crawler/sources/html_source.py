# crawler/sources/html_source.py
import logging
from abc import abstractmethod
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from crawler.models import RawJob
from crawler.processor.text_cleaner import remove_noise_elements
from crawler.sources.base import BaseSource
from crawler.sources.strategies import ExtractionStrategy, run_strategies

logger = logging.getLogger(__name__)


class HtmlListingSource(BaseSource):
    """
    Listing pages parsed with an ordered list of extraction strategies,
    optionally followed by one detail fetch per job for the description.
    """

    base_url: str = ''
    paginated: bool = False
    fetch_details: bool = False
    detail_selectors: Sequence[str] = ('.job-description', '.description', 'article', 'main')

    @abstractmethod
    def strategies(self) -> List[ExtractionStrategy]:
        """Extraction strategies tried in order on each listing page"""

    def page_url(self, page: int) -> str:
        return self.base_url

    def parse_listing(self, soup: BeautifulSoup, page_url: str) -> List[RawJob]:
        strategy, jobs = run_strategies(self.strategies(), soup, page_url)
        if strategy:
            logger.info(f"{self.name}: {len(jobs)} jobs via {strategy}")
        else:
            logger.warning(f"{self.name}: no strategy matched {page_url}")
        return jobs

    def fetch_listing_page(self, page: int) -> List[RawJob]:
        url = self.page_url(page)
        soup = self.unwrap(self.fetcher.fetch_html(url, source=self.name))
        return self.parse_listing(soup, url)

    def fetch_jobs(self) -> List[RawJob]:
        if self.paginated:
            jobs = self.paginate(self.fetch_listing_page)
        else:
            jobs = self.fetch_listing_page(1)
            self.pages_fetched += 1

        if self.fetch_details:
            self.fill_descriptions(jobs)
        return jobs

    def fill_descriptions(self, jobs: List[RawJob]):
        """Sequential detail fetches with a polite delay between requests"""
        for i, job in enumerate(jobs):
            if job.description:
                continue
            if self.cancelled:
                logger.info(f"{self.name}: cancelled, {len(jobs) - i} details not fetched")
                return
            if i > 0:
                self.polite_delay()

            result = self.fetcher.fetch_html(job.url, source=self.name)
            if not result.ok:
                logger.warning(f"{self.name}: detail page unavailable for {job.url}: {result.error}")
                continue
            job.description = self.extract_description(result.value)

    def extract_description(self, soup: BeautifulSoup) -> Optional[str]:
        remove_noise_elements(soup)
        for selector in self.detail_selectors:
            node = soup.select_one(selector)
            if node and len(node.get_text(strip=True)) > 50:
                return str(node)
        return None
