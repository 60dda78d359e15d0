# crawler/sources/priority_companies.py
import logging
from typing import Dict, List, Optional

from crawler.exceptions import CrawlerError
from crawler.models import RawJob
from crawler.processor.company_registry import CompanyRegistry
from crawler.sources.ashby import AshbySource
from crawler.sources.base import BaseSource
from crawler.sources.greenhouse import GreenhouseSource
from crawler.sources.lever import LeverSource

logger = logging.getLogger(__name__)

PLATFORM_SOURCES = {
    'greenhouse': GreenhouseSource,
    'lever': LeverSource,
    'ashby': AshbySource,
}


class PriorityCompaniesSource(BaseSource):
    """
    Career boards of registry companies plus any configured boards

    Each board is crawled with its platform adapter under the source id
    `priority:<platform>`. A failing board is logged and skipped; the
    source only fails when every board failed.
    """

    name = 'priority-companies'

    def __init__(self, fetcher, registry: Optional[CompanyRegistry] = None,
                 boards: Optional[List[Dict[str, str]]] = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.registry = registry or CompanyRegistry()
        self.boards = list(boards or [])

    def board_list(self) -> List[Dict[str, str]]:
        boards = [
            {'platform': c.career_platform, 'slug': c.career_slug, 'company': c.name}
            for c in self.registry.with_career_boards()
        ]
        known = {(b['platform'], b['slug']) for b in boards}
        for board in self.boards:
            if (board.get('platform'), board.get('slug')) not in known:
                boards.append(board)
        return boards

    def build(self, board: Dict[str, str]) -> Optional[BaseSource]:
        platform = (board.get('platform') or '').lower()
        source_cls = PLATFORM_SOURCES.get(platform)
        if source_cls is None or not board.get('slug') or not board.get('company'):
            logger.warning(f"Skipping unsupported board: {board}")
            return None
        return source_cls(
            self.fetcher, board['slug'], board['company'],
            source_id=f"priority:{platform}",
            config=self.config, cancel_event=self.cancel_event, sleep=self._sleep
        )

    def fetch_jobs(self) -> List[RawJob]:
        boards = self.board_list()
        if not boards:
            logger.info(f"{self.name}: no career boards configured")
            return []

        jobs: List[RawJob] = []
        failures = []
        for board in boards:
            if self.cancelled:
                break
            source = self.build(board)
            if source is None:
                continue
            try:
                board_jobs = source.fetch_jobs()
            except CrawlerError as e:
                logger.warning(f"{self.name}: {board['company']} ({board['platform']}) failed: {e}")
                failures.append(board['company'])
                continue
            self.pages_fetched += source.pages_fetched
            logger.info(f"{self.name}: {board['company']} -> {len(board_jobs)} jobs")
            jobs.extend(board_jobs)

        if failures and len(failures) == len(boards):
            raise CrawlerError(f"All {len(boards)} career boards failed")
        return jobs
