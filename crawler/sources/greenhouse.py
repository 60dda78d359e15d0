# crawler/sources/greenhouse.py
import logging
from typing import Dict, List, Optional

from crawler.exceptions import ParseError
from crawler.models import RawJob
from crawler.sources.base import BaseSource

logger = logging.getLogger(__name__)


class GreenhouseSource(BaseSource):
    """Greenhouse job board API (one company board per instance)"""

    name = 'greenhouse'
    API_URL = "https://boards-api.greenhouse.io/v1/boards/{token}/jobs?content=true"
    DETAIL_URL = "https://boards-api.greenhouse.io/v1/boards/{token}/jobs/{job_id}"

    def __init__(self, fetcher, board_token: str, company: str,
                 source_id: Optional[str] = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.board_token = board_token
        self.company = company
        self.source_id = source_id or self.name

    def fetch_jobs(self) -> List[RawJob]:
        data = self.unwrap(self.fetcher.fetch_json(
            self.API_URL.format(token=self.board_token), source=self.source_id
        ))
        self.pages_fetched += 1
        if not isinstance(data, dict) or not isinstance(data.get('jobs'), list):
            raise ParseError(f"Unexpected Greenhouse payload for {self.board_token}")

        jobs = []
        for item in data['jobs']:
            try:
                job = self._parse_job(item)
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed Greenhouse job on {self.board_token}: {e}")
                continue
            if not job.description:
                if self.cancelled:
                    break
                job.description = self._fetch_content(item.get('id'))
            jobs.append(job)
        return jobs

    def _parse_job(self, item: Dict) -> RawJob:
        departments = [d.get('name') for d in item.get('departments') or [] if d.get('name')]
        offices = [o.get('name') for o in item.get('offices') or [] if o.get('name')]
        return RawJob(
            title=item['title'],
            company=self.company,
            url=item['absolute_url'],
            source=self.source_id,
            location=(item.get('location') or {}).get('name') or (offices[0] if offices else None),
            category=departments[0] if departments else None,
            description=item.get('content'),
            posted_date=item.get('first_published') or item.get('updated_at'),
            tags=departments + offices,
            metadata={'external_id': item.get('id'), 'board': self.board_token},
        )

    def _fetch_content(self, job_id) -> Optional[str]:
        if job_id is None:
            return None
        self.polite_delay()
        result = self.fetcher.fetch_json(
            self.DETAIL_URL.format(token=self.board_token, job_id=job_id), source=self.source_id
        )
        if not result.ok:
            logger.warning(f"Greenhouse detail {job_id} unavailable: {result.error}")
            return None
        return result.value.get('content') if isinstance(result.value, dict) else None
