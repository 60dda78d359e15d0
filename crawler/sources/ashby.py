# crawler/sources/ashby.py
import logging
from typing import Dict, List, Optional

from crawler.exceptions import ParseError
from crawler.models import RawJob
from crawler.sources.base import BaseSource

logger = logging.getLogger(__name__)


class AshbySource(BaseSource):
    """Ashby public job board API (one organization per instance)"""

    name = 'ashby'
    API_URL = "https://api.ashbyhq.com/posting-api/job-board/{org}?includeCompensation=true"

    def __init__(self, fetcher, org: str, company: str,
                 source_id: Optional[str] = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.org = org
        self.company = company
        self.source_id = source_id or self.name

    def fetch_jobs(self) -> List[RawJob]:
        data = self.unwrap(self.fetcher.fetch_json(
            self.API_URL.format(org=self.org), source=self.source_id
        ))
        self.pages_fetched += 1
        if not isinstance(data, dict) or not isinstance(data.get('jobs'), list):
            raise ParseError(f"Unexpected Ashby payload for {self.org}")

        jobs = []
        for item in data['jobs']:
            if item.get('isListed') is False:
                continue
            try:
                jobs.append(self._parse_job(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed Ashby job on {self.org}: {e}")
        return jobs

    def _parse_job(self, item: Dict) -> RawJob:
        location = item.get('location')
        if item.get('isRemote') and (not location or 'remote' not in location.lower()):
            location = f"Remote{' - ' + location if location else ''}"

        compensation = item.get('compensation') or {}
        return RawJob(
            title=item['title'],
            company=self.company,
            url=item['jobUrl'],
            source=self.source_id,
            location=location,
            employment_type=item.get('employmentType'),
            category=item.get('department') or item.get('team'),
            description=item.get('descriptionHtml') or item.get('descriptionPlain'),
            salary=compensation.get('compensationTierSummary') or compensation.get('scrapeableCompensationSalarySummary'),
            posted_date=item.get('publishedAt'),
            apply_url=item.get('applyUrl'),
            metadata={'org': self.org},
        )
