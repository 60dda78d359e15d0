# crawler/sources/lever.py
import logging
from typing import Dict, List, Optional

from crawler.exceptions import ParseError
from crawler.models import RawJob
from crawler.sources.base import BaseSource

logger = logging.getLogger(__name__)


class LeverSource(BaseSource):
    """Lever postings API (one company per instance)"""

    name = 'lever'
    API_URL = "https://api.lever.co/v0/postings/{slug}?mode=json"

    def __init__(self, fetcher, slug: str, company: str,
                 source_id: Optional[str] = None, **kwargs):
        super().__init__(fetcher, **kwargs)
        self.slug = slug
        self.company = company
        self.source_id = source_id or self.name

    def fetch_jobs(self) -> List[RawJob]:
        data = self.unwrap(self.fetcher.fetch_json(
            self.API_URL.format(slug=self.slug), source=self.source_id
        ))
        self.pages_fetched += 1
        if not isinstance(data, list):
            raise ParseError(f"Unexpected Lever payload for {self.slug}")

        jobs = []
        for item in data:
            try:
                jobs.append(self._parse_job(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed Lever posting on {self.slug}: {e}")
        return jobs

    def _parse_job(self, item: Dict) -> RawJob:
        categories = item.get('categories') or {}

        # description plus the structured "lists" (requirements, benefits)
        parts = [item.get('description') or '']
        for section in item.get('lists') or []:
            parts.append(f"<h3>{section.get('text', '')}</h3><ul>{section.get('content', '')}</ul>")
        parts.append(item.get('additional') or '')
        description = ''.join(parts)

        salary_range = item.get('salaryRange') or {}
        location = categories.get('location')
        if item.get('workplaceType') == 'remote' and location and 'remote' not in location.lower():
            location = f"Remote - {location}"

        return RawJob(
            title=item['text'],
            company=self.company,
            url=item['hostedUrl'],
            source=self.source_id,
            location=location,
            employment_type=categories.get('commitment'),
            category=categories.get('department') or categories.get('team'),
            description=description or None,
            salary_min=salary_range.get('min'),
            salary_max=salary_range.get('max'),
            salary_currency=salary_range.get('currency'),
            tags=list(item.get('tags') or []),
            posted_date=item.get('createdAt'),
            apply_url=item.get('applyUrl'),
            metadata={'external_id': item.get('id'), 'slug': self.slug},
        )
