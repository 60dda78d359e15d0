# crawler/sources/cryptojobslist.py
from typing import Dict, Optional

from crawler.models import RawJob
from crawler.sources.html_source import HtmlListingSource
from crawler.sources.strategies import AnchorHeuristicStrategy, JsonLdStrategy, NextDataStrategy


class CryptoJobsListSource(HtmlListingSource):
    """cryptojobslist.com, a Next.js site with the listing in its embedded state"""

    name = 'cryptojobslist'
    base_url = 'https://cryptojobslist.com'

    STATE_PATHS = ['props.pageProps.jobs', 'props.pageProps.initialJobs', 'props.pageProps.data.jobs']

    def _map_item(self, item: Dict, page_url: str) -> Optional[RawJob]:
        title = item.get('jobTitle') or item.get('title') or item.get('name')
        company = item.get('companyName') or item.get('company')
        if isinstance(company, dict):
            company = company.get('name')
        if not title or not company:
            return None

        url = item.get('url')
        if not (isinstance(url, str) and url.startswith('http')):
            slug = item.get('seoSlug') or item.get('slug') or item.get('id')
            if not slug:
                return None
            url = f"{self.base_url}/jobs/{slug}"

        tags = [
            t if isinstance(t, str) else (t.get('name') or t.get('label') or '')
            for t in item.get('tags') or []
        ]
        location = item.get('jobLocation') or item.get('location') or item.get('locationName')
        if item.get('remote') and not location:
            location = 'Remote'

        return RawJob(
            title=title,
            company=company,
            url=url,
            source=self.name,
            location=location,
            employment_type=item.get('type') or item.get('employmentType'),
            description=item.get('description') or item.get('jobDescription'),
            salary=item.get('salary') if isinstance(item.get('salary'), str) else None,
            tags=tags,
            posted_date=item.get('publishedAt') or item.get('createdAt'),
            company_logo=item.get('companyLogo'),
        )

    def strategies(self):
        return [
            NextDataStrategy(self.name, self.STATE_PATHS, self._map_item),
            JsonLdStrategy(self.name),
            AnchorHeuristicStrategy(
                self.name, r'^(?:https://cryptojobslist\.com)?/jobs/[\w-]+',
                company_selector='[class*="company"]', container='li, article, tr, div'
            ),
        ]
