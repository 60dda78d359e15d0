# crawler/sources/strategies.py
"""
Extraction strategies for HTML listing pages.

Each strategy knows one way a site may expose its listings and returns
None when that shape is absent. `run_strategies` tries them in order and
the first non-empty result wins.
"""
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from crawler.models import RawJob

logger = logging.getLogger(__name__)


def _text(node: Optional[Tag]) -> str:
    return node.get_text(' ', strip=True) if node else ''


def dig(data: Any, path: str) -> Any:
    """Follow a dotted path ("props.pageProps.jobs") through nested dicts"""
    for key in path.split('.'):
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class ExtractionStrategy(ABC):
    name: str = ''

    def __init__(self, source: str, company: Optional[str] = None):
        self.source = source
        self.company = company

    @abstractmethod
    def extract(self, soup: BeautifulSoup, page_url: str) -> Optional[List[RawJob]]:
        pass


class NextDataStrategy(ExtractionStrategy):
    """Jobs embedded in a Next.js `__NEXT_DATA__` state blob at one of `paths`"""

    name = 'next_data'

    def __init__(self, source: str, paths: Sequence[str],
                 item_mapper: Callable[[Dict, str], Optional[RawJob]], company: Optional[str] = None):
        super().__init__(source, company)
        self.paths = list(paths)
        self.item_mapper = item_mapper

    def extract(self, soup: BeautifulSoup, page_url: str) -> Optional[List[RawJob]]:
        script = soup.find('script', id='__NEXT_DATA__')
        if script is None or not script.string:
            return None

        try:
            state = json.loads(script.string)
        except ValueError as e:
            logger.debug(f"Unreadable __NEXT_DATA__ on {page_url}: {e}")
            return None

        for path in self.paths:
            items = dig(state, path)
            if isinstance(items, list) and items:
                jobs = []
                for item in items:
                    if not isinstance(item, dict):
                        continue
                    try:
                        job = self.item_mapper(item, page_url)
                    except (KeyError, TypeError, ValueError) as e:
                        logger.debug(f"Skipping malformed embedded job on {page_url}: {e}")
                        continue
                    if job is not None:
                        jobs.append(job)
                return jobs or None
        return None


class JsonLdStrategy(ExtractionStrategy):
    """schema.org JobPosting objects in ld+json scripts"""

    name = 'json_ld'

    def _postings(self, data: Any):
        if isinstance(data, list):
            for item in data:
                yield from self._postings(item)
        elif isinstance(data, dict):
            if data.get('@type') == 'JobPosting':
                yield data
            elif '@graph' in data:
                yield from self._postings(data['@graph'])
            elif data.get('@type') == 'ItemList':
                for element in data.get('itemListElement', []):
                    yield from self._postings(element.get('item', element) if isinstance(element, dict) else element)

    def extract(self, soup: BeautifulSoup, page_url: str) -> Optional[List[RawJob]]:
        jobs = []
        for script in soup.find_all('script', type='application/ld+json'):
            try:
                data = json.loads(script.string or '')
            except ValueError:
                continue

            for posting in self._postings(data):
                title = posting.get('title')
                url = posting.get('url') or page_url
                org = posting.get('hiringOrganization') or {}
                company = org.get('name') if isinstance(org, dict) else None
                company = company or self.company
                if not title or not company:
                    continue

                location = posting.get('jobLocation')
                if isinstance(location, list):
                    location = location[0] if location else None
                address = location.get('address', {}) if isinstance(location, dict) else {}
                locality = address.get('addressLocality') if isinstance(address, dict) else None
                if posting.get('jobLocationType') == 'TELECOMMUTE':
                    locality = f"Remote{', ' + locality if locality else ''}"

                jobs.append(RawJob(
                    title=title,
                    company=company,
                    url=urljoin(page_url, url),
                    source=self.source,
                    location=locality,
                    employment_type=posting.get('employmentType') if isinstance(posting.get('employmentType'), str) else None,
                    description=posting.get('description'),
                    posted_date=posting.get('datePosted'),
                    company_logo=org.get('logo') if isinstance(org, dict) and isinstance(org.get('logo'), str) else None,
                ))
        return jobs or None


class CardSelectorStrategy(ExtractionStrategy):
    """Listing cards located by CSS selectors"""

    name = 'card_selectors'

    def __init__(self, source: str, card: str, title: str, link: str,
                 company: Optional[str] = None, company_selector: Optional[str] = None,
                 location: Optional[str] = None, tags: Optional[str] = None,
                 salary: Optional[str] = None):
        super().__init__(source, company)
        self.card = card
        self.title = title
        self.link = link
        self.company_selector = company_selector
        self.location = location
        self.tags = tags
        self.salary = salary

    def extract(self, soup: BeautifulSoup, page_url: str) -> Optional[List[RawJob]]:
        jobs = []
        for card in soup.select(self.card):
            title = _text(card.select_one(self.title))
            link = card.select_one(self.link)
            href = link.get('href') if link else None
            company = _text(card.select_one(self.company_selector)) if self.company_selector else ''
            company = company or self.company
            if not title or not href or not company:
                continue

            jobs.append(RawJob(
                title=title,
                company=company,
                url=urljoin(page_url, href),
                source=self.source,
                location=_text(card.select_one(self.location)) if self.location else None,
                salary=_text(card.select_one(self.salary)) if self.salary else None,
                tags=[_text(t) for t in card.select(self.tags)] if self.tags else [],
                metadata={'card_id': card.get('data-jobid') or card.get('data-id')},
            ))
        return jobs or None


class AnchorHeuristicStrategy(ExtractionStrategy):
    """
    Last resort: anchors whose href looks like a job detail page

    Title is the anchor text; company is read from the nearest container
    using `company_selector`, else the fixed company.
    """

    name = 'anchor_heuristic'

    def __init__(self, source: str, href_pattern: str, company: Optional[str] = None,
                 company_selector: Optional[str] = None, container: str = 'tr, li, article, div'):
        super().__init__(source, company)
        self.href_pattern = re.compile(href_pattern)
        self.company_selector = company_selector
        self.container = container

    def extract(self, soup: BeautifulSoup, page_url: str) -> Optional[List[RawJob]]:
        jobs = []
        seen = set()
        containers = [c.strip() for c in self.container.split(',')]

        for anchor in soup.find_all('a', href=self.href_pattern):
            url = urljoin(page_url, anchor['href'])
            title = _text(anchor)
            if url in seen or len(title) < 2:
                continue

            company = self.company
            if self.company_selector:
                parent = anchor.find_parent(containers)
                found = _text(parent.select_one(self.company_selector)) if parent else ''
                company = found or company
            if not company:
                continue

            seen.add(url)
            jobs.append(RawJob(title=title, company=company, url=url, source=self.source))
        return jobs or None


def run_strategies(strategies: Sequence[ExtractionStrategy], soup: BeautifulSoup,
                   page_url: str) -> Tuple[Optional[str], List[RawJob]]:
    """Return (winning strategy name, jobs) for the first strategy with results"""
    for strategy in strategies:
        jobs = strategy.extract(soup, page_url)
        if jobs:
            logger.debug(f"{strategy.name} extracted {len(jobs)} jobs from {page_url}")
            return strategy.name, jobs
    return None, []
