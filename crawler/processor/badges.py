# crawler/processor/badges.py
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from crawler.config import DEFAULT_VERIFIED_BACKERS
from crawler.processor.company_registry import CompanyRegistry
from crawler.processor.date_parser import DateParser
from crawler.utils import utcnow

logger = logging.getLogger(__name__)

VERIFIED = 'Verified'
WEB3_PERKS = 'Web3 Perks'
PRE_IPO = 'Pre-IPO'
REMOTE = 'Remote'
ACTIVE = 'Active'
ENGLISH = 'English'

BADGE_ORDER = [VERIFIED, WEB3_PERKS, PRE_IPO, REMOTE, ACTIVE, ENGLISH]

PERKS_PATTERN = re.compile(r'token|equity|stock\s*option|vesting', re.IGNORECASE)
EARLY_STAGE_PATTERN = re.compile(r'^(seed|pre-seed|series\s*[a-c]|pre-ipo)', re.IGNORECASE)

ACTIVE_WINDOW = timedelta(days=30)
ENGLISH_MIN_LENGTH = 20
ENGLISH_ASCII_RATIO = 0.7

_date_parser = DateParser()


def _ascii_ratio(text: str) -> float:
    return sum(1 for ch in text if ord(ch) < 128) / len(text)


def compute_badges(job: Mapping[str, Any], now: Optional[datetime] = None,
                   verified_backers: Iterable[str] = DEFAULT_VERIFIED_BACKERS) -> Set[str]:
    """
    Derive display badges from a job's fields

    Pure: the result depends only on `job`, `now` and `verified_backers`,
    so it can be recomputed on every save.
    """
    now = now or utcnow()
    badges: Set[str] = set()

    allowed = {b.lower() for b in verified_backers}
    backers = job.get('backers') or []
    if any(str(b).strip().lower() in allowed for b in backers):
        badges.add(VERIFIED)

    description = job.get('description') or ''
    if job.get('has_token') or PERKS_PATTERN.search(description):
        badges.add(WEB3_PERKS)

    stage = job.get('stage') or ''
    if EARLY_STAGE_PATTERN.match(stage.strip()):
        badges.add(PRE_IPO)

    if 'remote' in (job.get('location') or '').lower():
        badges.add(REMOTE)

    posted = _date_parser.parse(job.get('posted_date'))
    if posted is not None and now - ACTIVE_WINDOW <= posted <= now + timedelta(days=1):
        badges.add(ACTIVE)

    if len(description) > ENGLISH_MIN_LENGTH and _ascii_ratio(description) > ENGLISH_ASCII_RATIO:
        badges.add(ENGLISH)

    return badges


def sorted_badges(badges: Iterable[str]) -> List[str]:
    order = {name: i for i, name in enumerate(BADGE_ORDER)}
    return sorted(badges, key=lambda b: order.get(b, len(order)))


class BadgeEnricher:
    """Registry enrichment plus badge recomputation for one stored job"""

    def __init__(self, store, registry: Optional[CompanyRegistry] = None,
                 verified_backers: Iterable[str] = DEFAULT_VERIFIED_BACKERS):
        self.store = store
        self.registry = registry or CompanyRegistry()
        self.verified_backers = list(verified_backers)

    def enrich_and_save(self, job_id: int, now: Optional[datetime] = None) -> Optional[List[str]]:
        job = self.store.get_by_id(job_id)
        if job is None:
            logger.warning(f"Cannot enrich missing job {job_id}")
            return None

        updates: Dict[str, Any] = self.registry.enrich(job)
        merged = {**job, **updates}
        badges = sorted_badges(compute_badges(merged, now=now, verified_backers=self.verified_backers))

        updates['badges'] = badges
        self.store.update_by_id(job_id, updates)
        logger.debug(f"Job {job_id} badges: {badges}")
        return badges
