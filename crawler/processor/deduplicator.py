# crawler/processor/deduplicator.py
import logging
import re
from typing import Dict, List, Mapping, Optional, Tuple
from rapidfuzz import fuzz

logger = logging.getLogger(__name__)

COMPANY_SUFFIXES = [
    'inc', 'inc.', 'incorporated',
    'ltd', 'ltd.', 'limited',
    'llc', 'l.l.c.',
    'corp', 'corp.', 'corporation',
    'co', 'co.', 'company',
    'plc', 'plc.',
    'labs', 'lab',
    'studio', 'studios',
    'foundation',
    '주식회사', '(주)',
]

COMPANY_ALIASES: Dict[str, List[str]] = {
    'klaytn': ['kaia', 'kaia foundation', 'klaytn foundation'],
    'wemade': ['wemix', 'wemix play'],
    'line next': ['line', 'line corporation', 'dosi', 'finschia'],
    'dunamu': ['upbit'],
    'ground x': ['groundx'],
    'iconloop': ['icon'],
    'dsrv': ['dsrv labs', 'dsrvlabs'],
    'cryptoquant': ['cryptoquant.com'],
}

# a suffix only counts after a separator ("Tesco" keeps its "co")
_SUFFIX_PATTERNS = [re.compile(rf'[\s,]+{re.escape(s)}\s*$', re.IGNORECASE) for s in COMPANY_SUFFIXES]
_NON_ALNUM = re.compile(r'[^\w\s]|_', re.UNICODE)
_SPACES = re.compile(r'\s+')


def normalize_title(title: Optional[str]) -> str:
    """Lowercase, drop non-alphanumerics, collapse whitespace ("QA!!" == "qa")"""
    if not title:
        return ""
    text = _NON_ALNUM.sub(' ', title.lower())
    return _SPACES.sub(' ', text).strip()


def normalize_company_name(name: Optional[str]) -> str:
    """Lowercase and strip legal suffixes / punctuation ("Acme, Inc." -> "acme")"""
    if not name:
        return ""
    normalized = name.lower().strip()
    for pattern in _SUFFIX_PATTERNS:
        stripped = pattern.sub('', normalized).strip()
        # never reduce a name to nothing ("Company" stays "company")
        if stripped:
            normalized = stripped
    normalized = re.sub(r'\([^)]*\)', '', normalized)
    normalized = _NON_ALNUM.sub(' ', normalized)
    return _SPACES.sub(' ', normalized).strip()


_ALIAS_GROUPS = [
    {normalize_company_name(n) for n in [canonical] + aliases}
    for canonical, aliases in COMPANY_ALIASES.items()
]


def company_aliases(name: Optional[str]) -> List[str]:
    """Other names of the same company from the alias table ("Upbit" -> ["dunamu"])"""
    norm = normalize_company_name(name)
    for group in _ALIAS_GROUPS:
        if norm in group:
            return sorted(group - {norm})
    return []


def is_same_company(a: Optional[str], b: Optional[str], threshold: int = 90) -> bool:
    """Same company by normalized equality, alias table or fuzzy ratio"""
    norm_a, norm_b = normalize_company_name(a), normalize_company_name(b)
    if not norm_a or not norm_b:
        return False
    if norm_a == norm_b:
        return True

    for group in _ALIAS_GROUPS:
        if norm_a in group and norm_b in group:
            return True

    # short names ("Hash" vs "Hashed") are too risky to fuzzy-match
    if min(len(norm_a), len(norm_b)) < 5:
        return False
    return fuzz.ratio(norm_a, norm_b) >= threshold


def dedup_key(title: Optional[str], company: Optional[str]) -> Tuple[str, str]:
    """Logical identity of a posting across sources"""
    return normalize_title(title), normalize_company_name(company)


def get_source_priority(source: Optional[str], table: Mapping[str, int]) -> int:
    """
    Priority of a source identifier, higher wins

    Exact key first, then the highest-priority key contained in the
    identifier ("priority:greenhouse" -> greenhouse). Unknown sources get 0.
    """
    if not source:
        return 0
    key = source.lower().strip()
    if key in table:
        return table[key]

    matches = [priority for name, priority in table.items() if name and name.lower() in key]
    return max(matches) if matches else 0


def dedupe_batch(jobs: List) -> List:
    """Drop repeated URLs and repeated (title, company) pairs inside one batch, keeping the first"""
    seen_urls = set()
    seen_keys = set()
    unique = []

    for job in jobs:
        key = dedup_key(job.title, job.company)
        if job.url in seen_urls or key in seen_keys:
            logger.debug(f"Duplicate in batch: {job.title} @ {job.company}")
            continue
        seen_urls.add(job.url)
        seen_keys.add(key)
        unique.append(job)

    if len(unique) != len(jobs):
        logger.info(f"Batch deduplication: {len(jobs)} -> {len(unique)} jobs")
    return unique
