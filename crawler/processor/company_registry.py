# crawler/processor/company_registry.py
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

CAREER_PLATFORMS = ('greenhouse', 'lever', 'ashby')


@dataclass
class PriorityCompany:
    name: str
    aliases: List[str] = field(default_factory=list)
    tier: str = 'P2'
    backers: List[str] = field(default_factory=list)
    sector: Optional[str] = None
    office_location: Optional[str] = None
    has_token: bool = False
    stage: Optional[str] = None
    career_url: Optional[str] = None
    career_platform: Optional[str] = None

    @property
    def career_slug(self) -> Optional[str]:
        """
        Board identifier from the career URL

        Lever and Greenhouse put it first (jobs.lever.co/{slug}/..., boards.greenhouse.io/{token}/jobs),
        Ashby last (api.ashbyhq.com/posting-api/job-board/{org}).
        """
        if not self.career_url or self.career_platform not in CAREER_PLATFORMS:
            return None
        parts = [p for p in urlparse(self.career_url).path.split('/') if p]
        if not parts:
            return None
        return parts[-1] if self.career_platform == 'ashby' else parts[0]


SEOUL = 'Seoul, South Korea'

# name, aliases, tier, backers, sector, has_token, stage
_DEFAULT_COMPANIES = [
    ('Hashed', ['hashed.com', 'Hashed Fund'], 'P0', ['Hashed'], 'VC / Investment', False, 'Established'),
    ('DSRV', ['dsrvlabs', 'DSRV Labs'], 'P0', ['Hashed', 'Kakao Ventures'], 'Infrastructure', False, 'Series A'),
    ('CryptoQuant', ['cryptoquant.com'], 'P0', ['Hashed', 'Mirae Asset'], 'Analytics / Data', False, 'Series B'),
    ('Klaytn', ['Kaia', 'klaytn.foundation', 'Kaia Foundation'], 'P0', ['Kakao'], 'Layer 1', True, 'Established'),
    ('Wemade', ['WEMIX', 'wemade.com', 'wemix.com'], 'P0', ['Wemade'], 'Gaming / Metaverse', True, 'Public'),
    ('LINE NEXT', ['LINE', 'DOSI', 'Finschia', 'line-next'], 'P0', ['LINE Corporation'], 'Platform / NFT', True, 'Established'),
    ('Dunamu', ['Upbit', 'dunamu.com', 'upbit.com'], 'P0', ['Dunamu'], 'Exchange', False, 'Established'),
    ('Bithumb', ['bithumb.com', 'Bithumb Korea'], 'P1', [], 'Exchange', False, 'Established'),
    ('Korbit', ['korbit.co.kr'], 'P1', ['SoftBank', 'Kakao Ventures'], 'Exchange', False, 'Established'),
    ('Ozys', ['ozys.io', 'KLAYswap', 'Orbit Bridge'], 'P1', [], 'DeFi', True, 'Established'),
    ('Planetarium', ['planetariumhq', 'Nine Chronicles', 'planetarium.dev'], 'P1', ['Hashed', 'Animoca Brands'], 'Gaming', True, 'Series A'),
    ('NFTBank', ['nftbank.ai'], 'P1', ['Hashed', 'a16z'], 'Analytics / NFT', False, 'Series A'),
    ('Lambda256', ['lambda256.io', 'Luniverse'], 'P1', ['Dunamu'], 'Infrastructure', False, 'Established'),
    ('Ground X', ['groundx.xyz', 'GroundX'], 'P1', ['Kakao'], 'Infrastructure', False, 'Established'),
    ('ICONLOOP', ['iconloop.com', 'ICON', 'iconloop'], 'P1', [], 'Layer 1', True, 'Established'),
    ('Cosmostation', ['cosmostation.io'], 'P1', ['Hashed'], 'Infrastructure / Wallet', False, 'Established'),
    ('Xangle', ['xangle.io'], 'P1', ['Hashed', 'KB Investment'], 'Analytics / Data', False, 'Series A'),
    ('DeSpread', ['despread.io'], 'P1', [], 'Consulting / Marketing', False, 'Established'),
    ('ChainPartners', ['chainpartners.co', 'Chain Partners'], 'P1', [], 'VC / Advisory', False, 'Established'),
    ('Superblock', ['superblock.co'], 'P1', [], 'Infrastructure', False, 'Established'),
    ('Yooldo', ['yooldo.gg'], 'P2', ['Animoca Brands'], 'Gaming', False, 'Seed'),
    ('Presto Labs', ['presto.com', 'Presto'], 'P2', [], 'Trading / Market Making', False, 'Established'),
    ('Streami', ['streami.co'], 'P2', [], 'Exchange', False, 'Established'),
    ('Crescendo', ['crescendo.finance'], 'P2', [], 'DeFi', False, 'Seed'),
    ('Standard Protocol', ['standardprotocol.org'], 'P2', [], 'DeFi', True, 'Seed'),
    ('Somesing', ['somesing.io'], 'P2', [], 'Social / Music', True, 'Established'),
    ('Sandbox Network', ['sandbox.co.kr', 'Sandbox'], 'P2', [], 'Media / Creator', False, 'Established'),
    ('Gopax', ['gopax.co.kr'], 'P2', ['Binance'], 'Exchange', False, 'Established'),
]

DEFAULT_COMPANIES: List[PriorityCompany] = [
    PriorityCompany(
        name=name, aliases=aliases, tier=tier, backers=backers, sector=sector,
        office_location=SEOUL, has_token=has_token, stage=stage
    )
    for name, aliases, tier, backers, sector, has_token, stage in _DEFAULT_COMPANIES
] + [
    PriorityCompany(
        name='Kakao Games', aliases=['BORA', 'kakaogames.com', 'bora.eco'], tier='P2',
        backers=['Kakao'], sector='Gaming / Metaverse', office_location='Seongnam, South Korea',
        has_token=True, stage='Public'
    ),
]


class CompanyRegistry:
    """Lookup of known companies by name or alias, used to enrich saved jobs"""

    def __init__(self, companies: Optional[Iterable[PriorityCompany]] = None):
        self.companies: List[PriorityCompany] = list(DEFAULT_COMPANIES if companies is None else companies)
        self._index: Dict[str, PriorityCompany] = {}
        for company in self.companies:
            for key in [company.name] + company.aliases:
                self._index.setdefault(key.strip().lower(), company)

    @classmethod
    def from_yaml(cls, path: str, include_defaults: bool = True) -> 'CompanyRegistry':
        """Load extra companies from the `companies:` list of a YAML file"""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        loaded = [PriorityCompany(**entry) for entry in data.get('companies', [])]
        if include_defaults:
            overridden = {c.name.lower() for c in loaded}
            loaded += [c for c in DEFAULT_COMPANIES if c.name.lower() not in overridden]

        logger.info(f"Loaded {len(loaded)} companies into registry")
        return cls(loaded)

    def find(self, name: Optional[str]) -> Optional[PriorityCompany]:
        """Case-insensitive exact match on name or any alias"""
        if not name:
            return None
        return self._index.get(name.strip().lower())

    def with_career_boards(self) -> List[PriorityCompany]:
        return [c for c in self.companies if c.career_slug]

    def enrich(self, job: Dict) -> Dict:
        """
        Registry facts for a stored job row

        Returns the fields to write: backers/sector/office_location only
        where the job has none, plus has_token and stage used for badges.
        Empty dict when the company is unknown.
        """
        company = self.find(job.get('company'))
        if company is None:
            return {}

        updates: Dict = {}
        if not job.get('backers') and company.backers:
            updates['backers'] = list(company.backers)
        if not job.get('sector') and company.sector:
            updates['sector'] = company.sector
        if not job.get('office_location') and company.office_location:
            updates['office_location'] = company.office_location
        updates['has_token'] = company.has_token
        if company.stage:
            updates['stage'] = company.stage
        return updates
