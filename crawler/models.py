# crawler/models.py
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from typing import Optional, Dict, Any, List


@dataclass
class RawJob:
    """Job record as extracted by a source, before validation"""
    title: str
    company: str
    url: str
    source: str

    location: Optional[str] = None
    employment_type: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None  # may still contain HTML

    # Compensation
    salary: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    salary_currency: Optional[str] = None

    tags: List[str] = field(default_factory=list)
    posted_date: Any = None  # raw string/epoch from the source, datetime after normalization
    company_logo: Optional[str] = None
    company_website: Optional[str] = None
    apply_url: Optional[str] = None

    # Filled in by the normalizer
    role: Optional[str] = None
    region: Optional[str] = None
    language: Optional[str] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # tags have set semantics but keep first-seen order
        seen = []
        for tag in self.tags or []:
            tag = (tag or '').strip()
            if tag and tag not in seen:
                seen.append(tag)
        self.tags = seen

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if isinstance(self.posted_date, datetime):
            data['posted_date'] = self.posted_date.isoformat()
        return data

    def copy(self, **changes) -> 'RawJob':
        return replace(self, **changes)

    def __repr__(self):
        return f"<RawJob: {self.title} @ {self.company} [{self.source}]>"


@dataclass
class SourceResult:
    """What a source adapter returns: jobs, or the reason there are none"""
    source: str
    jobs: List[RawJob] = field(default_factory=list)
    error: Optional[str] = None
    pages_fetched: int = 0

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class SourceRunResult:
    """Outcome of one source inside an orchestrated run"""
    source: str
    status: str = 'pending'  # success, failed, timeout, skipped, cancelled
    jobs_found: int = 0
    jobs_processed: int = 0
    jobs_new: int = 0
    jobs_saved: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.status == 'success'

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'status': self.status,
            'jobs_found': self.jobs_found,
            'jobs_processed': self.jobs_processed,
            'jobs_new': self.jobs_new,
            'jobs_saved': self.jobs_saved,
            'error_message': self.error_message,
            'duration_seconds': round(self.duration_seconds, 2),
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class CrawlSummary:
    """Aggregate of a whole crawl run"""
    started_at: datetime
    completed_at: Optional[datetime] = None
    results: List[SourceRunResult] = field(default_factory=list)
    error_summary: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return sum(r.jobs_processed for r in self.results)

    @property
    def total_new(self) -> int:
        return sum(r.jobs_new for r in self.results)

    @property
    def total_saved(self) -> int:
        return sum(r.jobs_saved for r in self.results)

    @property
    def succeeded(self) -> List[str]:
        return [r.source for r in self.results if r.status == 'success']

    @property
    def failed(self) -> List[str]:
        return [r.source for r in self.results if r.status in ('failed', 'timeout', 'cancelled')]

    @property
    def skipped(self) -> List[str]:
        return [r.source for r in self.results if r.status == 'skipped']

    @property
    def duration_seconds(self) -> float:
        if not self.completed_at:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stats': {
                'total_processed': self.total_processed,
                'total_new': self.total_new,
                'total_saved': self.total_saved,
                'succeeded': self.succeeded,
                'failed': self.failed,
                'skipped': self.skipped,
                'duration_seconds': round(self.duration_seconds, 2),
                'started_at': self.started_at.isoformat(),
                'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            },
            'results': [r.to_dict() for r in self.results],
            'errors': self.error_summary,
        }
