# crawler/processor/schema.py
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crawler.processor.role_detector import ROLE_CATEGORIES


class JobSchema(BaseModel):
    """Validation schema a RawJob must satisfy before it is persisted"""

    model_config = ConfigDict(str_strip_whitespace=True, extra='ignore')

    title: str = Field(min_length=2)
    company: str = Field(min_length=1)
    url: str
    source: str = Field(min_length=1)

    location: str = 'Remote'
    employment_type: str = 'Full-time'
    category: str = 'Engineering'
    role: Optional[str] = None
    region: str = 'Global'
    description: Optional[str] = None

    salary: Optional[str] = None
    salary_min: Optional[float] = Field(default=None, ge=0)
    salary_max: Optional[float] = Field(default=None, ge=0)
    salary_currency: Optional[str] = None

    tags: List[str] = Field(default_factory=list)
    posted_date: Optional[datetime] = None
    company_logo: Optional[str] = None
    company_website: Optional[str] = None
    apply_url: Optional[str] = None
    language: Optional[str] = None

    @field_validator('url')
    @classmethod
    def url_must_be_http(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError(f"invalid url: {value!r}")
        return value

    @field_validator('location', 'employment_type', 'category', 'region', mode='before')
    @classmethod
    def blank_to_default(cls, value, info):
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @field_validator('role')
    @classmethod
    def known_role(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ROLE_CATEGORIES:
            raise ValueError(f"unknown role: {value!r}")
        return value
