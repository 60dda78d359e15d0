# crawler/processor/normalizer.py
import logging
import re
from typing import List, Optional
from langdetect import detect, DetectorFactory, LangDetectException

from crawler.models import RawJob
from crawler.processor.date_parser import DateParser
from crawler.processor.role_detector import detect_role
from crawler.processor.salary_extractor import SalaryExtractor
from crawler.processor.text_cleaner import TextCleaner, clean_description

logger = logging.getLogger(__name__)

# deterministic langdetect results
DetectorFactory.seed = 0

KOREA_LOCATION = re.compile(r'korea|seoul|busan|pangyo|seongnam|서울|한국|판교', re.IGNORECASE)

EMPLOYMENT_TYPES = {
    'full-time': 'Full-time', 'fulltime': 'Full-time', 'full time': 'Full-time', 'permanent': 'Full-time',
    'part-time': 'Part-time', 'parttime': 'Part-time', 'part time': 'Part-time',
    'contract': 'Contract', 'contractor': 'Contract', 'freelance': 'Contract', 'temporary': 'Contract',
    'intern': 'Internship', 'internship': 'Internship',
}


class JobNormalizer:
    """Turn a RawJob from any source into a cleaned RawJob ready for validation"""

    def __init__(self, date_parser: Optional[DateParser] = None):
        self.text_cleaner = TextCleaner()
        self.date_parser = date_parser or DateParser()
        self.salary_extractor = SalaryExtractor()

    def normalize(self, raw_job: RawJob) -> RawJob:
        logger.debug(f"Normalizing job: {raw_job.title} at {raw_job.company}")

        company = self.text_cleaner.clean_company(raw_job.company)
        title = self.text_cleaner.clean_title(raw_job.title, company)
        description = clean_description(raw_job.description)
        location = self.text_cleaner.clean_text(raw_job.location) or None

        salary_min, salary_max = raw_job.salary_min, raw_job.salary_max
        salary_currency = raw_job.salary_currency
        if raw_job.salary and salary_min is None and salary_max is None:
            parsed = self.salary_extractor.extract(raw_job.salary)
            salary_min, salary_max = parsed['min'], parsed['max']
            salary_currency = salary_currency or parsed['currency']

        posted_date = raw_job.posted_date
        if posted_date is not None:
            posted_date = self.date_parser.parse(posted_date)

        return raw_job.copy(
            title=title,
            company=company,
            location=location,
            description=description or None,
            employment_type=self.normalize_employment_type(raw_job.employment_type),
            salary=self.text_cleaner.clean_text(raw_job.salary) or None,
            salary_min=salary_min,
            salary_max=salary_max,
            salary_currency=salary_currency,
            posted_date=posted_date,
            tags=[self.text_cleaner.clean_text(t) for t in raw_job.tags],
            role=raw_job.role or detect_role(title),
            region=raw_job.region or self.detect_region(location),
            language=self.detect_language(description),
        )

    @staticmethod
    def normalize_employment_type(value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        key = value.strip().lower().replace('_', '-')
        return EMPLOYMENT_TYPES.get(key, value.strip())

    @staticmethod
    def detect_region(location: Optional[str]) -> str:
        if location and KOREA_LOCATION.search(location):
            return 'Korea'
        return 'Global'

    @staticmethod
    def detect_language(text: Optional[str]) -> str:
        """Detect language of job description, 'en' when too short or undetectable"""
        if not text or len(text.strip()) < 50:
            return "en"

        try:
            return detect(text)
        except LangDetectException:
            return "en"

    def normalize_batch(self, raw_jobs: List[RawJob]) -> List[RawJob]:
        normalized_jobs = []

        for raw_job in raw_jobs:
            try:
                normalized_jobs.append(self.normalize(raw_job))
            except Exception as e:
                logger.error(f"Failed to normalize {raw_job.url}: {e}")

        logger.info(f"Normalized {len(normalized_jobs)}/{len(raw_jobs)} jobs")
        return normalized_jobs
