# crawler/processor/validator.py
import logging
import threading
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as SchemaError

from crawler.config import DEFAULT_SOURCE_PRIORITY
from crawler.exceptions import ValidationError
from crawler.models import RawJob
from crawler.processor.badges import BadgeEnricher
from crawler.processor.deduplicator import company_aliases, get_source_priority, is_same_company, normalize_title
from crawler.processor.schema import JobSchema

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    saved: bool
    is_new: bool
    job_id: Optional[int] = None
    reason: Optional[str] = None  # invalid, duplicate, store_error


class JobValidator:
    """
    Schema validation, cross-source deduplication and persistence

    The single writer to the store during a run: every mutation happens
    under one lock, so concurrent sources cannot interleave the
    find-duplicate / deactivate / upsert sequence.
    """

    def __init__(self, store, source_priority: Optional[Mapping[str, int]] = None,
                 enricher: Optional[BadgeEnricher] = None):
        self.store = store
        self.source_priority = dict(source_priority or DEFAULT_SOURCE_PRIORITY)
        self.enricher = enricher if enricher is not None else BadgeEnricher(store)
        self._write_lock = threading.Lock()

    def priority_of(self, source: Optional[str]) -> int:
        return get_source_priority(source, self.source_priority)

    def _log_error(self, level: str, message: str, crawler_name: str, stack_trace: Optional[str] = None):
        try:
            self.store.insert_error_log(level, message, crawler_name, stack_trace)
        except Exception as e:
            logger.error(f"Could not write error log ({message}): {e}")

    def validate(self, raw: RawJob) -> JobSchema:
        """Raise ValidationError naming the failing fields if the record is not persistable"""
        try:
            return JobSchema.model_validate(raw.to_dict())
        except SchemaError as e:
            fields = ', '.join('.'.join(str(p) for p in err['loc']) for err in e.errors())
            raise ValidationError(f"Validation failed for {raw.url!r} ({fields})") from e

    def find_duplicate(self, job: JobSchema) -> Optional[Dict[str, Any]]:
        """
        Active record with the same (title, company) at a different URL

        Candidates are looked up under the company name and each of its
        known aliases, so "Upbit" postings meet stored "Dunamu" ones.
        """
        title_key = normalize_title(job.title)
        seen_ids = set()
        candidates = []
        for name in [job.company] + company_aliases(job.company):
            for row in self.store.find_active_by_company(name):
                if row['id'] not in seen_ids:
                    seen_ids.add(row['id'])
                    candidates.append(row)

        for existing in candidates:
            if existing['url'] == job.url:
                continue
            if not is_same_company(existing['company'], job.company):
                continue
            if normalize_title(existing['title']) == title_key:
                return existing
        return None

    def validate_and_save(self, raw: RawJob, crawler_name: str) -> SaveResult:
        """
        Validate a record and persist it, resolving cross-source duplicates

        Never raises: schema failures are logged at WARN, store failures at
        ERROR, and both return SaveResult(saved=False).
        """
        try:
            job = self.validate(raw)
        except ValidationError as e:
            message = str(e)
            logger.warning(message)
            self._log_error('WARN', message, crawler_name)
            return SaveResult(saved=False, is_new=False, reason='invalid')

        try:
            with self._write_lock:
                duplicate = self.find_duplicate(job)
                if duplicate is not None:
                    existing_priority = self.priority_of(duplicate['source'])
                    incoming_priority = self.priority_of(job.source)

                    if existing_priority >= incoming_priority:
                        if not duplicate.get('description') and job.description:
                            self.store.update_by_id(duplicate['id'], {'description': job.description})
                            logger.info(f"Backfilled description of job {duplicate['id']} from {job.source}")
                        logger.debug(f"Duplicate skipped: {job.title} @ {job.company} ({job.source})")
                        return SaveResult(saved=True, is_new=False, job_id=duplicate['id'], reason='duplicate')

                    self.store.deactivate(duplicate['id'])
                    logger.info(
                        f"Superseded job {duplicate['id']} ({duplicate['source']}) "
                        f"with higher-priority {job.source}"
                    )

                job_id, is_new = self.store.upsert_by_url(job.model_dump())
        except Exception as e:
            message = f"Failed to save {job.url}: {e}"
            logger.error(message)
            self._log_error('ERROR', message, crawler_name, traceback.format_exc())
            return SaveResult(saved=False, is_new=False, reason='store_error')

        self._enrich(job_id)
        return SaveResult(saved=True, is_new=is_new, job_id=job_id)

    def _enrich(self, job_id: int):
        try:
            self.enricher.enrich_and_save(job_id)
        except Exception as e:
            logger.warning(f"Badge enrichment failed for job {job_id}: {e}")
