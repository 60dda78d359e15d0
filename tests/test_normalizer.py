"""
Unit tests for RawJob normalization and the persistence schema.
"""
from datetime import datetime

import pytest
from pydantic import ValidationError

from crawler.models import RawJob
from crawler.processor import JobValidator
from crawler.processor.deduplicator import dedupe_batch
from crawler.processor.normalizer import JobNormalizer
from crawler.processor.schema import JobSchema


@pytest.fixture
def normalizer():
    return JobNormalizer()


def test_normalize_cleans_fields(normalizer):
    raw = RawJob(
        title="Acme - Senior Rust Engineer (Full-time)",
        company=" Acme ",
        url="https://jobs.example.com/1",
        source="greenhouse",
        location="Seoul, South Korea",
        employment_type="full_time",
        description="<p>We are building &amp;amp; shipping the fastest cross-chain bridge in Asia.</p>",
        salary="$120k - $160k",
        posted_date=1700000000000,
        tags=["Rust", "Rust", " DeFi "],
    )
    job = normalizer.normalize(raw)

    assert job.title == "Senior Rust Engineer"
    assert job.company == "Acme"
    assert job.employment_type == "Full-time"
    assert job.description == "We are building & shipping the fastest cross-chain bridge in Asia."
    assert (job.salary_min, job.salary_max, job.salary_currency) == (120000.0, 160000.0, 'USD')
    assert job.posted_date == datetime(2023, 11, 14, 22, 13, 20)
    assert job.tags == ["Rust", "DeFi"]
    assert job.role == "Engineering"
    assert job.region == "Korea"
    assert job.language == "en"
    assert raw.title == "Acme - Senior Rust Engineer (Full-time)"


def test_explicit_salary_fields_win(normalizer):
    raw = RawJob(title="Engineer", company="Acme", url="https://x/1", source="lever",
                 salary="$1k", salary_min=100000, salary_max=150000, salary_currency="USD")
    job = normalizer.normalize(raw)
    assert (job.salary_min, job.salary_max) == (100000, 150000)


def test_region_and_employment_type_defaults(normalizer):
    assert normalizer.detect_region("Remote - EU") == "Global"
    assert normalizer.detect_region("판교") == "Korea"
    assert normalizer.normalize_employment_type("Freelance") == "Contract"
    assert normalizer.normalize_employment_type("Residency") == "Residency"
    assert normalizer.normalize_employment_type(None) is None


def test_normalize_batch_skips_broken_records(normalizer):
    class Exploding(RawJob):
        def copy(self, **changes):
            raise RuntimeError("boom")

    good = RawJob(title="Engineer", company="Acme", url="https://x/1", source="s")
    bad = Exploding(title="Engineer", company="Acme", url="https://x/2", source="s")
    assert [j.url for j in normalizer.normalize_batch([bad, good])] == ["https://x/1"]


class TestJobSchema:
    def test_defaults(self):
        job = JobSchema(title="QA", company="Acme", url="https://x/1", source="A", location="  ")
        assert job.location == "Remote"
        assert job.employment_type == "Full-time"
        assert job.category == "Engineering"
        assert job.region == "Global"

    @pytest.mark.parametrize('changes', [
        {'title': 'Q'},
        {'company': ''},
        {'url': 'not-a-url'},
        {'url': 'ftp://x/1'},
        {'source': ''},
        {'role': 'Wizardry'},
    ])
    def test_rejects(self, changes):
        data = {'title': 'QA', 'company': 'Acme', 'url': 'https://x/1', 'source': 'A', **changes}
        with pytest.raises(ValidationError):
            JobSchema(**data)


def test_same_company_postings_with_distinct_suffixes_are_both_saved(normalizer, store):
    raw = [
        RawJob(title="Software Engineer - Backend", company="Acme", url="https://x/be", source="lever"),
        RawJob(title="Software Engineer - Frontend", company="Acme", url="https://x/fe", source="lever"),
    ]
    jobs = dedupe_batch(normalizer.normalize_batch(raw))
    assert [j.title for j in jobs] == ["Software Engineer - Backend", "Software Engineer - Frontend"]

    validator = JobValidator(store)
    results = [validator.validate_and_save(job, "lever") for job in jobs]

    assert all(r.saved and r.is_new for r in results)
    assert store.count_jobs(active=True) == 2
