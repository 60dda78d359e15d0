"""
Unit tests for role, salary and date parsing.
"""
from datetime import datetime, timedelta, timezone

import pytest

from crawler.processor.date_parser import DateParser
from crawler.processor.role_detector import ROLE_CATEGORIES, detect_role
from crawler.processor.salary_extractor import SalaryExtractor


@pytest.mark.parametrize('title,role', [
    ('Senior Backend Engineer', 'Engineering'),
    ('Smart Contract Developer (Solidity)', 'Engineering'),
    ('DevOps Engineer', 'Engineering'),
    ('Product Designer', 'Design'),
    ('UX Researcher', 'Design'),
    ('Senior Product Manager', 'Product'),
    ('Growth Marketing Manager', 'Marketing/Growth'),
    ('Head of Partnerships', 'Business Development'),
    ('Talent Acquisition Lead', 'Operations/HR'),
    ('Community Manager', 'Community/Support'),
    ('Customer Support Engineer', 'Community/Support'),
    ('블록체인 개발자', 'Engineering'),
    ('마케팅 매니저', 'Marketing/Growth'),
    ('Chief Vibes Officer', 'Engineering'),
    ('', 'Engineering'),
])
def test_detect_role(title, role):
    assert detect_role(title) == role
    assert detect_role(title) in ROLE_CATEGORIES


class TestSalaryExtractor:
    extractor = SalaryExtractor()

    def test_k_range_with_symbols(self):
        assert self.extractor.extract("$120k - $160k") == {
            'min': 120000.0, 'max': 160000.0, 'currency': 'USD', 'period': 'yearly'
        }

    def test_thousands_separators_and_code(self):
        result = self.extractor.extract("80,000-100,000 EUR per year")
        assert (result['min'], result['max'], result['currency']) == (80000.0, 100000.0, 'EUR')

    def test_shared_k_suffix(self):
        result = self.extractor.extract("120-160k USD")
        assert (result['min'], result['max']) == (120000.0, 160000.0)

    def test_single_value_and_period(self):
        result = self.extractor.extract("$40/hour")
        assert (result['min'], result['max'], result['period']) == (40.0, None, 'hourly')

        result = self.extractor.extract("$5,000 monthly")
        assert (result['min'], result['period']) == (5000.0, 'monthly')

    def test_won(self):
        result = self.extractor.extract("₩50,000,000")
        assert (result['min'], result['currency']) == (50000000.0, 'KRW')

    def test_no_salary(self):
        assert self.extractor.extract("Competitive") == {
            'min': None, 'max': None, 'currency': None, 'period': None
        }
        assert self.extractor.extract(None)['min'] is None


class TestDateParser:
    now = datetime(2024, 5, 10, 12, 0, 0)
    parser = DateParser(now=lambda: datetime(2024, 5, 10, 12, 0, 0))

    def test_relative(self):
        assert self.parser.parse("3 days ago") == datetime(2024, 5, 7, 12, 0, 0)
        assert self.parser.parse("yesterday") == datetime(2024, 5, 9, 12, 0, 0)
        assert self.parser.parse("5d") == datetime(2024, 5, 5, 12, 0, 0)
        assert self.parser.parse("2w ago") == datetime(2024, 4, 26, 12, 0, 0)

    def test_epoch_seconds_and_millis(self):
        expected = datetime(2023, 11, 14, 22, 13, 20)
        assert self.parser.parse(1700000000) == expected
        assert self.parser.parse(1700000000000) == expected
        assert self.parser.parse("1700000000000") == expected

    def test_iso_converted_to_naive_utc(self):
        assert self.parser.parse("2024-05-01T10:00:00+09:00") == datetime(2024, 5, 1, 1, 0, 0)
        assert self.parser.parse("2024-05-01") == datetime(2024, 5, 1)

    def test_datetime_passthrough(self):
        assert self.parser.parse(self.now) == self.now

    def test_unparseable(self):
        assert self.parser.parse(None) is None
        assert self.parser.parse("") is None
        assert self.parser.parse("not a date at all") is None

    def test_default_clock_is_naive_utc(self):
        parsed = DateParser().parse("today")
        reference = datetime.now(timezone.utc).replace(tzinfo=None)

        assert parsed.tzinfo is None
        assert abs(reference - parsed) < timedelta(minutes=1)
