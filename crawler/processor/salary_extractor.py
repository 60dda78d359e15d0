# crawler/processor/salary_extractor.py
import re
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


CURRENCY_SYMBOLS = {
    '$': 'USD',
    '€': 'EUR',
    '£': 'GBP',
    '₩': 'KRW',
    '¥': 'JPY',
}

CURRENCY_CODES = ['USD', 'EUR', 'GBP', 'KRW', 'JPY', 'SGD', 'CHF', 'CAD', 'AUD', 'USDC', 'USDT']


class SalaryExtractor:
    """Extract a salary range from free text ("$120k - $160k", "80,000-100,000 EUR")"""

    _NUM = r'([0-9]+(?:[,.][0-9]{3})*(?:\.[0-9]+)?(?:\s?[kKmM]\b)?)'
    _SYM = r'[$€£₩¥]?'

    RANGE_PATTERN = re.compile(
        rf'{_SYM}\s*{_NUM}\s*(?:to|-|–|—|and)\s*{_SYM}\s*{_NUM}'
    )
    SINGLE_PATTERN = re.compile(rf'[$€£₩¥]\s*{_NUM}')

    PERIOD_PATTERNS = {
        'yearly': r'(?:per year|annually|annual|/year|/yr|p\.?a\.?)',
        'hourly': r'(?:per hour|hourly|/hour|/hr)',
        'monthly': r'(?:per month|monthly|/month|/mo)',
    }

    def extract(self, text: Optional[str]) -> Dict[str, Optional[object]]:
        """
        Returns:
            Dict with keys: min, max, currency, period (all None if no salary found)
        """
        if not text:
            return self._empty_salary()

        match = self.RANGE_PATTERN.search(text)
        if match:
            min_val = self._parse_number(match.group(1))
            max_val = self._parse_number(match.group(2))
        else:
            match = self.SINGLE_PATTERN.search(text)
            if not match:
                return self._empty_salary()
            min_val = self._parse_number(match.group(1))
            max_val = None

        if min_val is None:
            return self._empty_salary()

        if max_val is not None and min_val > max_val:
            min_val, max_val = max_val, min_val

        # "120-160k": the k applies to both ends
        if max_val is not None and max_val >= 1000 and min_val < 1000 and min_val * 1000 <= max_val:
            min_val *= 1000

        return {
            'min': min_val,
            'max': max_val,
            'currency': self._detect_currency(text),
            'period': self._detect_period(text.lower(), match.start(), match.end()),
        }

    def _parse_number(self, raw: str) -> Optional[float]:
        if not raw:
            return None

        raw = raw.replace(' ', '')
        multiplier = 1
        if raw[-1] in 'kK':
            multiplier, raw = 1000, raw[:-1]
        elif raw[-1] in 'mM':
            multiplier, raw = 1000000, raw[:-1]

        # thousands separators: "100,000" / "100.000"
        if re.fullmatch(r'[0-9]{1,3}(?:[,.][0-9]{3})+', raw):
            raw = raw.replace(',', '').replace('.', '')
        else:
            raw = raw.replace(',', '')

        try:
            return float(raw) * multiplier
        except ValueError:
            return None

    def _detect_currency(self, text: str) -> Optional[str]:
        upper = text.upper()
        for code in CURRENCY_CODES:
            if re.search(rf'\b{code}\b', upper):
                return code
        for symbol, code in CURRENCY_SYMBOLS.items():
            if symbol in text:
                return code
        return None

    def _detect_period(self, text: str, start: int, end: int) -> str:
        window_size = 50
        context = text[max(0, start - window_size):min(len(text), end + window_size)]

        for period, pattern in self.PERIOD_PATTERNS.items():
            if re.search(pattern, context, re.IGNORECASE):
                return period
        return 'yearly'

    def _empty_salary(self) -> Dict[str, Optional[object]]:
        return {
            'min': None,
            'max': None,
            'currency': None,
            'period': None
        }
