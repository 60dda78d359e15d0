# crawler/processor/text_cleaner.py
import re
import logging
from html.entities import html5
from typing import Optional

import ftfy
from bs4 import BeautifulSoup, Comment
from markdownify import markdownify as md

from crawler.processor.noise_patterns import COMPILED_NOISE_PATTERNS

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 10000
MIN_DESCRIPTION_LENGTH = 30

# Entities most commonly seen in scraped postings; anything else falls back to the HTML5 table
NAMED_ENTITIES = {
    'nbsp': ' ', 'amp': '&', 'lt': '<', 'gt': '>', 'quot': '"', 'apos': "'",
    'lsquo': "'", 'rsquo': "'", 'ldquo': '"', 'rdquo': '"',
    'ndash': '–', 'mdash': '—', 'hellip': '...', 'bull': '•',
    'copy': '©', 'reg': '®', 'trade': '™', 'euro': '€', 'pound': '£', 'yen': '¥',
    'cent': '¢', 'times': '×', 'divide': '÷', 'plusmn': '±', 'deg': '°',
    'para': '¶', 'sect': '§',
}

DOUBLE_ENCODED = re.compile(r'&amp;(#x[0-9a-f]+|#\d+|[a-z][a-z0-9]*);', re.IGNORECASE)
NAMED_ENTITY = re.compile(r'&([a-z][a-z0-9]*);', re.IGNORECASE)
DECIMAL_ENTITY = re.compile(r'&#(\d+);')
HEX_ENTITY = re.compile(r'&#x([0-9a-f]+);', re.IGNORECASE)

TAG_LIKE = re.compile(r'<[a-zA-Z/!][^<>]*>')
MULTIPLE_SPACES = re.compile(r'[ \t\u00a0]+')
TRAILING_SPACES = re.compile(r'[ \t]+\n')
MULTIPLE_NEWLINES = re.compile(r'\n{3,}')

STRIPPED_ELEMENTS = ['script', 'style', 'noscript', 'iframe', 'svg']

# class-name fragments of page chrome wrapped around a posting
NOISE_CLASS_FRAGMENTS = [
    'ad-', 'advert', 'promo', 'banner', 'sponsored',
    'share', 'social', 'related', 'recommended', 'similar', 'you-may', 'also-like', 'more-jobs',
    'salary-comp', 'salary-info', 'average-salary', 'compensation-data',
    'candidate', 'profile-card', 'chatbot', 'cover-letter', 'ai-assist',
    'verified-badge', 'cookie', 'consent', 'gdpr', 'newsletter', 'subscribe', 'signup',
    'sidebar', 'widget', 'flag-job', 'bookmark', 'save-job',
    'apply-section', 'apply-btn', 'apply-now', 'comment', 'discussion', 'pagination', 'pager',
]


def _codepoint(num: int) -> str:
    if 0 < num < 0x110000 and not 0xD800 <= num <= 0xDFFF:
        return ' ' if num == 0xA0 else chr(num)
    return ''


def _named(match: 're.Match') -> str:
    name = match.group(1)
    lowered = name.lower()
    if lowered in NAMED_ENTITIES:
        return NAMED_ENTITIES[lowered]
    return html5.get(f"{name};", match.group(0))


def _decode_once(text: str) -> str:
    text = DOUBLE_ENCODED.sub(lambda m: f"&{m.group(1)};", text)
    text = NAMED_ENTITY.sub(_named, text)
    text = DECIMAL_ENTITY.sub(lambda m: _codepoint(int(m.group(1))), text)
    text = HEX_ENTITY.sub(lambda m: _codepoint(int(m.group(1), 16)), text)
    return text


def decode_entities(text: Optional[str]) -> str:
    """
    Decode HTML entities, including double-encoded ones (&amp;lt; -> <)

    Decoding repeats until the text stops changing, so the result is a
    fixed point and decoding it again is a no-op.
    """
    if not text:
        return ""

    # every change shortens the text, so this terminates
    while True:
        decoded = _decode_once(text)
        if decoded == text:
            return text
        text = decoded


def _normalize_whitespace(text: str) -> str:
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = MULTIPLE_SPACES.sub(' ', text)
    text = TRAILING_SPACES.sub('\n', text)
    text = '\n'.join(line.strip() for line in text.split('\n'))
    text = MULTIPLE_NEWLINES.sub('\n\n', text)
    return text.strip()


def _strip_residual_markup(text: str) -> str:
    """Drop tag-like leftovers until neither tags nor entities remain"""
    while True:
        cleaned = decode_entities(TAG_LIKE.sub('', text))
        if cleaned == text:
            return text
        text = cleaned


def remove_noise_elements(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove scripts and page chrome (share bars, related jobs, cookie banners) in place"""
    for element in soup(STRIPPED_ELEMENTS + ['nav', 'header', 'footer']):
        element.decompose()

    def is_noise(classes) -> bool:
        if not classes:
            return False
        if isinstance(classes, str):
            classes = classes.split()
        return any(frag in cls.lower() for cls in classes for frag in NOISE_CLASS_FRAGMENTS)

    for element in soup.find_all(class_=is_noise):
        if not element.decomposed:
            element.decompose()
    return soup


def strip_or_convert(html: Optional[str]) -> str:
    """
    Convert an HTML fragment into markdown-flavoured plain text

    Headings become `#`, bold `**`, italics `*`, list items `- `, links
    `[text](href)`. Script-like elements and comments are removed, blank
    lines collapsed, and the result capped at 10,000 characters. Plain
    text input only has its whitespace normalized.
    """
    if not html:
        return ""

    if TAG_LIKE.search(html):
        soup = BeautifulSoup(html, 'html.parser')
        for element in soup(STRIPPED_ELEMENTS):
            element.decompose()
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

        text = md(
            str(soup),
            heading_style="ATX",
            bullets="-",
            autolinks=False,
            escape_asterisks=False,
            escape_underscores=False,
            escape_misc=False,
        )
        text = _strip_residual_markup(text)
    else:
        text = html

    text = _normalize_whitespace(text)
    if len(text) > MAX_DESCRIPTION_LENGTH:
        text = text[:MAX_DESCRIPTION_LENGTH].rstrip()
    return text


def remove_noise(text: Optional[str]) -> str:
    """Apply NOISE_PATTERNS; results shorter than 30 chars are treated as all-noise"""
    if not text:
        return ""

    cleaned = text
    for pattern, regex in COMPILED_NOISE_PATTERNS:
        cleaned = regex.sub(pattern.replacement, cleaned)

    cleaned = _normalize_whitespace(cleaned)

    if len(cleaned) < MIN_DESCRIPTION_LENGTH:
        return ""
    if len(cleaned) > MAX_DESCRIPTION_LENGTH:
        cleaned = cleaned[:MAX_DESCRIPTION_LENGTH].rstrip()
    return cleaned


def clean_description(raw: Optional[str]) -> str:
    """Full description pipeline: mojibake fix, entity decode, HTML conversion, noise removal"""
    if not raw:
        return ""
    text = ftfy.fix_text(raw, unescape_html=False)
    text = decode_entities(text)
    text = strip_or_convert(text)
    return remove_noise(text)


class TextCleaner:
    """Clean short single-line fields (titles, company names, locations)"""

    MULTIPLE_SPACES = re.compile(r'\s+')

    # "Senior Engineer - Remote", "Engineer (Full-time)", "Engineer | Seoul"
    WORK_TYPE_SUFFIX = re.compile(
        r'\s*[\(\[]\s*(?:full[\s-]?time|part[\s-]?time|contract|internship|(?:100%\s*)?remote|hybrid|'
        r'on-?site|(?:south\s+)?korea|seoul)\s*[\)\]]\s*$',
        re.IGNORECASE
    )
    # only known places and work modes; "Engineer - Backend" is a different posting
    LOCATION_SUFFIX = re.compile(
        r'(?:\s*[,|–—]|\s+-)\s*(?:(?:100%\s*)?remote|hybrid|on-?site|(?:south\s+)?korea|seoul|pangyo|'
        r'seongnam|busan|singapore|japan|tokyo|hong\s+kong|한국|대한민국|서울|경기|판교|성남|부산)\s*$',
        re.IGNORECASE
    )

    def __init__(self, unicode_norm: str = "NFC"):
        self.unicode_norm = unicode_norm

    def clean_text(self, text: Optional[str]) -> str:
        if not text:
            return ""
        text = ftfy.fix_text(text, normalization=self.unicode_norm)
        text = decode_entities(text)
        text = text.replace('\u200b', '').replace('\ufeff', '')
        text = TAG_LIKE.sub(' ', text)
        return self.MULTIPLE_SPACES.sub(' ', text).strip()

    def clean_title(self, title: Optional[str], company: Optional[str] = None) -> str:
        """Strip "Company - " prefixes and trailing work-type / location decorations"""
        title = self.clean_text(title)
        if company:
            prefix = re.compile(rf'^{re.escape(company)}\s*[:|–—-]\s*', re.IGNORECASE)
            title = prefix.sub('', title)
        title = self.WORK_TYPE_SUFFIX.sub('', title)
        stripped = self.LOCATION_SUFFIX.sub('', title)
        if len(stripped) >= 2:
            title = stripped
        return title.strip()

    def clean_company(self, company: Optional[str]) -> str:
        return self.clean_text(company)
