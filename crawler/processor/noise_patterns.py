# crawler/processor/noise_patterns.py
"""
Text-level noise removal rules for job descriptions.

Aggregator pages wrap the actual posting in site chrome (related jobs,
salary widgets, share buttons, cookie banners). Each rule is data so the
list can be extended and tested one entry at a time. Rules run in order;
broad patterns come last.
"""
import re
from dataclasses import dataclass
from typing import List

NOISE_PATTERNS_VERSION = 3

_BLOCK = r'[\s\S]*?(?=\n{2,}|$)'   # up to the next blank line
_LINE = r'[\s\S]*?(?:\n|$)'        # up to end of line


@dataclass(frozen=True)
class NoisePattern:
    name: str
    pattern: str
    replacement: str = '\n\n'
    flags: int = re.IGNORECASE

    def compile(self) -> 're.Pattern':
        return re.compile(self.pattern, self.flags)


NOISE_PATTERNS: List[NoisePattern] = [
    # similar / related jobs
    NoisePattern('similar_jobs', r'similar\s*(?:web3\s*)?jobs?\s*[:\-]?\s*' + _BLOCK),
    NoisePattern('related_jobs', r'related\s*(?:web3\s*)?jobs?\s*[:\-]?\s*' + _BLOCK),
    NoisePattern('recommended_jobs', r'recommended\s*(?:web3\s*)?(?:jobs?|positions?|for you)\s*[:\-]?\s*' + _BLOCK),
    NoisePattern('you_may_like', r'you\s*(?:may|might)\s*(?:also\s*)?like' + _BLOCK),
    NoisePattern('more_jobs', r'more\s*(?:web3\s*)?jobs?\s*(?:at|from|like|in)\b' + _BLOCK),
    NoisePattern('other_positions', r'other\s*(?:open\s*)?(?:positions?|jobs?|roles?)\s*(?:at|from|in)\b' + _BLOCK),
    NoisePattern('browse_jobs', r'browse\s*(?:more\s*)?(?:web3\s*)?jobs?' + _BLOCK),

    # salary comparison widgets
    NoisePattern('average_salary', r'(?:average|median|typical)\s*(?:web3\s*)?\w+\s*(?:manager|developer|engineer|designer|analyst)?\s*salary' + _BLOCK),
    NoisePattern('web3_role_salary', r'web3\s+\w+(?:\s+\w+)?\s+salary' + _BLOCK),
    NoisePattern('salary_benchmark', r'salary\s*(?:range|comparison|data|estimate|benchmark)' + _BLOCK),
    NoisePattern('compensation_data', r'compensation\s*(?:data|range|overview)' + _BLOCK),
    NoisePattern('how_much_does', r'how\s*much\s*(?:does|do)\s*(?:a\s*)?web3' + _BLOCK),

    # recommended profiles
    NoisePattern('recommended_profiles', r'recommended\s*(?:web3\s*)?\w+\s*(?:managers?|developers?|engineers?|designers?)' + _BLOCK),
    NoisePattern('top_profiles', r'(?:top|best)\s*(?:web3\s*)?\w+\s*(?:managers?|developers?|engineers?)\s*(?:profiles?|candidates?)' + _BLOCK),
    NoisePattern('featured_candidates', r'featured\s*(?:candidates?|profiles?|talent)' + _BLOCK),

    # cover letter / AI interview widgets
    NoisePattern('generate_cover_letter', r'generate\s*(?:a\s*)?cover\s*letter' + _BLOCK),
    NoisePattern('ai_interview', r'\bai\s*(?:interview|assistant)\b' + _BLOCK),
    NoisePattern('practice_interview', r'practice\s*interview' + _BLOCK),

    # share / report / bookmark
    NoisePattern('share_on', r'share\s*(?:on|via)\s*(?:twitter|facebook|linkedin|telegram|email|x)\b' + _LINE),
    NoisePattern('share_job', r'\bshare\s*(?:this\s*)?(?:job|position)\b:?\s*'),
    NoisePattern('share_line', r'^\s*(?:share|tweet|post|email)\s*(?:this)?(?:\s*(?:job|position))?:?\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('report_job', r'report\s*(?:this\s*)?(?:job|position|listing)\b' + _LINE),
    NoisePattern('bookmark_job', r'(?:save|bookmark)\s*(?:this\s*)?(?:job|position|listing)\b' + _LINE),
    NoisePattern('flag_job', r'flag\s*(?:this\s*)?(?:job|listing)\b' + _LINE),
    NoisePattern('short_link', r'get\s*a\s*\w+\.?\w*\s*short\s*link'),

    # trust / verification UI
    NoisePattern('trust_check', r'(?:verified|trust)\s*(?:check|badge|score)[\s\S]*?(?:looking\s*good\s*ser|passed|✓|✔)' + _LINE),
    NoisePattern('trust_score', r'trust\s*(?:score|check|level|rating)\s*[:\-]?\s*[\s\S]*?(?:\n{2,}|$)'),
    NoisePattern('ser_slang', r'\b(?:looking\s*good\s*ser|ngmi|wagmi|gm\s*ser)\b'),

    # site navigation
    NoisePattern('nav_links', r'^\s*(?:home|about\s*us|contact|login|sign\s*(?:in|up)|register|my\s*account)\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('back_to', r'^\s*back\s*to\s*(?:jobs?|search|home|results)\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('apply_now', r'^\s*(?:apply\s*now|apply\s*for\s*this(?:\s*job)?)\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('search_jobs', r'^\s*search\s*(?:web3\s*)?jobs?\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('follow_us', r'follow\s*us\s*(?:on)?' + _LINE),
    NoisePattern('join_community', r'join\s*our\s*(?:community|discord|telegram)' + _LINE),

    # cookie / legal
    NoisePattern('cookie_policy', r'(?:we\s*use\s*cookies|cookie\s*policy|privacy\s*policy)[\s\S]*?(?:\n{2,}|$)'),
    NoisePattern('accept_cookies', r'(?:accept|decline)\s*(?:all\s*)?cookies?'),
    NoisePattern('terms', r'(?:terms\s*of\s*(?:service|use)|privacy\s*(?:notice|statement))[\s\S]*?(?:\n{2,}|$)'),

    # hiring boilerplate
    NoisePattern('is_hiring', r'^\w+\s+is\s+hiring\s+(?:a\s+)?(?:remote\s+)?(?:web3\s+)?\w*\s*$',
                 flags=re.IGNORECASE | re.MULTILINE),

    # JS / CSS artifacts
    NoisePattern('js_function', r'function\s*\([^)]*\)\s*\{[^}]*\}', flags=0),
    NoisePattern('js_declaration', r'\b(?:var|const|let)\s+\w+\s*=\s*[^;\n]+;', flags=0),
    NoisePattern('jquery_call', r'\$\([^)]+\)\.', flags=0),
    NoisePattern('dom_global', r'\b(?:document|window)\.\w+', flags=0),
    NoisePattern('dom_call', r'(?:addEventListener|querySelector)\([^)]+\)', flags=0),
    NoisePattern('css_media', r'@media\s*\([^)]+\)\s*\{[^}]*\}', flags=0),
    NoisePattern('css_rule', r'(?:^|\s)\.[a-z_-]+\s*\{[^}]*\}'),

    # footer
    NoisePattern('copyright', r'^©\s*\d{4}[\s\S]*?(?:\n{2,}|$)', flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('rights_reserved', r'all\s*rights?\s*reserved', replacement=''),

    # ads
    NoisePattern('sponsored', r'^\s*(?:advertisement|sponsored|promoted)\b[\s\S]*?(?:\n{2,}|$)',
                 flags=re.IGNORECASE | re.MULTILINE),

    # loading indicators
    NoisePattern('loading', r'loading\.{3,}', replacement=''),
    NoisePattern('please_wait', r'please\s*wait\.*', replacement=''),

    # form labels
    NoisePattern('form_labels', r'^\s*(?:submit|cancel|reset|clear)\s*$', flags=re.IGNORECASE | re.MULTILINE),

    # misc artifacts
    NoisePattern('email_protected', r'\[email\s*protected\]', replacement=''),
    NoisePattern('literal_newline', r'\\n', replacement='\n', flags=0),
    NoisePattern('bare_domain', r'^\s*\w+\.(?:com|io|co|org|net)\s*$', flags=re.IGNORECASE | re.MULTILINE),
    NoisePattern('empty_bullet', r'^\s*(?:•|-|\*)\s*$', replacement='', flags=re.MULTILINE),
]

COMPILED_NOISE_PATTERNS = [(p, p.compile()) for p in NOISE_PATTERNS]
