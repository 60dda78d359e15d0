# crawler/processor/role_detector.py
import re
from typing import List, Optional, Tuple

ROLE_CATEGORIES = [
    'Engineering',
    'Product',
    'Design',
    'Marketing/Growth',
    'Business Development',
    'Operations/HR',
    'Community/Support',
]

DEFAULT_ROLE = 'Engineering'

# First match wins: "Product Designer" is Design, "Support Engineer" is Community/Support
ROLE_RULES: List[Tuple[str, 're.Pattern']] = [
    ('Community/Support', re.compile(
        r'\b(?:community|support|customer\s*success|developer\s*relations|devrel|'
        r'developer\s*advocate|moderator|ambassador)\b|커뮤니티|고객', re.IGNORECASE)),
    ('Design', re.compile(
        r'\b(?:design(?:er)?|ux|ui|illustrator|motion\s*graphic)\b|디자인|디자이너', re.IGNORECASE)),
    ('Product', re.compile(
        r'\b(?:product\s*(?:manager|owner|lead|director|management)|program\s*manager|'
        r'project\s*manager|head\s*of\s*product|pm)\b|프로덕트|기획', re.IGNORECASE)),
    ('Marketing/Growth', re.compile(
        r'\b(?:marketing|marketer|growth|content|writer|copywriter|seo|social\s*media|'
        r'brand|communications|pr\s*manager)\b|마케팅|마케터', re.IGNORECASE)),
    ('Business Development', re.compile(
        r'\b(?:business\s*development|bd|partnerships?|sales|account\s*(?:executive|manager)|'
        r'institutional|listing)\b|사업\s*개발|영업', re.IGNORECASE)),
    ('Operations/HR', re.compile(
        r'\b(?:operations|ops|people|hr|human\s*resources|talent|recruit(?:er|ing)?|'
        r'finance|accountant|accounting|legal|counsel|compliance|office\s*manager)\b|인사|재무|법무|운영',
        re.IGNORECASE)),
    ('Engineering', re.compile(
        r'\b(?:engineer(?:ing)?|developer|programmer|devops|sre|architect|qa|'
        r'security|researcher|scientist|solidity|rust|blockchain)\b|개발|엔지니어', re.IGNORECASE)),
]


def detect_role(title: Optional[str]) -> str:
    """Map a job title to one of ROLE_CATEGORIES, defaulting to Engineering"""
    if not title:
        return DEFAULT_ROLE

    for role, pattern in ROLE_RULES:
        if pattern.search(title):
            return role
    return DEFAULT_ROLE
