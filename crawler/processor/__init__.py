# crawler/processor/__init__.py
from crawler.processor.normalizer import JobNormalizer
from crawler.processor.validator import JobValidator, SaveResult
from crawler.processor.badges import BadgeEnricher, compute_badges
from crawler.processor.company_registry import CompanyRegistry, PriorityCompany
from crawler.processor.text_cleaner import decode_entities, strip_or_convert, remove_noise, clean_description

__all__ = [
    'JobNormalizer',
    'JobValidator', 'SaveResult',
    'BadgeEnricher', 'compute_badges',
    'CompanyRegistry', 'PriorityCompany',
    'decode_entities', 'strip_or_convert', 'remove_noise', 'clean_description',
]
