# insta_api/utils/__init__.py
"""
Helpers shared across the project: date/time normalization and text/slug handling.
"""

from .datetime_utils import DateTimeUtils
from .text_utils import (
    normalize_text, words, get_last_name, make_slug, with_random_suffix, random_string,
)

__all__ = [
    'DateTimeUtils',
    'normalize_text', 'words', 'get_last_name', 'make_slug', 'with_random_suffix', 'random_string',
]
