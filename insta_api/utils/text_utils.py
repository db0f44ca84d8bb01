# insta_api/utils/text_utils.py
import secrets
import string
import unicodedata
from typing import List

from slugify import slugify

SLUG_SEPARATOR = '_'
SLUG_SUFFIX_LENGTH = 8


def normalize_text(value: str) -> str:
    """Lowercases and strips diacritics, so "Tuấn" and "tuan" compare equal."""
    decomposed = unicodedata.normalize('NFD', value or '')
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    return stripped.replace('đ', 'd').replace('Đ', 'D').lower()


def words(value: str) -> List[str]:
    return [w for w in normalize_text(value).split() if w.strip()]


def get_last_name(full_name: str) -> str:
    """Last word of a full name, normalized. Used to derive usernames for OAuth accounts."""
    parts = words(full_name)
    return parts[-1] if parts else ''


def random_string(length: int = SLUG_SUFFIX_LENGTH, alphabet: str = string.ascii_letters + string.digits) -> str:
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def make_slug(caption: str) -> str:
    """Slug of a caption: lowercase, words joined by underscores. Empty captions give an empty slug."""
    return slugify(caption or '', separator=SLUG_SEPARATOR, lowercase=True)


def with_random_suffix(slug: str) -> str:
    suffix = random_string()
    return f"{slug}{SLUG_SEPARATOR}{suffix}" if slug else suffix
