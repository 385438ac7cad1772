"""Text helpers: slugs, list/pair splitting, fuzzy name matching."""
import re
import unicodedata
from datetime import date
from difflib import SequenceMatcher
from typing import Iterable, List, Tuple

from bs4 import BeautifulSoup

MONTH_NAMES = [
    'Januar', 'Februar', 'März', 'April', 'Mai', 'Juni',
    'Juli', 'August', 'September', 'Oktober', 'November', 'Dezember'
]

# German letters are transliterated before diacritics are stripped,
# so "Müllheim" becomes "muellheim" rather than "mullheim".
_TRANSLITERATIONS = {
    'ä': 'ae',
    'ö': 'oe',
    'ü': 'ue',
    'ß': 'ss',
}

_NON_ALNUM = re.compile(r'[^a-z0-9]+')
_WHITESPACE = re.compile(r'\s+')
_ORDINAL = re.compile(r'^\d+(st|nd|rd|th|te|ter)?$')

SIMILARITY_THRESHOLD = 0.9


def sanitize_name(text: str) -> str:
    """
    Turn arbitrary text into a URL-safe slug.

    Lowercases, folds diacritics and collapses every run of
    non-alphanumeric characters into a single hyphen. The result only
    contains [a-z0-9-], so sanitizing a slug again returns it unchanged.

    Args:
        text: Raw text, e.g. "Schauinsland-Lauf 2025"

    Returns:
        Slug, e.g. "schauinsland-lauf-2025"
    """
    s = unicodedata.normalize('NFC', text).lower()
    for umlaut, replacement in _TRANSLITERATIONS.items():
        s = s.replace(umlaut, replacement)
    s = unicodedata.normalize('NFKD', s)
    s = ''.join(c for c in s if not unicodedata.combining(c))
    s = _NON_ALNUM.sub('-', s)
    return s.strip('-')


def split_pair(text: str, separator: str = '|') -> Tuple[str, str]:
    """
    Split text on the first separator into a stripped pair.

    Args:
        text: Text like "New Name|Old Name"
        separator: Separator string

    Returns:
        Tuple (first, second); second is empty if there is no separator
    """
    if separator in text:
        first, second = text.split(separator, 1)
        return first.strip(), second.strip()
    return text.strip(), ''


def split_list(text: str, separator: str = ',') -> List[str]:
    """Split a cell into stripped, non-empty entries."""
    return [item.strip() for item in text.split(separator) if item.strip()]


def sort_and_uniquify(items: Iterable[str]) -> List[str]:
    return sorted(set(item for item in items if item))


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(' ', text).strip()


def html_to_text(html: str) -> str:
    """
    Extract readable plain text from an HTML snippet.

    Args:
        html: HTML fragment from a description cell

    Returns:
        Plain text with normalized whitespace
    """
    if not html:
        return ''
    soup = BeautifulSoup(html, 'html.parser')
    return collapse_whitespace(soup.get_text(' ', strip=True))


def month_label(day: date) -> str:
    """Label for a calendar month, e.g. "April 2025"."""
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def _name_stem(sanitized: str) -> str:
    tokens = [t for t in sanitized.split('-') if t and not _ORDINAL.match(t)]
    return '-'.join(tokens)


def is_similar_name(name1: str, name2: str) -> bool:
    """
    Decide whether two sanitized names denote the same recurring event.

    Years, edition numbers and ordinals are ignored ("3-dreiland-lauf-2024"
    matches "dreiland-lauf-2025"); the remaining stems must be equal or
    nearly equal.

    Args:
        name1: Sanitized name
        name2: Sanitized name

    Returns:
        True if the names are considered similar
    """
    stem1 = _name_stem(name1)
    stem2 = _name_stem(name2)
    if not stem1 or not stem2:
        return name1 == name2
    if stem1 == stem2:
        return True
    return SequenceMatcher(None, stem1, stem2).ratio() >= SIMILARITY_THRESHOLD
