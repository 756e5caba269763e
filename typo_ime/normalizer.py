"""
Text normalization for typo_ime.

Dictionary fields and user queries are normalized before indexing and
matching so that tone numbers, stray whitespace and capitalization do not
count as edits.

Functions:
    normalize_searchable(value) -> Optional[str]: Normalize a dictionary field
    normalize_query(query: str) -> str: Normalize a user query fragment
    strip_tone_digits(text: str) -> str: Remove ASCII digits
"""

import re
from typing import Optional

_DIGITS = re.compile(r'[0-9]')


def strip_tone_digits(text: str) -> str:
    """
    Remove ASCII digits (pinyin tone numbers).

    Examples:
        >>> strip_tone_digits("ni3 hao3")
        'ni hao'
    """
    return _DIGITS.sub('', text)


def normalize_searchable(value) -> Optional[str]:
    """
    Normalize a dictionary field for indexing.

    Applies the following transformations:
    1. Strip leading/trailing whitespace
    2. Remove tone digits
    3. Lowercase

    Args:
        value: Raw field value (may be missing or not a string)

    Returns:
        Normalized text, or None if the value is not a non-empty string
        or nothing is left after normalization

    Examples:
        >>> normalize_searchable(" Ni3 ")
        'ni'

        >>> normalize_searchable("123") is None
        True
    """
    if not isinstance(value, str) or not value:
        return None

    text = strip_tone_digits(value.strip()).lower()

    return text or None


def normalize_query(query: str) -> str:
    """Lowercase a query fragment. Digits are kept: they count as edits."""
    if not query:
        return ""
    return query.lower()
