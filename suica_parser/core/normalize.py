"""
Token cleaning and value normalization.
"""
import re
from datetime import date
from typing import Iterable, Optional

YEN = "¥"
HEADER_NOISE_PATTERN = re.compile(r"[\s　()（）・／/\-]")
NON_DIGIT_PATTERN = re.compile(r"[^0-9]")


def clean_token(token: Optional[str]) -> str:
    """
    Trim a column value and turn stray backslashes into Yen signs.

    Some statement fonts map the Yen glyph to a backslash code point.
    """
    if token is None:
        return ""
    return token.replace("\\", YEN).strip()


def normalize_header_token(token: Optional[str]) -> str:
    """Strip whitespace, brackets, slashes and separators from a header label."""
    if token is None:
        return ""
    return HEADER_NOISE_PATTERN.sub("", token)


def normalize_currency(token: Optional[str], force_yen: bool = False) -> str:
    """
    Normalize a currency cell.

    Args:
        token: Raw cell text
        force_yen: Ensure the result starts with a Yen sign (balance column)

    Returns:
        Normalized currency string
    """
    if token is None:
        return ""
    cleaned = token.replace("\\", YEN).strip()
    if force_yen and not cleaned.startswith(YEN):
        cleaned = YEN + cleaned.replace(YEN, "")
    return cleaned


def build_year_month(month_value: Optional[str], created_date: Optional[date]) -> str:
    """
    Derive the year-month column from a month token.

    Args:
        month_value: Month cell text
        created_date: Statement creation date, if known

    Returns:
        ``YYYY-MM`` with a creation date, ``MM`` without, the raw token
        when it carries no digits, or an empty string for blank input
    """
    if month_value is None or not month_value.strip():
        return ""
    digits = NON_DIGIT_PATTERN.sub("", month_value)
    if not digits:
        return month_value
    month = int(digits)
    if created_date is not None:
        return f"{created_date.year:04d}-{month:02d}"
    return f"{month:02d}"


def is_entry_only_type(type_in: str, entry_only_types: Iterable[str]) -> bool:
    """Top-ups and retail purchases have no exit leg."""
    return type_in in set(entry_only_types)


def looks_like_exit_type(token: Optional[str], exit_markers: Iterable[str]) -> bool:
    """Best-effort check for an exit/disembark type token."""
    if not token:
        return False
    return any(marker in token for marker in exit_markers)
