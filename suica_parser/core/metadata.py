"""
Statement metadata scanned from the document text.
"""
import re
from datetime import date, datetime
from typing import Callable, List, Optional
import logging

from ..models.schema import StatementMetadata

logger = logging.getLogger(__name__)

CARD_PATTERN = re.compile(r"JE[\d*\s]+\d{4}")
DATE_PATTERN = re.compile(r"(\d{4}/\d{2}/\d{2})")
HEADING_MARKERS = ("モバイル", "残高ご利用明細")
HISTORY_MARKER = "残高履歴"
THANK_YOU_MARKER = "ご利用ありがとうございます"


def extract_statement_metadata(document_text: Optional[str]) -> StatementMetadata:
    """
    Pick the heading, card number, summary and creation lines out of the text.

    Args:
        document_text: Full document text, one visual line per text line

    Returns:
        StatementMetadata; fields stay None when no line matches
    """
    lines = [line.strip() for line in (document_text or "").splitlines()]
    lines = [line for line in lines if line]

    metadata = StatementMetadata(
        heading=_find_first(lines, lambda line: all(marker in line for marker in HEADING_MARKERS)),
        card_number_line=_find_first(lines, lambda line: CARD_PATTERN.search(line) is not None),
        history_summary=_find_first(lines, lambda line: HISTORY_MARKER in line),
        created_line=_find_first(
            lines, lambda line: THANK_YOU_MARKER in line or DATE_PATTERN.search(line) is not None
        ),
        created_date=extract_created_date(lines)
    )
    if metadata.created_date is None:
        logger.warning("Statement creation date not found; year-month values will omit the year")
    return metadata


def extract_created_date(lines: List[str]) -> Optional[date]:
    """Return the first ``YYYY/MM/DD`` value that is a real calendar date."""
    for line in lines:
        for match in DATE_PATTERN.finditer(line):
            try:
                return datetime.strptime(match.group(1), "%Y/%m/%d").date()
            except ValueError:
                logger.debug(f"Ignoring invalid date: {match.group(1)}")
                continue
    return None


def _find_first(lines: List[str], predicate: Callable[[str], bool]) -> Optional[str]:
    return next((line for line in lines if predicate(line)), None)
