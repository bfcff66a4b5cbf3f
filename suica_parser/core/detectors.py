"""
Statement type detection.
"""
from typing import TYPE_CHECKING, List, Optional
import logging

from ..models.schema import StatementType
from .anchors import is_header_text
from .config import ColumnDefinition, ColumnSettings
from .normalize import normalize_header_token

if TYPE_CHECKING:
    from .tables import TableLine

logger = logging.getLogger(__name__)

BALANCE_KEYWORD = "残高"
AMOUNT_KEYWORDS = ("入金利用金額", "入金利用額", "入金利用金")
PARTIAL_COLUMN_COUNT = 7


def find_header_line(lines: Optional[List["TableLine"]]) -> Optional["TableLine"]:
    """Return the first table line matching the header signature."""
    for line in lines or []:
        if line is not None and is_header_text(line.text):
            return line
    return None


def detect_statement_type(header_line: Optional["TableLine"],
                          lines: Optional[List["TableLine"]]) -> StatementType:
    """
    Decide between the full-history and partial-selection layouts.

    Args:
        header_line: Detected header TableLine, or None
        lines: All table lines of the document

    Returns:
        StatementType
    """
    has_balance = False
    has_amount = False
    if header_line is not None:
        for token in header_line.tokens:
            normalized = normalize_header_token(token.text)
            if BALANCE_KEYWORD in normalized:
                has_balance = True
            if any(keyword in normalized for keyword in AMOUNT_KEYWORDS):
                has_amount = True

    if has_amount and not has_balance:
        return StatementType.PARTIAL_SELECTION
    if has_balance:
        return StatementType.FULL_HISTORY

    max_tokens = max((len(line.tokens) for line in lines or [] if line is not None), default=0)
    if 0 < max_tokens <= PARTIAL_COLUMN_COUNT:
        logger.debug(f"No header keywords; {max_tokens} tokens per line suggests a partial selection")
        return StatementType.PARTIAL_SELECTION

    return StatementType.FULL_HISTORY


def column_definitions_for(pdf_type: StatementType, settings: ColumnSettings) -> List[ColumnDefinition]:
    """Pick the column definitions matching the statement type."""
    if pdf_type is StatementType.PARTIAL_SELECTION:
        return settings.partial_selection
    return settings.full_history
