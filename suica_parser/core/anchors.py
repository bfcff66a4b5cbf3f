"""
Header anchors: locating the table header line, the table region and column anchors.
"""
import re
from typing import TYPE_CHECKING, Dict, List, Optional
import logging

from .config import ColumnDefinition, RegionSettings
from .loader import GlyphRun, PageData, visit_runs
from .normalize import normalize_header_token

if TYPE_CHECKING:
    from .tables import TableLine

logger = logging.getLogger(__name__)

WHITESPACE_PATTERN = re.compile(r"[\s　]")
AMOUNT_HEADER_KEYWORDS = ("入金", "利用額", "利用金額")


def is_header_text(text: Optional[str]) -> bool:
    """
    Check whether text carries the table header signature.

    The header names month and day, two type columns, two station
    columns and the amount column.
    """
    if text is None:
        return False
    flattened = WHITESPACE_PATTERN.sub("", text)
    return (
        "月" in flattened
        and "日" in flattened
        and flattened.count("種別") >= 2
        and flattened.count("利用駅") >= 2
        and any(keyword in flattened for keyword in AMOUNT_HEADER_KEYWORDS)
    )


def locate_header_y(page: PageData) -> Optional[float]:
    """
    Find the Y coordinate of the table header on a page.

    Runs are accumulated per rounded baseline; the first buffer that
    matches the header signature wins.

    Args:
        page: Page to scan

    Returns:
        Y of the run completing the header, or None
    """
    buffers: Dict[int, List[str]] = {}
    found: List[float] = []

    def scan(run: GlyphRun):
        if found:
            return
        buffer = buffers.setdefault(round(run.y), [])
        buffer.append(run.text)
        if is_header_text(" ".join(buffer)):
            found.append(run.y)

    visit_runs(page, scan)
    if not found:
        return None
    logger.debug(f"Table header found on page {page.page_num} at y={found[0]:.1f}")
    return found[0]


class TableRegion:
    """Axis-aligned rectangle in top-down page coordinates."""
    def __init__(self, x: float, y: float, width: float, height: float):
        self.x = x
        self.y = y
        self.width = width
        self.height = height

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def __eq__(self, other):
        if not isinstance(other, TableRegion):
            return NotImplemented
        return (self.x, self.y, self.width, self.height) == (other.x, other.y, other.width, other.height)

    def __repr__(self):
        return f"TableRegion(x={self.x:.1f}, y={self.y:.1f}, width={self.width:.1f}, height={self.height:.1f})"


def resolve_table_region(page_index: int, page_width: float, page_height: float,
                         header_y: Optional[float],
                         settings: Optional[RegionSettings] = None) -> Optional[TableRegion]:
    """
    Compute the rectangle holding the statement table on a page.

    Args:
        page_index: Zero-based page index
        page_width: Page width in points
        page_height: Page height in points
        header_y: Header Y from locate_header_y, if any
        settings: Region offsets

    Returns:
        TableRegion, or None when the page leaves no room for a table
    """
    settings = settings or RegionSettings()
    margin = settings.margin

    if header_y is not None:
        start_y = max(margin, header_y - settings.header_lookback)
    else:
        start_y = settings.first_page_offset if page_index == 0 else settings.next_page_offset
        logger.warning(f"Table header not found on page {page_index + 1}. Falling back to default region.")

    available_height = max(0.0, page_height - start_y - settings.footer_padding)
    height = available_height if available_height > 0 else page_height - (2 * margin)
    if height <= 0:
        return None

    width = max(0.0, page_width - (2 * margin))
    return TableRegion(margin, start_y, width, height)


def detect_anchors(header_line: "TableLine", definitions: List[ColumnDefinition]) -> List[float]:
    """
    Match each column definition to a header token, left to right.

    Each token can anchor at most one column and the scan never moves
    backwards.

    Args:
        header_line: TableLine holding the header tokens
        definitions: Column definitions in layout order

    Returns:
        Anchor centers in definition order. The list stops at the first
        unmatched definition, so a short list means the match failed.
    """
    tokens = header_line.tokens
    anchors = []
    token_index = 0
    for definition in definitions:
        anchor = None
        for i in range(token_index, len(tokens)):
            normalized = normalize_header_token(tokens[i].text)
            if not normalized:
                continue
            if definition.matches(normalized):
                anchor = tokens[i].center
                token_index = i + 1
                break
        if anchor is None:
            logger.debug(f"Header anchor for column '{definition.name}' not found")
            break
        anchors.append(anchor)
    return anchors
