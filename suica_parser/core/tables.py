"""
Table extraction: line assembly, column layout and row parsing.
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple
import logging

from ..models.schema import StatementMetadata, StatementRow, StatementType, TableParseResult
from .anchors import TableRegion, detect_anchors, is_header_text
from .config import ColumnDefinition, ColumnSettings, LayoutConfig, LineSettings, load_layout_config
from .detectors import column_definitions_for, detect_statement_type, find_header_line
from .loader import GlyphRun, PageData, visit_runs
from .normalize import (
    build_year_month,
    clean_token,
    is_entry_only_type,
    looks_like_exit_type,
    normalize_currency,
)

logger = logging.getLogger(__name__)

DATA_LINE_PATTERN = re.compile(r"\d{1,2}[\s　]+\d{1,2}")
PAGE_MARKER_PATTERN = re.compile(r"\(\d+/\d+\)")
DATE_PATTERN = re.compile(r"\d{4}/\d{2}/\d{2}")
FOOTER_PHRASES = (
    "ご利用ありがとうございます",
    "システムの都合上",
    "東日本旅客鉄道株式会社",
)


@dataclass(frozen=True)
class PositionedToken:
    """Text span with its horizontal extent on the page."""
    x_start: float
    x_end: float
    text: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'x_end', max(self.x_end, self.x_start))
        object.__setattr__(self, 'text', self.text or "")

    @property
    def center(self) -> float:
        return self.x_start + (self.x_end - self.x_start) / 2


class TableLine:
    """One visual line of the table: a baseline Y and its tokens sorted by X."""
    def __init__(self, y: float):
        self.y = y
        self._tokens: List[PositionedToken] = []
        self._sorted = True
        self._frozen = False

    def add_token(self, token: Optional[PositionedToken]):
        if self._frozen:
            raise RuntimeError("TableLine is frozen after assembly")
        if token is None:
            return
        self._tokens.append(token)
        self._sorted = False

    def freeze(self) -> "TableLine":
        self._frozen = True
        return self

    @property
    def tokens(self) -> Tuple[PositionedToken, ...]:
        if not self._sorted:
            self._tokens.sort(key=lambda token: token.x_start)
            self._sorted = True
        return tuple(self._tokens)

    @property
    def min_x(self) -> float:
        return min((token.x_start for token in self.tokens), default=float('inf'))

    @property
    def max_x(self) -> float:
        return max((token.x_end for token in self.tokens), default=float('-inf'))

    @property
    def text(self) -> str:
        parts = (token.text.strip() for token in self.tokens)
        return ' '.join(part for part in parts if part)

    def __repr__(self):
        return f"TableLine(y={self.y:.1f}, text='{self.text}')"


def assemble_lines(page: PageData, region: TableRegion,
                   settings: Optional[LineSettings] = None) -> List[TableLine]:
    """
    Cluster the runs inside a region into table lines.

    A run joins the most recent line when its baseline is within the
    tolerance, otherwise it opens a new line.

    Args:
        page: Page holding the runs
        region: Table rectangle; runs whose origin lies outside are ignored
        settings: Line tolerance and minimum token width

    Returns:
        Frozen lines sorted by Y
    """
    settings = settings or LineSettings()
    lines: List[TableLine] = []

    def add_run(run: GlyphRun):
        if not run.text.strip():
            return
        width = max(run.width, settings.min_token_width)
        token = PositionedToken(run.x, run.x + width, run.text)
        if lines and abs(lines[-1].y - run.y) < settings.y_tolerance:
            lines[-1].add_token(token)
        else:
            line = TableLine(run.y)
            line.add_token(token)
            lines.append(line)

    visit_runs(page, add_run, region)
    lines.sort(key=lambda line: line.y)
    logger.debug(f"Page {page.page_num}: {len(lines)} table lines in {region}")
    return [line.freeze() for line in lines]


@dataclass(frozen=True)
class ColumnBoundary:
    """Closed horizontal interval of one column."""
    start: float
    end: float
    tolerance: float = 0.5

    def __post_init__(self):
        low, high = min(self.start, self.end), max(self.start, self.end)
        object.__setattr__(self, 'start', low)
        object.__setattr__(self, 'end', high)

    def contains(self, value: float, last: bool = False) -> bool:
        if last:
            return self.start - self.tolerance <= value <= self.end + self.tolerance
        return self.start - self.tolerance <= value < self.end - self.tolerance


@dataclass(frozen=True)
class ColumnLayout:
    """Column boundaries valid for one table."""
    boundaries: Tuple[ColumnBoundary, ...]
    fallback: bool = False

    @property
    def column_count(self) -> int:
        return len(self.boundaries)

    def locate_column(self, center: float) -> int:
        last_index = len(self.boundaries) - 1
        for i, boundary in enumerate(self.boundaries):
            if boundary.contains(center, i == last_index):
                return i
        return -1

    def extract_columns(self, line: TableLine,
                        cleaner: Callable[[str], str] = clean_token) -> List[str]:
        """
        Bucket a line's tokens into columns by their center X.

        Tokens sharing a column are joined with a single space in X order;
        tokens outside every boundary are ignored.
        """
        buckets: List[List[str]] = [[] for _ in self.boundaries]
        for token in line.tokens:
            column_index = self.locate_column(token.center)
            if column_index < 0:
                continue
            raw = token.text.strip()
            if raw:
                buckets[column_index].append(raw)
        return [cleaner(' '.join(bucket)) for bucket in buckets]


def build_column_layout(header_line: Optional[TableLine], lines: List[TableLine],
                        definitions: List[ColumnDefinition],
                        settings: Optional[ColumnSettings] = None) -> ColumnLayout:
    """
    Derive column boundaries from header anchors, or evenly spaced bins.

    Args:
        header_line: Detected header line, or None
        lines: All table lines
        definitions: Active column definitions
        settings: Padding and boundary tolerance

    Returns:
        ColumnLayout with one boundary per definition
    """
    padding = settings.padding if settings else 2.0
    tolerance = settings.boundary_tolerance if settings else 0.5
    column_count = len(definitions)

    min_x = _compute_min_x(lines, header_line) - padding
    max_x = _compute_max_x(lines, header_line, column_count) + padding
    if max_x <= min_x:
        max_x = min_x + column_count

    anchors = detect_anchors(header_line, definitions) if header_line is not None else []
    if header_line is not None and len(anchors) == column_count:
        boundaries = []
        for i in range(column_count):
            start = min_x if i == 0 else _midpoint(anchors[i - 1], anchors[i])
            end = max_x if i == column_count - 1 else _midpoint(anchors[i], anchors[i + 1])
            boundaries.append(ColumnBoundary(start, end, tolerance))
        return ColumnLayout(tuple(boundaries))

    if header_line is None:
        logger.warning("Table header text not detected; falling back to evenly spaced columns.")
    else:
        logger.warning(f"Detected only {len(anchors)} header anchors; falling back to evenly spaced columns.")

    width = max(max_x - min_x, column_count)
    column_width = width / column_count
    boundaries = []
    start = min_x
    for i in range(column_count):
        end = max_x if i == column_count - 1 else start + column_width
        boundaries.append(ColumnBoundary(start, end, tolerance))
        start = end
    return ColumnLayout(tuple(boundaries), fallback=True)


def _compute_min_x(lines: List[TableLine], header_line: Optional[TableLine]) -> float:
    candidates = [line.min_x for line in lines]
    if header_line is not None:
        candidates.append(header_line.min_x)
    value = min(candidates, default=float('inf'))
    return 0.0 if value == float('inf') else value


def _compute_max_x(lines: List[TableLine], header_line: Optional[TableLine], column_count: int) -> float:
    candidates = [line.max_x for line in lines]
    if header_line is not None:
        candidates.append(header_line.max_x)
    value = max(candidates, default=float('-inf'))
    return float(column_count) if value == float('-inf') else value


def _midpoint(left: float, right: float) -> float:
    return left + (right - left) / 2


def looks_like_data_line(line: str) -> bool:
    """Month and day numbers side by side mark a transaction line."""
    return DATA_LINE_PATTERN.search(line) is not None


def is_footer_line(line: str) -> bool:
    """Boilerplate, operator name, page markers and print dates."""
    return (
        any(phrase in line for phrase in FOOTER_PHRASES)
        or PAGE_MARKER_PATTERN.search(line) is not None
        or DATE_PATTERN.search(line) is not None
    )


class TableParser:
    """Turns assembled table lines into statement rows."""

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or load_layout_config()

    def parse(self, lines: List[TableLine],
              metadata: Optional[StatementMetadata] = None) -> TableParseResult:
        """
        Parse table lines into rows.

        Args:
            lines: Table lines of a whole document, in reading order
            metadata: Statement metadata; its creation date feeds the year-month column

        Returns:
            TableParseResult with the rows and the detected statement type
        """
        if not lines:
            return TableParseResult(rows=[], pdf_type=StatementType.FULL_HISTORY)

        header_line = find_header_line(lines)
        pdf_type = detect_statement_type(header_line, lines)
        definitions = column_definitions_for(pdf_type, self.config.columns)
        layout = build_column_layout(header_line, lines, definitions, self.config.columns)
        created_date = metadata.created_date if metadata else None

        rows = []
        header_seen = False
        for table_line in lines:
            text = table_line.text
            if not text:
                continue
            if not header_seen:
                if is_header_text(text) or looks_like_data_line(text):
                    header_seen = True
                else:
                    continue
            if is_header_text(text) or is_footer_line(text):
                continue

            columns = layout.extract_columns(table_line, clean_token)
            if len(columns) != len(definitions):
                continue
            row = self._to_row(columns, len(rows) + 1, created_date, pdf_type)
            if row is not None:
                rows.append(row)

        logger.info(f"Parsed {len(rows)} rows ({pdf_type.value})")
        return TableParseResult(rows=rows, pdf_type=pdf_type)

    def _to_row(self, columns: List[str], row_number: int, created_date,
                pdf_type: StatementType) -> Optional[StatementRow]:
        month = _column(columns, 0)
        day = _column(columns, 1)
        if not month and not day:
            return None

        type_in = _column(columns, 2)
        station_in = _column(columns, 3)
        type_out = _column(columns, 4)
        station_out = _column(columns, 5)
        if pdf_type.has_balance_column:
            balance = normalize_currency(_column(columns, 6), force_yen=True)
            amount = normalize_currency(_column(columns, 7))
        else:
            balance = None
            amount = normalize_currency(_column(columns, 6))

        if is_entry_only_type(type_in, self.config.entry_only_types):
            type_out = ""
            station_out = ""

        # An empty inbound station shifts the exit type one column left
        if not type_out and looks_like_exit_type(station_in, self.config.exit_markers):
            type_out = station_in
            station_in = ""

        return StatementRow(
            row_number=row_number,
            year_month=build_year_month(month, created_date),
            month=month,
            day=day,
            type_in=type_in,
            station_in=station_in,
            type_out=type_out,
            station_out=station_out,
            balance=balance,
            amount=amount
        )


def _column(columns: List[str], index: int) -> str:
    if index < 0 or index >= len(columns):
        return ""
    return (columns[index] or "").strip()


def parse_table_lines(lines: List[TableLine], metadata: Optional[StatementMetadata] = None,
                      config: Optional[LayoutConfig] = None) -> TableParseResult:
    """Convenience wrapper around TableParser."""
    return TableParser(config).parse(lines, metadata)
