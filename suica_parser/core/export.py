"""
CSV export of parsed statement rows.
"""
import csv
import io
from typing import Iterable, List, Optional
import logging

from ..models.schema import PdfExtractionResult, StatementRow
from .errors import CsvExportValidationError

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Row", "Year-Month", "Month", "Day", "Type (In)", "Station (In)",
    "Type (Out)", "Station (Out)", "Balance", "Amount",
]


def select_rows(result: Optional[PdfExtractionResult], row_ids: Optional[Iterable[int]]) -> List[StatementRow]:
    """
    Pick the rows to export, in document order.

    Args:
        result: Extraction result holding the rows
        row_ids: Row numbers to include; unknown numbers are ignored

    Returns:
        The matching rows

    Raises:
        CsvExportValidationError: when there is nothing to export
    """
    if result is None or not result.rows:
        raise CsvExportValidationError("No parsed rows available for export.")
    wanted = set(row_ids or [])
    if not wanted:
        raise CsvExportValidationError("Please select at least one row before exporting.")

    selected = [row for row in result.rows if row.row_number in wanted]
    if not selected:
        raise CsvExportValidationError("Selected rows were not found.")

    logger.info(f"Exporting {len(selected)} of {len(result.rows)} rows")
    return selected


def export_selected_rows(result: Optional[PdfExtractionResult], row_ids: Optional[Iterable[int]]) -> str:
    """Render the selected rows as CSV. See select_rows for validation."""
    return rows_to_csv(select_rows(result, row_ids))


def rows_to_csv(rows: List[StatementRow]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row.row_number,
            row.year_month,
            row.month,
            row.day,
            row.type_in,
            row.station_in,
            row.type_out,
            row.station_out,
            row.balance or "",
            row.amount,
        ])
    return buffer.getvalue()
