"""
Suica Statement Parser

Turns Mobile Suica balance-history statement PDFs into structured rows by
inferring the table layout from positioned text runs with pdfplumber.
"""

__version__ = "1.0.0"

from .core.runner import parse_statement, StatementParser
from .core.detectors import detect_statement_type
from .core.export import export_selected_rows
from .models.schema import (
    PdfExtractionResult,
    PdfFeature,
    StatementMetadata,
    StatementRow,
    StatementType,
    TableParseResult,
)

__all__ = [
    "parse_statement",
    "StatementParser",
    "detect_statement_type",
    "export_selected_rows",
    "PdfExtractionResult",
    "PdfFeature",
    "StatementMetadata",
    "StatementRow",
    "StatementType",
    "TableParseResult",
]
