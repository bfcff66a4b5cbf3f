"""
Pydantic models for Suica statement data.
"""
from datetime import date
from enum import Enum
from typing import List, Optional, Iterable, Set
from pydantic import BaseModel, Field, model_validator


class StatementType(str, Enum):
    """Statement export variant, told apart by the running-balance column."""
    FULL_HISTORY = "FULL_HISTORY"
    PARTIAL_SELECTION = "PARTIAL_SELECTION"

    @property
    def has_balance_column(self) -> bool:
        return self is StatementType.FULL_HISTORY


class PdfFeature(str, Enum):
    """Optional extraction passes a caller can request."""
    STATEMENT_METADATA = "STATEMENT_METADATA"
    TABLE_ROWS = "TABLE_ROWS"
    RAW_TEXT = "RAW_TEXT"
    DOCUMENT_METADATA = "DOCUMENT_METADATA"

    @classmethod
    def all_features(cls) -> Set["PdfFeature"]:
        return set(cls)

    @classmethod
    def from_strings(cls, raw_values: Optional[Iterable[str]]) -> Set["PdfFeature"]:
        """
        Convert request parameters into a feature set.

        Unknown values are ignored. An empty or entirely invalid input
        selects every feature.
        """
        features = set()
        for value in raw_values or []:
            if value is None:
                continue
            try:
                features.add(cls(value.strip().upper()))
            except ValueError:
                continue
        return features or cls.all_features()

    @property
    def display_name(self) -> str:
        return _FEATURE_DISPLAY_NAMES[self]


_FEATURE_DISPLAY_NAMES = {
    PdfFeature.STATEMENT_METADATA: "Statement metadata",
    PdfFeature.TABLE_ROWS: "Statement table rows",
    PdfFeature.RAW_TEXT: "Raw document text",
    PdfFeature.DOCUMENT_METADATA: "PDF info metadata",
}


class StatementMetadata(BaseModel):
    """Heading fields scanned from the statement text."""
    heading: Optional[str] = None
    card_number_line: Optional[str] = None
    history_summary: Optional[str] = None
    created_line: Optional[str] = None
    created_date: Optional[date] = None


class StatementRow(BaseModel):
    """Single statement table row. All values are normalized strings."""
    row_number: int = Field(ge=1)
    year_month: str = ""
    month: str = ""
    day: str = ""
    type_in: str = ""
    station_in: str = ""
    type_out: str = ""
    station_out: str = ""
    balance: Optional[str] = None
    amount: str = ""


class TableParseResult(BaseModel):
    """Rows parsed from one document together with the detected layout."""
    rows: List[StatementRow] = Field(default_factory=list)
    pdf_type: StatementType = StatementType.FULL_HISTORY

    @model_validator(mode="after")
    def validate_rows(self):
        """Balance follows the layout and row numbers have no gaps."""
        for expected, row in enumerate(self.rows, start=1):
            if row.row_number != expected:
                raise ValueError(
                    f"Row numbers must be sequential: expected {expected}, got {row.row_number}"
                )
            has_balance = bool(row.balance)
            if has_balance != self.pdf_type.has_balance_column:
                raise ValueError(
                    f"Row {row.row_number} balance does not match statement type {self.pdf_type.value}"
                )
        return self


class PdfInfoDictionary(BaseModel):
    """Values from the PDF document information dictionary."""
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    keywords: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[str] = None
    modification_date: Optional[str] = None
    trapped: Optional[str] = None


class PdfXmpMetadata(BaseModel):
    """Dublin Core and XMP basic properties from the XMP packet."""
    dublin_core_title: Optional[str] = None
    dublin_core_creators: Optional[str] = None
    dublin_core_dates: Optional[str] = None
    create_date: Optional[str] = None
    creator_tool: Optional[str] = None
    metadata_date: Optional[str] = None


class PdfDocumentMetadata(BaseModel):
    """Document-level facts about the uploaded PDF."""
    info_dictionary: Optional[PdfInfoDictionary] = None
    xmp: Optional[PdfXmpMetadata] = None
    page_count: int = 0
    pdf_version: Optional[str] = None
    encrypted: bool = False
    file_size_bytes: int = 0


class PdfExtractionResult(BaseModel):
    """Complete extraction result for one PDF."""
    file_name: str
    page_count: int
    metadata: Optional[StatementMetadata] = None
    rows: List[StatementRow] = Field(default_factory=list)
    extracted_text: Optional[str] = None
    document_metadata: Optional[PdfDocumentMetadata] = None
    pdf_type: StatementType = StatementType.FULL_HISTORY
