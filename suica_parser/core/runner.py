"""
End-to-end parsing orchestration.
"""
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union
import logging

from ..models.schema import (
    PdfDocumentMetadata,
    PdfExtractionResult,
    PdfFeature,
    StatementMetadata,
    StatementType,
)
from .anchors import locate_header_y, resolve_table_region
from .config import LayoutConfig, load_layout_config
from .errors import (
    PdfFileRequiredError,
    PdfNotFoundError,
    PdfPathRequiredError,
    PdfProcessingError,
    UnsupportedPdfFormatError,
)
from .loader import PDFLoader, PageData, collect_document_text
from .metadata import extract_statement_metadata
from .tables import TableLine, TableParser, assemble_lines

logger = logging.getLogger(__name__)

FeatureInput = Optional[Iterable[Union[PdfFeature, str]]]


def normalize_features(features: FeatureInput) -> Set[PdfFeature]:
    """Copy the requested features; nothing requested means everything."""
    selected = {PdfFeature(feature) for feature in features or []}
    return selected or PdfFeature.all_features()


def looks_like_pdf(file_name: Optional[str], content_type: Optional[str]) -> bool:
    """Cheap upload check based on the MIME type or the file suffix."""
    if content_type and content_type.lower() == "application/pdf":
        return True
    return bool(file_name) and file_name.lower().endswith(".pdf")


class StatementParser:
    """Main parser class that orchestrates the entire parsing process."""

    def __init__(self, config: Optional[LayoutConfig] = None,
                 config_path: Optional[Path] = None, verbose: bool = False):
        self.config = config or load_layout_config(config_path)

        if verbose:
            logging.basicConfig(level=logging.DEBUG)

    def parse(self, pdf_path: Optional[Path], features: FeatureInput = None) -> PdfExtractionResult:
        """
        Parse a PDF file on disk.

        Args:
            pdf_path: Path to PDF file
            features: Passes to run, defaults to all

        Returns:
            PdfExtractionResult
        """
        if pdf_path is None:
            raise PdfPathRequiredError()
        pdf_path = Path(pdf_path)
        if not pdf_path.exists():
            raise PdfNotFoundError(str(pdf_path.absolute()))

        try:
            data = pdf_path.read_bytes()
        except OSError as e:
            raise PdfProcessingError(f"Unable to process the PDF at {pdf_path}") from e
        return self.parse_bytes(data, pdf_path.name or "sample.pdf", features)

    def parse_upload(self, data: Optional[bytes], file_name: Optional[str],
                     content_type: Optional[str] = None,
                     features: FeatureInput = None) -> PdfExtractionResult:
        """Validate and parse an uploaded file."""
        if not data:
            raise PdfFileRequiredError()
        if not looks_like_pdf(file_name, content_type):
            raise UnsupportedPdfFormatError(file_name)
        return self.parse_bytes(data, file_name or "uploaded.pdf", features)

    def parse_bytes(self, data: Optional[bytes], file_name: str,
                    features: FeatureInput = None) -> PdfExtractionResult:
        """
        Parse PDF content already loaded into memory.

        Args:
            data: PDF bytes
            file_name: Name reported in the result
            features: Passes to run, defaults to all

        Returns:
            PdfExtractionResult
        """
        if not data:
            raise PdfFileRequiredError()
        selected = normalize_features(features)

        with PDFLoader(data) as loader:
            pages = loader.load()
            document_metadata = None
            if PdfFeature.DOCUMENT_METADATA in selected:
                document_metadata = loader.read_metadata(len(data))
            result = self.parse_pages(pages, selected, file_name, document_metadata)

        logger.info(f"Parsed {file_name}: {len(result.rows)} rows, {result.page_count} pages")
        return result

    def parse_pages(self, pages: List[PageData], features: FeatureInput = None,
                    file_name: str = "document.pdf",
                    document_metadata: Optional[PdfDocumentMetadata] = None) -> PdfExtractionResult:
        """
        Run the requested passes over loaded pages.

        Args:
            pages: Pages with their text runs
            features: Passes to run, defaults to all
            file_name: Name reported in the result
            document_metadata: Document-level metadata read by the loader

        Returns:
            PdfExtractionResult
        """
        selected = normalize_features(features)
        raw_text = None
        metadata: Optional[StatementMetadata] = None
        rows = []
        pdf_type = StatementType.FULL_HISTORY

        if PdfFeature.RAW_TEXT in selected or PdfFeature.STATEMENT_METADATA in selected:
            raw_text = collect_document_text(pages, self.config.lines.y_tolerance)
        if PdfFeature.STATEMENT_METADATA in selected:
            metadata = extract_statement_metadata(raw_text)
        if PdfFeature.TABLE_ROWS in selected:
            table_lines = self.extract_table_lines(pages)
            table = TableParser(self.config).parse(table_lines, metadata)
            rows = table.rows
            pdf_type = table.pdf_type

        return PdfExtractionResult(
            file_name=file_name,
            page_count=len(pages),
            metadata=metadata,
            rows=rows,
            extracted_text=raw_text if PdfFeature.RAW_TEXT in selected else None,
            document_metadata=document_metadata if PdfFeature.DOCUMENT_METADATA in selected else None,
            pdf_type=pdf_type
        )

    def extract_table_lines(self, pages: List[PageData]) -> List[TableLine]:
        """Collect table lines from every page, in page order."""
        lines = []
        for page_index, page in enumerate(pages):
            header_y = locate_header_y(page)
            region = resolve_table_region(page_index, page.width, page.height, header_y, self.config.region)
            if region is None:
                logger.debug(f"Page {page.page_num}: no table region")
                continue
            lines.extend(assemble_lines(page, region, self.config.lines))
        return lines


def parse_statement(pdf_path: Path, features: FeatureInput = None,
                    config_path: Optional[Path] = None, verbose: bool = False) -> PdfExtractionResult:
    """
    Parse a Suica statement PDF.

    Args:
        pdf_path: Path to PDF file
        features: Passes to run, defaults to all
        config_path: Alternative layout template
        verbose: Enable verbose logging

    Returns:
        PdfExtractionResult
    """
    parser = StatementParser(config_path=config_path, verbose=verbose)
    return parser.parse(pdf_path, features)
