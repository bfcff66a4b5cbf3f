"""
PDF loading and positioned text runs using pdfplumber.
"""
import io
import re
import pdfplumber
from datetime import datetime
from lxml import etree
from pdfminer.pdftypes import resolve1
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import logging

from ..models.schema import PdfDocumentMetadata, PdfInfoDictionary, PdfXmpMetadata
from .errors import PdfProcessingError

logger = logging.getLogger(__name__)

PDF_VERSION_PATTERN = re.compile(rb"%PDF-(\d+\.\d+)")
PDF_DATE_PATTERN = re.compile(
    r"(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?([Zz+\-])?(\d{2})?'?(\d{2})?"
)
XMP_NAMESPACES = {
    'rdf': 'http://www.w3.org/1999/02/22-rdf-syntax-ns#',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'xmp': 'http://ns.adobe.com/xap/1.0/',
}


class GlyphRun:
    """A contiguous run of rendered text with its origin and width."""
    def __init__(self, text: str, x: float, y: float, width: float):
        self.text = text
        self.x = x
        self.y = y
        self.width = width

    def __repr__(self):
        return f"GlyphRun('{self.text}', x={self.x:.1f}, y={self.y:.1f}, width={self.width:.1f})"


class PageData:
    """Represents a page with its text runs in position order."""
    def __init__(self, page_num: int, width: float, height: float, runs: List[GlyphRun]):
        self.page_num = page_num
        self.width = width
        self.height = height
        self.runs = sorted(runs, key=lambda run: (run.y, run.x))

    def __repr__(self):
        return f"PageData(page_num={self.page_num}, runs={len(self.runs)})"


def visit_runs(page: PageData, visitor: Callable[[GlyphRun], None], region=None) -> None:
    """
    Feed every run of a page to a visitor, optionally restricted to a region.

    Args:
        page: Page to walk
        visitor: Callback receiving each run
        region: Object with a ``contains(x, y)`` method, or None for the full page
    """
    for run in page.runs:
        if region is not None and not region.contains(run.x, run.y):
            continue
        visitor(run)


def collect_document_text(pages: List[PageData], y_tolerance: float = 1.5) -> str:
    """
    Rebuild the plain text of a document, one output line per visual line.

    Args:
        pages: Loaded pages
        y_tolerance: Maximum baseline distance for runs on the same line

    Returns:
        Text with lines separated by newlines and pages by a blank line
    """
    page_texts = []
    for page in pages:
        lines: List[List[GlyphRun]] = []

        def add_run(run: GlyphRun):
            if lines and abs(lines[-1][0].y - run.y) < y_tolerance:
                lines[-1].append(run)
            else:
                lines.append([run])

        visit_runs(page, add_run)
        text_lines = []
        for line in lines:
            parts = [run.text.strip() for run in sorted(line, key=lambda r: r.x)]
            text_lines.append(' '.join(part for part in parts if part))
        page_texts.append('\n'.join(text_lines))
    return '\n\n'.join(page_texts).strip()


def word_baseline(word_data: Dict[str, Any], page_height: float) -> float:
    """
    Top-down baseline of a pdfplumber word.

    The first character's text matrix holds the glyph origin in PDF user
    space. ``top`` depends on the font size, so words sharing a baseline at
    different sizes would not line up.

    Args:
        word_data: Word dict from ``extract_words(..., return_chars=True)``
        page_height: Page height in points

    Returns:
        Baseline Y measured from the top of the page
    """
    chars = word_data.get('chars') or []
    matrix = chars[0].get('matrix') if chars else None
    if matrix:
        return page_height - float(matrix[5])
    return float(word_data.get('bottom', word_data.get('top', 0)))


class PDFLoader:
    """Handles PDF loading and text run extraction."""

    def __init__(self, source: Union[Path, bytes]):
        self.source = source
        self._pdf = None
        self._pages = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        """Open the underlying document, wrapping any failure as PdfProcessingError."""
        if self._pdf is not None:
            return self._pdf
        target = io.BytesIO(self.source) if isinstance(self.source, bytes) else self.source
        try:
            self._pdf = pdfplumber.open(target)
        except Exception as e:
            logger.error(f"Error loading PDF: {e}")
            raise PdfProcessingError("Unable to process the PDF file.") from e
        return self._pdf

    def load(self) -> List[PageData]:
        """Load the PDF and extract text runs from all pages."""
        if self._pages:
            return self._pages

        pdf = self.open()
        try:
            logger.info(f"Loaded PDF with {len(pdf.pages)} pages")

            for i, page in enumerate(pdf.pages, 1):
                words_data = page.extract_words(
                    x_tolerance=1,
                    y_tolerance=2,
                    keep_blank_chars=False,
                    use_text_flow=False,
                    return_chars=True
                )

                runs = []
                for word_data in words_data:
                    text = word_data.get('text', '')
                    if not text.strip():
                        continue
                    x0 = float(word_data.get('x0', 0))
                    x1 = float(word_data.get('x1', x0))
                    runs.append(GlyphRun(
                        text=text,
                        x=x0,
                        y=word_baseline(word_data, float(page.height)),
                        width=x1 - x0
                    ))

                self._pages.append(PageData(
                    page_num=i,
                    width=float(page.width),
                    height=float(page.height),
                    runs=runs
                ))
                logger.debug(f"Page {i}: {len(runs)} runs extracted")

            return self._pages

        except Exception as e:
            logger.error(f"Error reading PDF pages: {e}")
            raise PdfProcessingError("Unable to read the PDF content.") from e

    def read_metadata(self, file_size_bytes: int = 0) -> PdfDocumentMetadata:
        """Read document-level metadata from the opened PDF."""
        pdf = self.open()
        data = self.source if isinstance(self.source, bytes) else None
        if data is None and isinstance(self.source, Path) and self.source.exists():
            with open(self.source, 'rb') as f:
                data = f.read(1024)
        return read_document_metadata(pdf, data or b"", file_size_bytes)

    def close(self):
        """Close the PDF file."""
        if self._pdf:
            self._pdf.close()
            self._pdf = None


def read_document_metadata(pdf: Any, header_bytes: bytes, file_size_bytes: int) -> PdfDocumentMetadata:
    """
    Map the pdfplumber document onto PdfDocumentMetadata.

    Args:
        pdf: Opened pdfplumber PDF
        header_bytes: Leading bytes of the file, used for the version marker
        file_size_bytes: Size of the original file

    Returns:
        PdfDocumentMetadata
    """
    info = _extract_info(pdf.metadata or {})
    version_match = PDF_VERSION_PATTERN.search(header_bytes[:1024])
    document = getattr(pdf, 'doc', None)
    encrypted = getattr(document, 'encryption', None) is not None

    return PdfDocumentMetadata(
        info_dictionary=info,
        xmp=parse_xmp(read_xmp_packet(document)),
        page_count=len(pdf.pages),
        pdf_version=version_match.group(1).decode('ascii') if version_match else None,
        encrypted=encrypted,
        file_size_bytes=file_size_bytes
    )


def _extract_info(raw: Dict[str, Any]) -> Optional[PdfInfoDictionary]:
    if not raw:
        return None
    return PdfInfoDictionary(
        title=_as_text(raw.get('Title')),
        author=_as_text(raw.get('Author')),
        subject=_as_text(raw.get('Subject')),
        keywords=_as_text(raw.get('Keywords')),
        creator=_as_text(raw.get('Creator')),
        producer=_as_text(raw.get('Producer')),
        creation_date=format_pdf_date(_as_text(raw.get('CreationDate'))),
        modification_date=format_pdf_date(_as_text(raw.get('ModDate'))),
        trapped=_as_text(raw.get('Trapped'))
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode('utf-8', errors='replace')
    text = str(value).strip()
    # PSLiteral values such as /True render with a leading slash
    if text.startswith('/'):
        text = text[1:]
    return text or None


def format_pdf_date(value: Optional[str]) -> Optional[str]:
    """
    Format a PDF date string (``D:YYYYMMDDHHmmSSOHH'mm'``) as ``YYYY-MM-DD HH:MM:SS``.

    The UTC offset is appended when present. Unparseable values are returned unchanged.
    """
    if not value:
        return None
    match = PDF_DATE_PATTERN.match(value.strip())
    if not match:
        return value

    year, month, day, hour, minute, second, sign, off_h, off_m = match.groups()
    try:
        parsed = datetime(
            int(year), int(month or 1), int(day or 1),
            int(hour or 0), int(minute or 0), int(second or 0)
        )
    except ValueError:
        return value

    formatted = parsed.strftime("%Y-%m-%d %H:%M:%S")
    if sign in ('Z', 'z'):
        return f"{formatted} +00:00"
    if sign in ('+', '-'):
        return f"{formatted} {sign}{off_h or '00'}:{off_m or '00'}"
    return formatted


def read_xmp_packet(document: Any) -> Optional[bytes]:
    """Return the raw XMP stream referenced by the document catalog, if any."""
    catalog = getattr(document, 'catalog', None) or {}
    stream = resolve1(catalog.get('Metadata'))
    if stream is None or not hasattr(stream, 'get_data'):
        return None
    return stream.get_data()


def parse_xmp(packet: Optional[bytes]) -> Optional[PdfXmpMetadata]:
    """
    Pick the Dublin Core and XMP basic properties out of an XMP packet.

    Args:
        packet: Raw XMP bytes

    Returns:
        PdfXmpMetadata, or None when the packet is missing or unreadable
    """
    if not packet or not packet.strip():
        return None
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(packet.strip(), parser=parser)
    except etree.XMLSyntaxError as e:
        logger.warning(f"Failed to parse XMP metadata: {e}")
        return None
    if root is None:
        logger.warning("Failed to parse XMP metadata: empty document")
        return None

    titles = _xmp_values(root, 'dc', 'title')
    return PdfXmpMetadata(
        dublin_core_title=titles[0] if titles else None,
        dublin_core_creators=_join_values(_xmp_values(root, 'dc', 'creator')),
        dublin_core_dates=_join_values(_xmp_values(root, 'dc', 'date')),
        create_date=_first_date(_xmp_values(root, 'xmp', 'CreateDate')),
        creator_tool=_first(_xmp_values(root, 'xmp', 'CreatorTool')),
        metadata_date=_first_date(_xmp_values(root, 'xmp', 'MetadataDate'))
    )


def _xmp_values(root, prefix: str, name: str) -> List[str]:
    # Properties appear either as elements (plain or rdf:Alt/Seq/Bag lists)
    # or as attributes of an rdf:Description
    tag = f"{{{XMP_NAMESPACES[prefix]}}}{name}"
    values = []
    for element in root.iter(tag):
        items = element.findall('.//rdf:li', XMP_NAMESPACES)
        texts = [item.text for item in items] if items else [element.text]
        values.extend(text.strip() for text in texts if text and text.strip())
    for description in root.iter(f"{{{XMP_NAMESPACES['rdf']}}}Description"):
        attribute = description.get(tag)
        if attribute and attribute.strip():
            values.append(attribute.strip())
    return values


def _join_values(values: List[str]) -> Optional[str]:
    return ', '.join(values) if values else None


def _first(values: List[str]) -> Optional[str]:
    return values[0] if values else None


def _first_date(values: List[str]) -> Optional[str]:
    return format_xmp_date(values[0]) if values else None


def format_xmp_date(value: Optional[str]) -> Optional[str]:
    """
    Format an ISO 8601 XMP date the same way as info dictionary dates.

    ``2024-10-31T12:30:00+09:00`` becomes ``2024-10-31 12:30:00 +09:00``.
    Unparseable values are returned unchanged.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return value

    formatted = parsed.strftime("%Y-%m-%d %H:%M:%S")
    offset = parsed.strftime("%z")
    if offset:
        return f"{formatted} {offset[:3]}:{offset[3:5]}"
    return formatted
