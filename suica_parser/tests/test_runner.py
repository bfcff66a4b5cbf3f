"""
End-to-end tests for the statement parser.
"""
from datetime import date
from pathlib import Path

import pytest

from ..core.errors import (
    InputError,
    PdfFileRequiredError,
    PdfNotFoundError,
    PdfPathRequiredError,
    PdfProcessingError,
    UnsupportedPdfFormatError,
)
from ..core.anchors import TableRegion, locate_header_y
from ..core.loader import PDFLoader
from ..core.runner import StatementParser, looks_like_pdf, normalize_features, parse_statement
from ..core.tables import assemble_lines
from ..models.schema import PdfFeature, StatementType
from .conftest import build_pdf


@pytest.fixture
def parser(layout_config):
    return StatementParser(config=layout_config)


class TestParsePages:
    """Passes over pre-loaded pages."""

    def test_rows_span_pages(self, parser, statement_pages):
        result = parser.parse_pages(statement_pages, file_name="statement.pdf")

        assert result.file_name == "statement.pdf"
        assert result.page_count == 2
        assert result.pdf_type == StatementType.FULL_HISTORY
        assert [row.row_number for row in result.rows] == [1, 2, 3, 4]
        assert [row.balance for row in result.rows] == ["¥21", "¥1,098", "¥568", "¥3,098"]
        assert all(row.year_month == "2024-10" for row in result.rows)

    def test_row_corrections(self, parser, statement_pages):
        rows = parser.parse_pages(statement_pages).rows

        ride = rows[1]
        assert (ride.type_in, ride.station_in, ride.type_out, ride.station_out) == ("入", "小", "出", "登戸")
        assert ride.amount == "-261"

        retail = rows[2]
        assert retail.type_in == "物販"
        assert (retail.type_out, retail.station_out) == ("", "")

        charge = rows[3]
        assert charge.station_in == "モバイル"
        assert charge.amount == "+2,530"

    def test_statement_metadata(self, parser, statement_pages):
        metadata = parser.parse_pages(statement_pages).metadata

        assert metadata.heading == "モバイルSuica 残高ご利用明細"
        assert metadata.card_number_line == "JE** **** **** 1234"
        assert metadata.history_summary == "残高履歴"
        assert metadata.created_date == date(2024, 10, 31)

    def test_raw_text_only(self, parser, statement_pages):
        result = parser.parse_pages(statement_pages, [PdfFeature.RAW_TEXT])

        assert result.rows == []
        assert result.metadata is None
        assert result.extracted_text.startswith("モバイルSuica 残高ご利用明細\nJE** **** **** 1234")
        assert "(2/2)" in result.extracted_text

    def test_rows_without_metadata_omit_the_year(self, parser, statement_pages):
        result = parser.parse_pages(statement_pages, ["TABLE_ROWS"])

        assert result.metadata is None
        assert result.extracted_text is None
        assert result.rows[0].year_month == "10"

    def test_table_lines_exclude_page_headings(self, parser, statement_pages):
        texts = [line.text for line in parser.extract_table_lines(statement_pages)]

        assert "JE** **** **** 1234" not in texts
        assert texts[-1] == "(2/2)"


class TestInputs:

    def test_missing_path(self, parser):
        with pytest.raises(PdfPathRequiredError):
            parser.parse(None)

    def test_unknown_path(self, parser, tmp_path):
        with pytest.raises(PdfNotFoundError) as exc_info:
            parser.parse(tmp_path / "missing.pdf")

        assert "missing.pdf" in str(exc_info.value)

    def test_empty_upload(self, parser):
        with pytest.raises(PdfFileRequiredError):
            parser.parse_upload(b"", "statement.pdf")

    def test_non_pdf_upload(self, parser):
        with pytest.raises(UnsupportedPdfFormatError) as exc_info:
            parser.parse_upload(b"data", "statement.txt", "text/plain")

        assert isinstance(exc_info.value, InputError)
        assert "statement.txt" in str(exc_info.value)

    def test_garbage_bytes(self, parser):
        with pytest.raises(PdfProcessingError):
            parser.parse_bytes(b"not a pdf at all", "broken.pdf")

    def test_looks_like_pdf(self):
        assert looks_like_pdf("a.PDF", None)
        assert looks_like_pdf(None, "application/pdf")
        assert not looks_like_pdf("a.png", "image/png")
        assert not looks_like_pdf(None, None)

    def test_normalize_features(self):
        assert normalize_features(None) == PdfFeature.all_features()
        assert normalize_features(["RAW_TEXT"]) == {PdfFeature.RAW_TEXT}
        with pytest.raises(ValueError):
            normalize_features(["NOPE"])

    def test_feature_strings_are_lenient(self):
        assert PdfFeature.from_strings([" raw_text ", "NOPE"]) == {PdfFeature.RAW_TEXT}
        assert PdfFeature.from_strings(["NOPE"]) == PdfFeature.all_features()


class TestRealPdf:
    """Parsing a small generated PDF through pdfplumber."""

    def test_parse_file(self, sample_pdf_path):
        result = parse_statement(sample_pdf_path)

        assert result.file_name == "statement.pdf"
        assert result.page_count == 1
        assert result.rows == []
        assert result.pdf_type == StatementType.FULL_HISTORY
        assert "Hello" in result.extracted_text

    def test_document_metadata(self, parser, sample_pdf_bytes):
        result = parser.parse_upload(sample_pdf_bytes, "upload.pdf", "application/pdf",
                                     [PdfFeature.DOCUMENT_METADATA])

        document = result.document_metadata
        assert document.page_count == 1
        assert document.pdf_version == "1.4"
        assert document.encrypted is False
        assert document.file_size_bytes == len(sample_pdf_bytes)
        assert document.info_dictionary.title == "Sample statement"
        assert document.info_dictionary.producer == "pytest"
        assert document.info_dictionary.creation_date == "2024-10-31 12:00:00 +09:00"

    def test_document_metadata_only_when_requested(self, parser, sample_pdf_path):
        result = parser.parse(Path(sample_pdf_path), [PdfFeature.RAW_TEXT])

        assert result.document_metadata is None

    def test_no_xmp_packet(self, parser, sample_pdf_bytes):
        result = parser.parse_bytes(sample_pdf_bytes, "upload.pdf", [PdfFeature.DOCUMENT_METADATA])

        assert result.document_metadata.xmp is None

    def test_xmp_packet(self, parser):
        data = build_pdf(xmp=XMP_PACKET)

        result = parser.parse_bytes(data, "upload.pdf", [PdfFeature.DOCUMENT_METADATA])

        xmp = result.document_metadata.xmp
        assert xmp.dublin_core_title == "モバイルSuica 残高ご利用明細"
        assert xmp.dublin_core_creators == "JR East, Mobile Suica"
        assert xmp.dublin_core_dates is None
        assert xmp.create_date == "2024-10-31 12:00:00 +09:00"
        assert xmp.creator_tool == "Statement Export 2.1"
        assert xmp.metadata_date == "2024-10-31 03:00:00 +00:00"


XMP_PACKET = """<?xpacket begin="\ufeff" id="W5M0MpCehiHzreSzNTczkc9d"?>
<x:xmpmeta xmlns:x="adobe:ns:meta/">
 <rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
  <rdf:Description rdf:about="" xmlns:dc="http://purl.org/dc/elements/1.1/"
      xmlns:xmp="http://ns.adobe.com/xap/1.0/" xmp:CreatorTool="Statement Export 2.1">
   <dc:title><rdf:Alt><rdf:li xml:lang="x-default">モバイルSuica 残高ご利用明細</rdf:li></rdf:Alt></dc:title>
   <dc:creator><rdf:Seq><rdf:li>JR East</rdf:li><rdf:li>Mobile Suica</rdf:li></rdf:Seq></dc:creator>
   <xmp:CreateDate>2024-10-31T12:00:00+09:00</xmp:CreateDate>
   <xmp:MetadataDate>2024-10-31T03:00:00Z</xmp:MetadataDate>
  </rdf:Description>
 </rdf:RDF>
</x:xmpmeta>
<?xpacket end="w"?>"""


class TestStatementPdf:
    """A generated statement driven through pdfplumber, the region resolver and the row parser."""

    def test_words_on_one_baseline_share_a_line(self):
        data = build_pdf(runs=[(100.0, 600.0, 8, "10"), (300.0, 600.0, 12, "1,098")])

        with PDFLoader(data) as loader:
            page = loader.load()[0]

        assert [run.y for run in page.runs] == pytest.approx([242.0, 242.0])
        lines = assemble_lines(page, TableRegion(32.0, 32.0, 531.0, 770.0))
        assert len(lines) == 1
        assert lines[0].text == "10 1,098"

    def test_header_located_on_its_baseline(self, statement_pdf_bytes):
        with PDFLoader(statement_pdf_bytes) as loader:
            page = loader.load()[0]

        assert locate_header_y(page) == pytest.approx(192.0)

    def test_rows(self, parser, statement_pdf_path):
        result = parser.parse(statement_pdf_path)

        assert result.pdf_type == StatementType.FULL_HISTORY
        assert result.metadata.created_date == date(2024, 10, 31)
        assert result.metadata.card_number_line == "JE** **** **** 1234"
        assert [row.row_number for row in result.rows] == [1, 2, 3]

        ride, retail, charge = result.rows
        assert ride.year_month == "2024-10"
        assert (ride.month, ride.day) == ("10", "21")
        assert (ride.type_in, ride.station_in, ride.type_out, ride.station_out) == ("入", "小", "出", "登戸")
        assert (ride.balance, ride.amount) == ("¥1,098", "-261")

        assert (retail.type_in, retail.type_out, retail.station_out) == ("物販", "", "")
        assert (retail.balance, retail.amount) == ("¥568", "-530")

        assert (charge.type_in, charge.station_in) == ("ｶｰﾄﾞ", "モバイル")
        assert (charge.balance, charge.amount) == ("¥3,098", "+2,530")

    def test_footer_is_not_a_row(self, parser, statement_pdf_bytes):
        result = parser.parse_bytes(statement_pdf_bytes, "suica.pdf", [PdfFeature.TABLE_ROWS])

        assert all(row.month == "10" for row in result.rows)
        assert len(result.rows) == 3
