"""
Shared fixtures for the statement parser tests.
"""
import pytest

from ..core.config import load_layout_config
from ..core.loader import GlyphRun, PageData
from ..core.tables import PositionedToken, TableLine

COLUMN_POSITIONS = [10.0, 40.0, 90.0, 150.0, 210.0, 270.0, 330.0, 400.0]
TOKEN_WIDTH = 15.0
FULL_HEADER = ["月", "日", "種別(入)", "利用駅(入)", "種別(出)", "利用駅(出)", "残高", "入金・利用金額"]


def make_line(y, *values, positions=COLUMN_POSITIONS):
    """Build a TableLine with one token per non-empty value at the column positions."""
    line = TableLine(y)
    for x, value in zip(positions, values):
        if not value:
            continue
        line.add_token(PositionedToken(x, x + TOKEN_WIDTH, value))
    return line.freeze()


def make_runs(y, *values, positions=COLUMN_POSITIONS, width=TOKEN_WIDTH):
    return [GlyphRun(value, x, y, width) for x, value in zip(positions, values) if value]


TO_UNICODE_CMAP = b"""/CIDInit /ProcSet findresource begin
12 dict begin
begincmap
/CMapName /Identity-UCS def
/CMapType 2 def
1 begincodespacerange
<0000> <FFFF>
endcodespacerange
4 beginbfrange
<0020> <007E> <0020>
<00A0> <00FF> <00A0>
<3000> <9FFF> <3000>
<FF00> <FFEF> <FF00>
endbfrange
endcmap
CMapName currentdict /CMap defineresource pop
end
end"""


def _stream(body):
    return b"<< /Length %d >>\nstream\n" % len(body) + body + b"\nendstream"


def build_pdf(text="Hello", title="Sample statement", runs=None, xmp=None):
    """
    Assemble a one-page A4 PDF.

    Without ``runs`` a single Helvetica line is drawn. ``runs`` is a list of
    ``(x, baseline, size, text)`` in PDF user space, drawn with a Type0 font
    whose codes are the UTF-16 code units of the text, so Japanese labels
    extract as written. Every glyph is one em wide. ``xmp`` adds a catalog
    /Metadata stream.
    """
    if runs is None:
        content = b"BT /F1 12 Tf 72 760 Td (" + text.encode("latin-1") + b") Tj ET"
    else:
        content = b"\n".join(
            b"BT /F2 %d Tf %.2f %.2f Td <%s> Tj ET"
            % (size, x, baseline, value.encode("utf-16-be").hex().upper().encode("ascii"))
            for x, baseline, size, value in runs
        )
    catalog = b"<< /Type /Catalog /Pages 2 0 R"
    if xmp is not None:
        catalog += b" /Metadata 9 0 R"
    objects = [
        catalog + b" >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R /F2 7 0 R >> >> >>",
        _stream(content),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Title (" + title.encode("latin-1") + b") /Producer (pytest) "
        b"/CreationDate (D:20241031120000+09'00') >>",
        b"<< /Type /Font /Subtype /Type0 /BaseFont /StatementSans /Encoding /Identity-H "
        b"/DescendantFonts [<< /Type /Font /Subtype /CIDFontType2 /BaseFont /StatementSans "
        b"/CIDSystemInfo << /Registry (Adobe) /Ordering (Identity) /Supplement 0 >> /DW 1000 >>] "
        b"/ToUnicode 8 0 R >>",
        _stream(TO_UNICODE_CMAP),
    ]
    if xmp is not None:
        packet = xmp.encode("utf-8")
        objects.append(
            b"<< /Type /Metadata /Subtype /XML /Length %d >>\nstream\n" % len(packet)
            + packet + b"\nendstream"
        )
    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_position = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    out += b"".join(b"%010d 00000 n \n" % offset for offset in offsets)
    out += b"trailer\n<< /Size %d /Root 1 0 R /Info 6 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_position
    return out


STATEMENT_COLUMNS = [40.0, 70.0, 100.0, 160.0, 230.0, 290.0, 360.0, 450.0]


def statement_runs(*rows):
    """Runs for a statement page; each row is ``(baseline, size, values)``, sizes may be per value."""
    runs = [
        (40.0, 790.0, 12, "モバイルSuica 残高ご利用明細"),
        (40.0, 770.0, 10, "JE** **** **** 1234"),
        (40.0, 120.0, 9, "2024/10/31"),
        (140.0, 120.0, 9, "ご利用ありがとうございます"),
    ]
    for baseline, size, values in rows:
        sizes = size if isinstance(size, (list, tuple)) else [size] * len(values)
        for x, value_size, value in zip(STATEMENT_COLUMNS, sizes, values):
            if value:
                runs.append((x, baseline, value_size, value))
    return runs


@pytest.fixture
def layout_config():
    return load_layout_config()


@pytest.fixture
def header_line():
    return make_line(0.0, *FULL_HEADER)


@pytest.fixture
def sample_pdf_bytes():
    return build_pdf()


@pytest.fixture
def sample_pdf_path(tmp_path, sample_pdf_bytes):
    path = tmp_path / "statement.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture
def statement_pages():
    """Two pages: a full-history table with header on page one, continuation rows on page two."""
    positions = [40.0, 70.0, 120.0, 180.0, 240.0, 300.0, 360.0, 430.0]
    first = []
    first.append(GlyphRun("モバイルSuica 残高ご利用明細", 40.0, 50.0, 200.0))
    first.append(GlyphRun("JE** **** **** 1234", 40.0, 70.0, 120.0))
    first.append(GlyphRun("残高履歴", 40.0, 90.0, 60.0))
    first += make_runs(200.0, *FULL_HEADER, positions=positions)
    first += make_runs(220.0, "10", "", "", "", "", "", "\\21", "\\1,359", positions=positions)
    first += make_runs(240.0, "10", "21", "入", "小", "出", "登戸", "\\1,098", "-261", positions=positions)
    first.append(GlyphRun("2024/10/31", 40.0, 700.0, 60.0))
    first.append(GlyphRun("ご利用ありがとうございます", 110.0, 700.0, 150.0))

    second = []
    second += make_runs(150.0, "10", "22", "物販", "", "出", "渋谷", "\\568", "-530", positions=positions)
    second += make_runs(170.0, "10", "23", "ｶｰﾄﾞ", "モバイル", "", "", "\\3,098", "+2,530", positions=positions)
    second.append(GlyphRun("(2/2)", 280.0, 780.0, 20.0))

    return [
        PageData(page_num=1, width=595.0, height=842.0, runs=first),
        PageData(page_num=2, width=595.0, height=842.0, runs=second),
    ]


@pytest.fixture
def statement_pdf_bytes():
    """A full-history statement; the first row mixes 8, 10 and 12 point text on one baseline."""
    return build_pdf(runs=statement_runs(
        (650.0, 9, FULL_HEADER),
        (630.0, [8, 8, 10, 10, 10, 10, 12, 10], ["10", "21", "入", "小", "出", "登戸", "\\1,098", "-261"]),
        (610.0, 10, ["10", "22", "物販", "", "出", "渋谷", "\\568", "-530"]),
        (590.0, 10, ["10", "23", "ｶｰﾄﾞ", "モバイル", "", "", "\\3,098", "+2,530"]),
    ))


@pytest.fixture
def statement_pdf_path(tmp_path, statement_pdf_bytes):
    path = tmp_path / "suica.pdf"
    path.write_bytes(statement_pdf_bytes)
    return path
