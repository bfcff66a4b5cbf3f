"""
Exception hierarchy for statement parsing.
"""
from typing import Optional


class StatementParserError(Exception):
    """Base class for every error raised by the parser."""


class InputError(StatementParserError, ValueError):
    """The caller supplied no readable content."""


class PdfFileRequiredError(InputError):
    def __init__(self):
        super().__init__("Please choose a PDF file to upload.")


class PdfPathRequiredError(InputError):
    def __init__(self):
        super().__init__("PDF path is required.")


class PdfNotFoundError(InputError):
    def __init__(self, path: str):
        super().__init__(f"PDF not found: {path}")
        self.path = path


class UnsupportedPdfFormatError(InputError):
    def __init__(self, file_name: Optional[str] = None):
        suffix = f": {file_name}" if file_name else "."
        super().__init__(f"Only PDF uploads are supported{suffix}")
        self.file_name = file_name


class FormatError(StatementParserError):
    """The document could not be opened or read."""


class PdfProcessingError(FormatError):
    pass


class CsvExportValidationError(StatementParserError, ValueError):
    """Nothing exportable matched the request."""
