"""
FastAPI backend service for Suica statement parsing.
"""
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import logging
from typing import List, Optional

from suica_parser.core.errors import (
    CsvExportValidationError,
    FormatError,
    InputError,
    PdfNotFoundError,
)
from suica_parser.core.export import export_selected_rows
from suica_parser.core.runner import StatementParser
from suica_parser.models.schema import PdfFeature

app = FastAPI(title="Suica Statement Parser", version="1.0.0")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def get_parser() -> StatementParser:
    return StatementParser()


def _error_response(status_code: int, code: str, exc: Exception, request: Request) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={
        "success": False,
        "error": code,
        "detail": str(exc),
        "path": request.url.path,
    })


@app.exception_handler(PdfNotFoundError)
async def handle_pdf_not_found(request: Request, exc: PdfNotFoundError):
    return _error_response(404, "PDF_NOT_FOUND", exc, request)


@app.exception_handler(InputError)
async def handle_input_error(request: Request, exc: InputError):
    return _error_response(400, "INPUT_ERROR", exc, request)


@app.exception_handler(CsvExportValidationError)
async def handle_export_validation(request: Request, exc: CsvExportValidationError):
    return _error_response(422, "CSV_EXPORT_VALIDATION_ERROR", exc, request)


@app.exception_handler(FormatError)
async def handle_format_error(request: Request, exc: FormatError):
    logger.error(f"Error reading PDF: {exc}")
    return _error_response(500, "PDF_PROCESSING_ERROR", exc, request)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"message": "Suica Statement Parser API", "status": "healthy"}


@app.get("/features")
def list_features():
    """List the extraction passes a caller can request."""
    return JSONResponse(content={
        "success": True,
        "features": [
            {"id": feature.value, "name": feature.display_name}
            for feature in PdfFeature
        ]
    })


@app.post("/parse")
def parse_pdf(file: UploadFile = File(...), features: Optional[List[str]] = Form(None)):
    """
    Parse an uploaded statement and return structured data.

    Args:
        file: Uploaded PDF file
        features: Passes to run; unknown values are ignored, none means all

    Returns:
        Parsed statement data as JSON
    """
    data = file.file.read()
    logger.info(f"Processing PDF: {file.filename}")

    result = get_parser().parse_upload(
        data, file.filename, file.content_type, PdfFeature.from_strings(features)
    )

    logger.info(f"Successfully parsed PDF: {len(result.rows)} rows found")
    return JSONResponse(content={
        "success": True,
        "data": result.model_dump(mode="json"),
        "summary": {
            "rows_count": len(result.rows),
            "page_count": result.page_count,
            "pdf_type": result.pdf_type.value,
        }
    })


@app.post("/export")
def export_csv(file: UploadFile = File(...), row_ids: Optional[List[int]] = Form(None)):
    """
    Parse an uploaded statement and return the selected rows as CSV.

    Args:
        file: Uploaded PDF file
        row_ids: Row numbers to export

    Returns:
        CSV attachment
    """
    data = file.file.read()
    result = get_parser().parse_upload(
        data, file.filename, file.content_type,
        [PdfFeature.STATEMENT_METADATA, PdfFeature.TABLE_ROWS]
    )
    csv_text = export_selected_rows(result, row_ids)
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="suica-export.csv"'}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
