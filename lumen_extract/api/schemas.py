"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel

from lumen_extract.storage.history import DocumentRecord


class ExtractedFieldResponse(BaseModel):
    """Response schema for a single extracted field."""

    label: str
    value: str
    confidence: float


class PageResponse(BaseModel):
    """Response schema for one processed page."""

    page_number: int
    confidence: float
    field_count: int
    error: str | None = None


class ExtractionResponse(BaseModel):
    """Response schema for a document extraction request."""

    success: bool
    document_id: str
    filename: str
    fields: list[ExtractedFieldResponse]
    raw_text: str
    overall_confidence: float
    processing_time_ms: float
    page_count: int = 1
    pages: list[PageResponse] = []
    page_errors: dict[int, str] = {}


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch extraction."""

    filename: str
    result: ExtractionResponse | None = None
    error: str | None = None


class BatchExtractionResponse(BaseModel):
    """Response schema for batch extraction of multiple documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class HistoryResponse(BaseModel):
    """Response schema listing stored documents, newest first."""

    documents: list[DocumentRecord]
    total: int


class DeleteResponse(BaseModel):
    """Response schema for history deletions."""

    deleted: int


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    poppler_available: bool
