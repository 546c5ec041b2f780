"""FastAPI application for the Lumen Extract API.

Provides REST endpoints for document extraction, batch processing,
processed-document history, and health checks.
"""

import shutil
import time
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from lumen_extract.errors import RasterizationError
from lumen_extract.ocr.document_processor import DocumentProcessor, DocumentResult
from lumen_extract.storage.history import DocumentRecord, HistoryStore
from lumen_extract.utils.config import load_config
from lumen_extract.utils.logger import get_logger

from .schemas import (
    BatchExtractionResponse,
    BatchItemResponse,
    DeleteResponse,
    ExtractedFieldResponse,
    ExtractionResponse,
    HealthResponse,
    HistoryResponse,
    PageResponse,
)

logger = get_logger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="Lumen Extract API",
    description="Extract structured fields from licences, invoices, passports, and forms",
    version=API_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_components() -> tuple[DocumentProcessor, HistoryStore]:
    """Initialize and return shared processing components.

    Returns:
        Tuple of (document_processor, history_store).
    """
    config = load_config()
    return DocumentProcessor(config), HistoryStore.from_config(config.storage)


def _get_history_store() -> HistoryStore:
    return HistoryStore.from_config(load_config().storage)


_ALLOWED_CONTENT_TYPES = {
    "image/png",
    "image/jpeg",
    "image/tiff",
    "image/bmp",
    "image/webp",
    "application/pdf",
    "application/octet-stream",
}


def _build_response(
    result: DocumentResult, document_id: str, processing_time_ms: float
) -> ExtractionResponse:
    return ExtractionResponse(
        success=True,
        document_id=document_id,
        filename=result.source_file,
        fields=[
            ExtractedFieldResponse(label=f.label, value=f.value, confidence=f.confidence)
            for f in result.fields
        ],
        raw_text=result.combined_text,
        overall_confidence=result.confidence,
        processing_time_ms=processing_time_ms,
        page_count=result.page_count,
        pages=[
            PageResponse(
                page_number=p.page_number,
                confidence=p.confidence,
                field_count=len(p.fields),
                error=p.error,
            )
            for p in result.pages
        ],
        page_errors=result.page_errors,
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
        poppler_available=shutil.which("pdftoppm") is not None,
    )


@app.post("/extract", response_model=ExtractionResponse)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
) -> ExtractionResponse:
    """Extract structured fields from an uploaded document.

    The processed document is saved to the history store.

    Args:
        file: Uploaded document file (image or PDF).

    Returns:
        Extraction results with fields, text, confidence, and page errors.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    filename = file.filename or "document"
    try:
        doc_processor, history_store = _get_components()
        content = await file.read()
        doc_result = doc_processor.process(content, filename)
        record = history_store.save(
            DocumentRecord.from_result(
                doc_result,
                file.content_type or "application/octet-stream",
                include_images=history_store.keep_image_data,
            )
        )
    except RasterizationError as exc:
        logger.warning("Cannot rasterize %s: %s", filename, exc.detail)
        raise HTTPException(status_code=422, detail=exc.user_message) from exc
    except Exception as exc:
        logger.error("Extraction failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    processing_time = (time.time() - start_time) * 1000
    return _build_response(doc_result, record.id, processing_time)


@app.post("/extract/batch", response_model=BatchExtractionResponse)
async def extract_batch(
    files: Annotated[list[UploadFile], File(...)],
) -> BatchExtractionResponse:
    """Extract structured fields from multiple uploaded documents.

    Args:
        files: List of uploaded document files.

    Returns:
        Batch extraction results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        try:
            result = await extract_document(file)
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", result=result)
            )
            successful += 1
        except HTTPException as exc:
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", error=exc.detail)
            )

    return BatchExtractionResponse(
        success=successful > 0,
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )


@app.get("/history", response_model=HistoryResponse)
async def list_history(q: str | None = None) -> HistoryResponse:
    """List processed documents, newest first.

    Args:
        q: Optional case-insensitive search over file names and text.
    """
    store = _get_history_store()
    documents = store.search(q) if q else store.list()
    return HistoryResponse(documents=documents, total=len(documents))


@app.delete("/history/{document_id}", response_model=DeleteResponse)
async def delete_history_entry(document_id: str) -> DeleteResponse:
    """Remove one document from the history."""
    if not _get_history_store().delete(document_id):
        raise HTTPException(status_code=404, detail=f"Document not found: {document_id}")
    return DeleteResponse(deleted=1)


@app.delete("/history", response_model=DeleteResponse)
async def clear_history() -> DeleteResponse:
    """Remove every document from the history."""
    store = _get_history_store()
    count = len(store.list())
    store.clear()
    return DeleteResponse(deleted=count)
