"""Unified document processing pipeline.

Combines PDF rasterization, image enhancement, recognition, and field
extraction into a single processing interface for images and PDFs. Pages
are processed in order; a failing page becomes a placeholder entry and
never aborts the rest of the document.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from lumen_extract.errors import ImageDecodeError, RecognitionError, SurfaceError
from lumen_extract.extraction.engine import FieldExtractionEngine
from lumen_extract.extraction.rule_extractor import ExtractedField
from lumen_extract.preprocessing.pipeline import ImageEnhancer, QualityMetrics
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.utils.config import AppConfig
from lumen_extract.utils.logger import get_logger
from lumen_extract.validation.field_validator import deduplicate

from .pdf_handler import PDFHandler
from .recognizer import RecognitionInvoker
from .tesseract_engine import ProgressCallback

logger = get_logger(__name__)

PAGE_FAILURES = (ImageDecodeError, SurfaceError, RecognitionError)
PDF_MAGIC = b"%PDF"

PageLoader = Callable[[], RasterImage]


@dataclass
class PageResult:
    """Recognition and extraction results for a single page."""

    page_number: int
    text: str = ""
    confidence: float = 0.0
    fields: list[ExtractedField] = field(default_factory=list)
    quality_metrics: QualityMetrics | None = None
    error: str | None = None
    image: RasterImage | None = field(default=None, repr=False)
    enhanced_image: RasterImage | None = field(default=None, repr=False)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class DocumentResult:
    """Aggregated processing results for a document."""

    source_file: str
    is_pdf: bool
    pages: list[PageResult]
    combined_text: str
    confidence: float
    fields: list[ExtractedField]
    preview_image: RasterImage | None = field(default=None, repr=False)
    enhanced_preview: RasterImage | None = field(default=None, repr=False)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def page_errors(self) -> dict[int, str]:
        return {p.page_number: p.error for p in self.pages if p.error is not None}


def format_page_text(page: PageResult, is_pdf: bool) -> str:
    """Text entry contributed by one page to the combined document text."""
    if page.failed:
        return f"\n=== Page {page.page_number} - Processing Error ===\n"
    if is_pdf:
        return f"=== Page {page.page_number} ===\n{page.text}\n"
    return page.text


def aggregate_pages(
    pages: list[PageResult], filename: str, is_pdf: bool
) -> DocumentResult:
    """Reduce page results, in page order, into a document result.

    Failed pages contribute a placeholder entry and a confidence of 0.
    Fields are concatenated in page order and de-duplicated by
    (label, value). The first page that produced images supplies the
    document previews.
    """
    combined_text = "\n\n".join(format_page_text(p, is_pdf) for p in pages)
    confidence = sum(p.confidence for p in pages) / len(pages) if pages else 0.0
    fields = deduplicate([f for p in pages for f in p.fields])
    preview = next((p for p in pages if p.image is not None), None)
    return DocumentResult(
        source_file=filename,
        is_pdf=is_pdf,
        pages=pages,
        combined_text=combined_text,
        confidence=confidence,
        fields=fields,
        preview_image=preview.image if preview else None,
        enhanced_preview=preview.enhanced_image if preview else None,
    )


def is_pdf_source(source: Path | bytes) -> bool:
    if isinstance(source, bytes):
        return source[:4] == PDF_MAGIC
    return Path(source).suffix.lower() == ".pdf"


class DocumentProcessor:
    """End-to-end document processing pipeline.

    Handles loading documents (images or PDFs), enhancement, recognition,
    and field extraction. Collaborators default to instances built from
    ``config`` and may be replaced.

    Args:
        config: Application configuration object.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        enhancer: ImageEnhancer | None = None,
        recognizer: RecognitionInvoker | None = None,
        pdf_handler: PDFHandler | None = None,
        engine: FieldExtractionEngine | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.enhancer = enhancer or ImageEnhancer(self.config.enhancement)
        self.recognizer = recognizer or RecognitionInvoker(self.config.ocr)
        self.pdf_handler = pdf_handler or PDFHandler(dpi=self.config.ocr.pdf_dpi)
        self.engine = engine or FieldExtractionEngine.from_config(
            self.config.extraction
        )

    def process(
        self,
        source: Path | bytes,
        filename: str = "document",
        on_progress: ProgressCallback | None = None,
    ) -> DocumentResult:
        """Process a document from file path or bytes.

        Args:
            source: Path to a document file, or raw file bytes.
            filename: Display name for the source document.
            on_progress: Optional callback receiving overall progress in
                [0, 100].

        Returns:
            Aggregated document processing results.

        Raises:
            RasterizationError: If a PDF cannot be split into pages.
        """
        logger.info("Processing document: %s", filename)
        is_pdf = is_pdf_source(source)
        loaders = self._page_loaders(source, is_pdf)
        total = len(loaders)
        pages: list[PageResult] = []

        for index, load in enumerate(loaders):
            page_progress = self._scaled_progress(on_progress, index, total)
            pages.append(self.process_page(index + 1, load, page_progress))

        if on_progress is not None:
            on_progress(100.0)

        result = aggregate_pages(pages, filename, is_pdf)
        logger.info(
            "Processed %d pages from %s (%d failed, confidence %.1f, %d fields)",
            result.page_count,
            filename,
            len(result.page_errors),
            result.confidence,
            len(result.fields),
        )
        return result

    def process_page(
        self,
        page_number: int,
        load: PageLoader,
        on_progress: ProgressCallback | None = None,
    ) -> PageResult:
        """Enhance, recognize, and extract one page.

        Page-level failures are logged and returned as a placeholder
        result instead of being raised.
        """
        try:
            image = load()
            enhanced, metrics = self.enhancer.process(image)
            recognition = self.recognizer.recognize(enhanced, on_progress=on_progress)
        except PAGE_FAILURES as exc:
            logger.warning("Page %d failed: %s", page_number, exc)
            return PageResult(page_number=page_number, error=str(exc))

        fields = self.engine.extract(recognition.text)
        return PageResult(
            page_number=page_number,
            text=recognition.text,
            confidence=recognition.confidence,
            fields=fields,
            quality_metrics=metrics,
            image=image,
            enhanced_image=enhanced,
        )

    def _page_loaders(self, source: Path | bytes, is_pdf: bool) -> list[PageLoader]:
        """Build one deferred loader per page.

        PDFs are rasterized up front, since a rasterization failure aborts
        the whole document. Image decoding is deferred so a bad image is a
        page failure.
        """
        if is_pdf:
            images = self.pdf_handler.pdf_to_images(source)
            return [lambda image=image: image for image in images]
        if isinstance(source, bytes):
            return [lambda: RasterImage.from_bytes(source)]
        return [lambda: self._read_image(Path(source))]

    @staticmethod
    def _read_image(path: Path) -> RasterImage:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ImageDecodeError(f"Cannot read image {path}: {exc}") from exc
        return RasterImage.from_bytes(data)

    @staticmethod
    def _scaled_progress(
        on_progress: ProgressCallback | None, index: int, total: int
    ) -> ProgressCallback | None:
        if on_progress is None:
            return None
        base = index / total * 100

        def report(pct: float) -> None:
            on_progress(base + pct / total)

        return report
