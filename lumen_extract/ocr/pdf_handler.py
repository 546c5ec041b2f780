"""PDF to image conversion for multi-page document processing.

Rasterizes PDF pages into :class:`RasterImage` objects, from either file
paths or raw bytes, and maps poppler failures onto document-level errors.
"""

from pathlib import Path

from pdf2image import convert_from_bytes, convert_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from lumen_extract.errors import (
    CorruptDocument,
    DocumentNotFound,
    PasswordProtected,
    RasterizationError,
    UnknownRasterizationError,
)
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)

_PASSWORD_MARKERS = ("password", "encrypted")


def _classify_failure(exc: Exception) -> RasterizationError:
    """Map a pdf2image/poppler exception to a rasterization error."""
    message = str(exc)
    lowered = message.lower()
    if any(marker in lowered for marker in _PASSWORD_MARKERS):
        return PasswordProtected(message)
    if isinstance(exc, (PDFSyntaxError, PDFPageCountError)):
        return CorruptDocument(message)
    if isinstance(exc, PDFInfoNotInstalledError):
        return UnknownRasterizationError(f"poppler is not installed: {message}")
    if isinstance(exc, PDFPopplerTimeoutError):
        return UnknownRasterizationError(f"rendering timed out: {message}")
    return UnknownRasterizationError(message)


class PDFHandler:
    """Handles PDF to image conversion for OCR processing.

    Args:
        dpi: Resolution for PDF rendering. Higher values produce
            better OCR results but use more memory.
    """

    def __init__(self, dpi: int = 144) -> None:
        self.dpi = dpi

    def pdf_to_images(self, pdf_source: Path | bytes) -> list[RasterImage]:
        """Convert a PDF to one image per page, in page order.

        Args:
            pdf_source: Path to a PDF file or raw PDF bytes.

        Returns:
            List of RGBA page images.

        Raises:
            DocumentNotFound: If a path is given and the file does not exist.
            PasswordProtected: If the PDF is encrypted.
            CorruptDocument: If the PDF cannot be parsed.
            UnknownRasterizationError: For any other rendering failure.
        """
        try:
            if isinstance(pdf_source, str | Path):
                path = Path(pdf_source)
                if not path.exists():
                    raise DocumentNotFound(f"PDF file not found: {path}")
                pil_images = convert_from_path(str(path), dpi=self.dpi)
            else:
                pil_images = convert_from_bytes(pdf_source, dpi=self.dpi)
        except RasterizationError:
            raise
        except FileNotFoundError as exc:
            raise DocumentNotFound(str(exc)) from exc
        except Exception as exc:
            error = _classify_failure(exc)
            logger.error("PDF conversion failed: %s", exc)
            raise error from exc

        if not pil_images:
            raise CorruptDocument("PDF contains no pages")

        images = [RasterImage.from_pil(img) for img in pil_images]
        logger.info("Converted PDF to %d images at %d DPI", len(images), self.dpi)
        return images
