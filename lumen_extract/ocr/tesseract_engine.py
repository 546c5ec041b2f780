"""Tesseract OCR engine wrapper.

Each :class:`TesseractEngine` is a short-lived session: it is acquired for
one recognition attempt and released afterwards, usually through a ``with``
block.
"""

from collections.abc import Callable
from dataclasses import dataclass

import pytesseract

from lumen_extract.errors import RecognitionError
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class RecognitionResult:
    """Recognized text of one page with a 0-100 confidence score."""

    text: str
    confidence: float


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class TesseractEngine:
    """Wrapper around Tesseract OCR for page text recognition.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: OCR language code.
        psm: Page segmentation mode used when none is passed to
            :meth:`recognize`. ``None`` leaves Tesseract's own default.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int | None = None,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm
        self._closed = False
        logger.debug("Acquired Tesseract engine (lang=%s, psm=%s)", default_lang, psm)

    def __enter__(self) -> "TesseractEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the engine. Further recognition calls fail."""
        if not self._closed:
            self._closed = True
            logger.debug("Released Tesseract engine")

    def recognize(
        self,
        image: RasterImage,
        on_progress: ProgressCallback | None = None,
    ) -> RecognitionResult:
        """Recognize the text of an image.

        Args:
            image: Page image to read.
            on_progress: Optional callback receiving progress in [0, 100].

        Returns:
            Recognized text and the mean word confidence.

        Raises:
            RecognitionError: If the engine is released or Tesseract fails.
        """
        if self._closed:
            raise RecognitionError("Tesseract engine has already been released")

        config = f"--psm {self.psm}" if self.psm is not None else ""
        pil_image = image.to_pil().convert("RGB")

        if on_progress:
            on_progress(0.0)
        try:
            text = pytesseract.image_to_string(
                pil_image, lang=self.default_lang, config=config
            )
            if on_progress:
                on_progress(50.0)
            data = pytesseract.image_to_data(
                pil_image,
                lang=self.default_lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as exc:
            raise RecognitionError(f"Tesseract recognition failed: {exc}") from exc
        if on_progress:
            on_progress(100.0)

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) >= 0 and str(word).strip()
        ]
        confidence = sum(confidences) / len(confidences) if confidences else 0.0

        logger.info(
            "OCR recognized %d words with average confidence %.1f",
            len(confidences),
            confidence,
        )
        return RecognitionResult(text=text, confidence=_clamp_confidence(confidence))
