"""Recognition with a single low-confidence retry.

The first attempt runs Tesseract with the configured page segmentation
mode. When its confidence falls below the threshold, a second attempt with
the engine's default parameters is made and the better of the two results
is kept. Every attempt acquires its own engine and releases it afterwards.
"""

from collections.abc import Callable

from lumen_extract.errors import RecognitionError
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.utils.config import OCRConfig
from lumen_extract.utils.logger import get_logger

from .tesseract_engine import ProgressCallback, RecognitionResult, TesseractEngine

logger = get_logger(__name__)

EngineFactory = Callable[[int | None], TesseractEngine]


class RecognitionInvoker:
    """Calls the recognition engine and applies the fallback strategy.

    Args:
        config: OCR configuration (language, segmentation modes, threshold).
        engine_factory: Callable building a fresh engine for a given page
            segmentation mode. Defaults to constructing a
            :class:`TesseractEngine` from ``config``.
    """

    def __init__(
        self,
        config: OCRConfig | None = None,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        self.config = config or OCRConfig()
        self._engine_factory = engine_factory or self._default_factory
        self.low_confidence_threshold = self.config.low_confidence_threshold

    def _default_factory(self, psm: int | None) -> TesseractEngine:
        return TesseractEngine(
            tesseract_cmd=self.config.tesseract_cmd,
            default_lang=self.config.default_lang,
            psm=psm,
        )

    def _attempt(
        self,
        image: RasterImage,
        psm: int | None,
        on_progress: ProgressCallback | None,
    ) -> RecognitionResult:
        with self._engine_factory(psm) as engine:
            return engine.recognize(image, on_progress=on_progress)

    def recognize(
        self,
        image: RasterImage,
        on_progress: ProgressCallback | None = None,
    ) -> RecognitionResult:
        """Recognize an enhanced page image.

        Args:
            image: Enhanced page image.
            on_progress: Optional callback receiving progress in [0, 100]
                during the first attempt.

        Returns:
            The first result, or the fallback result when it is more
            confident.

        Raises:
            RecognitionError: If the first attempt fails.
        """
        first = self._attempt(image, self.config.psm, on_progress)
        if first.confidence >= self.low_confidence_threshold:
            return first

        logger.info(
            "Low confidence %.1f < %.1f, attempting fallback recognition",
            first.confidence,
            self.low_confidence_threshold,
        )
        try:
            fallback = self._attempt(image, self.config.fallback_psm, None)
        except RecognitionError as exc:
            logger.warning("Fallback recognition failed: %s", exc)
            return first

        if fallback.confidence > first.confidence:
            logger.info(
                "Using fallback result (confidence %.1f > %.1f)",
                fallback.confidence,
                first.confidence,
            )
            return fallback
        return first
