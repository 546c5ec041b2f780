"""Image enhancement pipeline for document recognition.

Runs upscaling, grayscale conversion, adaptive thresholding, morphological
opening, and sharpening in a fixed order, with quality metrics tracking.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from lumen_extract.errors import SurfaceError
from lumen_extract.utils.config import EnhancementConfig
from lumen_extract.utils.logger import get_logger

from .raster import (
    RasterImage,
    adaptive_threshold,
    morphological_open,
    sharpen,
    to_grayscale,
    upscale_nearest,
)

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Before/after image quality measurements."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


def _luma(image: RasterImage) -> np.ndarray:
    return cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2GRAY)


def calculate_sharpness(image: RasterImage) -> float:
    """Calculate image sharpness using Laplacian variance.

    Args:
        image: Input RGBA image.

    Returns:
        Sharpness score (higher means sharper).
    """
    return float(cv2.Laplacian(_luma(image), cv2.CV_64F).var())


def calculate_contrast(image: RasterImage) -> float:
    """Calculate image contrast as the standard deviation of luma values.

    Args:
        image: Input RGBA image.

    Returns:
        Contrast score (higher means more contrast).
    """
    return float(_luma(image).std())


def _measure(image: RasterImage) -> tuple[float, float]:
    """Sharpness and contrast of an image, for quality tracking."""
    try:
        return calculate_sharpness(image), calculate_contrast(image)
    except (MemoryError, cv2.error) as exc:
        raise SurfaceError(
            f"Cannot measure a {image.width}x{image.height} image: {exc!r}"
        ) from exc


class ImageEnhancer:
    """Deterministic enhancement pipeline for scanned document images.

    The output is ``scale_factor`` times larger than the input, binarized
    and sharpened. Identical input pixels always produce identical output
    pixels.

    Args:
        config: Enhancement configuration. Defaults are used when omitted.
    """

    def __init__(self, config: EnhancementConfig | None = None) -> None:
        self.config = config or EnhancementConfig()

    def enhance(self, image: RasterImage) -> RasterImage:
        """Run the enhancement steps and return the enhanced image.

        Raises:
            SurfaceError: If a pixel surface cannot be allocated at any step.
        """
        cfg = self.config
        try:
            pixels = upscale_nearest(image.pixels, cfg.scale_factor)
            pixels = to_grayscale(pixels)
            pixels = adaptive_threshold(pixels, cfg.window_size, cfg.threshold_bias)
            if cfg.morphology_enabled:
                pixels = morphological_open(pixels)
            if cfg.sharpen_enabled:
                pixels = sharpen(pixels)
            return RasterImage(pixels)
        except (MemoryError, cv2.error) as exc:
            raise SurfaceError(
                f"Cannot allocate an enhancement surface for a "
                f"{image.width}x{image.height} image: {exc!r}"
            ) from exc
        except ValueError as exc:
            raise SurfaceError(str(exc)) from exc

    def process(self, image: RasterImage) -> tuple[RasterImage, QualityMetrics]:
        """Enhance an image and measure quality before and after.

        Args:
            image: Source page image.

        Returns:
            Tuple of (enhanced_image, quality_metrics).
        """
        sharpness_before, contrast_before = _measure(image)
        result = self.enhance(image)
        sharpness_after, contrast_after = _measure(result)
        metrics = QualityMetrics(
            sharpness_before=sharpness_before,
            sharpness_after=sharpness_after,
            contrast_before=contrast_before,
            contrast_after=contrast_after,
        )

        logger.info(
            "Enhanced %dx%d -> %dx%d: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            image.width,
            image.height,
            result.width,
            result.height,
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return result, metrics
