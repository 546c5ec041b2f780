"""RGBA raster images and the pixel-level operations used to enhance them.

Every operation takes an RGBA ``uint8`` array of shape ``(height, width, 4)``
and returns a new array; inputs are never modified in place. Border
handling follows the enhancement contract: neighbourhood operations only
write interior pixels and copy border pixels through unchanged.
"""

import io
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from lumen_extract.errors import ImageDecodeError, SurfaceError
from lumen_extract.utils.logger import get_logger

logger = get_logger(__name__)

SHARPEN_KERNEL = np.array(
    [
        [-1, -1, -1],
        [-1, 9, -1],
        [-1, -1, -1],
    ],
    dtype=np.float64,
)

_MORPH_KERNEL = np.ones((3, 3), dtype=np.uint8)


@dataclass(frozen=True)
class RasterImage:
    """An RGBA image backed by a ``(height, width, 4)`` uint8 array."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(
                f"Expected an RGBA array of shape (h, w, 4), got {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def buffer(self) -> bytes:
        """Interleaved RGBA bytes, ``width * height * 4`` long."""
        return self.pixels.tobytes()

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Build an image from a grayscale, RGB, or RGBA array.

        Args:
            array: Image array of shape ``(h, w)``, ``(h, w, 3)`` or ``(h, w, 4)``.

        Returns:
            A new RGBA image; the source array is copied.
        """
        arr = np.asarray(array)
        if arr.dtype != np.uint8:
            arr = np.clip(arr, 0, 255).astype(np.uint8)
        if arr.ndim == 2:
            arr = cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        elif arr.ndim == 3 and arr.shape[2] == 3:
            arr = cv2.cvtColor(arr, cv2.COLOR_RGB2RGBA)
        elif arr.ndim == 3 and arr.shape[2] == 4:
            arr = arr.copy()
        else:
            raise ValueError(f"Unsupported image array shape: {arr.shape}")
        return cls(np.ascontiguousarray(arr))

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        """Convert a Pillow image of any mode to RGBA."""
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterImage":
        """Decode an encoded image (PNG, JPEG, TIFF, ...).

        Raises:
            ImageDecodeError: If the bytes are not a decodable image.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                return cls.from_pil(img)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise ImageDecodeError(f"Failed to load image: {exc}") from exc

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def to_png_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.to_pil().save(buf, format="PNG")
        return buf.getvalue()


def _interior(height: int, width: int, margin: int) -> tuple[slice, slice] | None:
    """Return row/column slices for pixels at least ``margin`` from every edge."""
    if height <= 2 * margin or width <= 2 * margin:
        return None
    return slice(margin, height - margin), slice(margin, width - margin)


def upscale_nearest(pixels: np.ndarray, factor: int = 2) -> np.ndarray:
    """Upscale by an integer factor with nearest-neighbour sampling.

    Raises:
        SurfaceError: If the image is empty or the enlarged buffer cannot
            be allocated.
    """
    if factor < 1:
        raise ValueError(f"Scale factor must be >= 1, got {factor}")
    height, width = pixels.shape[:2]
    if height == 0 or width == 0:
        raise SurfaceError(f"Cannot allocate a surface for a {width}x{height} image")
    try:
        result = np.repeat(np.repeat(pixels, factor, axis=0), factor, axis=1)
    except MemoryError as exc:
        raise SurfaceError(
            f"Cannot allocate a {width * factor}x{height * factor} surface"
        ) from exc
    logger.debug("Upscaled %dx%d by %d", width, height, factor)
    return result


def to_grayscale(pixels: np.ndarray) -> np.ndarray:
    """Write rounded Rec. 601 luma into R, G, and B; alpha is preserved."""
    rgb = pixels[..., :3].astype(np.float64)
    luma = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    gray = np.clip(np.floor(luma + 0.5), 0, 255).astype(np.uint8)
    result = pixels.copy()
    result[..., 0] = gray
    result[..., 1] = gray
    result[..., 2] = gray
    return result


def adaptive_threshold(
    pixels: np.ndarray, window_size: int = 15, bias: int = 10
) -> np.ndarray:
    """Binarize against the mean of a square window around each pixel.

    A pixel becomes 255 when its value exceeds ``local_mean - bias`` and 0
    otherwise. Pixels closer than ``window_size // 2`` to a border keep
    their grayscale value.

    Args:
        pixels: Grayscale RGBA array (R == G == B).
        window_size: Side length of the averaging window.
        bias: Constant subtracted from the local mean.

    Returns:
        Thresholded RGBA array.
    """
    half = window_size // 2
    size = 2 * half + 1
    result = pixels.copy()
    region = _interior(*pixels.shape[:2], half)
    if region is None:
        logger.debug("Image smaller than threshold window, skipping")
        return result

    gray = pixels[..., 0].astype(np.float64)
    local_mean = cv2.boxFilter(
        gray, ddepth=-1, ksize=(size, size), normalize=True,
        borderType=cv2.BORDER_REPLICATE,
    )
    binary = np.where(gray > local_mean - bias, 255, 0).astype(np.uint8)

    rows, cols = region
    for channel in range(3):
        result[rows, cols, channel] = binary[rows, cols]
    logger.debug("Applied adaptive threshold (window=%d, bias=%d)", size, bias)
    return result


def _apply_neighbourhood(pixels: np.ndarray, op) -> np.ndarray:
    result = pixels.copy()
    region = _interior(*pixels.shape[:2], 1)
    if region is None:
        return result
    channel0 = np.ascontiguousarray(pixels[..., 0])
    filtered = op(channel0, _MORPH_KERNEL, borderType=cv2.BORDER_REPLICATE)
    rows, cols = region
    for channel in range(3):
        result[rows, cols, channel] = filtered[rows, cols]
    return result


def erode(pixels: np.ndarray) -> np.ndarray:
    """3x3 minimum filter on the first channel, written to R, G, and B."""
    return _apply_neighbourhood(pixels, cv2.erode)


def dilate(pixels: np.ndarray) -> np.ndarray:
    """3x3 maximum filter on the first channel, written to R, G, and B."""
    return _apply_neighbourhood(pixels, cv2.dilate)


def morphological_open(pixels: np.ndarray) -> np.ndarray:
    """Erosion followed by dilation; removes isolated specks."""
    return dilate(erode(pixels))


def sharpen(pixels: np.ndarray, kernel: np.ndarray = SHARPEN_KERNEL) -> np.ndarray:
    """Convolve each color channel with a 3x3 kernel, clamped to [0, 255]."""
    result = pixels.copy()
    region = _interior(*pixels.shape[:2], 1)
    if region is None:
        return result
    rows, cols = region
    rgb = pixels[..., :3].astype(np.float64)
    # filter2D computes correlation; flip so the kernel is applied as a convolution
    flipped = cv2.flip(kernel, -1)
    convolved = cv2.filter2D(rgb, ddepth=-1, kernel=flipped, borderType=cv2.BORDER_REPLICATE)
    clamped = np.clip(convolved, 0, 255).astype(np.uint8)
    result[rows, cols, :3] = clamped[rows, cols]
    return result
