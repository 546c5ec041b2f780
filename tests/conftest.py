"""Shared test fixtures for the Lumen Extract test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from lumen_extract.preprocessing.raster import RasterImage


@pytest.fixture
def sample_image() -> RasterImage:
    """Create a synthetic RGBA page: dark text block on a light background."""
    pixels = np.full((60, 80, 4), 230, dtype=np.uint8)
    pixels[..., 3] = 255
    pixels[20:40, 20:60, :3] = 30
    return RasterImage(pixels)


@pytest.fixture
def sample_png_bytes() -> bytes:
    """Encode a small RGB image as PNG bytes."""
    img = Image.fromarray(np.full((40, 60, 3), 200, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def license_text() -> str:
    """Raw recognized text of an NSW driver licence card."""
    return "\n".join(
        [
            "NEW SOUTH WALES Driver Licence",
            "John Smith",
            "Card Number 123456789",
            "12 Northmead Ave",
            "WENTWORTHVILLE NSW 2145",
            "Class C",
            "Date of Birth 20 AUG 1976",
            "Expiry Date 19 JAN 2029",
            "Licence Fee $171.00",
        ]
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
