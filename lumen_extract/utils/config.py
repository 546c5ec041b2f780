"""Configuration management for the document extraction system.

Loads and validates YAML configuration with sensible defaults for
image enhancement, recognition, field extraction, and history storage.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class EnhancementConfig(BaseModel):
    """Configuration for the image enhancement pipeline."""

    scale_factor: int = Field(default=2, ge=1)
    window_size: int = Field(default=15, ge=3)
    threshold_bias: int = 10
    morphology_enabled: bool = True
    sharpen_enabled: bool = True


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 6
    fallback_psm: int = 3
    low_confidence_threshold: float = 40.0
    pdf_dpi: int = 144


class ExtractionConfig(BaseModel):
    """Configuration for field extraction and validation."""

    min_confidence: float = 75.0
    min_confidence_overrides: dict[str, float] = Field(default_factory=dict)
    corrections_path: str = "configs/corrections.yaml"


class StorageConfig(BaseModel):
    """Configuration for the processed-document history store."""

    history_path: str = "data/history.json"
    keep_image_data: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration."""

    enhancement: EnhancementConfig = Field(default_factory=EnhancementConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
