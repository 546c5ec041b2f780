"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from lumen_extract.utils.config import (
    AppConfig,
    EnhancementConfig,
    ExtractionConfig,
    OCRConfig,
    StorageConfig,
    load_config,
)


class TestEnhancementConfig:
    """Tests for EnhancementConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = EnhancementConfig()
        assert cfg.scale_factor == 2
        assert cfg.window_size == 15
        assert cfg.threshold_bias == 10
        assert cfg.morphology_enabled is True
        assert cfg.sharpen_enabled is True

    def test_override(self) -> None:
        cfg = EnhancementConfig(sharpen_enabled=False, window_size=21)
        assert cfg.sharpen_enabled is False
        assert cfg.window_size == 21

    def test_rejects_zero_scale(self) -> None:
        with pytest.raises(ValidationError):
            EnhancementConfig(scale_factor=0)


class TestOCRConfig:
    """Tests for OCRConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = OCRConfig()
        assert cfg.default_lang == "eng"
        assert cfg.psm == 6
        assert cfg.fallback_psm == 3
        assert cfg.low_confidence_threshold == 40.0
        assert cfg.pdf_dpi == 144
        assert cfg.tesseract_cmd is None


class TestExtractionConfig:
    """Tests for ExtractionConfig defaults."""

    def test_defaults(self) -> None:
        cfg = ExtractionConfig()
        assert cfg.min_confidence == 75.0
        assert cfg.min_confidence_overrides == {}
        assert cfg.corrections_path == "configs/corrections.yaml"


class TestStorageConfig:
    """Tests for StorageConfig defaults."""

    def test_defaults(self) -> None:
        cfg = StorageConfig()
        assert cfg.history_path == "data/history.json"
        assert cfg.keep_image_data is False


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.enhancement, EnhancementConfig)
        assert isinstance(cfg.ocr, OCRConfig)
        assert isinstance(cfg.extraction, ExtractionConfig)
        assert isinstance(cfg.storage, StorageConfig)
        assert cfg.log_level == "INFO"

    def test_nested_override(self) -> None:
        cfg = AppConfig(ocr=OCRConfig(psm=4), log_level="DEBUG")
        assert cfg.ocr.psm == 4
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_shipped_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert cfg == AppConfig()

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert cfg == AppConfig()

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "enhancement": {"morphology_enabled": False},
            "ocr": {"default_lang": "deu", "low_confidence_threshold": 55},
            "extraction": {"min_confidence_overrides": {"Date": 90}},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.enhancement.morphology_enabled is False
        assert cfg.ocr.default_lang == "deu"
        assert cfg.ocr.low_confidence_threshold == 55.0
        assert cfg.extraction.min_confidence_overrides == {"Date": 90.0}
        assert cfg.log_level == "DEBUG"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert isinstance(load_config(config_file), AppConfig)

    def test_load_none_defaults_to_standard_path(self) -> None:
        assert isinstance(load_config(), AppConfig)
