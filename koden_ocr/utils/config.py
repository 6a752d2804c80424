"""Configuration management for the envelope OCR system.

Loads and validates YAML configuration with defaults for image
preprocessing, recognition, field extraction, and record validation.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


class PreprocessingConfig(BaseModel):
    """Configuration for the face image preprocessing pipeline."""

    max_dimension: int = Field(default=1600, gt=0)
    denoise_enabled: bool = True
    denoise_method: str = "bilateral"
    contrast_enabled: bool = True
    clahe_clip_limit: float = 2.0
    clahe_tile_size: int = 8
    binarize_enabled: bool = False
    binarize_method: str = "adaptive"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "jpn"
    psm: int = 6
    pdf_dpi: int = 300
    max_workers: int = Field(default=4, ge=1)


class ExtractionConfig(BaseModel):
    """Configuration for field extraction and donation-type classification."""

    top_section_ratio: float = Field(default=0.3, gt=0.0, le=1.0)
    min_top_fragments: int = Field(default=5, ge=1)
    donation_types_path: str | None = None


class ValidationConfig(BaseModel):
    """Configuration for the donation record rules engine."""

    rules_path: str = "configs/validation_rules.yaml"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
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
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
