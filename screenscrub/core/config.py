"""Global scrubber configuration."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import ClassVar, Optional

from pydantic import BaseModel, Field

from screenscrub.models.schemas import Category

logger = logging.getLogger(__name__)

SETTINGS_ENV = "SCREENSCRUB_SETTINGS"
STRICT_LUHN_ENV = "SCREENSCRUB_STRICT_LUHN"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class ScrubConfig(BaseModel):
    """Detection and redaction settings, loaded once at startup."""

    # Validation
    strict_luhn: bool = Field(default_factory=lambda: _env_flag(STRICT_LUHN_ENV))
    max_repeat_digit_ratio: float = Field(
        default=0.70, ge=0.0, le=1.0,
        description=(
            "Card candidates whose most frequent digit exceeds this share of "
            "all digits are rejected (OCR repeat artifacts such as 1111 1111)."
        ),
    )

    # Span location
    min_digit_match: int = Field(default=7, ge=1)
    min_phone_fragment_digits: int = Field(default=4, ge=1)
    min_fragment_chars: int = Field(
        default=6, ge=1,
        description=(
            "An OCR line or element shorter than this is never treated as a "
            "fragment of a longer sensitive value."
        ),
    )

    # Redaction
    padding: dict[Category, int] = Field(
        default_factory=dict,
        description="Per-category padding overrides in pixels.",
    )
    fill_color: tuple[int, int, int] = (0, 0, 0)
    correct_orientation: bool = True                  # rotate camera photos after redaction
    max_image_dimension: int = Field(default=4096, ge=64)

    # OCR collaborator (CLI only)
    tesseract_cmd: str = ""                           # Empty = auto-detect
    ocr_language: str = "eng"
    ocr_min_confidence: int = Field(default=30, ge=0, le=100)

    # Keys accepted from the JSON settings file
    PERSISTABLE_KEYS: ClassVar[frozenset[str]] = frozenset({
        "strict_luhn", "max_repeat_digit_ratio",
        "min_digit_match", "min_phone_fragment_digits", "min_fragment_chars",
        "padding", "fill_color", "correct_orientation", "max_image_dimension",
        "tesseract_cmd", "ocr_language", "ocr_min_confidence",
    })

    @classmethod
    def from_file(cls, path: str | Path) -> ScrubConfig:
        """Build a config from a JSON settings file, ignoring unknown keys."""
        path = Path(path)
        data = json.loads(path.read_text(encoding="utf-8-sig"))
        known = {k: v for k, v in data.items() if k in cls.PERSISTABLE_KEYS}
        dropped = sorted(set(data) - set(known))
        if dropped:
            logger.warning(f"Ignoring unknown settings in {path}: {', '.join(dropped)}")
        logger.info(f"Loaded settings from {path}")
        return cls(**known)


def _load_default() -> ScrubConfig:
    settings_path: Optional[str] = os.environ.get(SETTINGS_ENV)
    if settings_path:
        try:
            return ScrubConfig.from_file(settings_path)
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load settings from {settings_path}: {exc}")
    return ScrubConfig()


# Singleton — importable from anywhere
config = _load_default()
