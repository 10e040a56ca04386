"""Pydantic data models for the screenshot scrubber."""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Category(str, enum.Enum):
    """Categories of personally identifiable information."""
    CREDIT_CARD = "CREDIT_CARD"
    US_SSN = "US_SSN"
    US_PHONE = "US_PHONE"
    ISRAELI_ID = "ISRAELI_ID"
    ISRAELI_PHONE = "ISRAELI_PHONE"
    ISRAELI_BANK_ACCOUNT = "ISRAELI_BANK_ACCOUNT"
    EMAIL = "EMAIL"

    @property
    def is_phone(self) -> bool:
        return self in (Category.US_PHONE, Category.ISRAELI_PHONE)

    @property
    def is_numeric(self) -> bool:
        return self is not Category.EMAIL


class ImageKind(str, enum.Enum):
    """Where the image came from."""
    SCREENSHOT = "SCREENSHOT"
    CAMERA_PHOTO = "CAMERA_PHOTO"


class Orientation(enum.IntEnum):
    """EXIF orientation tag values."""
    NORMAL = 1
    FLIP_HORIZONTAL = 2
    ROTATE_180 = 3
    FLIP_VERTICAL = 4
    TRANSPOSE = 5
    ROTATE_90 = 6          # display needs 90° clockwise
    TRANSVERSE = 7
    ROTATE_270 = 8


class OutcomeStatus(str, enum.Enum):
    CLEAN = "CLEAN"
    REDACTED = "REDACTED"
    ERROR = "ERROR"


class ErrorKind(str, enum.Enum):
    """Infrastructure failure classes surfaced to the caller."""
    INPUT = "INPUT"
    RESOURCE = "RESOURCE"
    PERSISTENCE = "PERSISTENCE"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class BBox(BaseModel):
    """Axis-aligned pixel rectangle; x1/y1 are exclusive."""
    model_config = ConfigDict(frozen=True)

    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def expand(self, padding: int) -> BBox:
        return BBox(
            x0=self.x0 - padding,
            y0=self.y0 - padding,
            x1=self.x1 + padding,
            y1=self.y1 + padding,
        )

    def clip(self, width: int, height: int) -> BBox:
        return BBox(
            x0=max(0, min(self.x0, width)),
            y0=max(0, min(self.y0, height)),
            x1=max(0, min(self.x1, width)),
            y1=max(0, min(self.y1, height)),
        )

    @classmethod
    def union(cls, boxes: list[BBox]) -> Optional[BBox]:
        if not boxes:
            return None
        return cls(
            x0=min(b.x0 for b in boxes),
            y0=min(b.y0 for b in boxes),
            x1=max(b.x1 for b in boxes),
            y1=max(b.y1 for b in boxes),
        )


# ---------------------------------------------------------------------------
# OCR text geometry (block → line → element)
# ---------------------------------------------------------------------------

class TextElement(BaseModel):
    """A single OCR token (roughly a word)."""
    text: str
    bbox: Optional[BBox] = None


class TextLine(BaseModel):
    text: str
    bbox: Optional[BBox] = None
    elements: list[TextElement] = []


class TextBlock(BaseModel):
    text: str
    bbox: Optional[BBox] = None
    lines: list[TextLine] = []


class OcrDocument(BaseModel):
    """Recognised text of one image, in stored-pixel coordinates."""
    text: str = ""                    # Concatenated full text
    blocks: list[TextBlock] = []


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class SensitiveMatch(BaseModel):
    """An accepted PII match inside the detector's input text."""
    model_config = ConfigDict(frozen=True)

    category: Category
    text: str
    start: int = Field(ge=0)
    end: int
    confidence: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_span(self) -> SensitiveMatch:
        if self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self

    def overlaps(self, other: SensitiveMatch) -> bool:
        return self.start < other.end and self.end > other.start


class MaskedMatch(BaseModel):
    """Audit-safe view of a match; never carries the raw value."""
    category: Category
    confidence: float
    masked: str
    start: int
    end: int


class DetectionStats(BaseModel):
    match_count: int = 0
    processing_time_ms: float = 0.0
    text_length: int = 0
    by_category: dict[Category, int] = {}


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------

class RedactionRegion(BaseModel):
    """A clipped, positive-area rectangle to paint over."""
    model_config = ConfigDict(frozen=True)

    bbox: BBox
    category: Category


class RedactedArtifact(BaseModel):
    """Everything the persistence collaborator needs to store a result."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: Any                                   # PIL.Image.Image
    orientation: Orientation = Orientation.NORMAL  # still to apply downstream
    kind: ImageKind = ImageKind.SCREENSHOT
    matches: list[MaskedMatch] = []
    source_name: str = ""


class ProcessingOutcome(BaseModel):
    """Terminal state of one pipeline run."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: OutcomeStatus
    matches: list[SensitiveMatch] = []
    artifact: Optional[RedactedArtifact] = None
    output_location: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    reason: str = ""
    regions_drawn: int = 0
    unlocated: int = 0
    stats: DetectionStats = Field(default_factory=DetectionStats)

    @classmethod
    def clean(cls, stats: DetectionStats | None = None) -> ProcessingOutcome:
        return cls(status=OutcomeStatus.CLEAN, stats=stats or DetectionStats())

    @classmethod
    def redacted(cls, matches: list[SensitiveMatch], artifact: RedactedArtifact,
                 **kwargs: Any) -> ProcessingOutcome:
        return cls(status=OutcomeStatus.REDACTED, matches=matches,
                   artifact=artifact, **kwargs)

    @classmethod
    def error(cls, kind: ErrorKind, reason: str, **kwargs: Any) -> ProcessingOutcome:
        return cls(status=OutcomeStatus.ERROR, error_kind=kind, reason=reason, **kwargs)

    @property
    def image(self) -> Any:
        return self.artifact.image if self.artifact is not None else None
