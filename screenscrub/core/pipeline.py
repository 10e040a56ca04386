"""Screenshot scrubbing pipeline.

One call to :meth:`ScreenScrubber.process` takes a decoded bitmap and its
OCR geometry through detection, span location, compositing and optional
orientation correction, and hands the result to a persistence sink.

Every run ends in exactly one :class:`ProcessingOutcome`:

  CLEAN     nothing sensitive found; the input bitmap is left untouched
  REDACTED  at least one match, regions painted on a copy
  ERROR     an infrastructure failure (see ``ErrorKind``)

A failed save keeps the redacted artifact on the outcome so the caller can
retry persistence without recomputing anything.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from screenscrub.core.config import ScrubConfig, config as _default_config
from screenscrub.core.detection.masking import to_masked
from screenscrub.core.detection.regex_detector import build_stats, detect_sensitive_data
from screenscrub.core.errors import InputError, PersistenceError, ResourceError
from screenscrub.core.ocr.geometry import GeometryIndex
from screenscrub.core.persistence.store import PersistenceSink
from screenscrub.core.redaction.compositor import apply_orientation, redact_image
from screenscrub.core.redaction.locator import SpanLocator
from screenscrub.models.schemas import (
    ImageKind,
    OcrDocument,
    OutcomeStatus,
    Orientation,
    ProcessingOutcome,
    RedactedArtifact,
)

logger = logging.getLogger(__name__)


def _check_inputs(image, document: Optional[OcrDocument]) -> None:
    if image is None:
        raise InputError("No image provided")
    width, height = getattr(image, "size", (0, 0))
    if width <= 0 or height <= 0:
        raise InputError("Image has no pixels")
    if document is None or not document.text or not document.text.strip():
        raise InputError("No OCR text available")


class ScreenScrubber:
    """Detects PII in OCR text and paints it out of the image."""

    def __init__(self, cfg: ScrubConfig | None = None,
                 persistence: PersistenceSink | None = None):
        self.cfg = cfg or _default_config
        self.persistence = persistence

    def process(
        self,
        image,
        document: Optional[OcrDocument],
        kind: ImageKind = ImageKind.SCREENSHOT,
        orientation: Orientation = Orientation.NORMAL,
        source_name: str = "",
    ) -> ProcessingOutcome:
        try:
            _check_inputs(image, document)
        except InputError as e:
            logger.warning(f"Rejected input {source_name or '<image>'}: {e}")
            return ProcessingOutcome.error(e.kind, str(e))

        kind = ImageKind(kind)

        started = time.perf_counter()
        matches = detect_sensitive_data(document.text, self.cfg)
        stats = build_stats(matches, len(document.text),
                            (time.perf_counter() - started) * 1000.0)

        if not matches:
            logger.info(f"No sensitive data in {source_name or '<image>'}")
            return ProcessingOutcome.clean(stats)

        locator = SpanLocator(GeometryIndex(document), image.size, self.cfg)
        regions, unlocated = locator.locate_all(matches)

        try:
            redacted = redact_image(image, regions, self.cfg.fill_color)
            pending = Orientation(orientation)
            # Regions refer to stored pixels, so rotate only after painting.
            if (kind is ImageKind.CAMERA_PHOTO and self.cfg.correct_orientation
                    and pending is not Orientation.NORMAL):
                redacted = apply_orientation(redacted, pending)
                pending = Orientation.NORMAL
        except ResourceError as e:
            logger.error(f"Out of memory redacting {source_name or '<image>'}: {e}")
            return ProcessingOutcome.error(e.kind, str(e), matches=matches, stats=stats)

        artifact = RedactedArtifact(
            image=redacted,
            orientation=pending,
            kind=kind,
            matches=[to_masked(m) for m in matches],
            source_name=source_name,
        )
        outcome = ProcessingOutcome.redacted(
            matches, artifact,
            regions_drawn=len(regions),
            unlocated=len(unlocated),
            stats=stats,
        )
        logger.info(f"Redacted {len(matches)} matches with {len(regions)} regions "
                    f"({len(unlocated)} unlocated) in {source_name or '<image>'}")
        return self._persist(outcome)

    def _persist(self, outcome: ProcessingOutcome) -> ProcessingOutcome:
        if self.persistence is None:
            return outcome
        try:
            location = self.persistence.save(outcome.artifact)
        except Exception as exc:
            error = PersistenceError(f"Save failed: {exc}")
            logger.error(f"Persistence failed for {outcome.artifact.source_name or '<image>'}: {exc}")
            return outcome.model_copy(update={
                "status": OutcomeStatus.ERROR,
                "error_kind": error.kind,
                "reason": str(error),
            })
        return outcome.model_copy(update={"output_location": location})

    def retry_persistence(self, outcome: ProcessingOutcome) -> ProcessingOutcome:
        """Re-send the artifact of a failed or unsaved outcome to persistence."""
        if outcome.artifact is None:
            raise ValueError("Outcome carries no redacted artifact to persist")
        if self.persistence is None:
            raise ValueError("No persistence sink configured")
        pending = outcome.model_copy(update={
            "status": OutcomeStatus.REDACTED,
            "error_kind": None,
            "reason": "",
        })
        return self._persist(pending)
