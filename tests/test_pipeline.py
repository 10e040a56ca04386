"""End-to-end tests for ScreenScrubber.process."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

import pytest
from PIL import Image

from screenscrub.core.config import ScrubConfig
from screenscrub.core.errors import ResourceError
from screenscrub.core.pipeline import ScreenScrubber
from screenscrub.models.schemas import (
    Category,
    ErrorKind,
    ImageKind,
    OcrDocument,
    Orientation,
    OutcomeStatus,
    RedactedArtifact,
)

from tests.helpers import make_document

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
CARD_LINE = "Card: 4532 1234 5678 9012"


class RecordingSink:
    def __init__(self):
        self.saved: list[RedactedArtifact] = []

    def save(self, artifact: RedactedArtifact) -> str:
        self.saved.append(artifact)
        return f"mem://{len(self.saved)}"


class FailingSink:
    def save(self, artifact: RedactedArtifact) -> str:
        raise OSError("disk full")


@pytest.fixture
def cfg():
    return ScrubConfig(strict_luhn=False)


@pytest.fixture
def image():
    return Image.new("RGB", (400, 100), WHITE)


class TestInputs:
    def test_missing_image(self, cfg):
        outcome = ScreenScrubber(cfg).process(None, make_document(CARD_LINE))
        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.error_kind is ErrorKind.INPUT

    def test_image_without_pixels(self, cfg):
        outcome = ScreenScrubber(cfg).process(SimpleNamespace(size=(0, 0)), make_document(CARD_LINE))
        assert outcome.error_kind is ErrorKind.INPUT

    @pytest.mark.parametrize("document", [None, OcrDocument(), OcrDocument(text="  \n ")])
    def test_missing_text(self, cfg, image, document):
        outcome = ScreenScrubber(cfg).process(image, document)
        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.error_kind is ErrorKind.INPUT
        assert outcome.artifact is None


class TestClean:
    def test_nothing_found(self, cfg, image):
        sink = RecordingSink()
        outcome = ScreenScrubber(cfg, sink).process(image, make_document("Meeting at noon"))
        assert outcome.status is OutcomeStatus.CLEAN
        assert outcome.matches == []
        assert outcome.artifact is None
        assert sink.saved == []
        assert outcome.stats.text_length == len("Meeting at noon")


class TestRedacted:
    def test_card_is_painted_on_copy(self, cfg, image):
        outcome = ScreenScrubber(cfg).process(image, make_document(CARD_LINE), source_name="shot.png")

        assert outcome.status is OutcomeStatus.REDACTED
        assert [m.category for m in outcome.matches] == [Category.CREDIT_CARD]
        assert outcome.regions_drawn == 4
        assert outcome.unlocated == 0

        out = outcome.image
        assert out is not image
        assert out.getpixel((100, 20)) == BLACK      # inside "4532"
        assert out.getpixel((30, 20)) == WHITE       # "Card:" label stays visible
        assert image.getpixel((100, 20)) == WHITE

    def test_artifact_carries_masked_values_only(self, cfg, image):
        outcome = ScreenScrubber(cfg).process(image, make_document(CARD_LINE))
        assert [m.masked for m in outcome.artifact.matches] == ["4532 **** **** 9012"]
        assert "1234 5678" not in outcome.artifact.model_dump_json(exclude={"image"})

    def test_email_split_by_ocr_is_painted(self, cfg, image):
        outcome = ScreenScrubber(cfg).process(image, make_document("Email: test@example .com"))
        assert [m.category for m in outcome.matches] == [Category.EMAIL]
        assert outcome.unlocated == 0
        assert outcome.image.getpixel((230, 20)) == BLACK     # inside ".com"
        assert outcome.image.getpixel((40, 20)) == WHITE      # "Email:" label

    def test_unlocated_match_is_counted(self, cfg, image):
        document = OcrDocument(text="ID 123456782")
        outcome = ScreenScrubber(cfg).process(image, document)
        assert outcome.status is OutcomeStatus.REDACTED
        assert outcome.regions_drawn == 0
        assert outcome.unlocated == 1
        assert outcome.image.tobytes() == image.tobytes()


class TestOrientation:
    def test_camera_photo_is_rotated_after_painting(self, cfg, image):
        outcome = ScreenScrubber(cfg).process(
            image, make_document(CARD_LINE),
            kind=ImageKind.CAMERA_PHOTO, orientation=Orientation.ROTATE_90,
        )
        assert outcome.image.size == (100, 400)
        assert outcome.artifact.orientation is Orientation.NORMAL
        assert outcome.artifact.kind is ImageKind.CAMERA_PHOTO

    def test_screenshot_orientation_left_to_caller(self, cfg, image):
        outcome = ScreenScrubber(cfg).process(
            image, make_document(CARD_LINE),
            kind=ImageKind.SCREENSHOT, orientation=Orientation.ROTATE_90,
        )
        assert outcome.image.size == (400, 100)
        assert outcome.artifact.orientation is Orientation.ROTATE_90

    def test_correction_disabled(self, image):
        cfg = ScrubConfig(strict_luhn=False, correct_orientation=False)
        outcome = ScreenScrubber(cfg).process(
            image, make_document(CARD_LINE),
            kind=ImageKind.CAMERA_PHOTO, orientation=Orientation.ROTATE_90,
        )
        assert outcome.image.size == (400, 100)
        assert outcome.artifact.orientation is Orientation.ROTATE_90


class TestFailures:
    def test_out_of_memory(self, cfg, image):
        with patch("screenscrub.core.pipeline.redact_image", side_effect=ResourceError("no memory")):
            outcome = ScreenScrubber(cfg).process(image, make_document(CARD_LINE))
        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.error_kind is ErrorKind.RESOURCE
        assert len(outcome.matches) == 1
        assert outcome.artifact is None


class TestPersistence:
    def test_saved_location_reported(self, cfg, image):
        sink = RecordingSink()
        outcome = ScreenScrubber(cfg, sink).process(image, make_document(CARD_LINE))
        assert outcome.status is OutcomeStatus.REDACTED
        assert outcome.output_location == "mem://1"
        assert sink.saved[0] is outcome.artifact

    def test_failed_save_keeps_artifact(self, cfg, image):
        scrubber = ScreenScrubber(cfg, FailingSink())
        outcome = scrubber.process(image, make_document(CARD_LINE))
        assert outcome.status is OutcomeStatus.ERROR
        assert outcome.error_kind is ErrorKind.PERSISTENCE
        assert "disk full" in outcome.reason
        assert outcome.artifact is not None
        assert outcome.regions_drawn == 4

    def test_retry_after_failed_save(self, cfg, image):
        scrubber = ScreenScrubber(cfg, FailingSink())
        failed = scrubber.process(image, make_document(CARD_LINE))

        scrubber.persistence = RecordingSink()
        retried = scrubber.retry_persistence(failed)
        assert retried.status is OutcomeStatus.REDACTED
        assert retried.error_kind is None
        assert retried.output_location == "mem://1"
        assert retried.artifact is failed.artifact

    def test_retry_needs_artifact(self, cfg, image):
        scrubber = ScreenScrubber(cfg, RecordingSink())
        clean = scrubber.process(image, make_document("Meeting at noon"))
        with pytest.raises(ValueError):
            scrubber.retry_persistence(clean)
