"""Failure taxonomy for the scrubbing pipeline.

Only infrastructure failures are exceptions.  A regex miss or a validator
rejection is a normal negative result.  A confirmed match that cannot be
pinned to a character range falls back to whole-element redaction, and one
with no geometry at all is counted on the outcome.  Neither is raised.
"""

from __future__ import annotations

from screenscrub.models.schemas import ErrorKind


class ScrubError(Exception):
    """Base class for errors that end a run with an ERROR outcome."""
    kind: ErrorKind


class InputError(ScrubError):
    """Undecodable image or missing/empty OCR text."""
    kind = ErrorKind.INPUT


class ResourceError(ScrubError):
    """Allocation failure while copying or transforming the bitmap."""
    kind = ErrorKind.RESOURCE


class PersistenceError(ScrubError):
    """The downstream save collaborator failed.

    Raised after detection and redaction succeeded, so the caller can retry
    persistence with the already-redacted artifact.
    """
    kind = ErrorKind.PERSISTENCE
