"""Persistence of redacted artifacts."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from screenscrub.models.schemas import RedactedArtifact

logger = logging.getLogger(__name__)


class PersistenceSink(Protocol):
    """Anything that can store a redacted artifact and say where it went."""

    def save(self, artifact: RedactedArtifact) -> str: ...


def _sanitize_filename(filename: str) -> str:
    """Sanitize a filename to prevent path traversal and special chars."""
    name = Path(filename).name
    name = name.replace("\x00", "")
    name = re.sub(r'[<>:"/\\|?*]', '_', name)
    if not name or name in ('.', '..'):
        name = 'screenshot'
    return name


def _atomic_write(target: Path, write) -> None:
    """Write via a temp file in the same directory, then rename over *target*."""
    fd, tmp_path = tempfile.mkstemp(
        dir=str(target.parent), suffix=".tmp", prefix=f"{target.stem}_"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            write(f)
        os.replace(tmp_path, str(target))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class FilePersistence:
    """Stores the redacted bitmap as PNG plus a JSON audit sidecar.

    The sidecar holds masked matches only; raw values never reach disk.
    """

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Redacted output directory: {self.output_dir}")

    def paths_for(self, artifact: RedactedArtifact) -> tuple[Path, Path]:
        stem = Path(_sanitize_filename(artifact.source_name or "screenshot")).stem
        return (
            self.output_dir / f"{stem}_redacted.png",
            self.output_dir / f"{stem}_redacted.json",
        )

    def save(self, artifact: RedactedArtifact) -> str:
        image_path, sidecar_path = self.paths_for(artifact)

        try:
            _atomic_write(image_path, lambda f: artifact.image.save(f, format="PNG"))

            sidecar = {
                "source": artifact.source_name,
                "kind": artifact.kind.value,
                "orientation": int(artifact.orientation),
                "width": artifact.image.width,
                "height": artifact.image.height,
                "matches": [m.model_dump(mode="json") for m in artifact.matches],
                "saved_at": datetime.now(timezone.utc).isoformat(),
            }
            payload = json.dumps(sidecar, indent=2, ensure_ascii=False).encode("utf-8")
            _atomic_write(sidecar_path, lambda f: f.write(payload))
        except Exception as e:
            logger.error(f"Failed to save redacted artifact {image_path.name}: {e}")
            raise

        logger.info(f"Saved redacted image to {image_path}")
        return str(image_path)
