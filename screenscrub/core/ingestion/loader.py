"""Image ingestion — decode a file into a bitmap plus its EXIF orientation."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from screenscrub.core.config import config
from screenscrub.core.errors import InputError, ResourceError
from screenscrub.models.schemas import Orientation

logger = logging.getLogger(__name__)

_EXIF_ORIENTATION_TAG = 0x0112


def calculate_sample_size(width: int, height: int, max_dimension: int) -> int:
    """Largest power-of-two divisor that keeps both halves at or above *max_dimension*.

    Returns 1 when the image already fits.  The result never shrinks either
    side below *max_dimension*, so OCR keeps its resolution.
    """
    sample = 1
    if width > max_dimension or height > max_dimension:
        half_w, half_h = width // 2, height // 2
        while half_h // sample >= max_dimension and half_w // sample >= max_dimension:
            sample *= 2
    return sample


def read_orientation(image: Image.Image) -> Orientation:
    """EXIF orientation of *image*, NORMAL when absent or invalid."""
    try:
        raw = image.getexif().get(_EXIF_ORIENTATION_TAG, 1)
        return Orientation(int(raw))
    except (ValueError, TypeError):
        return Orientation.NORMAL


def downsample(image: Image.Image, max_dimension: int) -> Image.Image:
    sample = calculate_sample_size(image.width, image.height, max_dimension)
    if sample == 1:
        return image
    try:
        reduced = image.reduce(sample)
    except MemoryError as exc:
        raise ResourceError(f"Cannot downsample {image.width}x{image.height} bitmap") from exc
    logger.info(f"Downsampled {image.width}x{image.height} by {sample} "
                f"to {reduced.width}x{reduced.height}")
    return reduced


def load_image(
    path: str | Path,
    max_dimension: int | None = None,
    reduce: bool = True,
) -> tuple[Image.Image, Orientation]:
    """Decode *path* and return the stored-orientation bitmap and its EXIF orientation.

    The bitmap is not rotated; OCR geometry and redaction regions refer to
    the stored pixels, and orientation is applied after redaction.  Pass
    ``reduce=False`` when the geometry was computed on the full-size file.
    """
    path = Path(path)
    max_dimension = max_dimension or config.max_image_dimension
    try:
        with Image.open(path) as img:
            orientation = read_orientation(img)
            img.load()
            image = img.copy()
    except FileNotFoundError as exc:
        raise InputError(f"Image not found: {path}") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise InputError(f"Could not decode image {path.name}: {exc}") from exc
    except MemoryError as exc:
        raise ResourceError(f"Not enough memory to decode {path.name}") from exc

    if image.width <= 0 or image.height <= 0:
        raise InputError(f"Image {path.name} has no pixels")

    logger.info(f"Loaded {path.name}: {image.width}x{image.height} {image.mode}, "
                f"orientation={orientation.name}")
    if not reduce:
        return image, orientation
    return downsample(image, max_dimension), orientation
