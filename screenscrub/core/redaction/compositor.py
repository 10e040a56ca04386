"""Paint opaque redaction rectangles onto a copy of the bitmap."""

from __future__ import annotations

import logging

from PIL import Image, ImageDraw

from screenscrub.core.errors import ResourceError
from screenscrub.models.schemas import Orientation, RedactionRegion

logger = logging.getLogger(__name__)

# Modes drawn on directly; anything else (palette, CMYK, 1-bit...) is
# converted to RGB first so the fill colour is exact.
_DRAWABLE_MODES = frozenset({"RGB", "RGBA", "L", "LA"})

# EXIF orientation → transpose that brings the image upright
# (same table as PIL.ImageOps.exif_transpose).
_TRANSPOSE: dict[Orientation, Image.Transpose] = {
    Orientation.FLIP_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    Orientation.ROTATE_180: Image.Transpose.ROTATE_180,
    Orientation.FLIP_VERTICAL: Image.Transpose.FLIP_TOP_BOTTOM,
    Orientation.TRANSPOSE: Image.Transpose.TRANSPOSE,
    Orientation.ROTATE_90: Image.Transpose.ROTATE_270,
    Orientation.TRANSVERSE: Image.Transpose.TRANSVERSE,
    Orientation.ROTATE_270: Image.Transpose.ROTATE_90,
}


def _fill_for(mode: str, color: tuple[int, int, int]):
    r, g, b = color
    if mode == "L":
        return (r * 299 + g * 587 + b * 114) // 1000
    if mode == "LA":
        return ((r * 299 + g * 587 + b * 114) // 1000, 255)
    if mode == "RGBA":
        return (r, g, b, 255)
    return (r, g, b)


def redact_image(
    image: Image.Image,
    regions: list[RedactionRegion],
    fill: tuple[int, int, int] = (0, 0, 0),
) -> Image.Image:
    """Return a copy of *image* with every region filled solid.

    The input bitmap is never modified.  With no regions the copy is
    pixel-identical to the input.  Region boxes are exclusive on the right
    and bottom edges.
    """
    try:
        if image.mode in _DRAWABLE_MODES:
            out = image.copy()
        else:
            out = image.convert("RGB")
    except MemoryError as exc:
        raise ResourceError(f"Cannot copy {image.width}x{image.height} bitmap") from exc

    if not regions:
        return out

    draw = ImageDraw.Draw(out)
    color = _fill_for(out.mode, fill)
    for region in regions:
        b = region.bbox
        if b.area <= 0:
            continue
        # PIL rectangles include both corners.
        draw.rectangle([b.x0, b.y0, b.x1 - 1, b.y1 - 1], fill=color)

    logger.debug(f"Painted {len(regions)} regions on {out.width}x{out.height} {out.mode} image")
    return out


def apply_orientation(image: Image.Image, orientation: Orientation) -> Image.Image:
    """Rotate/flip *image* upright according to its EXIF orientation.

    Must only be called on an already-redacted bitmap, since region
    coordinates refer to the stored (unrotated) pixels.
    """
    method = _TRANSPOSE.get(Orientation(orientation))
    if method is None:
        return image
    try:
        return image.transpose(method)
    except MemoryError as exc:
        raise ResourceError(f"Cannot rotate {image.width}x{image.height} bitmap") from exc
