"""Command-line entry point for screenscrub.

  screenscrub detect [--text TEXT]        scan text (stdin by default)
  screenscrub redact IMAGE [options]      OCR, detect and black out PII

Both commands print a JSON report on stdout.  Raw values never appear in
the report; only masked renderings do.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from screenscrub.core.config import ScrubConfig, config
from screenscrub.core.detection.masking import to_masked
from screenscrub.core.detection.regex_detector import build_stats, detect_sensitive_data
from screenscrub.core.errors import InputError, ScrubError
from screenscrub.core.ingestion.loader import load_image
from screenscrub.core.ocr.engine import document_from_tesseract, ocr_image
from screenscrub.core.persistence.store import FilePersistence
from screenscrub.core.pipeline import ScreenScrubber
from screenscrub.models.schemas import ImageKind, OcrDocument, OutcomeStatus

log = logging.getLogger("screenscrub")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenscrub",
        description="Detect and redact PII in screenshots and photos",
    )
    parser.add_argument("--settings", type=Path, help="JSON settings file")
    parser.add_argument("--strict-luhn", action="store_true",
                        help="Reject card numbers that fail the Luhn checksum")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    detect = sub.add_parser("detect", help="Scan text for PII")
    detect.add_argument("--text", help="Text to scan (default: read stdin)")

    redact = sub.add_parser("redact", help="Redact PII in an image")
    redact.add_argument("image", type=Path, help="Input image path")
    redact.add_argument("--ocr-json", type=Path,
                        help="Pre-computed OCR: OcrDocument JSON or Tesseract image_to_data dict")
    redact.add_argument("--output", type=Path, default=Path("redacted"),
                        help="Output directory (default: ./redacted)")
    redact.add_argument("--kind", choices=[k.value for k in ImageKind],
                        default=ImageKind.SCREENSHOT.value)
    return parser


def _load_config(args: argparse.Namespace) -> ScrubConfig:
    cfg = ScrubConfig.from_file(args.settings) if args.settings else config
    if args.strict_luhn:
        cfg = cfg.model_copy(update={"strict_luhn": True})
    return cfg


def _load_document(path: Path) -> OcrDocument:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        if "blocks" in data:
            return OcrDocument.model_validate(data)
        return document_from_tesseract(data)
    except (OSError, ValueError, KeyError, TypeError, IndexError) as exc:
        raise InputError(f"Unusable OCR file {path.name}: {exc}") from exc


def _cmd_detect(args: argparse.Namespace, cfg: ScrubConfig) -> int:
    text = args.text if args.text is not None else sys.stdin.read()
    started = time.perf_counter()
    matches = detect_sensitive_data(text, cfg)
    stats = build_stats(matches, len(text), (time.perf_counter() - started) * 1000.0)
    report = {
        "matches": [to_masked(m).model_dump(mode="json") for m in matches],
        "stats": stats.model_dump(mode="json"),
    }
    print(json.dumps(report, indent=2))
    return 0


def _cmd_redact(args: argparse.Namespace, cfg: ScrubConfig) -> int:
    try:
        # Supplied geometry refers to the full-size file.
        image, orientation = load_image(args.image, cfg.max_image_dimension,
                                        reduce=args.ocr_json is None)
        document = _load_document(args.ocr_json) if args.ocr_json else ocr_image(image, cfg)
    except ScrubError as e:
        log.error(str(e))
        print(json.dumps({"status": OutcomeStatus.ERROR.value,
                          "error_kind": e.kind.value, "reason": str(e)}, indent=2))
        return 1

    scrubber = ScreenScrubber(cfg, persistence=FilePersistence(args.output))
    outcome = scrubber.process(
        image, document,
        kind=ImageKind(args.kind),
        orientation=orientation,
        source_name=args.image.name,
    )

    report = {
        "status": outcome.status.value,
        "output": outcome.output_location,
        "regions_drawn": outcome.regions_drawn,
        "unlocated": outcome.unlocated,
        "matches": [m.model_dump(mode="json") for m in outcome.artifact.matches]
                   if outcome.artifact else [],
        "stats": outcome.stats.model_dump(mode="json"),
    }
    if outcome.status is OutcomeStatus.ERROR:
        report["error_kind"] = outcome.error_kind.value if outcome.error_kind else None
        report["reason"] = outcome.reason
    print(json.dumps(report, indent=2))
    return 1 if outcome.status is OutcomeStatus.ERROR else 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    cfg = _load_config(args)
    if args.command == "detect":
        return _cmd_detect(args, cfg)
    return _cmd_redact(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
