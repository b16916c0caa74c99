#!/usr/bin/env python3
"""
Developer CLI for placement decks.

    python deck_cli.py inspect template.pptx [--slide 8]
    python deck_cli.py update template.pptx placement.json -o out.pptx
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from config import DeckConfig
from deck_updater import inspect_slide, process_document
from file_utils import read_json, report_path_for, timestamped_filename, write_bytes, write_json
from logging_utils import get_error_info, log_exception, setup_run_logging
from pptx_archive import DeckArchiveError, PptxArchive, package_info
from slide_detector import detect_slide_positions
from slide_markup import slide_plain_text
from slide_signatures import get_signature_catalog, load_signature_file

logger = logging.getLogger(__name__)


def _catalog(args: argparse.Namespace):
    if args.signatures:
        return load_signature_file(args.signatures)
    return get_signature_catalog()


def _inspect(args: argparse.Namespace) -> int:
    data = Path(args.deck).read_bytes()
    if args.slide is not None:
        print(json.dumps(inspect_slide(data, args.slide), indent=2, ensure_ascii=False))
        return 0

    archive = PptxArchive.open(data)
    info = package_info(archive)
    print(f"📦 {args.deck}: {info['totalSlides']} slides, {info['totalFiles']} entries")
    for number in archive.slide_numbers():
        text = slide_plain_text(archive.get_slide_markup(number))
        print(f"  Slide {number}: {DeckConfig.preview(text)}")

    detection = detect_slide_positions(archive, _catalog(args))
    print("\n📍 Detected slide positions:")
    for slide_type, result in detection.results.items():
        note = " (fallback)" if result.used_fallback else ""
        print(f"  {slide_type}: Slide {result.slide_number} ({round(result.confidence * 100)}%){note}")
    for warning in detection.warnings:
        print(f"  ⚠️ {warning.message}")
    return 0


def _write_failure_report(output_path: Path, exc: Exception, **context: str) -> None:
    report = {"success": False, **get_error_info(exc, context)}
    write_json(report_path_for(output_path), report)


def _update(args: argparse.Namespace) -> int:
    deck_path = Path(args.deck)
    output_path = Path(args.output) if args.output else deck_path.with_name(timestamped_filename(deck_path.name))

    run_logger = logger
    if args.log:
        run_logger, log_path = setup_run_logging(args.log_dir, deck_path.name)
        print(f"📝 Logging to {log_path}")

    try:
        placement = read_json(Path(args.placement))
        result = process_document(deck_path.read_bytes(), placement, _catalog(args))
    except ValidationError as exc:
        log_exception(run_logger, exc, context="placement data", placement=args.placement)
        _write_failure_report(output_path, exc, placement=args.placement)
        print(f"❌ Invalid placement data: {exc.error_count()} problem(s)")
        return 1
    except DeckArchiveError as exc:
        log_exception(run_logger, exc, context="process_document", deck=str(deck_path))
        _write_failure_report(output_path, exc, deck=str(deck_path))
        print(f"❌ {exc}")
        return 1

    write_bytes(output_path, result.buffer)
    report = result.to_dict(include_buffer=False)
    report["output"] = str(output_path)
    write_json(report_path_for(output_path), report)

    print(f"✅ Wrote {output_path} ({result.buffer_size} bytes)")
    print(f"   {len(result.updated_slides)} fields updated, {len(result.errors)} errors")
    for error in result.errors:
        hint = f" ({error.hint})" if error.hint else ""
        print(f"   ⚠️ Slide {error.slide} {error.field}: {error.error}{hint}")
    if result.detection_validation is not None and result.detection_validation.low_confidence:
        print(f"   ⚠️ {result.detection_validation.message}")
    return 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect placement decks and apply placement slip data.")
    parser.add_argument("--signatures", help="JSON slide signature table (overrides DECK_SLIDE_SIGNATURES_PATH).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Show slide text and detected slide positions.")
    inspect_parser.add_argument("deck", help="Path to a .pptx file.")
    inspect_parser.add_argument("--slide", type=int, help="Dump the text fragments of one slide.")

    update_parser = subparsers.add_parser("update", help="Apply a placement JSON to a deck.")
    update_parser.add_argument("deck", help="Path to the template .pptx file.")
    update_parser.add_argument("placement", help="Path to the placement data JSON.")
    update_parser.add_argument("-o", "--output", help="Output .pptx path (default: timestamped copy).")
    update_parser.add_argument("--log", action="store_true", help="Write a run log file.")
    update_parser.add_argument("--log-dir", default=DeckConfig.LOG_DIR, help="Directory for run logs.")

    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        if args.command == "inspect":
            return _inspect(args)
        return _update(args)
    except DeckArchiveError as exc:
        print(f"❌ {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
