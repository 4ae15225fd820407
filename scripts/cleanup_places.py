#!/usr/bin/env python3
"""
cleanup_places.py

Rewrite the raw merged GeoPlanet file into the output schema:

  id, source, name, title, categories, parentId, country, neighborIds, geometry

The raw GeoPlanet name is folded into the name lists under its own
language (or the fallback language when it has none) and becomes the
title. Lines are processed concurrently; all output goes through one
locked writer.

Default input:
  geoplanet.json.gz

Default output:
  geoplanet_cleaned-<epoch millis>.json.gz (next to the input)

Usage:
  python scripts/cleanup_places.py
  python scripts/cleanup_places.py --input out/geoplanet.json.gz --output out/cleaned.json.gz
"""

from __future__ import annotations

import argparse
import json
import logging
import threading
import time
from pathlib import Path
from typing import IO, Any, Optional

from batch_driver import (
    DEFAULT_CAPACITY,
    DEFAULT_PROGRESS_EVERY,
    DEFAULT_WORKERS,
    RecordResult,
    StageReport,
    process_concurrently,
)
from geoplanet_records import open_lines, open_writer, to_json_line
from join_config import JoinConfig
from place_store import GEOMETRY, NAME, NEIGHBOR_WOEIDS

logger = logging.getLogger(__name__)

DEFAULT_INPUT_FILE = Path("geoplanet.json.gz")
DEFAULT_SOURCE = "geoplanet"
DEFAULT_LANGUAGE = "ENG"

# Raw GeoPlanet columns
WOE_ID = "WOE_ID"
RAW_NAME = "Name"
RAW_LANGUAGE = "Language"
PLACE_TYPE = "PlaceType"
PARENT_ID = "Parent_ID"
ISO = "ISO"


def fix_names(place: dict[str, Any], fallback_language: str = DEFAULT_LANGUAGE) -> tuple[dict, str | None]:
    """Fold the raw name into the name lists; return (names, title)."""
    names = place.get(NAME) or {}
    raw_name = place.get(RAW_NAME)
    if not raw_name:
        return names, None

    language = place.get(RAW_LANGUAGE) or fallback_language
    values = names.setdefault(language, [])
    if raw_name not in values:
        values.append(raw_name)
    return names, raw_name


def cleanup_place(
    place: dict[str, Any],
    source: str = DEFAULT_SOURCE,
    fallback_language: str = DEFAULT_LANGUAGE,
) -> dict[str, Any]:
    result = {"id": place[WOE_ID], "source": source}

    names, title = fix_names(place, fallback_language)
    result["name"] = names
    if title is not None:
        result["title"] = title

    place_type = place.get(PLACE_TYPE)
    if place_type is not None:
        result["categories"] = {source: [place_type]}

    if place.get(PARENT_ID) is not None:
        result["parentId"] = place[PARENT_ID]
    if place.get(ISO) is not None:
        result["country"] = place[ISO]
    if place.get(NEIGHBOR_WOEIDS) is not None:
        result["neighborIds"] = place[NEIGHBOR_WOEIDS]
    if place.get(GEOMETRY) is not None:
        result["geometry"] = place[GEOMETRY]
    return result


class LockedWriter:
    """Single output shared by all cleanup workers."""

    def __init__(self, handle: IO[str]) -> None:
        self._handle = handle
        self._lock = threading.Lock()
        self.written = 0

    def write(self, obj: dict[str, Any]) -> None:
        line = to_json_line(obj)
        with self._lock:
            self._handle.write(line)
            self.written += 1


def cleanup(
    input_path: Path,
    output_path: Path,
    source: str = DEFAULT_SOURCE,
    fallback_language: str = DEFAULT_LANGUAGE,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    with open_lines(input_path) as handle, open_writer(output_path) as out:
        writer = LockedWriter(out)

        def process(line: str) -> RecordResult:
            if not line.strip():
                return RecordResult.skip("blank_line")
            try:
                place = json.loads(line)
                result = cleanup_place(place, source, fallback_language)
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping unparseable place (%r): %s", e, line[:200])
                return RecordResult.fail("parse_error")
            writer.write(result)
            return RecordResult.ok()

        report = process_concurrently(handle, process, "for cleanup", workers, capacity, progress_every)
    print(f"  wrote {writer.written:,} places to {output_path}")
    return report


def default_output_path(input_path: Path, millis: Optional[int] = None) -> Path:
    if millis is None:
        millis = int(time.time() * 1000)
    return JoinConfig(output_dir=input_path.parent).cleaned_output_path(millis)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rewrite raw merged GeoPlanet places into the output schema.")
    parser.add_argument(
        "--input",
        type=Path,
        default=DEFAULT_INPUT_FILE,
        help=f"Raw merged places file (default: {DEFAULT_INPUT_FILE})",
    )
    parser.add_argument("--output", type=Path, help="Cleaned output path (default: timestamped, next to input)")
    parser.add_argument("--source", default=DEFAULT_SOURCE, help=f"Source tag (default: {DEFAULT_SOURCE})")
    parser.add_argument(
        "--fallback-language",
        default=DEFAULT_LANGUAGE,
        help=f"Language for raw names without one (default: {DEFAULT_LANGUAGE})",
    )
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="Worker threads")
    parser.add_argument("--queue-capacity", type=int, default=DEFAULT_CAPACITY, help="Max lines in flight")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    if not args.input.is_file():
        raise FileNotFoundError(f"Input file not found: {args.input}")

    output = args.output or default_output_path(args.input)
    report = cleanup(
        args.input,
        output,
        source=args.source,
        fallback_language=args.fallback_language,
        workers=args.workers,
        capacity=args.queue_capacity,
    )
    print(f"\n  {report.summary()}")
    print("\nDone.")


if __name__ == "__main__":
    main()
