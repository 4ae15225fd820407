#!/usr/bin/env python3
"""
join_geoplanet.py

In-memory join of the GeoPlanet places, aliases and adjacencies dumps with
the extracted Flickr shapes (see extract_flickr_shapes.py), followed by
the cleanup pass (see cleanup_places.py).

Needs a lot of memory: every place is held in one in-memory store until
the raw merged file is written.

Default input:
  data/geoplanet/geoplanet_{places,aliases,adjacencies}_7.10.0.tsv.gz
  flickr.json.gz

Default output (in --output-dir):
  geoplanet.json.gz                      raw merged places
  geoplanet_cleaned-<epoch millis>.json.gz

Usage:
  python scripts/join_geoplanet.py
  python scripts/join_geoplanet.py --data-dir /data/geoplanet --shapes /data/flickr.json.gz --output-dir out
  python scripts/join_geoplanet.py --workers 4 --skip-cleanup
"""

from __future__ import annotations

import argparse
import gc
import logging
import time
from pathlib import Path
from typing import Optional

from batch_driver import StageReport
from cleanup_places import cleanup
from join_config import JoinConfig
from merge_stages import merge_all
from place_store import PlaceStore

DEFAULTS = JoinConfig()


def convert(config: JoinConfig) -> list[StageReport]:
    """Run the four merge stages and write the raw merged file."""
    store = PlaceStore()
    reports = merge_all(
        store,
        config.places_path,
        config.aliases_path,
        config.adjacencies_path,
        config.shapes_path,
        workers=config.workers,
        capacity=config.queue_capacity,
        progress_every=config.progress_every,
        raw_output_path=config.raw_output_path,
    )
    return reports


def run(config: JoinConfig, skip_cleanup: bool = False) -> tuple[list[StageReport], Optional[Path]]:
    config.check_inputs()
    config.output_dir.mkdir(parents=True, exist_ok=True)

    reports = convert(config)
    # The store is gone once convert() returns; reclaim it before cleanup.
    gc.collect()

    if skip_cleanup:
        return reports, None

    cleaned_path = config.cleaned_output_path(int(time.time() * 1000))
    reports.append(
        cleanup(
            config.raw_output_path,
            cleaned_path,
            source=config.source_name,
            fallback_language=config.fallback_language,
            workers=config.workers,
            capacity=config.queue_capacity,
            progress_every=config.progress_every,
        )
    )
    return reports, cleaned_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Join GeoPlanet places, aliases, adjacencies and Flickr shapes into enriched places."
    )
    parser.add_argument("--data-dir", type=Path, help="Directory holding the three GeoPlanet TSV dumps")
    parser.add_argument("--places", type=Path, default=DEFAULTS.places_path, help="Places TSV (gzipped)")
    parser.add_argument("--aliases", type=Path, default=DEFAULTS.aliases_path, help="Aliases TSV (gzipped)")
    parser.add_argument(
        "--adjacencies", type=Path, default=DEFAULTS.adjacencies_path, help="Adjacencies TSV (gzipped)"
    )
    parser.add_argument(
        "--shapes",
        type=Path,
        default=DEFAULTS.shapes_path,
        help=f"Extracted shapes file (default: {DEFAULTS.shapes_path})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULTS.output_dir,
        help="Directory for the raw and cleaned output files",
    )
    parser.add_argument("--workers", type=int, default=DEFAULTS.workers, help="Worker threads per stage")
    parser.add_argument(
        "--queue-capacity", type=int, default=DEFAULTS.queue_capacity, help="Max lines in flight per stage"
    )
    parser.add_argument(
        "--fallback-language",
        default=DEFAULTS.fallback_language,
        help=f"Language for raw names without one (default: {DEFAULTS.fallback_language})",
    )
    parser.add_argument("--skip-cleanup", action="store_true", help="Stop after writing the raw merged file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def config_from_args(args: argparse.Namespace) -> JoinConfig:
    places, aliases, adjacencies = args.places, args.aliases, args.adjacencies
    if args.data_dir is not None:
        places = args.data_dir / places.name
        aliases = args.data_dir / aliases.name
        adjacencies = args.data_dir / adjacencies.name
    return JoinConfig(
        places_path=places,
        aliases_path=aliases,
        adjacencies_path=adjacencies,
        shapes_path=args.shapes,
        output_dir=args.output_dir,
        workers=args.workers,
        queue_capacity=args.queue_capacity,
        fallback_language=args.fallback_language,
    )


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    config = config_from_args(args)
    reports, cleaned_path = run(config, skip_cleanup=args.skip_cleanup)

    print(f"\n{'=' * 60}")
    print("SUMMARY")
    for report in reports:
        print(f"  {report.summary()}")
    print(f"  Raw output:     {config.raw_output_path}")
    if cleaned_path is not None:
        print(f"  Cleaned output: {cleaned_path}")
    print("\nDone.")


if __name__ == "__main__":
    main()
