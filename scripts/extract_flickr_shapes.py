#!/usr/bin/env python3
"""
extract_flickr_shapes.py

Convert the Flickr shapes GeoJSON dumps into newline-delimited shape
records for the GeoPlanet join:

  {"title": ..., "ids": [woe_id, place_id],
   "categories": {"flickr-shapes": [place_type]},
   "geometry": {"type": ..., "coordinates": ...}}

Only the outer ring of every polygon is kept (holes are discarded) and
rings that revisit a vertex are replaced by a simple ring. A MultiPolygon
with a single member becomes a Polygon. Other geometry types are skipped.

Default input (gzipped FeatureCollections in --input-dir):
  flickr_shapes_{continents,counties,countries,localities,neighbourhoods,regions}.geojson.gz

Default output:
  flickr.json.gz

Usage:
  python scripts/extract_flickr_shapes.py --input-dir data/flickr
  python scripts/extract_flickr_shapes.py data/flickr/flickr_shapes_countries.geojson.gz --output countries.json.gz
"""

from __future__ import annotations

import argparse
import json
import logging
import threading
from pathlib import Path
from typing import Any

from batch_driver import (
    DEFAULT_CAPACITY,
    DEFAULT_WORKERS,
    RecordResult,
    StageReport,
    process_concurrently,
)
from geoplanet_records import open_lines, open_writer, to_json_line
from shape_geometry import outer_ring_polygon

logger = logging.getLogger(__name__)

DEFAULT_INPUT_DIR = Path("data/flickr")
DEFAULT_OUTPUT_FILE = Path("flickr.json.gz")
SHAPE_FILES = [
    "flickr_shapes_continents.geojson.gz",
    "flickr_shapes_counties.geojson.gz",
    "flickr_shapes_countries.geojson.gz",
    "flickr_shapes_localities.geojson.gz",
    "flickr_shapes_neighbourhoods.geojson.gz",
    "flickr_shapes_regions.geojson.gz",
]

CATEGORY = "flickr-shapes"


class UnsupportedGeometry(ValueError):
    pass


def extract_geometry(geometry: dict[str, Any]) -> dict[str, Any]:
    geom_type = geometry["type"]
    coordinates = geometry["coordinates"]

    if geom_type.lower() == "multipolygon":
        if not coordinates:
            raise ValueError("MultiPolygon without members")
        if len(coordinates) == 1:
            return {"type": "Polygon", "coordinates": outer_ring_polygon(coordinates[0])}
        return {
            "type": "MultiPolygon",
            "coordinates": [outer_ring_polygon(polygon) for polygon in coordinates],
        }
    if geom_type.lower() == "polygon":
        return {"type": "Polygon", "coordinates": outer_ring_polygon(coordinates)}
    raise UnsupportedGeometry(f"unexpected type {geom_type}")


def extract_shape(feature: dict[str, Any]) -> dict[str, Any]:
    """Build a shape record from one Flickr feature.

    Raises KeyError/TypeError/ValueError for missing or empty pieces and
    UnsupportedGeometry for anything that is not a (Multi)Polygon.
    """
    props = feature["properties"]
    geometry = extract_geometry(feature["geometry"])

    if props.get("woe_id") is None:
        raise KeyError("woe_id")
    ids = [str(props["woe_id"])]
    if props.get("place_id") is not None:
        ids.append(str(props["place_id"]))

    shape = {"title": props.get("label"), "ids": ids}
    if props.get("place_type") is not None:
        shape["categories"] = {CATEGORY: [props["place_type"]]}
    shape["geometry"] = geometry
    return shape


def load_features(path: Path) -> list[dict[str, Any]]:
    with open_lines(path) as handle:
        data = json.load(handle)
    if data.get("type") != "FeatureCollection":
        raise ValueError(f"Expected FeatureCollection in {path}")
    features = data.get("features")
    if not isinstance(features, list):
        raise ValueError(f"Invalid or missing features list in {path}")
    return features


def extract_file(
    path: Path,
    out,
    write_lock: threading.Lock,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
) -> StageReport:
    features = load_features(path)
    print(f"{path.name}: {len(features):,} features")

    def process(feature: dict[str, Any]) -> RecordResult:
        try:
            shape = extract_shape(feature)
        except UnsupportedGeometry as e:
            logger.warning("%s: %s", path.name, e)
            return RecordResult.skip("unsupported_geometry")
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            logger.warning("%s: malformed feature (%r): %s", path.name, e, feature.get("id"))
            return RecordResult.skip("malformed_feature")
        line = to_json_line(shape)
        with write_lock:
            out.write(line)
        return RecordResult.ok()

    return process_concurrently(features, process, f"{path.name} shapes", workers, capacity, progress_every=0)


def extract_shapes(
    paths: list[Path],
    output_path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
) -> list[StageReport]:
    for path in paths:
        if not Path(path).is_file():
            raise FileNotFoundError(f"Shapes file not found: {path}")

    reports = []
    write_lock = threading.Lock()
    with open_writer(output_path) as out:
        for path in paths:
            reports.append(extract_file(Path(path), out, write_lock, workers, capacity))
    return reports


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract outer-ring shape records from Flickr shapes GeoJSON files."
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        type=Path,
        help="Gzipped FeatureCollection files (default: the six Flickr shapes files in --input-dir)",
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        default=DEFAULT_INPUT_DIR,
        help=f"Directory holding the Flickr shapes files (default: {DEFAULT_INPUT_DIR})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_FILE,
        help=f"Output newline-delimited JSON path (default: {DEFAULT_OUTPUT_FILE})",
    )
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS, help="Worker threads")
    parser.add_argument("--queue-capacity", type=int, default=DEFAULT_CAPACITY, help="Max features in flight")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    paths = args.inputs or [args.input_dir / name for name in SHAPE_FILES]

    reports = extract_shapes(paths, args.output, args.workers, args.queue_capacity)

    print(f"\n{'=' * 60}")
    print("SUMMARY")
    for report in reports:
        print(f"  {report.summary()}")
    print(f"  Output: {args.output}")
    print("\nDone.")


if __name__ == "__main__":
    main()
