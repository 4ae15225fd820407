"""
merge_stages.py

The four GeoPlanet merge stages plus raw serialization. Each stage reads
one input file and mutates the shared PlaceStore:

  1. places       -> one record per WOE id
  2. aliases      -> per-language name lists (preferred names first)
  3. adjacencies  -> symmetric neighbor lists
  4. geometries   -> shape geometry from the extracted Flickr shapes

Input files are opened before any worker starts, so a missing file aborts
the run. Bad or unmatched records only show up in the stage counters.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from batch_driver import (
    DEFAULT_CAPACITY,
    DEFAULT_PROGRESS_EVERY,
    DEFAULT_WORKERS,
    RecordResult,
    StageReport,
    process_concurrently,
)
from geoplanet_records import open_lines, open_writer, parse_record, read_fields, to_json_line
from place_store import GEOMETRY, PlaceStore

logger = logging.getLogger(__name__)

# GeoPlanet column names
WOE_ID = "WOE_ID"
LANGUAGE = "Language"
NAME = "Name"
NAME_TYPE = "Name_Type"
PLACE_WOE_ID = "Place_WOE_ID"
NEIGHBOUR_WOE_ID = "Neighbour_WOE_ID"

# Alias types that go to the front of the name list
FRONT_NAME_TYPES = {"P", "Q"}

# Shape lines may carry a "<geohash>;" prefix
GEOHASH_SEPARATOR = ";"
MAX_GEOHASH_LENGTH = 13

IDS = "ids"


# ── Per-record merges ────────────────────────────────────────────────────────

def merge_place(store: PlaceStore, record: dict[str, str], key_field: str) -> RecordResult:
    woeid = record.get(key_field)
    if not woeid:
        return RecordResult.skip("missing_id")
    store.put(woeid, record)
    return RecordResult.ok()


def merge_alias(store: PlaceStore, record: dict[str, str]) -> RecordResult:
    woeid = record.get(WOE_ID)
    if woeid not in store:
        return RecordResult.skip("unknown_place")
    language = record.get(LANGUAGE)
    name = record.get(NAME)
    if not language or not name:
        return RecordResult.skip("missing_field")
    front = record.get(NAME_TYPE, "").upper() in FRONT_NAME_TYPES
    store.add_name(woeid, language, name, front=front)
    return RecordResult.ok()


def merge_adjacency(store: PlaceStore, record: dict[str, str]) -> RecordResult:
    woeid1 = record.get(PLACE_WOE_ID)
    woeid2 = record.get(NEIGHBOUR_WOE_ID)
    if woeid1 not in store:
        return RecordResult.skip("unknown_place")
    if woeid2 not in store:
        return RecordResult.skip("unknown_neighbor")
    # One record lock at a time, never nested.
    store.add_neighbor(woeid1, woeid2)
    store.add_neighbor(woeid2, woeid1)
    return RecordResult.ok()


def strip_geohash(line: str) -> str:
    if line.startswith("{"):
        return line
    sep = line.find(GEOHASH_SEPARATOR)
    if 0 <= sep <= MAX_GEOHASH_LENGTH:
        return line[sep + 1:]
    return line


def merge_shape(store: PlaceStore, shape: dict[str, Any]) -> RecordResult:
    woeid = str(shape[IDS][0])
    if woeid not in store:
        logger.info("No place for shape %s: %s", woeid, json.dumps(shape, ensure_ascii=False)[:500])
        return RecordResult.skip("broken_reference")
    store.set_geometry(woeid, shape[GEOMETRY])
    return RecordResult.ok()


def merge_shape_line(store: PlaceStore, line: str) -> RecordResult:
    line = strip_geohash(line.strip())
    if not line:
        return RecordResult.skip("blank_line")
    try:
        shape = json.loads(line)
        return merge_shape(store, shape)
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.warning("Unparseable shape record (%r): %s", e, line[:200])
        return RecordResult.fail("parse_error")


# ── Stages ───────────────────────────────────────────────────────────────────

def _run_tsv_stage(path: Path, what: str, merge, workers: int, capacity: int, progress_every: int) -> StageReport:
    with open_lines(path) as handle:
        header = next(handle, None)
        if header is None:
            raise ValueError(f"Missing header line in {path}")
        fields = read_fields(header)
        return process_concurrently(
            handle,
            lambda line: merge(parse_record(line, fields), fields),
            what,
            workers,
            capacity,
            progress_every,
        )


def load_places(
    store: PlaceStore,
    path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    print("reading places")
    return _run_tsv_stage(
        path, "places",
        lambda record, fields: merge_place(store, record, fields[0]),
        workers, capacity, progress_every,
    )


def add_aliases(
    store: PlaceStore,
    path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    print("adding aliases")
    return _run_tsv_stage(
        path, "aliases",
        lambda record, fields: merge_alias(store, record),
        workers, capacity, progress_every,
    )


def add_adjacencies(
    store: PlaceStore,
    path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    print("adding adjacencies")
    return _run_tsv_stage(
        path, "adjacencies",
        lambda record, fields: merge_adjacency(store, record),
        workers, capacity, progress_every,
    )


def add_geometry(
    store: PlaceStore,
    path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
) -> StageReport:
    print("adding geometries")
    with open_lines(path) as handle:
        report = process_concurrently(
            handle,
            lambda line: merge_shape_line(store, line),
            "geometries",
            workers,
            capacity,
            progress_every,
        )
    print(f"there are {broken_references(report):,} flickr woeids without a match to geoplanet")
    return report


def broken_references(report: StageReport) -> int:
    return report.skipped["broken_reference"]


def serialize_places(store: PlaceStore, path: Path) -> int:
    """Write every record as one JSON line. Returns the record count."""
    print(f"serializing {len(store):,} places to {path}")
    count = 0
    with open_writer(path) as out:
        for record in store.records():
            out.write(to_json_line(record))
            count += 1
    return count


def merge_all(
    store: PlaceStore,
    places_path: Path,
    aliases_path: Path,
    adjacencies_path: Path,
    shapes_path: Path,
    workers: int = DEFAULT_WORKERS,
    capacity: int = DEFAULT_CAPACITY,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
    raw_output_path: Optional[Path] = None,
) -> list[StageReport]:
    reports = [
        load_places(store, places_path, workers, capacity, progress_every),
        add_aliases(store, aliases_path, workers, capacity, progress_every),
        add_adjacencies(store, adjacencies_path, workers, capacity, progress_every),
        add_geometry(store, shapes_path, workers, capacity, progress_every),
    ]
    if raw_output_path is not None:
        serialize_places(store, raw_output_path)
    return reports
