"""
geoplanet_records.py

Tab-delimited record reading and gzip line I/O shared by the GeoPlanet join.

GeoPlanet dumps are gzipped TSV files with a header line; values may be
wrapped in double quotes. Each data line becomes a dict keyed by header
field name. Values that are empty after dequoting are left out of the dict.

Rows with more values than the header have the extra values ignored; rows
with fewer values simply lack the trailing fields.
"""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import IO, Any

QUOTE = '"'
DELIMITER = "\t"


def dequote(value: str) -> str:
    """Strip one surrounding pair of double quotes, if both ends have one."""
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        return value[1:-1]
    return value


def read_fields(header_line: str) -> list[str]:
    return [dequote(name) for name in header_line.rstrip("\r\n").split(DELIMITER)]


def parse_record(line: str, fields: list[str]) -> dict[str, str]:
    record = {}
    for field_name, value in zip(fields, line.rstrip("\r\n").split(DELIMITER)):
        value = dequote(value)
        if value:
            record[field_name] = value
    return record


# ── gzip line I/O ────────────────────────────────────────────────────────────

def open_lines(path: Path) -> IO[str]:
    """Open a gzipped (or plain, by suffix) UTF-8 text file for reading."""
    path = Path(path)
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8")
    return path.open("r", encoding="utf-8")


def open_writer(path: Path) -> IO[str]:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix == ".gz":
        return gzip.open(path, "wt", encoding="utf-8")
    return path.open("w", encoding="utf-8")


def to_json_line(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":")) + "\n"
