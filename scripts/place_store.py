"""
place_store.py

Shared in-memory store of GeoPlanet places keyed by WOE id.

Records are plain dicts (the verbatim place columns plus the merged
``name``, ``neighbor_woeids`` and ``geometry`` keys). Every record gets its
own lock when it is added. List-valued merges take only that record's lock
for the read-check-insert sequence; there is no store-wide lock, and callers
never hold two record locks at once.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator

NAME = "name"
NEIGHBOR_WOEIDS = "neighbor_woeids"
GEOMETRY = "geometry"


class PlaceStore:
    def __init__(self) -> None:
        self._places: dict[str, dict[str, Any]] = {}
        self._locks: dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        return len(self._places)

    def __contains__(self, woeid: str) -> bool:
        return woeid in self._places

    def put(self, woeid: str, record: dict[str, Any]) -> None:
        # Lock first so a record is never visible without one.
        self._locks[woeid] = threading.Lock()
        self._places[woeid] = record

    def get(self, woeid: str) -> dict[str, Any] | None:
        return self._places.get(woeid)

    def records(self) -> Iterator[dict[str, Any]]:
        return iter(self._places.values())

    @contextmanager
    def locked(self, woeid: str) -> Iterator[dict[str, Any]]:
        """Hold the per-record lock of ``woeid`` and yield the record.

        Raises KeyError for an unknown id.
        """
        lock = self._locks[woeid]
        with lock:
            yield self._places[woeid]

    def add_name(self, woeid: str, language: str, name: str, front: bool = False) -> bool:
        """Add ``name`` to the record's list for ``language`` unless present.

        Preferred names go to the front, everything else is appended.
        Returns True when the list changed.
        """
        with self.locked(woeid) as record:
            names = record.setdefault(NAME, {}).setdefault(language, [])
            if name in names:
                return False
            if front:
                names.insert(0, name)
            else:
                names.append(name)
            return True

    def add_neighbor(self, woeid: str, neighbor: str) -> bool:
        with self.locked(woeid) as record:
            neighbors = record.setdefault(NEIGHBOR_WOEIDS, [])
            if neighbor in neighbors:
                return False
            neighbors.append(neighbor)
            return True

    def set_geometry(self, woeid: str, geometry: dict[str, Any]) -> None:
        self._places[woeid][GEOMETRY] = geometry
