"""Run configuration for the GeoPlanet join."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from batch_driver import DEFAULT_CAPACITY, DEFAULT_PROGRESS_EVERY, DEFAULT_WORKERS

DATA_DIR = Path("data/geoplanet")


@dataclass
class JoinConfig:
    """Input files, output location and pool sizing for one run."""
    # Inputs
    places_path: Path = DATA_DIR / "geoplanet_places_7.10.0.tsv.gz"
    aliases_path: Path = DATA_DIR / "geoplanet_aliases_7.10.0.tsv.gz"
    adjacencies_path: Path = DATA_DIR / "geoplanet_adjacencies_7.10.0.tsv.gz"
    shapes_path: Path = Path("flickr.json.gz")

    # Outputs
    output_dir: Path = Path(".")
    raw_output_name: str = "geoplanet.json.gz"
    cleaned_prefix: str = "geoplanet_cleaned"

    # Processing
    workers: int = DEFAULT_WORKERS
    queue_capacity: int = DEFAULT_CAPACITY
    progress_every: int = DEFAULT_PROGRESS_EVERY
    fallback_language: str = "ENG"
    source_name: str = "geoplanet"

    def __post_init__(self) -> None:
        for name in ("places_path", "aliases_path", "adjacencies_path", "shapes_path", "output_dir"):
            setattr(self, name, Path(getattr(self, name)))
        if self.workers < 1:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.queue_capacity < 1:
            raise ValueError(f"queue_capacity must be positive, got {self.queue_capacity}")

    @property
    def raw_output_path(self) -> Path:
        return self.output_dir / self.raw_output_name

    def cleaned_output_path(self, millis: int) -> Path:
        return self.output_dir / f"{self.cleaned_prefix}-{millis}.json.gz"

    def check_inputs(self) -> None:
        for path in (self.places_path, self.aliases_path, self.adjacencies_path, self.shapes_path):
            if not path.is_file():
                raise FileNotFoundError(f"Input file not found: {path}")
