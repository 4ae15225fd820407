import gzip
import sys
from pathlib import Path

import pytest

# Ensure the scripts directory is importable for direct pytest runs
SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"
if str(SCRIPTS_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_DIR))


@pytest.fixture
def write_gz():
    def _write(path: Path, lines):
        with gzip.open(path, "wt", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
        return path

    return _write
