"""Small file-system helpers."""

import hashlib
import tempfile
from pathlib import Path

DEFAULT_TEMP_PREFIX = "ffsimple"


def create_temp_dir(prefix: str = DEFAULT_TEMP_PREFIX) -> Path:
    """Create a fresh directory under the system temp dir."""
    return Path(tempfile.mkdtemp(prefix=prefix))


def hash_input_files(input_files: list[str | Path]) -> str:
    """Deterministic SHA-256 hex digest of a list of paths."""
    h = hashlib.sha256()
    h.update("|".join(str(f) for f in input_files).encode("utf-8"))
    return h.hexdigest()


def file_exists(path: str | Path) -> bool:
    return Path(path).exists()
