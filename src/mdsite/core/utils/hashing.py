"""SHA-256 digests for deploy bundles"""

import hashlib
from pathlib import Path


def sha256_file(path: Path, chunk_size: int = 1 << 16) -> str:
    """Return the hex-encoded SHA-256 of a file's bytes."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()
