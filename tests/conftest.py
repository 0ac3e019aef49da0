"""Root test configuration: shared source-tree fixtures and artifact cleanup"""

import shutil
from pathlib import Path

import pytest


_PROJECT_ROOT = Path(__file__).parent.parent

_CLEANUP_FILES = [".mdsite.lock"]
_CLEANUP_DIRS = ["_site", "public"]


@pytest.fixture(scope="session", autouse=True)
def cleanup_artifacts():
    """Remove lock files and output directories created during the test session."""
    yield
    for name in _CLEANUP_FILES:
        p = _PROJECT_ROOT / name
        if p.exists():
            p.unlink()
    for name in _CLEANUP_DIRS:
        p = _PROJECT_ROOT / name
        if p.exists():
            shutil.rmtree(p)


@pytest.fixture(name="source")
def source_fixture(tmp_path):
    """Empty content source directory."""
    src = tmp_path / "site"
    src.mkdir()
    return src


@pytest.fixture(name="write")
def write_fixture(source):
    """Write a text file under the source tree, creating parent directories."""
    def _write(rel: str, text: str) -> Path:
        p = source / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
        return p
    return _write


@pytest.fixture(name="post")
def post_fixture(write):
    """Write a Markdown post with front matter built from keyword arguments."""
    def _post(rel: str, body: str = "Body text.\n", **front_matter) -> Path:
        header = "".join(f"{k}: {v}\n" for k, v in front_matter.items())
        return write(rel, f"---\n{header}---\n\n{body}")
    return _post
