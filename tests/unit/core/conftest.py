"""Shared fixtures for core unit tests"""

from pathlib import Path

import pytest

from mdsite.config import Settings


@pytest.fixture(name="settings")
def settings_fixture(tmp_path):
    """Settings isolated to tmp_path: output, deploy target, and lock live there."""
    return Settings(
        site_title="Test Blog",
        output_dir=str(tmp_path / "_site"),
        deploy_target=str(tmp_path / "public"),
        lock_file=str(tmp_path / ".mdsite.lock"),
    )


@pytest.fixture(name="out")
def out_fixture(settings):
    return Path(settings.output_dir)
