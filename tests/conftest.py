"""Shared fixtures for the comparison tests."""
from pathlib import Path

import pytest

from core.settings import Settings


SAMPLES = Path(__file__).resolve().parent / "samples"


@pytest.fixture
def samples_dir() -> Path:
    return SAMPLES


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Default settings, isolated from any config/settings.yaml in the cwd."""
    return Settings(config_path=str(tmp_path / "absent.yaml"), project_root=tmp_path)


@pytest.fixture
def make_settings(tmp_path):
    """Settings built from an inline configuration mapping."""

    def _make(config: dict) -> Settings:
        active = Settings(config_path=str(tmp_path / "absent.yaml"), project_root=tmp_path)
        active.apply(config)
        active.validate()
        return active

    return _make
