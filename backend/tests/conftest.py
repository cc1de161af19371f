"""Shared test fixtures and configuration."""
from pathlib import Path
from typing import Generator

import pytest

from storybook.core.config import get_settings
from storybook.services.character import CharacterProfiler

REFERENCE_IMAGE = "https://example.com/characters/maya.png"


@pytest.fixture(autouse=True)
def set_required_env_vars(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    """Keep tests offline: no GCP project, images written under tmp_path."""
    monkeypatch.setenv("GCP_PROJECT_ID", "")
    monkeypatch.setenv("VERTEX_AI_LOCATION", "us-central1")
    monkeypatch.setenv("IMAGES_DIR", str(tmp_path / "images"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def profiler() -> CharacterProfiler:
    return CharacterProfiler()


@pytest.fixture
def profile(profiler: CharacterProfiler):
    return profiler.profile(REFERENCE_IMAGE)
