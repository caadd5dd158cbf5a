"""Shared pytest fixtures for Stowage tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from stowage.models.config import Config
from tests.stowage.mocks import MockCodec, MockLedger, MockObjectStore


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Default config with a scratch work directory."""
    return Config.model_validate({"upload": {"workdir": str(tmp_path / "work")}})


@pytest.fixture
def mock_store() -> MockObjectStore:
    return MockObjectStore()


@pytest.fixture
def mock_ledger() -> MockLedger:
    return MockLedger()


@pytest.fixture
def mock_codec() -> MockCodec:
    return MockCodec()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects delays passed to an injected sleep."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def jpeg_file(tmp_path: Path) -> Path:
    """Small real JPEG on disk."""
    from PIL import Image

    path = tmp_path / "photo.jpg"
    Image.new("RGB", (64, 48), color=(200, 40, 40)).save(path, format="JPEG")
    return path
