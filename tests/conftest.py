"""Pytest configuration and fixtures for ripgrave tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from ripgrave.core.config import RipConfig
from ripgrave.fs.record import RecordStore


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's graveyard settings out of the tests."""
    for name in ("GRAVEYARD", "XDG_DATA_HOME", "RIPGRAVE_DEBUG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def graveyard(tmp_path: Path) -> Path:
    """An empty graveyard root (not created yet)."""
    return tmp_path / "graveyard"


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """A working directory holding files to bury."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def store(graveyard: Path) -> RecordStore:
    """Record store of the test graveyard, with fast lock retries."""
    return RecordStore(graveyard, lock_retries=2, lock_backoff=0.01)


@pytest.fixture
def config(graveyard: Path, workdir: Path) -> RipConfig:
    """Configuration running in ``workdir`` against the test graveyard."""
    return RipConfig(graveyard=graveyard, cwd=workdir)
