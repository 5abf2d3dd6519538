"""
Pytest configuration and fixtures for Dear Future tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Generator

import pytest

from dearfuture.schema import Capsule, CapsuleColor
from dearfuture.service import CapsuleService
from dearfuture.store import CapsuleStore


NOW = datetime(2025, 6, 15, 12, 0, 0)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def now() -> datetime:
    """Fixed "current time" used by service fixtures."""
    return NOW


@pytest.fixture
def data_file(temp_dir: Path) -> Path:
    """Path for a capsule file that doesn't exist yet."""
    return temp_dir / "data" / "capsules.json"


@pytest.fixture
def store(data_file: Path) -> Generator[CapsuleStore, None, None]:
    """Empty store backed by a temp file."""
    with CapsuleStore(data_file) as capsule_store:
        yield capsule_store


@pytest.fixture
def service(store: CapsuleStore, now: datetime) -> CapsuleService:
    """Service over the temp store with a frozen clock."""
    return CapsuleService(store, clock=lambda: now)


@pytest.fixture
def make_capsule(now: datetime) -> Callable[..., Capsule]:
    """Factory for capsules; unlock defaults to one day after NOW."""

    def _make(capsule_id: int = 1, **overrides) -> Capsule:
        fields = {
            "id": capsule_id,
            "title": f"Capsule {capsule_id}",
            "raw_message": f"Secret message {capsule_id}",
            "unlock_at": now + timedelta(days=1),
            "category": "Reminder",
            "color": CapsuleColor.BLUE,
            "created_at": now - timedelta(days=1),
        }
        fields.update(overrides)
        return Capsule(**fields)

    return _make
