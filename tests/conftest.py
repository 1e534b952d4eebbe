"""Shared test fixtures for SlugSwap."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from slugswap.core.listing_repository import ListingRepository
from slugswap.core.listing_store import ListingStore
from slugswap.models.identity import Identity
from slugswap.models.listings import ListingDraft


class FakeClock:
    """Controllable UTC clock; call it to read, ``advance`` to move forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases."""
    return tmp_path


@pytest.fixture
def db_path(tmp_dir: Path) -> Path:
    return tmp_dir / "listings.db"


@pytest.fixture
def repository(db_path: Path) -> ListingRepository:
    """Provide a fresh ListingRepository backed by a temp SQLite database."""
    return ListingRepository(db_path)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(repository: ListingRepository, clock: FakeClock) -> ListingStore:
    """Provide a ListingStore wired to the test repository and fake clock."""
    return ListingStore(repository, clock=clock)


@pytest.fixture
def owner() -> Identity:
    return Identity(
        id="user-owner",
        username="samantha_sc",
        email="samantha@ucsc.edu",
        profile_pic="https://example.test/sam.jpg",
    )


@pytest.fixture
def other_user() -> Identity:
    return Identity(id="user-other", username="alex_music", email="alex@ucsc.edu")


# ---------------------------------------------------------------------------
# Draft factory shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_draft() -> Callable[..., dict[str, Any]]:
    """Factory fixture: build a raw draft mapping with sensible defaults."""

    def _factory(**overrides: Any) -> dict[str, Any]:
        defaults: dict[str, Any] = {
            "title": "Vintage Band Tee",
            "description": "Super soft vintage band t-shirt, one of a kind!",
            "price": 18,
            "category": "shirt",
            "size": "S",
            "condition": "worn",
            "images": ["tee.jpg"],
        }
        defaults.update(overrides)
        return defaults

    return _factory


@pytest.fixture
def draft(make_draft: Callable[..., dict[str, Any]]) -> ListingDraft:
    """Convenience: a ready-made validated draft."""
    return ListingDraft(**make_draft())
