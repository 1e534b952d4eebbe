"""SQLite-backed persistence for listings, pending expiries, and events.

The repository is the durable source of truth.  A process that reopens the
same database file reconstructs the same collection, the same pending
expiry deadlines, and the same transition history.

Design:
- ``listings``: one row per live listing; ``seq`` preserves insertion order
  so newest-first is ``ORDER BY seq DESC``.
- ``listing_expiry``: one row per scheduled expiry, keyed by listing id.
- ``listing_events``: append-only transition log (no update, no delete).
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from slugswap.models.events import ListingEvent
from slugswap.models.listings import Listing

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_LISTINGS = """
CREATE TABLE IF NOT EXISTS listings (
    seq                 INTEGER PRIMARY KEY AUTOINCREMENT,
    listing_id          TEXT NOT NULL UNIQUE,
    title               TEXT NOT NULL,
    description         TEXT NOT NULL DEFAULT '',
    price               REAL NOT NULL,
    category            TEXT NOT NULL,
    size                TEXT NOT NULL,
    condition           TEXT NOT NULL,
    images_json         TEXT NOT NULL,
    owner_id            TEXT NOT NULL,
    owner_display_name  TEXT NOT NULL DEFAULT '',
    owner_avatar        TEXT NOT NULL DEFAULT '',
    is_sold             INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT NOT NULL,
    sold_at             TEXT
);
"""

_CREATE_IDX_OWNER = """
CREATE INDEX IF NOT EXISTS idx_listings_owner ON listings(owner_id, seq);
"""

_CREATE_EXPIRY = """
CREATE TABLE IF NOT EXISTS listing_expiry (
    listing_id  TEXT PRIMARY KEY,
    due_at      TEXT NOT NULL
);
"""

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS listing_events (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id        TEXT NOT NULL UNIQUE,
    listing_id      TEXT NOT NULL,
    transition      TEXT NOT NULL,
    actor           TEXT NOT NULL,
    timestamp_utc   TEXT NOT NULL
);
"""

_CREATE_IDX_EVENTS = """
CREATE INDEX IF NOT EXISTS idx_events_listing ON listing_events(listing_id, id);
"""

_LISTING_COLUMNS = (
    "listing_id, title, description, price, category, size, condition, "
    "images_json, owner_id, owner_display_name, owner_avatar, is_sold, "
    "created_at, sold_at"
)


class ListingRepository:
    """Durable listing collection.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_LISTINGS)
            conn.execute(_CREATE_IDX_OWNER)
            conn.execute(_CREATE_EXPIRY)
            conn.execute(_CREATE_EVENTS)
            conn.execute(_CREATE_IDX_EVENTS)

    # ------------------------------------------------------------------
    # Listings: writes
    # ------------------------------------------------------------------

    def insert(self, listing: Listing) -> None:
        """Persist a newly created listing."""
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO listings ({_LISTING_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    listing.listing_id,
                    listing.title,
                    listing.description,
                    listing.price,
                    listing.category.value,
                    listing.size.value,
                    listing.condition.value,
                    json.dumps(listing.images),
                    listing.owner_id,
                    listing.owner_display_name,
                    listing.owner_avatar,
                    int(listing.is_sold),
                    listing.created_at.isoformat(),
                    listing.sold_at.isoformat() if listing.sold_at else None,
                ),
            )
        logger.debug("Inserted listing %s.", listing.listing_id)

    def mark_sold(self, listing_id: str, sold_at: datetime) -> bool:
        """Atomically flip ``is_sold`` from 0 to 1.

        Returns ``False`` if the listing is missing or already sold; the
        caller decides which error that is.
        """
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE listings SET is_sold = 1, sold_at = ? "
                "WHERE listing_id = ? AND is_sold = 0",
                (sold_at.isoformat(), listing_id),
            )
            return cur.rowcount == 1

    def update_owner_profile(
        self, owner_id: str, display_name: str, avatar: str
    ) -> int:
        """Refresh the owner snapshot on unsold listings; return rows touched."""
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE listings SET owner_display_name = ?, owner_avatar = ? "
                "WHERE owner_id = ? AND is_sold = 0",
                (display_name, avatar, owner_id),
            )
            return cur.rowcount

    def remove(self, listing_id: str) -> bool:
        """Delete a listing and its pending expiry.  Returns whether a row existed."""
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM listings WHERE listing_id = ?", (listing_id,)
            )
            conn.execute(
                "DELETE FROM listing_expiry WHERE listing_id = ?", (listing_id,)
            )
            return cur.rowcount == 1

    # ------------------------------------------------------------------
    # Listings: reads
    # ------------------------------------------------------------------

    def get(self, listing_id: str) -> Listing | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings WHERE listing_id = ?",
                (listing_id,),
            ).fetchone()
        return self._row_to_listing(row) if row else None

    def list_all(self) -> list[Listing]:
        """Return every listing, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings ORDER BY seq DESC"
            ).fetchall()
        return [self._row_to_listing(row) for row in rows]

    def list_by_owner(self, owner_id: str) -> list[Listing]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings "
                "WHERE owner_id = ? ORDER BY seq DESC",
                (owner_id,),
            ).fetchall()
        return [self._row_to_listing(row) for row in rows]

    def list_unsold(self) -> list[Listing]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings "
                "WHERE is_sold = 0 ORDER BY seq DESC"
            ).fetchall()
        return [self._row_to_listing(row) for row in rows]

    def list_sold(self) -> list[Listing]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_LISTING_COLUMNS} FROM listings "
                "WHERE is_sold = 1 ORDER BY seq DESC"
            ).fetchall()
        return [self._row_to_listing(row) for row in rows]

    # ------------------------------------------------------------------
    # Expiry schedule
    # ------------------------------------------------------------------

    def upsert_expiry(self, listing_id: str, due_at: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO listing_expiry (listing_id, due_at) VALUES (?, ?) "
                "ON CONFLICT(listing_id) DO UPDATE SET due_at = excluded.due_at",
                (listing_id, due_at.isoformat()),
            )

    def delete_expiry(self, listing_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM listing_expiry WHERE listing_id = ?", (listing_id,)
            )
            return cur.rowcount == 1

    def get_expiry(self, listing_id: str) -> datetime | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT due_at FROM listing_expiry WHERE listing_id = ?", (listing_id,)
            ).fetchone()
        return datetime.fromisoformat(row[0]) if row else None

    def list_expiries(self) -> dict[str, datetime]:
        """Return all persisted deadlines as ``{listing_id: due_at}``."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT listing_id, due_at FROM listing_expiry ORDER BY due_at ASC"
            ).fetchall()
        return {lid: datetime.fromisoformat(due) for lid, due in rows}

    # ------------------------------------------------------------------
    # Event log (append-only)
    # ------------------------------------------------------------------

    def append_event(self, event: ListingEvent) -> ListingEvent:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO listing_events "
                "(event_id, listing_id, transition, actor, timestamp_utc) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    event.event_id,
                    event.listing_id,
                    event.transition,
                    event.actor,
                    event.timestamp_utc.isoformat(),
                ),
            )
        return event

    def get_events(self, listing_id: str) -> list[ListingEvent]:
        """Return the transition log for a listing, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT event_id, listing_id, transition, actor, timestamp_utc "
                "FROM listing_events WHERE listing_id = ? ORDER BY id ASC",
                (listing_id,),
            ).fetchall()
        return [
            ListingEvent(
                event_id=event_id,
                listing_id=lid,
                transition=transition,
                actor=actor,
                timestamp_utc=timestamp_utc,
            )
            for event_id, lid, transition, actor, timestamp_utc in rows
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_listing(row: tuple) -> Listing:
        """Convert a SQLite row tuple to a Listing."""
        (
            listing_id,
            title,
            description,
            price,
            category,
            size,
            condition,
            images_json,
            owner_id,
            owner_display_name,
            owner_avatar,
            is_sold,
            created_at,
            sold_at,
        ) = row
        return Listing(
            listing_id=listing_id,
            title=title,
            description=description,
            price=price,
            category=category,
            size=size,
            condition=condition,
            images=json.loads(images_json),
            owner_id=owner_id,
            owner_display_name=owner_display_name,
            owner_avatar=owner_avatar,
            is_sold=bool(is_sold),
            created_at=created_at,
            sold_at=sold_at,
        )
