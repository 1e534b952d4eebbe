"""Durable expiry scheduling for sold listings.

A sold listing is removed automatically once its retention window has
elapsed.  Deadlines are keyed by listing id and live only in the
``listing_expiry`` table, so every process sharing the database sees the
same schedule and nothing is lost on restart:

- ``schedule`` is called synchronously from ``mark_sold`` and writes the
  deadline to the repository before returning.
- ``recover`` runs at construction and recomputes every deadline from the
  persisted ``sold_at`` of each sold listing.  Nothing is silently dropped.
- ``run_due`` reads the table and fires the expiry handler for every
  deadline that has passed, including deadlines written by another
  process.  It is called by ``ListingStore.expire_due`` or by the
  background sweeper thread started with ``start``.

A fire for a listing that no longer exists is a no-op; the handler
decides that, the scheduler just consumes the deadline.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from slugswap.core.listing_repository import ListingRepository

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExpiryScheduler:
    """Deadline table for pending expiries, backed by the repository.

    Parameters
    ----------
    repository:
        Where deadlines are persisted and sold listings are read from.
    retention:
        How long a sold listing stays visible to its owner before removal.
    on_expire:
        Called with a listing id once its deadline has passed.  Must be
        idempotent: it may be called for an id that is already gone.
    clock:
        Returns the current UTC time.  Injected so tests can simulate
        the passage of time.
    """

    def __init__(
        self,
        repository: ListingRepository,
        retention: timedelta,
        on_expire: Callable[[str], None],
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repository
        self._retention = retention
        self._on_expire = on_expire
        self._clock = clock
        self._sweep_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.recover()

    @property
    def retention(self) -> timedelta:
        return self._retention

    # ------------------------------------------------------------------
    # Deadline management
    # ------------------------------------------------------------------

    def recover(self) -> int:
        """Rebuild the deadline table from persisted ``sold_at`` values.

        Deadlines are recomputed, not trusted, so a changed retention
        window applies to listings sold before the restart as well.
        Stale rows for listings that no longer exist are dropped.
        Returns the number of pending expiries.
        """
        recomputed = {
            listing.listing_id: listing.sold_at + self._retention
            for listing in self._repo.list_sold()
            if listing.sold_at is not None
        }
        persisted = self._repo.list_expiries()

        for listing_id in persisted.keys() - recomputed.keys():
            self._repo.delete_expiry(listing_id)
            logger.debug("Dropped stale expiry for missing listing %s.", listing_id)
        for listing_id, due_at in recomputed.items():
            if persisted.get(listing_id) != due_at:
                self._repo.upsert_expiry(listing_id, due_at)

        if recomputed:
            logger.info("Recovered %d pending expiry task(s).", len(recomputed))
        return len(recomputed)

    def schedule(self, listing_id: str, sold_at: datetime) -> datetime:
        """Persist the expiry deadline for a just-sold listing."""
        due_at = sold_at + self._retention
        self._repo.upsert_expiry(listing_id, due_at)
        logger.debug("Scheduled expiry of %s at %s.", listing_id, due_at.isoformat())
        return due_at

    def cancel(self, listing_id: str) -> bool:
        """Cancel a pending expiry.  Returns whether one was pending."""
        return self._repo.delete_expiry(listing_id)

    def pending(self) -> dict[str, datetime]:
        """Return a snapshot of ``{listing_id: due_at}``."""
        return self._repo.list_expiries()

    def deadline(self, listing_id: str) -> datetime | None:
        return self._repo.get_expiry(listing_id)

    def due(self, now: datetime | None = None) -> list[str]:
        """Return ids whose deadline is at or before *now*, earliest first."""
        now = now or self._clock()
        ready = [(due_at, lid) for lid, due_at in self.pending().items() if due_at <= now]
        return [lid for _, lid in sorted(ready)]

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def run_due(self, now: datetime | None = None) -> list[str]:
        """Fire the expiry handler for every passed deadline.

        Sweeps in one process are serialized.  A deadline is consumed only
        after its handler returns; if the handler raises, the deadline is
        kept and retried on the next sweep.

        Returns
        -------
        list[str]
            Listing ids whose expiry ran to completion.
        """
        fired: list[str] = []
        with self._sweep_lock:
            for listing_id in self.due(now):
                try:
                    self._on_expire(listing_id)
                except Exception:
                    logger.exception(
                        "Expiry of %s failed; will retry on next sweep.", listing_id
                    )
                    continue
                self.cancel(listing_id)
                fired.append(listing_id)
        if fired:
            logger.info("Expiry sweep removed %d listing(s).", len(fired))
        return fired

    # ------------------------------------------------------------------
    # Background sweeper
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, poll_interval: float = 60.0) -> None:
        """Start a daemon thread that calls ``run_due`` every *poll_interval* seconds."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop,
            args=(poll_interval,),
            name="slugswap-expiry",
            daemon=True,
        )
        self._thread.start()
        logger.info("Expiry sweeper started (interval=%.1fs).", poll_interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the sweeper thread, if running."""
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout)
        self._thread = None
        logger.info("Expiry sweeper stopped.")

    def _sweep_loop(self, poll_interval: float) -> None:
        while not self._stop_event.wait(poll_interval):
            self.run_due()
