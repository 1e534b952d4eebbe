"""Listing Store — the authoritative listing collection and its lifecycle.

Enforces:
- Valid lifecycle transitions only (VALID_TRANSITIONS table)
- Ownership: only the owner may mark sold or delete
- Sold listings are frozen; users cannot delete them
- Automatic expiry ``retention`` after ``sold_at`` (durable, see ExpiryScheduler)
- Every transition recorded in the listing event log
- A sold listing past its deadline is no longer retrievable, even before
  a sweep has physically removed it

Mutations are serialized per listing id.  ``mark_sold`` is additionally a
compare-and-swap on ``is_sold`` in the repository, so two concurrent
requests can never both succeed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any, Union

import pydantic

from slugswap.config import SwapConfig
from slugswap.core.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from slugswap.core.expiry_scheduler import ExpiryScheduler, utc_now
from slugswap.core.listing_repository import ListingRepository
from slugswap.models.events import ListingEvent
from slugswap.models.identity import Identity
from slugswap.models.listings import (
    VALID_TRANSITIONS,
    Listing,
    ListingDraft,
    ListingFilter,
    ListingState,
)

logger = logging.getLogger(__name__)

Subscriber = Callable[[list[Listing]], None]
Requester = Union[Identity, str, None]

_EXPIRY_ACTOR = "expiry"


class ListingStore:
    """Owned repository object with an explicit command/query interface.

    Parameters
    ----------
    repository:
        Durable storage for listings, expiries and events.
    retention:
        How long a sold listing survives before automatic removal.
    clock:
        Returns the current UTC time.  Tests inject a controllable clock.

    Examples
    --------
    >>> from pathlib import Path
    >>> store = ListingStore(ListingRepository(Path("/tmp/slugswap-doc.db")))
    >>> store.list_by_owner("nobody")
    []
    """

    def __init__(
        self,
        repository: ListingRepository,
        *,
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._subscribers: list[Subscriber] = []
        self._retention = retention
        self._scheduler = ExpiryScheduler(
            repository, retention, self._expire, clock=clock
        )

    @classmethod
    def from_config(
        cls,
        cfg: SwapConfig,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> ListingStore:
        """Build a store on the database and retention window named by *cfg*."""
        return cls(
            ListingRepository(cfg.db_path),
            retention=timedelta(hours=cfg.retention_hours),
            clock=clock,
        )

    @property
    def scheduler(self) -> ExpiryScheduler:
        return self._scheduler

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
        self,
        owner: Identity | None,
        draft: ListingDraft | Mapping[str, Any],
    ) -> Listing:
        """Validate *draft* and persist a new unsold listing owned by *owner*.

        Raises
        ------
        AuthorizationError
            If no authenticated identity is supplied.
        ValidationError
            If the draft is malformed (no images, more than four, price <= 0,
            an enumerated field outside its set, blank title).
        """
        if owner is None:
            raise AuthorizationError("You must be logged in to post a listing.")

        if not isinstance(draft, ListingDraft):
            try:
                draft = ListingDraft.model_validate(dict(draft))
            except pydantic.ValidationError as exc:
                raise ValidationError.from_pydantic(exc, "listing draft") from exc

        listing = Listing(
            **draft.model_dump(),
            owner_id=owner.id,
            owner_display_name=owner.username,
            owner_avatar=owner.profile_pic,
            created_at=self._clock(),
        )
        self._repo.insert(listing)
        self._record(listing.listing_id, None, ListingState.UNSOLD, owner.id)
        logger.info(
            "Listing %s created by %s (%s, $%.2f).",
            listing.listing_id,
            owner.id,
            listing.category.value,
            listing.price,
        )
        self._notify()
        return listing

    def mark_sold(self, listing_id: str, requester: Requester) -> Listing:
        """Record *listing_id* as sold and schedule its expiry.

        Raises
        ------
        NotFoundError
            If no listing with that id exists.
        AuthorizationError
            If *requester* is not the owner.
        InvalidStateError
            If the listing is already sold.  Re-marking is an error, not a no-op.
        """
        requester_id = self._requester_id(requester)
        with self._lock_for(listing_id):
            listing = self._require(listing_id)
            self._authorize(listing, requester_id, "mark sold")
            self._check_transition(listing, ListingState.SOLD)

            sold_at = self._clock()
            if not self._repo.mark_sold(listing_id, sold_at):
                # Lost a race with another writer outside this process.
                self._require(listing_id)
                raise InvalidStateError(f"Listing {listing_id} is already sold.")
            due_at = self._scheduler.schedule(listing_id, sold_at)
            self._record(listing_id, ListingState.UNSOLD, ListingState.SOLD, requester_id)
            updated = listing.model_copy(update={"is_sold": True, "sold_at": sold_at})

        logger.info(
            "Listing %s marked sold; expires at %s.", listing_id, due_at.isoformat()
        )
        self._notify()
        return updated

    def delete(self, listing_id: str, requester: Requester) -> None:
        """Permanently remove an unsold listing at its owner's request.

        Sold listings cannot be deleted here; they are removed only by the
        expiry process once their retention window has elapsed.
        """
        requester_id = self._requester_id(requester)
        with self._lock_for(listing_id):
            listing = self._require(listing_id)
            self._authorize(listing, requester_id, "delete")
            if listing.is_sold:
                raise InvalidStateError(
                    f"Listing {listing_id} is sold and will be removed automatically; "
                    "it cannot be deleted directly."
                )
            self._remove(listing, requester_id)
        logger.info("Listing %s deleted by its owner.", listing_id)
        self._notify()

    def expire_due(self, now: datetime | None = None) -> list[str]:
        """Run one expiry sweep; return the ids that were removed."""
        return self._scheduler.run_due(now)

    def sync_owner_profile(self, identity: Identity) -> int:
        """Refresh the owner snapshot on *identity*'s unsold listings.

        Sold listings keep the snapshot they were sold with.
        """
        updated = self._repo.update_owner_profile(
            identity.id, identity.username, identity.profile_pic
        )
        if updated:
            logger.info(
                "Synced profile of %s onto %d listing(s).", identity.id, updated
            )
            self._notify()
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, listing_id: str) -> Listing:
        """Return the listing with *listing_id*, or raise ``NotFoundError``."""
        return self._require(listing_id)

    def list_by_owner(self, owner_id: str) -> list[Listing]:
        """All of an owner's live listings, sold or not, newest first."""
        now = self._clock()
        return [
            listing
            for listing in self._repo.list_by_owner(owner_id)
            if not self._is_overdue(listing, now)
        ]

    def list_available(self, listing_filter: ListingFilter | None = None) -> list[Listing]:
        """Unsold listings matching *listing_filter*, newest first."""
        listing_filter = listing_filter or ListingFilter()
        return [
            listing
            for listing in self._repo.list_unsold()
            if listing_filter.matches(listing)
        ]

    def history(self, listing_id: str) -> list[ListingEvent]:
        """Transition log for *listing_id*; readable after deletion."""
        return self._repo.get_events(listing_id)

    def expires_at(self, listing_id: str) -> datetime | None:
        return self._scheduler.deadline(listing_id)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for available-listing snapshots after each mutation.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def close(self) -> None:
        self._scheduler.stop()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _expire(self, listing_id: str) -> None:
        """Expiry handler: remove a sold listing whose retention has elapsed.

        This is the only path that deletes sold listings.  A listing that is
        already gone is a no-op.
        """
        with self._lock_for(listing_id):
            listing = self._repo.get(listing_id)
            if listing is None:
                self._discard_lock(listing_id)
                logger.debug("Expiry of %s skipped: already deleted.", listing_id)
                return
            if not listing.is_sold:
                logger.warning("Expiry of unsold listing %s ignored.", listing_id)
                return
            self._remove(listing, _EXPIRY_ACTOR)
        logger.info("Listing %s expired after sale.", listing_id)
        self._notify()

    def _remove(self, listing: Listing, actor: str) -> None:
        self._check_transition(listing, ListingState.DELETED)
        self._repo.remove(listing.listing_id)
        self._record(listing.listing_id, listing.state, ListingState.DELETED, actor)
        self._discard_lock(listing.listing_id)

    def _require(self, listing_id: str) -> Listing:
        listing = self._repo.get(listing_id)
        if listing is None or self._is_overdue(listing, self._clock()):
            self._discard_lock(listing_id)
            raise NotFoundError(f"No listing with id {listing_id!r}.")
        return listing

    def _is_overdue(self, listing: Listing, now: datetime) -> bool:
        return (
            listing.sold_at is not None and listing.sold_at + self._retention <= now
        )

    @staticmethod
    def _requester_id(requester: Requester) -> str:
        if isinstance(requester, Identity):
            return requester.id
        if not requester:
            raise AuthorizationError("No authenticated identity supplied.")
        return requester

    @staticmethod
    def _authorize(listing: Listing, requester_id: str, action: str) -> None:
        if requester_id != listing.owner_id:
            logger.warning(
                "Rejected %s on %s by non-owner %s.",
                action,
                listing.listing_id,
                requester_id,
            )
            raise AuthorizationError(
                f"Only the owner of listing {listing.listing_id} may {action} it."
            )

    @staticmethod
    def _check_transition(listing: Listing, target: ListingState) -> None:
        current = listing.state
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidStateError(
                f"Cannot move listing {listing.listing_id} from {current.value} "
                f"to {target.value}."
            )

    def _record(
        self,
        listing_id: str,
        from_state: ListingState | None,
        to_state: ListingState,
        actor: str,
    ) -> None:
        origin = from_state.value if from_state is not None else "none"
        self._repo.append_event(
            ListingEvent(
                listing_id=listing_id,
                transition=f"{origin}->{to_state.value}",
                actor=actor,
                timestamp_utc=self._clock(),
            )
        )

    def _lock_for(self, listing_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(listing_id)
            if lock is None:
                lock = self._locks[listing_id] = threading.Lock()
            return lock

    def _discard_lock(self, listing_id: str) -> None:
        with self._locks_guard:
            self._locks.pop(listing_id, None)

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snapshot = self.list_available()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Listing subscriber %r failed.", callback)
