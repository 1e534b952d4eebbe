"""Integration test — full listing lifecycle across identity, store, and restart.

Walks a listing through signup -> post -> browse -> mark sold -> rejected
delete -> process restart -> automatic expiry, verifying the store and the
durable expiry schedule at every step.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from slugswap.core.errors import AuthorizationError, InvalidStateError, NotFoundError
from slugswap.core.identity import IdentityProvider
from slugswap.core.listing_repository import ListingRepository
from slugswap.core.listing_store import ListingStore
from slugswap.models.listings import ListingFilter


class TestListingLifecycle:
    def test_sold_listing_expires_after_a_day(self, store: ListingStore, owner, make_draft, clock):
        listing = store.create(owner, make_draft(images=["a.jpg"], price=20, category="shirt"))
        assert listing.is_sold is False

        sold = store.mark_sold(listing.listing_id, owner.id)
        assert sold.is_sold is True
        assert sold.sold_at is not None

        with pytest.raises(InvalidStateError):
            store.delete(listing.listing_id, owner.id)

        clock.advance(hours=24)
        assert store.expire_due() == [listing.listing_id]
        with pytest.raises(NotFoundError):
            store.get(listing.listing_id)

    def test_stranger_cannot_mark_sold(self, store: ListingStore, owner, other_user, draft):
        listing = store.create(owner, draft)
        with pytest.raises(AuthorizationError):
            store.mark_sold(listing.listing_id, other_user.id)
        assert store.get(listing.listing_id).is_sold is False

    def test_browse_hides_sold_hoodie(self, store: ListingStore, owner, make_draft):
        sold = store.create(owner, make_draft(title="Hoodie", category="hoodie"))
        unsold = store.create(owner, make_draft(title="Hoodie", category="hoodie"))
        store.mark_sold(sold.listing_id, owner.id)

        found = store.list_available(ListingFilter(search_text="hoodie", category="all"))
        assert [l.listing_id for l in found] == [unsold.listing_id]

    def test_signup_post_and_profile_sync(self, store: ListingStore, make_draft):
        identity = IdentityProvider(email_domain="ucsc.edu", default_avatar="slug.jpg")
        seller = identity.signup("emma_style", "emma@ucsc.edu", "hunter2")
        listing = store.create(identity.current, make_draft(title="High-waisted Jeans"))
        assert listing.owner_id == seller.id
        assert listing.owner_avatar == "slug.jpg"

        updated = identity.update_profile(username="emma_sc", profile_pic="emma.jpg")
        store.sync_owner_profile(updated)
        assert store.get(listing.listing_id).owner_display_name == "emma_sc"

        identity.logout()
        with pytest.raises(AuthorizationError):
            store.create(identity.current, make_draft())


class TestRestartRecovery:
    def test_pending_expiry_survives_restart(self, db_path: Path, clock, owner, draft):
        first = ListingStore(ListingRepository(db_path), clock=clock)
        listing = first.create(owner, draft)
        first.mark_sold(listing.listing_id, owner.id)
        sold_at = clock.now
        first.close()

        clock.advance(hours=30)
        restarted = ListingStore(ListingRepository(db_path), clock=clock)
        assert restarted.expires_at(listing.listing_id) == sold_at + timedelta(hours=24)
        with pytest.raises(NotFoundError):
            restarted.get(listing.listing_id)

        assert restarted.expire_due() == [listing.listing_id]
        assert ListingRepository(db_path).get(listing.listing_id) is None

    def test_restart_preserves_collection_order(self, db_path: Path, clock, owner, make_draft):
        first = ListingStore(ListingRepository(db_path), clock=clock)
        for title in ("one", "two", "three"):
            first.create(owner, make_draft(title=title))

        restarted = ListingStore(ListingRepository(db_path), clock=clock)
        assert [l.title for l in restarted.list_by_owner(owner.id)] == ["three", "two", "one"]

    def test_delete_before_deadline_cancels_expiry(self, db_path: Path, clock, owner, draft):
        store = ListingStore(ListingRepository(db_path), clock=clock)
        keep = store.create(owner, draft)
        gone = store.create(owner, draft)
        store.mark_sold(keep.listing_id, owner.id)
        store.delete(gone.listing_id, owner.id)

        restarted = ListingStore(ListingRepository(db_path), clock=clock)
        assert set(restarted.scheduler.pending()) == {keep.listing_id}


class TestSharedDatabase:
    """Several store instances (separate CLI invocations) on one database."""

    def test_sweeper_expires_listing_sold_by_another_store(self, db_path: Path, clock, owner, draft):
        sweeper = ListingStore(ListingRepository(db_path), clock=clock)
        writer = ListingStore(ListingRepository(db_path), clock=clock)
        listing = writer.create(owner, draft)
        writer.mark_sold(listing.listing_id, owner.id)

        clock.advance(hours=48)
        assert sweeper.expire_due() == [listing.listing_id]
        assert ListingRepository(db_path).get(listing.listing_id) is None
        assert writer.scheduler.pending() == {}

    def test_deadline_visible_to_other_store(self, db_path: Path, clock, owner, draft):
        reader = ListingStore(ListingRepository(db_path), clock=clock)
        writer = ListingStore(ListingRepository(db_path), clock=clock)
        listing = writer.create(owner, draft)
        writer.mark_sold(listing.listing_id, owner.id)

        assert reader.expires_at(listing.listing_id) == clock.now + timedelta(hours=24)

    def test_both_stores_sweeping_removes_once(self, db_path: Path, clock, owner, draft):
        first = ListingStore(ListingRepository(db_path), clock=clock)
        second = ListingStore(ListingRepository(db_path), clock=clock)
        listing = first.create(owner, draft)
        first.mark_sold(listing.listing_id, owner.id)

        clock.advance(hours=25)
        assert first.expire_due() == [listing.listing_id]
        assert second.expire_due() == []
        transitions = [e.transition for e in first.history(listing.listing_id)]
        assert transitions.count("sold->deleted") == 1
