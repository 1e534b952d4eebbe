"""SlugSwap data models — all Pydantic v2, all frozen (immutable)."""

from slugswap.models.events import ListingEvent
from slugswap.models.identity import COLLEGES, Identity
from slugswap.models.listings import (
    ALL_CATEGORIES,
    MAX_LISTING_IMAGES,
    VALID_TRANSITIONS,
    Category,
    Condition,
    Listing,
    ListingDraft,
    ListingFilter,
    ListingState,
    Size,
)

__all__ = [
    # listings
    "Category",
    "Size",
    "Condition",
    "ListingState",
    "VALID_TRANSITIONS",
    "MAX_LISTING_IMAGES",
    "ALL_CATEGORIES",
    "ListingDraft",
    "Listing",
    "ListingFilter",
    # events
    "ListingEvent",
    # identity
    "Identity",
    "COLLEGES",
]
