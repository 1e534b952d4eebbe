"""Listing models — closed enumerations, drafts, and the durable Listing record."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_LISTING_IMAGES = 4
ALL_CATEGORIES = "all"


class Category(str, Enum):
    """Clothing categories a listing may be filed under."""

    HOODIE = "hoodie"
    SHIRT = "shirt"
    PANTS = "pants"
    DRESS = "dress"
    JACKET = "jacket"
    SHOES = "shoes"
    ACCESSORIES = "accessories"


class Size(str, Enum):
    XS = "XS"
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"
    XXL = "XXL"


class Condition(str, Enum):
    NEW = "new"
    GENTLY_USED = "gently-used"
    WORN = "worn"


class ListingState(str, Enum):
    """Lifecycle state of a single listing."""

    UNSOLD = "unsold"
    SOLD = "sold"
    DELETED = "deleted"


# Valid lifecycle transitions, enforced by ListingStore.
# SOLD -> DELETED is reachable only through the expiry path.
VALID_TRANSITIONS: dict[ListingState, set[ListingState]] = {
    ListingState.UNSOLD: {ListingState.SOLD, ListingState.DELETED},
    ListingState.SOLD: {ListingState.DELETED},
    ListingState.DELETED: set(),  # terminal
}


def _check_images(images: list[str]) -> list[str]:
    cleaned = [ref.strip() for ref in images]
    if any(not ref for ref in cleaned):
        raise ValueError("image references must be non-empty")
    return cleaned


class ListingDraft(BaseModel):
    """Seller-supplied fields for a new listing, validated before creation.

    Examples
    --------
    >>> draft = ListingDraft(
    ...     title="Slug Life Hoodie",
    ...     description="Cozy hoodie for foggy mornings",
    ...     price=35,
    ...     category="hoodie",
    ...     size="M",
    ...     condition="gently-used",
    ...     images=["hoodie.jpg"],
    ... )
    >>> draft.category
    <Category.HOODIE: 'hoodie'>
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: str
    description: str = ""
    price: float = Field(gt=0)
    category: Category
    size: Size
    condition: Condition
    images: list[str] = Field(min_length=1, max_length=MAX_LISTING_IMAGES)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("price")
    @classmethod
    def _price_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("price must be a finite amount")
        return value

    @field_validator("images")
    @classmethod
    def _images_not_blank(cls, value: list[str]) -> list[str]:
        return _check_images(value)


class Listing(BaseModel):
    """A single marketplace item posting.

    Immutable: every lifecycle change produces a new instance via
    ``model_copy``.  ``sold_at`` is set exactly when ``is_sold`` is true.
    """

    model_config = ConfigDict(frozen=True)

    listing_id: str = Field(default_factory=lambda: f"lst-{uuid.uuid4().hex[:12]}")
    title: str
    description: str = ""
    price: float = Field(gt=0)
    category: Category
    size: Size
    condition: Condition
    images: list[str] = Field(min_length=1, max_length=MAX_LISTING_IMAGES)
    owner_id: str = Field(min_length=1)
    owner_display_name: str = ""
    owner_avatar: str = ""
    is_sold: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sold_at: datetime | None = None

    @field_validator("images")
    @classmethod
    def _images_not_blank(cls, value: list[str]) -> list[str]:
        return _check_images(value)

    @model_validator(mode="after")
    def _sold_at_matches_flag(self) -> Listing:
        if self.is_sold and self.sold_at is None:
            raise ValueError("a sold listing must carry sold_at")
        if not self.is_sold and self.sold_at is not None:
            raise ValueError("sold_at is only set on sold listings")
        return self

    @property
    def state(self) -> ListingState:
        return ListingState.SOLD if self.is_sold else ListingState.UNSOLD

    def expires_at(self, retention: timedelta) -> datetime | None:
        """Return when the expiry process removes this listing, or ``None`` if unsold."""
        if self.sold_at is None:
            return None
        return self.sold_at + retention


class ListingFilter(BaseModel):
    """Browse filter: free-text search plus a category (or ``"all"``)."""

    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    category: Union[Category, Literal["all"]] = ALL_CATEGORIES

    def matches(self, listing: Listing) -> bool:
        """Return True if *listing* satisfies the text and category criteria.

        Sold status is not considered here; ``ListingStore.list_available``
        excludes sold listings separately.
        """
        q = self.search_text.lower()
        if q and q not in listing.title.lower() and q not in listing.description.lower():
            return False
        if self.category != ALL_CATEGORIES and listing.category != self.category:
            return False
        return True
