"""SlugSwap: student-to-student clothing marketplace core.

The listing lifecycle with its ownership and expiry rules:
  - Listings created by an authenticated owner, newest first
  - Mark-sold is one-way; sold listings are frozen
  - Sold listings expire automatically 24 hours after sale
  - Expiry deadlines are durable and recomputed on restart
  - Institutional-email identity gate
"""

__version__ = "0.1.0"
__description__ = "Student-to-student clothing marketplace: listing lifecycle core"

from slugswap.core.errors import (
    AuthorizationError,
    InvalidStateError,
    MarketplaceError,
    NotFoundError,
    ValidationError,
)
from slugswap.core.identity import IdentityProvider
from slugswap.core.listing_repository import ListingRepository
from slugswap.core.listing_store import ListingStore

__all__ = [
    "ListingStore",
    "ListingRepository",
    "IdentityProvider",
    "MarketplaceError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "InvalidStateError",
    "__version__",
]
