"""Error taxonomy for the listing lifecycle.

Every failure the store reports is one of four typed errors.  All share the
``MarketplaceError`` base so presentation code can catch them in one place.
"""

from __future__ import annotations

from typing import Any


class MarketplaceError(RuntimeError):
    """Base class for all listing lifecycle failures."""


class ValidationError(MarketplaceError):
    """Raised when input is malformed.

    ``field_errors`` maps each offending field name to a human-readable
    reason, so callers can surface the rejection next to the input.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors: dict[str, str] = dict(field_errors or {})

    @classmethod
    def from_pydantic(cls, exc: Any, subject: str = "input") -> ValidationError:
        """Translate a ``pydantic.ValidationError`` into a field-level rejection."""
        field_errors: dict[str, str] = {}
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            field_errors.setdefault(loc, err.get("msg", "invalid value"))
        fields = ", ".join(sorted(field_errors))
        return cls(f"Invalid {subject}: {fields}", field_errors)


class AuthorizationError(MarketplaceError):
    """Raised on a missing identity or an ownership mismatch."""


class NotFoundError(MarketplaceError):
    """Raised when a listing id is unknown (never issued, or already deleted)."""


class InvalidStateError(MarketplaceError):
    """Raised when a requested lifecycle transition is not allowed."""
