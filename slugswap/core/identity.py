"""Identity provider — institutional-email signup, login, and profile edits.

Stands in for the hosted authentication service.  Only users whose email
belongs to the configured institutional domain may sign up or log in.
Accounts live in memory for the life of the provider; the listing store
only ever sees the resulting ``Identity``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import pydantic
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, EmailStr, TypeAdapter

from slugswap.core.errors import AuthorizationError, ValidationError
from slugswap.models.identity import COLLEGES, Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_EMAIL = TypeAdapter(EmailStr)
_EDITABLE_FIELDS = frozenset(
    {"username", "email", "profile_pic", "full_name", "college", "student_id"}
)


class _Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: Identity
    password_hash: str


def parse_email(email: str) -> str | None:
    """Return the normalized form of *email*, or ``None`` if it is malformed."""
    try:
        return _EMAIL.validate_python(email.strip())
    except pydantic.ValidationError:
        return None


def is_institutional_email(email: str, domain: str) -> bool:
    """Return True if *email* is a well-formed address at *domain*.

    Examples
    --------
    >>> is_institutional_email("sammy@UCSC.edu", "ucsc.edu")
    True
    >>> is_institutional_email("sammy@ucsc.edu.evil.com", "ucsc.edu")
    False
    """
    address = parse_email(email)
    if address is None:
        return False
    return address.rpartition("@")[2].lower() == domain.lower()


class IdentityProvider:
    """Session collaborator gated on an institutional email domain.

    Parameters
    ----------
    email_domain:
        The only domain accepted for signup, login and email changes.
    default_avatar:
        Profile picture assigned when a user signs up without one.
    """

    def __init__(self, email_domain: str = "ucsc.edu", default_avatar: str = "") -> None:
        self._email_domain = email_domain
        self._default_avatar = default_avatar
        self._accounts: dict[str, _Account] = {}  # keyed by lowercase email
        self._current: Identity | None = None

    @property
    def current(self) -> Identity | None:
        """The identity of the logged-in user, or ``None``."""
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def signup(
        self,
        username: str,
        email: str,
        password: str,
        *,
        profile_pic: str = "",
    ) -> Identity:
        """Create an account and log it in."""
        address = self._require_domain(email)
        username = username.strip()
        if not username:
            raise ValidationError("Username is required.", {"username": "required"})
        if not password:
            raise ValidationError("Password is required.", {"password": "required"})
        key = address.lower()
        if key in self._accounts:
            raise ValidationError(
                "An account with that email already exists.",
                {"email": "already registered"},
            )
        if self._username_taken(username):
            raise ValidationError("That username is taken.", {"username": "already taken"})

        identity = Identity(
            id=uuid.uuid4().hex,
            username=username,
            email=address,
            profile_pic=profile_pic or self._default_avatar,
        )
        self._accounts[key] = _Account(
            identity=identity, password_hash=pwd_context.hash(password)
        )
        self._current = identity
        logger.info("Signed up %s (%s).", identity.username, identity.id)
        return identity

    def login(self, email: str, password: str) -> Identity:
        """Log in an existing account."""
        address = self._require_domain(email)
        account = self._accounts.get(address.lower())
        if account is None or not pwd_context.verify(password, account.password_hash):
            logger.warning("Failed login for %s.", address)
            raise AuthorizationError("Invalid credentials.")
        self._current = account.identity
        logger.info("Logged in %s.", account.identity.username)
        return account.identity

    def logout(self) -> None:
        self._current = None

    def request_password_reset(self, email: str) -> bool:
        """Ask for a password-reset link for *email*.

        The address must be on the institutional domain.  Returns whether
        an account exists for it; delivering the link is the hosted
        service's job.
        """
        address = self._require_domain(email)
        if address.lower() not in self._accounts:
            logger.info("Password reset requested for unknown address %s.", address)
            return False
        logger.info("Password reset link issued for %s.", address)
        return True

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def update_profile(self, **changes: Any) -> Identity:
        """Apply profile edits for the logged-in user.

        Accepts ``username``, ``email``, ``profile_pic``, ``full_name``,
        ``college`` and ``student_id``.  The new email must still be on the
        institutional domain and ``college`` must be a known college.  Pass
        the returned identity to ``ListingStore.sync_owner_profile`` to
        refresh listing snapshots.
        """
        if self._current is None:
            raise AuthorizationError("You must be logged in to edit your profile.")

        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(
                "Unknown profile field(s).",
                {name: "not editable" for name in sorted(unknown)},
            )

        old_key = self._current.email.lower()
        account = self._accounts[old_key]

        if "email" in changes:
            changes["email"] = self._require_domain(changes["email"])
            new_key = changes["email"].lower()
            if new_key != old_key and new_key in self._accounts:
                raise ValidationError(
                    "An account with that email already exists.",
                    {"email": "already registered"},
                )
        else:
            new_key = old_key

        if "username" in changes:
            changes["username"] = changes["username"].strip()
            if not changes["username"]:
                raise ValidationError("Username is required.", {"username": "required"})
            if changes["username"] != self._current.username and self._username_taken(
                changes["username"]
            ):
                raise ValidationError(
                    "That username is taken.", {"username": "already taken"}
                )

        college = changes.get("college")
        if college and college not in COLLEGES:
            raise ValidationError("Unknown college.", {"college": "not a known college"})

        identity = self._current.model_copy(update=changes)
        del self._accounts[old_key]
        self._accounts[new_key] = account.model_copy(update={"identity": identity})
        self._current = identity
        logger.info("Updated profile of %s.", identity.id)
        return identity

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_domain(self, email: str) -> str:
        """Return the normalized *email*, or raise if it is off-domain or malformed."""
        if not is_institutional_email(email, self._email_domain):
            raise ValidationError(
                f"Please use your institutional email address (@{self._email_domain}).",
                {"email": f"must end with @{self._email_domain}"},
            )
        return parse_email(email)

    def _username_taken(self, username: str) -> bool:
        return any(
            acct.identity.username.lower() == username.lower()
            for acct in self._accounts.values()
        )
