"""Identity model supplied by the session collaborator."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# Residential colleges accepted on a profile.
COLLEGES: tuple[str, ...] = (
    "Cowell College",
    "Stevenson College",
    "Crown College",
    "Merrill College",
    "Porter College",
    "Kresge College",
    "Oakes College",
    "Rachel Carson College",
    "College Nine",
    "College Ten",
)


class Identity(BaseModel):
    """The authenticated user behind a session.

    The listing store reads only ``id``, ``username`` and ``profile_pic``;
    every authorization check compares ``id`` alone.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    username: str
    email: Optional[EmailStr] = None
    profile_pic: str = ""
    full_name: str = ""
    college: str = ""
    student_id: str = ""
