"""
auth/models.py -- Domain dataclass for the identity store.

Pattern: Data class (pure data container, zero logic). Mirrors books/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or books/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """Represents an authenticated identity in BookNest.

    username is the identity name: the email address given at registration.
    It is the ownership key stamped on every book the user creates.
    """

    username: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
