"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store maps rows to
User; the workflow maps User to one of the public shapes before anything
leaves the auth layer. Only User carries password_hash.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account as stored in the users table.

    email is always the normalized form (trimmed, lower-cased).
    created_at / updated_at are SQLite datetime('now') strings in UTC.
    """

    id: int
    email: str
    password_hash: str
    created_at: str
    updated_at: str


@dataclass
class NewUser:
    """Returned by registration."""

    id: int
    email: str
    created_at: str


@dataclass
class PublicUser:
    """Returned by login."""

    id: int
    email: str


@dataclass
class UserProfile:
    """Returned by the current-user profile lookup."""

    id: int
    email: str
    created_at: str
    updated_at: str
