"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    password_hash is only populated by UserStore.get_by_email(), the single
    lookup used for credential checks. Every other read leaves it None so a
    hash can never leak into a response by accident.
    """

    name: str
    email: str
    id: int | None = None
    password_hash: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class TokenClaims:
    """Decoded form of a bearer credential: token_<subject_id>_<issued_at_ms>."""

    subject_id: int
    issued_at_ms: int
