"""
auth/tokens.py -- Bearer credential issuance/validation and password hashing.

Credential format:
  token_<userId>_<issuedAtEpochMillis>, sent as
  "Authorization: Bearer token_<userId>_<issuedAtEpochMillis>".

  The credential is NOT signed. Anyone who knows a user id can mint a token
  that passes validation until it is TOKEN_MAX_AGE_SECONDS old. The format is
  kept for compatibility with existing clients; there is no server-side
  session and no revocation.

  parse_authorization() raises Unauthorized with a distinct message per
  failure so clients can tell "log in again" (expired) from "fix your client"
  (malformed). The route layer never sees a partially-parsed token.

Passwords: bcrypt, cost factor from Settings.bcrypt_rounds. _DUMMY_HASH lets
  authenticate_user() run one bcrypt check even for unknown emails, so
  response time does not reveal whether an account exists.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from typing import TYPE_CHECKING

import bcrypt

from auth.models import TokenClaims
from core.config import get_settings
from core.database import MAX_ROW_ID, MIN_ROW_ID
from core.errors import Unauthorized

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("storefront.auth")

_settings = get_settings()

_BEARER_PREFIX = "Bearer "
_TOKEN_PREFIX = "token_"
_INT_RE = re.compile(r"-?[0-9]+")
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes and recent releases reject longer
    input, so the encoded password is cut to 72 bytes here and in
    verify_password().
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash (e.g. corrupted row).
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


_DUMMY_HASH: str = hash_password("storefront_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair. Returns the User (without hash) or None.

    Unknown email and wrong password are indistinguishable to the caller and
    cost the same bcrypt work.
    """
    user = store.get_by_email(email)
    if user is None or user.password_hash is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return replace(user, password_hash=None)


# ---------------------------------------------------------------------------
# Bearer credential
# ---------------------------------------------------------------------------


def now_ms() -> int:
    return int(time.time() * 1000)


def issue_token(user_id: int, issued_at_ms: int | None = None) -> str:
    """Return the bearer credential for user_id, stamped with the current time."""
    issued = issued_at_ms if issued_at_ms is not None else now_ms()
    return f"{_TOKEN_PREFIX}{user_id}_{issued}"


def parse_authorization(
    header: str | None,
    current_ms: int | None = None,
    max_age_ms: int | None = None,
) -> TokenClaims:
    """Validate an Authorization header value and return its claims.

    Checks, in order: header present, literal "Bearer token_" prefix, exactly
    three "_"-separated segments starting with "token", integer id and
    timestamp, and age not above max_age_ms. Does not check that the user
    exists -- that needs the store (see auth.dependencies).

    Raises Unauthorized on the first failed check.
    """
    if not header:
        raise Unauthorized(
            "Token de autorización requerido. Debes estar logueado para acceder a este recurso.",
            code="missing_token",
        )
    if not header.startswith(_BEARER_PREFIX + _TOKEN_PREFIX):
        raise Unauthorized(
            "Formato de token inválido. Usa: Bearer token_usuario_timestamp",
            code="invalid_token_format",
        )

    parts = header[len(_BEARER_PREFIX) :].split("_")
    if len(parts) != 3 or parts[0] != "token":
        raise Unauthorized("Token malformado", code="malformed_token")

    raw_id, raw_issued = parts[1], parts[2]
    if not _INT_RE.fullmatch(raw_id) or not _INT_RE.fullmatch(raw_issued):
        raise Unauthorized("Token inválido", code="invalid_token")
    claims = TokenClaims(subject_id=int(raw_id), issued_at_ms=int(raw_issued))
    if not MIN_ROW_ID <= claims.subject_id <= MAX_ROW_ID:
        raise Unauthorized("Token inválido", code="invalid_token")

    now = current_ms if current_ms is not None else now_ms()
    limit = max_age_ms if max_age_ms is not None else _settings.token_max_age_ms
    if now - claims.issued_at_ms > limit:
        raise Unauthorized(
            "Token expirado. Por favor, inicia sesión nuevamente.",
            code="token_expired",
        )
    return claims
