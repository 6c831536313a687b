"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two modes over the same parser (auth.tokens.parse_authorization):

  get_current_user()     -- required mode. Raises Unauthorized (401) on any
                            failure: missing header, bad format, expired, or
                            unknown user id.
  try_get_current_user() -- optional mode. Any failure yields None and the
                            request continues unauthenticated.

On success the User is also stored on request.state.user so the request
logging middleware can attribute the request without re-parsing the header.

Layer rule: no imports from api/ or catalog/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import parse_authorization
from core.config import get_settings
from core.errors import Unauthorized


def get_current_user(request: Request) -> User:
    """Require authentication. Raises Unauthorized (HTTP 401) if it fails.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    claims = parse_authorization(
        request.headers.get("Authorization"),
        max_age_ms=get_settings().token_max_age_ms,
    )
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.subject_id)
    if user is None:
        raise Unauthorized("Usuario no encontrado. Token inválido.", code="unknown_user")
    request.state.user = user
    return user


def try_get_current_user(request: Request) -> User | None:
    """Attempt authentication. Returns the User on success, None on any failure.

    Never raises Unauthorized -- callers that need a hard 401 should use
    get_current_user().
    """
    try:
        return get_current_user(request)
    except Unauthorized:
        return None
