"""
api/routes/v1/auth.py -- Authentication endpoints.

Routes:
  POST /auth/login   -- email/password login; returns user + bearer token
  POST /auth/logout  -- acknowledges logout (tokens are stateless; nothing to revoke)
  GET  /auth/me      -- current user info (requires auth)

Security:
  POST /login is rate-limited per client IP (Settings.login_rate_limit).
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Unknown email and wrong password return the same 401 and message so the
  endpoint cannot be used to enumerate accounts.
  Cache-Control: no-store on login responses (they carry a credential).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse, MessageResponse, UserOut
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, issue_token
from core.config import get_settings
from core.errors import Unauthorized, ValidationError

logger = logging.getLogger("storefront.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /auth/login:   public -- login endpoint must be unauthenticated
# - POST /auth/logout:  public -- there is no server-side session to end
# - GET  /auth/me:      requires auth (get_current_user)
router = APIRouter()


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=LoginResponse, summary="Iniciar sesión")
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a bearer token.

    The token has the form token_<userId>_<issuedAtMillis> and is valid for
    Settings.token_max_age_seconds.
    """
    if not body.email or not body.password:
        raise ValidationError("Email y contraseña son requeridos", code="missing_credentials")

    client_ip = request.client.host if request.client else "unknown"
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.warning("Failed login attempt email=%s ip=%s", body.email, client_ip)
        raise Unauthorized("Credenciales inválidas", code="bad_credentials")

    token = issue_token(user.id)
    logger.info("Successful login user_id=%s email=%s ip=%s", user.id, user.email, client_ip)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            message="Login exitoso",
            user=UserOut.from_user(user),
            token=token,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse, summary="Cerrar sesión")
def logout() -> MessageResponse:
    """Acknowledge a logout. Clients discard the token; it expires on its own."""
    return MessageResponse(message="Logout exitoso")


@router.get("/auth/me", response_model=MeResponse, summary="Usuario actual")
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(message="Usuario encontrado", user=UserOut.from_user(current_user))
