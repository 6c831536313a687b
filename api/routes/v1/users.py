"""
api/routes/v1/users.py -- User management routes.

Routes:
  GET    /users        -- list users (ordered by id)
  GET    /users/{id}   -- single user
  POST   /users        -- create user
  PUT    /users/{id}   -- partial update (any non-empty subset of name/email/password)
  DELETE /users/{id}   -- delete; returns the removed user

Every route requires a valid bearer token (router-level dependency).
Responses never include the password or its hash.

Update order: validate the field set -> user exists (404) -> email not taken
by another user (409) -> write. The UNIQUE constraint still backs the 409 if
two updates race past the pre-check.
"""

import logging
import re

from fastapi import APIRouter, Depends, Request

from api.models import EMAIL_PATTERN, UserCreate, UserListResponse, UserOut, UserResponse, UserUpdate
from api.params import parse_id
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from core.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger("storefront.api.users")

router = APIRouter(dependencies=[Depends(get_current_user)])

_EMAIL_RE = re.compile(EMAIL_PATTERN)


def _check_email(email: str) -> None:
    if not _EMAIL_RE.match(email):
        raise ValidationError("El email no tiene un formato válido", code="invalid_email")


# ---------------------------------------------------------------------------
# GET /users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=UserListResponse, summary="Listar usuarios")
def list_users(request: Request, current_user: User = Depends(get_current_user)) -> UserListResponse:
    user_store: UserStore = request.app.state.user_store
    users = user_store.list_users()
    return UserListResponse(
        message=f"Lista de usuarios solicitada por: {current_user.name} ({current_user.email})",
        data=[UserOut.from_user(u) for u in users],
        count=len(users),
        requested_by=UserOut.from_user(current_user),
    )


# ---------------------------------------------------------------------------
# GET /users/{user_id}
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}", response_model=UserResponse, summary="Obtener usuario")
def get_user(request: Request, user_id: str) -> UserResponse:
    uid = parse_id(user_id)
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(uid)
    if user is None:
        raise NotFoundError("Usuario no encontrado", code="user_not_found")
    return UserResponse(message="Usuario encontrado", data=UserOut.from_user(user))


# ---------------------------------------------------------------------------
# POST /users
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201, summary="Crear usuario")
def create_user(request: Request, body: UserCreate, current_user: User = Depends(get_current_user)) -> UserResponse:
    """Register a new account. name, email and password are all required."""
    if not body.name or not body.email or not body.password:
        raise ValidationError("Nombre, email y contraseña son requeridos", code="missing_fields")
    _check_email(body.email)

    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_email(body.email) is not None:
        raise ConflictError("El email ya está en uso", code="email_conflict")

    created = user_store.create_user(body.name, body.email, hash_password(body.password))
    logger.info("User created user_id=%s email=%s by user_id=%s", created.id, created.email, current_user.id)
    return UserResponse(message="Usuario creado exitosamente", data=UserOut.from_user(created))


# ---------------------------------------------------------------------------
# PUT /users/{user_id}
# ---------------------------------------------------------------------------


@router.put("/users/{user_id}", response_model=UserResponse, summary="Actualizar usuario")
def update_user(request: Request, user_id: str, body: UserUpdate) -> UserResponse:
    """Update any subset of name, email and password.

    Fields absent from the body are left unchanged. A present field may not
    be null or empty.
    """
    uid = parse_id(user_id)
    supplied = body.model_dump(exclude_unset=True)
    if not supplied:
        raise ValidationError("No hay campos para actualizar", code="no_changes")
    for field, value in supplied.items():
        if not value:
            raise ValidationError(f"El campo {field} no puede estar vacío", code="empty_field")

    user_store: UserStore = request.app.state.user_store
    existing = user_store.get_by_id(uid)
    if existing is None:
        raise NotFoundError("Usuario no encontrado", code="user_not_found")

    fields: dict = {}
    if "name" in supplied:
        fields["name"] = supplied["name"]
    if "email" in supplied:
        _check_email(supplied["email"])
        if supplied["email"] != existing.email:
            other = user_store.get_by_email(supplied["email"])
            if other is not None and other.id != uid:
                raise ConflictError("El email ya está en uso", code="email_conflict")
        fields["email"] = supplied["email"]
    if "password" in supplied:
        fields["password_hash"] = hash_password(supplied["password"])

    updated = user_store.update_user(uid, fields)
    return UserResponse(message="Usuario actualizado exitosamente", data=UserOut.from_user(updated))


# ---------------------------------------------------------------------------
# DELETE /users/{user_id}
# ---------------------------------------------------------------------------


@router.delete("/users/{user_id}", response_model=UserResponse, summary="Eliminar usuario")
def delete_user(request: Request, user_id: str, current_user: User = Depends(get_current_user)) -> UserResponse:
    """Delete a user and return the last snapshot of the removed record."""
    uid = parse_id(user_id)
    user_store: UserStore = request.app.state.user_store
    deleted = user_store.delete_user(uid)
    logger.info("User deleted user_id=%s by user_id=%s", deleted.id, current_user.id)
    return UserResponse(message="Usuario eliminado exitosamente", data=UserOut.from_user(deleted))
