"""
tests/test_api_users.py -- Integration tests for the /users routes.

The module-scoped client is seeded with the two demo users. Tests that
mutate state create their own users so the demo account behind the token
stays intact.
"""

from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create(client: TestClient, token: str, name: str, email: str, password: str = "pw") -> dict:
    resp = client.post("/users", json={"name": name, "email": email, "password": password}, headers=_auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestUsersAuthRequired:
    def test_list_requires_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        assert client.get("/users").status_code == 401

    def test_create_requires_token_before_body_checks(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/users", json={})
        assert resp.status_code == 401

    def test_invalid_id_still_requires_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        assert client.delete("/users/abc").status_code == 401


class TestListAndGet:
    def test_list_users(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        resp = client.get("/users", headers=_auth(token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Lista de usuarios solicitada por: Juan Pérez (juan@example.com)"
        assert body["count"] == len(body["data"])
        assert body["requested_by"]["id"] == uid
        ids = [u["id"] for u in body["data"]]
        assert ids == sorted(ids)
        assert all("password" not in u for u in body["data"])

    def test_get_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        resp = client.get(f"/users/{uid}", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "juan@example.com"

    def test_get_missing_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.get("/users/99999", headers=_auth(token))
        assert resp.status_code == 404
        assert resp.json()["message"] == "Usuario no encontrado"

    def test_get_non_numeric_id(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.get("/users/abc", headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "ID debe ser un número válido"

    @pytest.mark.parametrize("raw_id", [str(2**63), "9" * 30])
    def test_get_out_of_range_id(self, api_client: tuple[TestClient, str, int], raw_id: str) -> None:
        client, token, _uid = api_client
        resp = client.get(f"/users/{raw_id}", headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "ID debe ser un número válido"


class TestCreate:
    def test_create_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post(
            "/users",
            json={"name": "Ana López", "email": "ana@example.com", "password": "secreto"},
            headers=_auth(token),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Usuario creado exitosamente"
        assert isinstance(body["data"]["id"], int)
        assert "password" not in body["data"]

    def test_create_missing_fields(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post("/users", json={"name": "Sin Email"}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "Nombre, email y contraseña son requeridos"

    def test_create_blank_name(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        body = {"name": "   ", "email": "b@example.com", "password": "x"}
        resp = client.post("/users", json=body, headers=_auth(token))
        assert resp.status_code == 400

    def test_create_invalid_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post("/users", json={"name": "X", "email": "not-an-email", "password": "x"}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_email"

    def test_create_duplicate_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.post(
            "/users",
            json={"name": "Otro Juan", "email": "juan@example.com", "password": "x"},
            headers=_auth(token),
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "El email ya está en uso"


class TestUpdate:
    def test_update_name_only(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Pedro", "pedro@example.com")
        resp = client.put(f"/users/{user['id']}", json={"name": "Pedro Gómez"}, headers=_auth(token))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert resp.json()["message"] == "Usuario actualizado exitosamente"
        assert data["name"] == "Pedro Gómez"
        assert data["email"] == "pedro@example.com"

    def test_update_empty_body_is_400_and_no_change(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Lucía", "lucia@example.com")
        resp = client.put(f"/users/{user['id']}", json={}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["message"] == "No hay campos para actualizar"
        after = client.get(f"/users/{user['id']}", headers=_auth(token)).json()["data"]
        assert after == user

    def test_update_null_field_is_400(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Rosa", "rosa@example.com")
        resp = client.put(f"/users/{user['id']}", json={"name": None}, headers=_auth(token))
        assert resp.status_code == 400

    def test_update_missing_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.put("/users/99999", json={"name": "Nadie"}, headers=_auth(token))
        assert resp.status_code == 404

    def test_update_email_taken_by_other_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Carlos", "carlos@example.com")
        resp = client.put(f"/users/{user['id']}", json={"email": "maria@example.com"}, headers=_auth(token))
        assert resp.status_code == 409

    def test_update_email_to_own_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Elena", "elena@example.com")
        resp = client.put(f"/users/{user['id']}", json={"email": "elena@example.com"}, headers=_auth(token))
        assert resp.status_code == 200

    def test_update_password_changes_login(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Diego", "diego@example.com", password="viejo")
        resp = client.put(f"/users/{user['id']}", json={"password": "nuevo"}, headers=_auth(token))
        assert resp.status_code == 200
        assert "password" not in resp.json()["data"]
        old = client.post("/auth/login", json={"email": "diego@example.com", "password": "viejo"})
        new = client.post("/auth/login", json={"email": "diego@example.com", "password": "nuevo"})
        assert old.status_code == 401
        assert new.status_code == 200


class TestDelete:
    def test_delete_returns_snapshot(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        user = _create(client, token, "Temporal", "temporal@example.com")
        resp = client.delete(f"/users/{user['id']}", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Usuario eliminado exitosamente"
        assert resp.json()["data"] == user
        assert client.get(f"/users/{user['id']}", headers=_auth(token)).status_code == 404

    def test_delete_missing_user(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.delete("/users/99999", headers=_auth(token))
        assert resp.status_code == 404

    def test_delete_non_numeric_id(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.delete("/users/abc", headers=_auth(token))
        assert resp.status_code == 400

    def test_update_and_delete_out_of_range_id(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        huge = "9" * 30
        assert client.put(f"/users/{huge}", json={"name": "X"}, headers=_auth(token)).status_code == 400
        assert client.delete(f"/users/{huge}", headers=_auth(token)).status_code == 400


def test_create_login_list_scenario(api_client: tuple[TestClient, str, int]) -> None:
    """Create a user, log in as them, and see them in the listing."""
    client, token, _uid = api_client
    created = client.post("/users", json={"name": "A", "email": "a@x.com", "password": "p"}, headers=_auth(token))
    assert created.status_code == 201
    new_id = created.json()["data"]["id"]
    assert isinstance(new_id, int)

    login = client.post("/auth/login", json={"email": "a@x.com", "password": "p"})
    assert login.status_code == 200
    new_token = login.json()["token"]
    assert re.fullmatch(rf"token_{new_id}_\d+", new_token)

    listing = client.get("/users", headers=_auth(new_token))
    assert listing.status_code == 200
    users = listing.json()["data"]
    assert new_id in [u["id"] for u in users]
    assert all("password" not in u for u in users)

    assert client.delete("/users/abc", headers=_auth(new_token)).status_code == 400
