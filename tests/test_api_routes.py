"""
tests/test_api_routes.py -- Integration tests for the HTTP surface.

These tests exercise the full stack: FastAPI routing -> authorization gate
dependency -> AccountService -> UserStore -> response model serialization.

Coverage:
  - End-to-end: register 201, login 200, /users/me 200, deactivate 200, login 403
  - Register failures: 400 invalid input, 409 duplicate email
  - Login failures: 401 bad credentials, 400 missing fields
  - Refresh: 200 with refresh token, 401 with access token
  - Protected routes: 401 without/with malformed/with refresh token
  - /users pagination and soft-delete exclusion
  - Profile update and password reset
  - Error envelope shape and headers
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import bearer, register_and_login

PROTECTED = [
    ("GET", "/users"),
    ("GET", "/users/me"),
    ("PATCH", "/users/me/update"),
    ("DELETE", "/users/me/deactivate"),
    ("POST", "/users/me/reset-password"),
]


class TestEndToEnd:
    def test_register_login_me_deactivate_login(self, client: TestClient) -> None:
        body = {"name": "Test User", "email": "t@example.com", "password": "securepw"}
        resp = client.post("/register", json=body)
        assert resp.status_code == 201, resp.text
        created = resp.json()
        assert created == {"id": created["id"], "name": "Test User", "email": "t@example.com"}

        resp = client.post("/login", json={"email": "t@example.com", "password": "securepw"})
        assert resp.status_code == 200, resp.text
        tokens = resp.json()
        assert tokens["access_token"]
        assert tokens["refresh_token"]

        resp = client.get("/users/me", headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"id": created["id"], "name": "Test User", "email": "t@example.com", "is_deleted": False}

        resp = client.delete("/users/me/deactivate", headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200, resp.text
        assert resp.json()["message"]

        resp = client.post("/login", json={"email": "t@example.com", "password": "securepw"})
        assert resp.status_code == 403, resp.text
        assert resp.json()["error"]["code"] == "account_deactivated"


class TestRegister:
    @pytest.mark.parametrize(
        "body",
        [
            {"name": "n" * 256, "email": "long@example.com", "password": "securepw"},
            {"name": "Test User", "email": "a" * 251 + "@x.io", "password": "securepw"},
        ],
    )
    def test_overlong_name_or_email_400(self, client: TestClient, body: dict) -> None:
        resp = client.post("/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_duplicate_email_conflict(self, client: TestClient) -> None:
        body = {"name": "Test User", "email": "duplicate@example.com", "password": "securepassword"}
        assert client.post("/register", json=body).status_code == 201
        resp = client.post("/register", json=body)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "Invalid Email", "email": "invalid-email", "password": "securepassword"},
            {"name": "Weak Password", "email": "shortpass@example.com", "password": "123"},
            {"name": "", "email": "valid@example.com", "password": "securepassword"},
            {},
        ],
    )
    def test_invalid_input(self, client: TestClient, body: dict) -> None:
        resp = client.post("/register", json=body)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    def test_non_json_body(self, client: TestClient) -> None:
        resp = client.post("/register", content="not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400

    def test_response_never_contains_password(self, client: TestClient) -> None:
        resp = client.post("/register", json={"name": "Test User", "email": "p@example.com", "password": "securepw"})
        assert "password" not in resp.json()
        assert "securepw" not in resp.text


class TestLogin:
    def test_wrong_password_401(self, client: TestClient) -> None:
        register_and_login(client)
        resp = client.post("/login", json={"email": "t@example.com", "password": "wrongpassword"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "bad_credentials"

    def test_unknown_email_401(self, client: TestClient) -> None:
        resp = client.post("/login", json={"email": "ghost@example.com", "password": "whatever"})
        assert resp.status_code == 401

    def test_missing_fields_400(self, client: TestClient) -> None:
        resp = client.post("/login", json={"email": "t@example.com"})
        assert resp.status_code == 400

    def test_no_store_header(self, client: TestClient) -> None:
        register_and_login(client)
        resp = client.post("/login", json={"email": "t@example.com", "password": "securepw"})
        assert resp.headers["cache-control"] == "no-store"


class TestRefresh:
    def test_refresh_issues_access_token(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.post("/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert resp.status_code == 200, resp.text
        new_access = resp.json()["access_token"]
        assert client.get("/users/me", headers=bearer(new_access)).status_code == 200

    def test_access_token_is_not_a_refresh_token(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.post("/refresh", json={"refresh_token": tokens["access_token"]})
        assert resp.status_code == 401

    def test_missing_refresh_token(self, client: TestClient) -> None:
        assert client.post("/refresh", json={}).status_code == 401


class TestGate:
    @pytest.mark.parametrize("method, path", PROTECTED)
    def test_no_header_401(self, client: TestClient, method: str, path: str) -> None:
        resp = client.request(method, path)
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"
        assert resp.json()["error"]["code"] == "missing_token"

    @pytest.mark.parametrize("method, path", PROTECTED)
    def test_refresh_token_as_bearer_401(self, client: TestClient, method: str, path: str) -> None:
        tokens = register_and_login(client)
        resp = client.request(method, path, headers=bearer(tokens["refresh_token"]))
        assert resp.status_code == 401

    def test_wrong_scheme_401(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.get("/users/me", headers={"Authorization": f"Basic {tokens['access_token']}"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_auth_header"

    def test_garbage_token_401(self, client: TestClient) -> None:
        resp = client.get("/users/me", headers=bearer("not-a-token"))
        assert resp.status_code == 401


class TestUsersList:
    def test_pagination_and_total(self, client: TestClient) -> None:
        tokens = register_and_login(client, email="u0@example.com")
        for n in range(1, 8):
            client.post("/register", json={"name": f"User {n}", "email": f"u{n}@example.com", "password": "securepw"})

        first = client.get("/users", params={"page": 1, "limit": 5}, headers=bearer(tokens["access_token"])).json()
        second = client.get("/users", params={"page": 2, "limit": 5}, headers=bearer(tokens["access_token"])).json()
        assert len(first["users"]) == 5
        assert len(second["users"]) == 3
        assert first["total_users"] == second["total_users"] == 8
        assert (second["page"], second["limit"]) == (2, 5)
        assert set(first["users"][0]) == {"id", "name", "email"}

    def test_defaults_for_missing_and_non_positive(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        for params in ({}, {"page": 0, "limit": -3}):
            data = client.get("/users", params=params, headers=bearer(tokens["access_token"])).json()
            assert (data["page"], data["limit"]) == (1, 10)

    def test_deactivated_user_excluded(self, client: TestClient) -> None:
        viewer = register_and_login(client, email="viewer@example.com")
        leaver = register_and_login(client, email="leaver@example.com")
        client.delete("/users/me/deactivate", headers=bearer(leaver["access_token"]))

        data = client.get("/users", headers=bearer(viewer["access_token"])).json()
        assert data["total_users"] == 1
        assert [u["email"] for u in data["users"]] == ["viewer@example.com"]

    def test_non_integer_page_400(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.get("/users", params={"page": "abc"}, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 400

    def test_huge_page_returns_empty_page(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.get("/users", params={"page": 10**19, "limit": 10}, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["users"] == []
        assert data["total_users"] == 1


class TestProfile:
    def test_update_name(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.patch("/users/me/update", json={"name": "New Name"}, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200, resp.text
        assert resp.json()["name"] == "New Name"
        assert resp.json()["email"] == "t@example.com"

    @pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "ab"}, {"name": "n" * 256}])
    def test_update_name_invalid(self, client: TestClient, body: dict) -> None:
        tokens = register_and_login(client)
        resp = client.patch("/users/me/update", json=body, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 400

    def test_deactivated_me_shows_flag(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        client.delete("/users/me/deactivate", headers=bearer(tokens["access_token"]))
        resp = client.get("/users/me", headers=bearer(tokens["access_token"]))
        assert resp.status_code == 200
        assert resp.json()["is_deleted"] is True

    def test_deactivate_twice_is_ok(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        for _ in range(2):
            assert client.delete("/users/me/deactivate", headers=bearer(tokens["access_token"])).status_code == 200


class TestResetPassword:
    def test_reset_then_login_with_new_password(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.post(
            "/users/me/reset-password",
            json={"old_password": "securepw", "new_password": "evenmoresecure"},
            headers=bearer(tokens["access_token"]),
        )
        assert resp.status_code == 200, resp.text
        assert client.post("/login", json={"email": "t@example.com", "password": "securepw"}).status_code == 401
        assert client.post("/login", json={"email": "t@example.com", "password": "evenmoresecure"}).status_code == 200

    def test_wrong_old_password_401(self, client: TestClient) -> None:
        tokens = register_and_login(client)
        resp = client.post(
            "/users/me/reset-password",
            json={"old_password": "nope-nope", "new_password": "evenmoresecure"},
            headers=bearer(tokens["access_token"]),
        )
        assert resp.status_code == 401

    @pytest.mark.parametrize(
        "body",
        [{"old_password": "securepw"}, {"new_password": "evenmoresecure"}, {"old_password": "securepw", "new_password": "123"}],
    )
    def test_invalid_input_400(self, client: TestClient, body: dict) -> None:
        tokens = register_and_login(client)
        resp = client.post("/users/me/reset-password", json=body, headers=bearer(tokens["access_token"]))
        assert resp.status_code == 400


class TestErrorEnvelope:
    def test_unknown_route_uses_envelope(self, client: TestClient) -> None:
        resp = client.get("/no-such-route")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "http_404"
