"""
tests/test_book_routes.py -- Integration tests for the /api/books routes.

These tests exercise the full stack: FastAPI routing -> identity dependency
-> BookStore operations -> response model serialization.

Coverage:
  - Auth failures: 401 on every book route without a session, before any store access
  - Disabled account: 403
  - Ownership: another user's book answers 404 on GET/PUT/DELETE, never 200 or 403
  - Create: 201, Location header, createdBy stamped from the session
  - List: exactly the caller's books
  - Update: only title/author/description change
  - End-to-end alice/bob scenario
  - Store outage -> 500 error envelope
  - Ids outside 64-bit range -> 422, not a store error
  - Create is rate limited (60/minute)

Fixtures used (from conftest.py):
  - api_client: (client, tokens) -- tokens["alice"], tokens["bob"], tokens["carol"] (disabled)
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from api.main import app


def _h(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create(client: TestClient, token: str, **fields) -> dict:
    body = {"title": "Untitled", "author": "Anonymous", **fields}
    resp = client.post("/api/books", json=body, headers=_h(token))
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()


class TestBookAuthFailure:
    """Requests without a valid session must be rejected before the store is touched."""

    @pytest.mark.parametrize(
        ("method", "path", "body"),
        [
            ("post", "/api/books", {"title": "A", "author": "B"}),
            ("get", "/api/books", None),
            ("get", "/api/books/1", None),
            ("put", "/api/books/1", {"title": "A", "author": "B"}),
            ("delete", "/api/books/1", None),
        ],
    )
    def test_unauthenticated_returns_401_without_store_access(
        self, api_client: tuple[TestClient, dict[str, str]], monkeypatch, method: str, path: str, body
    ) -> None:
        client, _tokens = api_client
        store = MagicMock()
        monkeypatch.setattr(app.state, "books", store)
        kwargs = {"json": body} if body is not None else {}
        resp = client.request(method.upper(), path, **kwargs)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert store.mock_calls == []

    def test_invalid_body_still_401_when_unauthenticated(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        """Authentication is checked before the body is validated."""
        client, _tokens = api_client
        resp = client.post("/api/books", json={"title": ""})
        assert resp.status_code == 401

    def test_garbage_bearer_token_returns_401(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, _tokens = api_client
        resp = client.get("/api/books", headers=_h("not-a-jwt"))
        assert resp.status_code == 401

    def test_disabled_account_returns_403(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        """A valid token for a deactivated account is authenticated but not permitted."""
        client, tokens = api_client
        resp = client.get("/api/books", headers=_h(tokens["carol"]))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"


class TestCreateBook:
    def test_create_returns_201_with_location(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        resp = client.post(
            "/api/books",
            json={"title": "Dune", "author": "Frank Herbert", "description": "Spice."},
            headers=_h(tokens["alice"]),
        )
        assert resp.status_code == 201
        data = resp.json()
        assert isinstance(data["id"], int)
        assert resp.headers["location"] == f"/api/books/{data['id']}"
        assert data == {
            "id": data["id"],
            "title": "Dune",
            "author": "Frank Herbert",
            "description": "Spice.",
            "createdBy": "alice",
        }

    def test_client_supplied_owner_and_id_are_overwritten(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        data = _create(client, tokens["alice"], title="Forged", createdBy="bob", id=424242)
        assert data["createdBy"] == "alice"
        assert data["id"] != 424242
        # bob cannot see it even though the body named him
        assert client.get(f"/api/books/{data['id']}", headers=_h(tokens["bob"])).status_code == 404

    def test_description_is_optional(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        data = _create(client, tokens["alice"], title="No blurb")
        assert data["description"] is None

    def test_missing_title_is_422(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        resp = client.post("/api/books", json={"author": "Someone"}, headers=_h(tokens["alice"]))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestListBooks:
    def test_list_returns_exactly_callers_books(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        mine = {_create(client, tokens["bob"], title=f"Bob {i}")["id"] for i in range(3)}
        _create(client, tokens["alice"], title="Alice only")

        resp = client.get("/api/books", headers=_h(tokens["bob"]))
        assert resp.status_code == 200
        data = resp.json()
        assert {b["id"] for b in data} == mine
        assert all(b["createdBy"] == "bob" for b in data)

        alice_books = client.get("/api/books", headers=_h(tokens["alice"])).json()
        assert not mine & {b["id"] for b in alice_books}


class TestOwnershipScoping:
    """Another user's book is indistinguishable from a missing one."""

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_foreign_book_is_404(self, api_client: tuple[TestClient, dict[str, str]], method: str) -> None:
        client, tokens = api_client
        book = _create(client, tokens["alice"], title="Private")
        kwargs = {"json": {"title": "Hijack", "author": "bob"}} if method == "put" else {}
        resp = client.request(method.upper(), f"/api/books/{book['id']}", headers=_h(tokens["bob"]), **kwargs)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "book_not_found"

        # Untouched for the owner
        owner_view = client.get(f"/api/books/{book['id']}", headers=_h(tokens["alice"]))
        assert owner_view.status_code == 200
        assert owner_view.json()["title"] == "Private"

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_missing_book_is_404(self, api_client: tuple[TestClient, dict[str, str]], method: str) -> None:
        client, tokens = api_client
        kwargs = {"json": {"title": "x", "author": "y"}} if method == "put" else {}
        resp = client.request(method.upper(), "/api/books/999999", headers=_h(tokens["alice"]), **kwargs)
        assert resp.status_code == 404

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_id_beyond_64_bits_is_422(self, api_client: tuple[TestClient, dict[str, str]], method: str) -> None:
        client, tokens = api_client
        kwargs = {"json": {"title": "x", "author": "y"}} if method == "put" else {}
        resp = client.request(
            method.upper(), "/api/books/99999999999999999999", headers=_h(tokens["alice"]), **kwargs
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestUpdateBook:
    def test_update_changes_only_editable_fields(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        book = _create(client, tokens["alice"], title="Old", author="Old A", description="Old D")

        resp = client.put(
            f"/api/books/{book['id']}",
            json={"id": 777, "title": "New", "author": "New A", "description": "New D", "createdBy": "bob"},
            headers=_h(tokens["alice"]),
        )
        assert resp.status_code == 204
        assert resp.content == b""

        data = client.get(f"/api/books/{book['id']}", headers=_h(tokens["alice"])).json()
        assert data == {
            "id": book["id"],
            "title": "New",
            "author": "New A",
            "description": "New D",
            "createdBy": "alice",
        }


class TestScenario:
    def test_alice_bob_lifecycle(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client

        created = client.post("/api/books", json={"title": "A", "author": "B"}, headers=_h(tokens["alice"]))
        assert created.status_code == 201
        body = created.json()
        assert body["createdBy"] == "alice"
        book_id = body["id"]

        assert client.get(f"/api/books/{book_id}", headers=_h(tokens["bob"])).status_code == 404

        fetched = client.get(f"/api/books/{book_id}", headers=_h(tokens["alice"]))
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "A"
        assert fetched.json()["author"] == "B"

        assert client.delete(f"/api/books/{book_id}", headers=_h(tokens["alice"])).status_code == 204
        assert client.get(f"/api/books/{book_id}", headers=_h(tokens["alice"])).status_code == 404


class TestStoreFailure:
    def test_store_error_surfaces_as_500_envelope(
        self, api_client: tuple[TestClient, dict[str, str]], monkeypatch
    ) -> None:
        """Store failures are not retried or classified: generic 500, no internals leaked."""
        _client, tokens = api_client
        broken = MagicMock()
        broken.list_books.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))
        monkeypatch.setattr(app.state, "books", broken)

        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/api/books", headers=_h(tokens["alice"]))
        assert resp.status_code == 500
        assert resp.json() == {"error": {"code": "internal_error", "message": "An unexpected error occurred.", "detail": None}}


class TestCreateRateLimit:
    def test_sixty_first_create_in_a_minute_is_429(self, api_client: tuple[TestClient, dict[str, str]]) -> None:
        client, tokens = api_client
        for i in range(60):
            _create(client, tokens["bob"], title=f"Book {i}")
        resp = client.post("/api/books", json={"title": "One more", "author": "B"}, headers=_h(tokens["bob"]))
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "rate_limited"
