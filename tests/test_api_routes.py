"""
tests/test_api_routes.py -- Integration tests for the Biblio HTTP API.

These tests exercise the full stack: FastAPI routing -> request validation ->
ResourceService/AuthenticationGateway -> CatalogStore -> envelope
serialization. They run against one module-scoped client, so classes build
on the catalogue created by the `catalog` fixture.

Coverage:
  - Public create/list/find for institutions, authors, books and users
  - Tenant binding: user creation fails with 1000 for an unknown domain
  - Sign-in: token issued, 401 on bad credentials, username alias accepted
  - GET /books: 401 without a token, the caller's institution's books with one
  - Validation: bad ids and non-object bodies are 200 fail envelopes, code 1
  - No response ever carries a password or password hash
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

STRONG_PASSWORD = "Abc123!@"
MISSING_ID = "f" * 24


def _ok(resp) -> dict:
    assert resp.status_code == 200, f"Expected 200, got {resp.status_code}: {resp.text}"
    body = resp.json()
    assert body["status"] == "success", body
    return body["data"]


def _fail(resp, status_code: int = 200) -> dict:
    assert resp.status_code == status_code, f"Expected {status_code}, got {resp.status_code}: {resp.text}"
    body = resp.json()
    assert body["status"] == "fail", body
    assert "data" not in body
    return body


@pytest.fixture(scope="module")
def catalog(api_client: TestClient) -> dict:
    """Two institutions, one author, one book per institution and one user at MIT."""
    client = api_client
    mit = _ok(client.post("/institutions", json={"name": "MIT", "url": "https://mit.edu", "domain": "mit.edu"}))
    su = _ok(
        client.post("/institutions", json={"name": "Stanford", "url": "https://stanford.edu", "domain": "stanford.edu"})
    )
    author = _ok(client.post("/institutions/authors", json={"name": "Donald Knuth"}))
    mit_book = _ok(
        client.post(
            "/institutions/books",
            json={"institution": mit["id"], "author": author["id"], "isbn": "9780306406157", "title": "TAOCP"},
        )
    )
    su_book = _ok(
        client.post(
            "/institutions/books",
            json={"institution": su["id"], "author": author["id"], "isbn": "0306406152", "title": "Concrete Maths"},
        )
    )
    user = _ok(
        client.post(
            "/users",
            json={"name": "Ada Lovelace", "email": "ada@mit.edu", "role": "student", "password": STRONG_PASSWORD},
        )
    )
    return {"mit": mit, "su": su, "author": author, "mit_book": mit_book, "su_book": su_book, "user": user}


def _token(client: TestClient) -> str:
    data = _ok(client.post("/users/signin", json={"email": "ada@mit.edu", "password": STRONG_PASSWORD}))
    return data["token"]


class TestInstitutionRoutes:
    def test_create_returns_entity(self, catalog):
        mit = catalog["mit"]
        assert len(mit["id"]) == 24
        assert mit["domain"] == "mit.edu"
        assert "createdAt" in mit

    def test_list(self, api_client, catalog):
        data = _ok(api_client.get("/institutions"))
        assert {i["domain"] for i in data} >= {"mit.edu", "stanford.edu"}

    def test_get_one(self, api_client, catalog):
        data = _ok(api_client.get(f"/institutions/{catalog['mit']['id']}"))
        assert data["name"] == "MIT"

    def test_get_missing(self, api_client, catalog):
        body = _fail(api_client.get(f"/institutions/{MISSING_ID}"))
        assert body["code"] == 1000

    def test_get_invalid_id(self, api_client, catalog):
        body = _fail(api_client.get("/institutions/not-an-id"))
        assert body["code"] == 1
        assert body["message"].startswith("id")

    def test_duplicate_domain(self, api_client, catalog):
        body = _fail(
            api_client.post("/institutions", json={"name": "Dup", "url": "https://mit.edu", "domain": "mit.edu"})
        )
        assert "code" not in body
        assert "UNIQUE" in body["message"]

    def test_invalid_body(self, api_client, catalog):
        body = _fail(api_client.post("/institutions", json={"name": "X", "url": "https://x.edu", "domain": "x"}))
        assert body["code"] == 1
        assert body["message"] == "domain: must contain a valid domain name"

    def test_non_object_body(self, api_client, catalog):
        body = _fail(api_client.post("/institutions", json=["not", "an", "object"]))
        assert body["code"] == 1
        assert body["message"].startswith("body:")

    def test_books_of_institution(self, api_client, catalog):
        data = _ok(api_client.get(f"/institutions/{catalog['su']['id']}/books"))
        assert [b["id"] for b in data] == [catalog["su_book"]["id"]]
        assert data[0]["institution"] == catalog["su"]["id"]


class TestAuthorAndBookRoutes:
    def test_list_authors(self, api_client, catalog):
        data = _ok(api_client.get("/institutions/authors"))
        assert catalog["author"]["id"] in [a["id"] for a in data]

    def test_get_author(self, api_client, catalog):
        data = _ok(api_client.get(f"/institutions/authors/{catalog['author']['id']}"))
        assert data["name"] == "Donald Knuth"

    def test_get_author_missing(self, api_client, catalog):
        assert _fail(api_client.get(f"/institutions/authors/{MISSING_ID}"))["code"] == 4000

    def test_book_create_references_are_ids(self, catalog):
        book = catalog["mit_book"]
        assert book["author"] == catalog["author"]["id"]
        assert book["institution"] == catalog["mit"]["id"]

    def test_get_book_expands_references(self, api_client, catalog):
        data = _ok(api_client.get(f"/institutions/books/{catalog['mit_book']['id']}"))
        assert data["author"]["name"] == "Donald Knuth"
        assert data["institution"]["domain"] == "mit.edu"

    def test_get_book_missing(self, api_client, catalog):
        assert _fail(api_client.get(f"/institutions/books/{MISSING_ID}"))["code"] == 3000

    def test_book_with_unknown_author(self, api_client, catalog):
        body = _fail(
            api_client.post(
                "/institutions/books",
                json={"institution": catalog["mit"]["id"], "author": MISSING_ID, "isbn": "9781861972712", "title": "X"},
            )
        )
        assert body["code"] == 4000

    def test_book_with_bad_isbn(self, api_client, catalog):
        body = _fail(
            api_client.post(
                "/institutions/books",
                json={
                    "institution": catalog["mit"]["id"],
                    "author": catalog["author"]["id"],
                    "isbn": "1234567890123",
                    "title": "X",
                },
            )
        )
        assert body["code"] == 1


class TestUserRoutes:
    def test_create_binds_institution(self, catalog):
        user = catalog["user"]
        assert user["institution"] == catalog["mit"]["id"]
        assert user["role"] == "student"

    def test_no_password_material(self, api_client, catalog):
        for payload in (catalog["user"], _ok(api_client.get(f"/users/{catalog['user']['id']}"))):
            assert "password" not in payload
            assert "password_hash" not in payload
            assert "passwordHash" not in payload
        for payload in _ok(api_client.get("/users")):
            assert "password" not in payload
            assert "password_hash" not in payload

    def test_get_user_expands_institution(self, api_client, catalog):
        data = _ok(api_client.get(f"/users/{catalog['user']['id']}"))
        assert data["institution"]["domain"] == "mit.edu"

    def test_get_user_missing(self, api_client, catalog):
        assert _fail(api_client.get(f"/users/{MISSING_ID}"))["code"] == 2000

    def test_unknown_domain(self, api_client, catalog):
        body = _fail(
            api_client.post(
                "/users",
                json={"name": "Eve", "email": "eve@nowhere.org", "role": "student", "password": STRONG_PASSWORD},
            )
        )
        assert body["code"] == 1000
        emails = [u["email"] for u in _ok(api_client.get("/users"))]
        assert "eve@nowhere.org" not in emails

    def test_weak_password(self, api_client, catalog):
        body = _fail(
            api_client.post(
                "/users",
                json={"name": "Bob", "email": "bob@mit.edu", "role": "student", "password": "password"},
            )
        )
        assert body["code"] == 1
        assert body["message"].startswith("password: Value too weak")


class TestSignIn:
    def test_success(self, api_client, catalog):
        resp = api_client.post("/users/signin", json={"email": "ada@mit.edu", "password": STRONG_PASSWORD})
        data = _ok(resp)
        assert data["token"]
        assert data["tokenType"] == "bearer"
        assert data["expiresIn"] == 24 * 60 * 60
        assert resp.headers["Cache-Control"] == "no-store"

    def test_username_alias(self, api_client, catalog):
        data = _ok(api_client.post("/users/signin", json={"username": "ada@mit.edu", "password": STRONG_PASSWORD}))
        assert data["token"]

    def test_wrong_password(self, api_client, catalog):
        resp = api_client.post("/users/signin", json={"email": "ada@mit.edu", "password": "Wrong123!"})
        body = _fail(resp, status_code=401)
        assert body["message"] == "invalid password"
        assert resp.headers["Cache-Control"] == "no-store"

    def test_unknown_email(self, api_client, catalog):
        body = _fail(
            api_client.post("/users/signin", json={"email": "nobody@mit.edu", "password": STRONG_PASSWORD}),
            status_code=401,
        )
        assert body["message"] == "user not found"
        assert body["code"] == 2000


class TestMyBooks:
    def test_requires_token(self, api_client, catalog):
        resp = api_client.get("/books")
        body = _fail(resp, status_code=401)
        assert body["message"] == "Authentication required."
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_rejects_bad_token(self, api_client, catalog):
        _fail(api_client.get("/books", headers={"Authorization": "Bearer not-a-token"}), status_code=401)

    def test_lists_own_institution_only(self, api_client, catalog):
        token = _token(api_client)
        data = _ok(api_client.get("/books", headers={"Authorization": f"Bearer {token}"}))
        ids = [b["id"] for b in data]
        assert ids == [catalog["mit_book"]["id"]]
        assert catalog["su_book"]["id"] not in ids

    def test_token_for_vanished_user(self, api_client, catalog):
        token = api_client.app.state.credentials.issue_token(MISSING_ID)
        body = _fail(api_client.get("/books", headers={"Authorization": f"Bearer {token}"}))
        assert body["code"] == 2000


class TestFallbacks:
    def test_unknown_route_is_enveloped(self, api_client):
        body = _fail(api_client.get("/no/such/route"), status_code=404)
        assert body["message"] == "Not Found"

    def test_wrong_method_is_enveloped(self, api_client):
        _fail(api_client.delete("/institutions"), status_code=405)
