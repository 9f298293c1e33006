import pytest
from fastapi.testclient import TestClient

from bookshelf.api import app
from bookshelf.config import settings
from bookshelf.store import BookStore, StorageError


@pytest.fixture
def client():
    # Entering the client runs the lifespan, which opens the per-test database
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/auth/login",
        json={"username": settings.auth_username, "password": settings.auth_password},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def _add(client, headers, title, author="Author", release_date=None):
    return client.post(
        "/api/books",
        headers=headers,
        json={"title": title, "author": author, "release_date": release_date},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_login_returns_bearer_token(client):
    response = client.post(
        "/api/auth/login",
        json={"username": settings.auth_username, "password": settings.auth_password},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["token"]


def test_login_with_wrong_password(client):
    response = client.post("/api/auth/login", json={"username": settings.auth_username, "password": "nope"})
    assert response.status_code == 401


def test_books_require_token(client):
    assert client.get("/api/books").status_code == 401
    assert client.post("/api/books", json={"title": "Dune", "author": "Frank Herbert"}).status_code == 401
    assert client.delete("/api/books/Dune").status_code == 401


def test_books_reject_invalid_token(client):
    response = client.get("/api/books", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_add_book_created(client, auth_headers):
    response = _add(client, auth_headers, "Dune", "Frank Herbert", "1965-08-01")

    assert response.status_code == 201
    body = response.json()
    assert isinstance(body["id"], int)
    assert body == {"id": body["id"], "title": "Dune", "author": "Frank Herbert", "release_date": "1965-08-01"}


def test_add_book_without_release_date(client, auth_headers):
    response = _add(client, auth_headers, "Emma", "Jane Austen")
    assert response.status_code == 201
    assert response.json()["release_date"] is None


def test_add_duplicate_title_conflict(client, auth_headers):
    assert _add(client, auth_headers, "Dune", "Frank Herbert").status_code == 201

    response = _add(client, auth_headers, "Dune", "Someone Else")

    assert response.status_code == 409
    assert "already exists" in response.json()["detail"]
    assert len(client.get("/api/books", headers=auth_headers).json()) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"title": "", "author": "Author"},
        {"author": "Author"},
        {"title": "Dune"},
        {"title": "Dune", "author": "Frank Herbert", "release_date": "08/01/1965"},
        {"title": "Dune", "author": "Frank Herbert", "release_date": 1965},
        {"title": ["Dune"], "author": "Frank Herbert"},
    ],
)
def test_add_book_bad_request(client, auth_headers, payload):
    response = client.post("/api/books", headers=auth_headers, json=payload)
    assert response.status_code == 400
    assert client.get("/api/books", headers=auth_headers).json() == []


def test_list_books_ordered_by_title(client, auth_headers):
    for title in ("Zebra", "Apple", "Mango"):
        _add(client, auth_headers, title)

    response = client.get("/api/books", headers=auth_headers)

    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Apple", "Mango", "Zebra"]


def test_get_book_by_id(client, auth_headers):
    created = _add(client, auth_headers, "Dune", "Frank Herbert").json()

    assert client.get(f"/api/books/{created['id']}", headers=auth_headers).json() == created
    assert client.get(f"/api/books/{created['id'] + 1}", headers=auth_headers).status_code == 404


def test_get_book_with_oversized_id_not_found(client, auth_headers):
    response = client.get("/api/books/99999999999999999999", headers=auth_headers)
    assert response.status_code == 404


def test_delete_book_case_insensitive(client, auth_headers):
    _add(client, auth_headers, "Dune", "Frank Herbert")

    response = client.delete("/api/books/dune", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["removed"] == 1
    assert client.get("/api/books", headers=auth_headers).json() == []


def test_delete_missing_book_not_found(client, auth_headers):
    response = client.delete("/api/books/nonexistent", headers=auth_headers)
    assert response.status_code == 404


def test_storage_error_is_server_error(client, auth_headers, monkeypatch):
    def broken_list(self):
        raise StorageError("database unavailable")

    monkeypatch.setattr(BookStore, "list", broken_list)

    response = client.get("/api/books", headers=auth_headers)

    assert response.status_code == 500
    # the service keeps answering afterwards
    assert client.get("/health").status_code == 200


def test_api_sees_books_added_through_store(client, auth_headers, store):
    store.add("Dune", "Frank Herbert", "1965-08-01")

    titles = [b["title"] for b in client.get("/api/books", headers=auth_headers).json()]

    assert titles == ["Dune"]
