"""
Tests for authentication endpoints: register, login and /auth/me.
"""

import pytest
from fastapi.testclient import TestClient
from moviereview.main import app
from moviereview.authentication import security

client = TestClient(app)


@pytest.fixture(autouse=True)
def store(db):
    """Every auth test runs against an empty temporary store."""
    yield db


def register(username="john_doe", email="john@example.com", password="Password123"):
    return client.post("/auth/register", json={
        "username": username,
        "email": email,
        "password": password,
    })


def login(username, password):
    return client.post(
        "/auth/login",
        data={"username": username, "password": password},
        headers={"content-type": "application/x-www-form-urlencoded"},
    )


# 🧩 --- Register -------------------------------------------------------------

def test_register_success(store):
    """POST /auth/register → creates a user and returns a token."""
    response = register()
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["username"] == "john_doe"
    assert data["user"]["role"] == "user"
    assert data["user"]["watchlist"] == []
    assert "access_token" in data
    assert "hashed_password" not in data["user"]

    stored = store.users.find_one({"username": "john_doe"})
    assert stored["hashed_password"] != "Password123"


def test_register_normalizes_email():
    response = register(email="John@Example.COM")
    assert response.status_code == 201
    assert response.json()["user"]["email"] == "john@example.com"


def test_register_duplicate_username():
    register(username="duplicate", email="first@example.com")
    response = register(username="duplicate", email="second@example.com")
    assert response.status_code == 400
    assert response.json() == {"error": "ValidationError", "message": "Username already taken"}


def test_register_duplicate_email():
    register(username="first", email="same@example.com")
    response = register(username="second", email="same@example.com")
    assert response.status_code == 400
    assert response.json()["message"] == "Email already registered"


@pytest.mark.parametrize("username,password,fragment", [
    ("ab", "Password123", "between 3 and 20"),
    ("bad name!", "Password123", "letters, numbers, and underscores"),
    ("valid_name", "short", "at least 6 characters"),
    ("valid_name", "alllowercase1", "uppercase"),
    ("valid_name", "NoDigitsHere", "digit"),
])
def test_register_validation(username, password, fragment):
    response = register(username=username, password=password)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert fragment in body["message"]


# 🧩 --- Login ----------------------------------------------------------------

def test_login_success_with_username():
    register(username="alice", email="alice@example.com", password="StrongPass1")
    response = login("alice", "StrongPass1")
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"
    assert response.json()["user"]["username"] == "alice"


def test_login_success_with_email():
    register(username="alice", email="alice@example.com", password="StrongPass1")
    response = login("Alice@example.com", "StrongPass1")
    assert response.status_code == 200


def test_login_invalid_credentials():
    register(username="bob", email="bob@example.com", password="GoodPass1")
    response = login("bob", "WrongPass1")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthenticated", "message": "Invalid credentials"}


def test_login_unknown_user():
    response = login("nobody", "Whatever1")
    assert response.status_code == 401


# 🧩 --- Current user ---------------------------------------------------------

def test_me_returns_user():
    token = register(username="carol", email="carol@example.com").json()["access_token"]
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    data = response.json()
    assert data["username"] == "carol"
    assert data["email"] == "carol@example.com"


def test_me_requires_token():
    response = client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthenticated"


def test_me_rejects_garbage_token():
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid authentication token"


def test_token_for_deleted_user_is_rejected(store):
    token = security.create_access_token({"sub": "ghost", "role": "user"})
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "User no longer exists"


def test_password_hashing_roundtrip():
    hashed = security.hash_password("Secret123")
    assert security.verify_password("Secret123", hashed)
    assert not security.verify_password("secret123", hashed)


# in the project root: pytest -v moviereview/tests/test_auth.py
