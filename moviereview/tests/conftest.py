"""
Shared fixtures: a throwaway JSON store per test and a way to act as a user.
"""

import uuid
import pytest

from moviereview.main import app
from moviereview.database import Database, get_db
from moviereview.authentication.schemas import TokenData
from moviereview.authentication.security import get_current_user


@pytest.fixture
def db(tmp_path):
    """Point every request at an empty store under tmp_path."""
    database = Database(str(tmp_path / "data"))
    app.dependency_overrides[get_db] = lambda: database
    yield database
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def auth_user():
    """
    Override get_current_user to simulate a logged-in user.
    Usage: auth_user("u1") or auth_user("a1", role="admin")
    """
    def _set_user(user_id="u1", role="user", username="testuser"):
        token = TokenData(user_id=user_id, username=username, role=role)
        app.dependency_overrides[get_current_user] = lambda: token
        return token
    yield _set_user
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def make_user(db):
    def _make(user_id=None, username=None, role="user", watchlist=None):
        user_id = user_id or str(uuid.uuid4())
        username = username or f"user_{user_id[:8]}"
        user = {
            "user_id": user_id,
            "username": username,
            "email": f"{username}@example.com",
            "hashed_password": "not-a-real-hash",
            "profile_picture": f"https://ui-avatars.com/api/?name={username}",
            "role": role,
            "watchlist": watchlist or [],
            "created_at": "2025-01-01T00:00:00+00:00",
        }
        return db.users.insert_one(user)
    return _make


@pytest.fixture
def make_movie(db):
    def _make(title="Inception", genre=("Action", "Sci-Fi"), release_year=2010,
              average_rating=0.0, total_reviews=0, created_at="2025-01-01T00:00:00+00:00", **extra):
        movie = {
            "movie_id": extra.pop("movie_id", str(uuid.uuid4())),
            "title": title,
            "genre": list(genre),
            "release_year": release_year,
            "director": extra.pop("director", "Christopher Nolan"),
            "cast": [{"name": "Leonardo DiCaprio", "character": "Cobb"}],
            "synopsis": extra.pop("synopsis", f"{title} is a film."),
            "poster_url": f"https://img.example.com/{title.replace(' ', '_')}.jpg",
            "trailer_url": "",
            "duration": 120,
            "language": "English",
            "average_rating": average_rating,
            "total_reviews": total_reviews,
            "featured": extra.pop("featured", False),
            "trending": extra.pop("trending", False),
            "created_at": created_at,
            "updated_at": created_at,
        }
        movie.update(extra)
        return db.movies.insert_one(movie)
    return _make
