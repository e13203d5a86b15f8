"""
Tests for the Reviews module through the HTTP API.
Covers:
- Submitting (one per user per movie, validation, unknown movie)
- Updating (owner only, partial)
- Deleting (owner or admin)
- Listing (pagination, sorting, public author fields only)
- Keeping the movie's average_rating / total_reviews in step
"""

import pytest
from fastapi.testclient import TestClient
from moviereview.main import app

client = TestClient(app)

GOOD_TEXT = "Loved every minute of it."


@pytest.fixture
def movie(make_movie):
    return make_movie("Fight Club", ["Drama"], 1999)


@pytest.fixture
def users(make_user):
    return {
        "alice": make_user("u-alice", "alice"),
        "bob": make_user("u-bob", "bob"),
        "carol": make_user("u-carol", "carol"),
        "admin": make_user("u-admin", "admin", role="admin"),
    }


def submit(movie_id, rating=5, text=GOOD_TEXT):
    return client.post(f"/reviews/movie/{movie_id}", json={"rating": rating, "review_text": text})


def stored_movie(db, movie_id):
    return db.movies.find_one({"movie_id": movie_id})


# -------------------------------------------------------------------
# SUBMIT
# -------------------------------------------------------------------

def test_submit_review_success(db, auth_user, users, movie):
    auth_user("u-alice")
    response = submit(movie["movie_id"], rating=4)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Review submitted successfully"
    assert body["review"]["rating"] == 4
    assert body["review"]["user"]["username"] == "alice"
    assert "email" not in body["review"]["user"]

    m = stored_movie(db, movie["movie_id"])
    assert m["average_rating"] == 4.0
    assert m["total_reviews"] == 1


def test_submit_review_trims_text(db, auth_user, users, movie):
    auth_user("u-alice")
    response = submit(movie["movie_id"], text="   Great acting all round.   ")
    assert response.json()["review"]["review_text"] == "Great acting all round."


def test_submit_duplicate_review(db, auth_user, users, movie):
    auth_user("u-alice")
    assert submit(movie["movie_id"]).status_code == 201

    response = submit(movie["movie_id"], rating=1)
    assert response.status_code == 400
    assert response.json() == {"error": "DuplicateReview", "message": "You have already reviewed this movie"}
    assert stored_movie(db, movie["movie_id"])["total_reviews"] == 1


def test_submit_review_unknown_movie(db, auth_user, users):
    auth_user("u-alice")
    response = submit("missing-movie")
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_submit_review_text_too_short(db, auth_user, users, movie):
    auth_user("u-alice")
    response = submit(movie["movie_id"], text="Too short")  # 9 characters
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "ValidationError"
    assert "must be at least 10 characters" in body["message"]
    assert db.reviews.count() == 0


@pytest.mark.parametrize("rating", [0, 6, 3.5, True, "4"])
def test_submit_review_rejects_bad_rating(db, auth_user, users, movie, rating):
    auth_user("u-alice")
    response = submit(movie["movie_id"], rating=rating)
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_submit_review_accepts_camel_case_text(db, auth_user, users, movie):
    auth_user("u-alice")
    response = client.post(f"/reviews/movie/{movie['movie_id']}", json={"rating": 4, "reviewText": "Great film, loved it."})
    assert response.status_code == 201
    assert response.json()["review"]["review_text"] == "Great film, loved it."
    assert db.reviews.find_one({"user_id": "u-alice"})["review_text"] == "Great film, loved it."


def test_submit_review_requires_login(db, movie):
    response = submit(movie["movie_id"])
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


# -------------------------------------------------------------------
# AGGREGATE SCENARIO
# -------------------------------------------------------------------

def test_average_rating_follows_reviews(db, auth_user, users, movie):
    """[5, 5, 4] → 4.7 / 3; deleting the 4 → 5.0 / 2; deleting the rest → 0 / 0."""
    review_ids = {}
    for name, rating in [("alice", 5), ("bob", 5), ("carol", 4)]:
        auth_user(users[name]["user_id"])
        review_ids[name] = submit(movie["movie_id"], rating=rating).json()["review"]["review_id"]

    m = stored_movie(db, movie["movie_id"])
    assert (m["average_rating"], m["total_reviews"]) == (4.7, 3)

    auth_user("u-carol")
    assert client.delete(f"/reviews/{review_ids['carol']}").status_code == 200
    m = stored_movie(db, movie["movie_id"])
    assert (m["average_rating"], m["total_reviews"]) == (5.0, 2)

    for name in ("alice", "bob"):
        auth_user(users[name]["user_id"])
        client.delete(f"/reviews/{review_ids[name]}")
    m = stored_movie(db, movie["movie_id"])
    assert (m["average_rating"], m["total_reviews"]) == (0, 0)


# -------------------------------------------------------------------
# UPDATE
# -------------------------------------------------------------------

def test_update_own_review_partial(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"], rating=2, text="Not really my thing.").json()["review"]

    response = client.put(f"/reviews/{review['review_id']}", json={"rating": 5})
    assert response.status_code == 200
    updated = response.json()["review"]
    assert updated["rating"] == 5
    assert updated["review_text"] == "Not really my thing."
    assert stored_movie(db, movie["movie_id"])["average_rating"] == 5.0


def test_update_text_only_keeps_rating(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"], rating=3).json()["review"]

    response = client.put(f"/reviews/{review['review_id']}", json={"review_text": "Grew on me after a rewatch."})
    assert response.status_code == 200
    assert response.json()["review"]["rating"] == 3
    assert response.json()["review"]["review_text"] == "Grew on me after a rewatch."


def test_update_someone_elses_review_forbidden(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"]).json()["review"]

    auth_user("u-bob")
    response = client.put(f"/reviews/{review['review_id']}", json={"rating": 1})
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"
    assert db.reviews.find_one({"review_id": review["review_id"]})["rating"] == 5


def test_update_missing_review(db, auth_user, users):
    auth_user("u-alice")
    response = client.put("/reviews/r404", json={"rating": 3})
    assert response.status_code == 404


def test_update_validates_text(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"]).json()["review"]
    response = client.put(f"/reviews/{review['review_id']}", json={"review_text": "short"})
    assert response.status_code == 400


# -------------------------------------------------------------------
# DELETE
# -------------------------------------------------------------------

def test_delete_own_review(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"]).json()["review"]
    response = client.delete(f"/reviews/{review['review_id']}")
    assert response.status_code == 200
    assert "deleted" in response.json()["message"].lower()
    assert db.reviews.count() == 0


def test_admin_can_delete_any_review(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"]).json()["review"]

    auth_user("u-admin", role="admin")
    response = client.delete(f"/reviews/{review['review_id']}")
    assert response.status_code == 200
    assert stored_movie(db, movie["movie_id"])["total_reviews"] == 0


def test_delete_someone_elses_review_forbidden(db, auth_user, users, movie):
    auth_user("u-alice")
    review = submit(movie["movie_id"]).json()["review"]

    auth_user("u-bob")
    response = client.delete(f"/reviews/{review['review_id']}")
    assert response.status_code == 403
    assert db.reviews.count() == 1


def test_delete_missing_review(db, auth_user, users):
    auth_user("u-admin", role="admin")
    response = client.delete("/reviews/r404")
    assert response.status_code == 404


# -------------------------------------------------------------------
# LIST
# -------------------------------------------------------------------

@pytest.fixture
def seeded_reviews(db, users, movie):
    rows = [("u-alice", 3, "01"), ("u-bob", 5, "02"), ("u-carol", 1, "03")]
    for user_id, rating, day in rows:
        db.reviews.insert_one({
            "review_id": f"r-{user_id}", "user_id": user_id, "movie_id": movie["movie_id"],
            "rating": rating, "review_text": "Some thoughts on the film.",
            "created_at": f"2025-03-{day}T00:00:00+00:00", "updated_at": f"2025-03-{day}T00:00:00+00:00",
        })
    return movie


def test_list_reviews_newest_first(seeded_reviews):
    response = client.get(f"/reviews/movie/{seeded_reviews['movie_id']}")
    assert response.status_code == 200
    body = response.json()
    assert [r["user"]["username"] for r in body["reviews"]] == ["carol", "bob", "alice"]
    assert body["pagination"]["total_items"] == 3
    for r in body["reviews"]:
        assert set(r["user"]) == {"user_id", "username", "profile_picture"}


def test_list_reviews_by_rating(seeded_reviews):
    response = client.get(f"/reviews/movie/{seeded_reviews['movie_id']}", params={"sort_by": "rating"})
    assert [r["rating"] for r in response.json()["reviews"]] == [5, 3, 1]


def test_list_reviews_by_rating_camel_case(seeded_reviews):
    response = client.get(f"/reviews/movie/{seeded_reviews['movie_id']}", params={"sortBy": "rating"})
    assert [r["rating"] for r in response.json()["reviews"]] == [5, 3, 1]


def test_list_reviews_pages(seeded_reviews):
    url = f"/reviews/movie/{seeded_reviews['movie_id']}"
    first = client.get(url, params={"limit": 2, "page": 1}).json()
    second = client.get(url, params={"limit": 2, "page": 2}).json()
    assert len(first["reviews"]) == 2 and first["pagination"]["has_next"] is True
    assert len(second["reviews"]) == 1 and second["pagination"]["has_next"] is False


def test_list_reviews_unknown_sort_falls_back(seeded_reviews):
    response = client.get(f"/reviews/movie/{seeded_reviews['movie_id']}", params={"sort_by": "user_id"})
    assert response.status_code == 200
    assert response.json()["reviews"][0]["user"]["username"] == "carol"


# in the project root: pytest -v moviereview/tests/test_reviews.py
