from typing import Dict, List, Optional

from loguru import logger

from moviereview.authentication import utils as auth_utils
from moviereview.database import Database, DuplicateKeyError
from moviereview.errors import AlreadyInList, Forbidden, NotFound, ValidationError
from moviereview.movies.utils import movie_summary
from moviereview.reviews.utils import ReviewStore


def _get_user(db: Database, user_id: str) -> Dict:
    user = auth_utils.get_user_by_id(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


class WatchlistManager:
    """Per-user ordered, duplicate-free list of movie references."""

    def __init__(self, db: Database):
        self.db = db

    def add(self, user_id: str, movie_id: str) -> List[str]:
        with self.db.lock:
            if not self.db.movies.find_one({"movie_id": movie_id}):
                raise NotFound("Movie not found")

            user = _get_user(self.db, user_id)
            watchlist = user.get("watchlist", [])
            if movie_id in watchlist:
                raise AlreadyInList("Movie already in watchlist")

            watchlist = watchlist + [movie_id]
            self.db.users.update_one({"user_id": user_id}, {"watchlist": watchlist})

        logger.info(f"[Watchlist] User {user_id} added movie {movie_id}")
        return watchlist

    def remove(self, user_id: str, movie_id: str) -> List[str]:
        """Remove a movie; removing one that isn't listed is not an error."""
        with self.db.lock:
            user = _get_user(self.db, user_id)
            watchlist = user.get("watchlist", [])
            if movie_id not in watchlist:
                return watchlist

            watchlist = [m for m in watchlist if m != movie_id]
            self.db.users.update_one({"user_id": user_id}, {"watchlist": watchlist})

        logger.info(f"[Watchlist] User {user_id} removed movie {movie_id}")
        return watchlist

    def list(self, user_id: str) -> List[Dict]:
        user = _get_user(self.db, user_id)
        ids = user.get("watchlist", [])
        if not ids:
            return []

        movies = {m["movie_id"]: m for m in self.db.movies.find({"movie_id": {"$in": ids}})}
        # Keep insertion order; skip movies that no longer exist
        return [movie_summary(movies[mid]) for mid in ids if mid in movies]


def get_profile(db: Database, user_id: str) -> Dict:
    user = _get_user(db, user_id)
    return {
        "user_id": user["user_id"],
        "username": user["username"],
        "profile_picture": user.get("profile_picture"),
        "join_date": user.get("created_at"),
        "watchlist": WatchlistManager(db).list(user_id),
        "reviews": ReviewStore(db).recent_for_user(user_id),
    }


def update_profile(
    db: Database,
    user_id: str,
    requester_id: str,
    username: Optional[str] = None,
    profile_picture: Optional[str] = None,
) -> Dict:
    if user_id != requester_id:
        raise Forbidden("You can only update your own profile")

    with db.lock:
        _get_user(db, user_id)

        changes = {}
        if username:
            taken = db.users.find_one({"username": username, "user_id": {"$ne": user_id}})
            if taken:
                raise ValidationError("Username already taken")
            changes["username"] = username
        if profile_picture is not None:
            changes["profile_picture"] = profile_picture

        try:
            user = db.users.update_one({"user_id": user_id}, changes)
        except DuplicateKeyError:
            raise ValidationError("Username already taken")

    logger.info(f"[Users] Profile {user_id} updated ({', '.join(changes) or 'no changes'})")
    return auth_utils.to_private(user)
