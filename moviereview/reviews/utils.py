import uuid
from typing import Dict, Iterator, List, Optional

from loguru import logger

from moviereview.authentication.schemas import UserRole
from moviereview.authentication.utils import get_current_timestamp
from moviereview.config import settings
from moviereview.database import Database, DuplicateKeyError
from moviereview.errors import DuplicateReview, Forbidden, NotFound
from moviereview.movies.utils import RatingAggregator, paginate

REVIEW_SORT_FIELDS = ("created_at", "rating")
AUTHOR_FIELDS = ("user_id", "username", "profile_picture")
REVIEWED_MOVIE_FIELDS = ("movie_id", "title", "poster_url", "average_rating")

DUPLICATE_MESSAGE = "You have already reviewed this movie"


class ReviewPage:
    """
    One page of a movie's reviews.

    Nothing is read until the page is iterated, and every iteration re-reads
    the same slice, so the page can be consumed more than once.
    """

    def __init__(self, store: "ReviewStore", movie_id: str, page: int, page_size: int, sort_by: str):
        self._store = store
        self.movie_id = movie_id
        self.page = page
        self.page_size = page_size
        self.sort_by = sort_by

    def __iter__(self) -> Iterator[Dict]:
        sort = [(self.sort_by, -1)]
        if self.sort_by != "created_at":
            sort.append(("created_at", -1))
        docs = self._store.db.reviews.find(
            {"movie_id": self.movie_id},
            sort=sort,
            skip=(self.page - 1) * self.page_size,
            limit=self.page_size,
        )
        yield from self._store.with_authors(docs)

    @property
    def pagination(self) -> Dict:
        total = self._store.db.reviews.count({"movie_id": self.movie_id})
        return paginate(total, self.page, self.page_size)


class ReviewStore:
    def __init__(self, db: Database, aggregator: Optional[RatingAggregator] = None):
        self.db = db
        self.aggregator = aggregator or RatingAggregator(db)

    # ---------------- Enrichment ----------------
    def with_authors(self, reviews: List[Dict]) -> List[Dict]:
        """Attach each author's public fields. Email and password never leave the store."""
        user_ids = list({r["user_id"] for r in reviews})
        authors = {
            u["user_id"]: {k: u.get(k) for k in AUTHOR_FIELDS}
            for u in self.db.users.find({"user_id": {"$in": user_ids}})
        } if user_ids else {}
        return [{**r, "user": authors.get(r["user_id"])} for r in reviews]

    def with_movies(self, reviews: List[Dict]) -> List[Dict]:
        movie_ids = list({r["movie_id"] for r in reviews})
        movies = {
            m["movie_id"]: {k: m.get(k) for k in REVIEWED_MOVIE_FIELDS}
            for m in self.db.movies.find({"movie_id": {"$in": movie_ids}})
        } if movie_ids else {}
        return [{**r, "movie": movies.get(r["movie_id"])} for r in reviews]

    def get(self, review_id: str) -> Dict:
        review = self.db.reviews.find_one({"review_id": review_id})
        if not review:
            raise NotFound("Review not found")
        return review

    # ---------------- Mutations ----------------
    def submit(self, user_id: str, movie_id: str, rating: int, text: str) -> Dict:
        with self.db.lock:
            if not self.db.movies.find_one({"movie_id": movie_id}):
                raise NotFound("Movie not found")

            if self.db.reviews.find_one({"user_id": user_id, "movie_id": movie_id}):
                raise DuplicateReview(DUPLICATE_MESSAGE)

            now = get_current_timestamp()
            review = {
                "review_id": str(uuid.uuid4()),
                "user_id": user_id,
                "movie_id": movie_id,
                "rating": rating,
                "review_text": text,
                "created_at": now,
                "updated_at": now,
            }
            try:
                self.db.reviews.insert_one(review)
            except DuplicateKeyError:
                raise DuplicateReview(DUPLICATE_MESSAGE)

            self.aggregator.recompute(movie_id)

        logger.info(f"[Reviews] User {user_id} reviewed movie {movie_id} ({rating}★)")
        return self.with_authors([review])[0]

    def update(self, review_id: str, requester_id: str, rating: Optional[int] = None, text: Optional[str] = None) -> Dict:
        with self.db.lock:
            review = self.get(review_id)

            if review["user_id"] != requester_id:
                raise Forbidden("You can only update your own reviews")

            changes = {"updated_at": get_current_timestamp()}
            if rating is not None:
                changes["rating"] = rating
            if text is not None:
                changes["review_text"] = text

            updated = self.db.reviews.update_one({"review_id": review_id}, changes)
            if updated is None:
                raise NotFound("Review not found")

            self.aggregator.recompute(updated["movie_id"])

        logger.info(f"[Reviews] Review {review_id} updated by {requester_id}")
        return self.with_authors([updated])[0]

    def delete(self, review_id: str, requester_id: str, requester_role: str) -> None:
        with self.db.lock:
            review = self.get(review_id)

            if review["user_id"] != requester_id and requester_role != UserRole.ADMIN.value:
                raise Forbidden("You can only delete your own reviews")

            if not self.db.reviews.delete_one({"review_id": review_id}):
                raise NotFound("Review not found")

            self.aggregator.recompute(review["movie_id"])

        logger.info(f"[Reviews] Review {review_id} deleted by {requester_id} ({requester_role})")

    # ---------------- Reads ----------------
    def list_for_movie(
        self,
        movie_id: str,
        page: int = 1,
        page_size: int = 10,
        sort_by: str = "created_at",
    ) -> ReviewPage:
        if sort_by not in REVIEW_SORT_FIELDS:
            sort_by = "created_at"
        page = max(1, page)
        page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))
        return ReviewPage(self, movie_id, page, page_size, sort_by)

    def recent_for_movie(self, movie_id: str, limit: int = 10) -> List[Dict]:
        return list(self.list_for_movie(movie_id, page=1, page_size=limit))

    def recent_for_user(self, user_id: str, limit: int = 10) -> List[Dict]:
        docs = self.db.reviews.find({"user_id": user_id}, sort=[("created_at", -1)], limit=limit)
        return self.with_movies(docs)
