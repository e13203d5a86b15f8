import math
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from moviereview.config import settings
from moviereview.database import Database
from moviereview.errors import NotFound
from moviereview.movies import schemas
from moviereview.authentication.utils import get_current_timestamp

SORT_FIELDS = ("created_at", "title", "release_year", "average_rating")
SUMMARY_FIELDS = ("movie_id", "title", "poster_url", "average_rating", "release_year", "genre", "director")


# ---------------- Helpers ----------------
def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_int(value: Optional[str]) -> Optional[int]:
    value = _clean(value)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    value = _clean(value)
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def movie_summary(movie: Dict) -> Dict:
    return {k: movie.get(k) for k in SUMMARY_FIELDS}


def paginate(total_items: int, page: int, limit: int) -> Dict:
    total_pages = math.ceil(total_items / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total_items,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def average_rating(ratings: Iterable[int]) -> float:
    """Mean rounded to one decimal, halves rounded up. Empty input gives 0."""
    ratings = list(ratings)
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


# ---------------- Query Builder ----------------
@dataclass
class MovieQuery:
    filter: Dict = field(default_factory=dict)
    sort: List[Tuple[str, int]] = field(default_factory=list)
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def build_movie_query(
    params: schemas.MovieSearchParams,
    default_limit: int = settings.DEFAULT_PAGE_SIZE,
    max_limit: int = settings.MAX_PAGE_SIZE,
) -> MovieQuery:
    """
    Turn raw listing parameters into a bounded store query.
    Empty or unparseable filter values are dropped rather than passed through.
    """
    query: Dict = {}

    search = _clean(params.search)
    if search:
        query["$text"] = {"$search": search}

    if params.genre:
        genres = [g.strip() for g in params.genre.split(",") if g.strip()]
        if genres:
            query["genre"] = {"$in": genres}

    year = _parse_int(params.year)
    if year is not None:
        query["release_year"] = year

    min_rating = _parse_float(params.min_rating)
    max_rating = _parse_float(params.max_rating)
    if min_rating is not None or max_rating is not None:
        query["average_rating"] = {}
        if min_rating is not None:
            query["average_rating"]["$gte"] = min_rating
        if max_rating is not None:
            query["average_rating"]["$lte"] = max_rating

    sort_by = _clean(params.sort_by)
    if sort_by not in SORT_FIELDS:
        sort_by = "created_at"
    sort_order = (_clean(params.sort_order) or "").lower()
    direction = 1 if sort_order == "asc" else -1

    page = _parse_int(params.page)
    page = page if page is not None and page >= 1 else 1

    limit = _parse_int(params.limit)
    if limit is None:
        limit = default_limit
    limit = max(1, min(limit, max_limit))

    return MovieQuery(filter=query, sort=[(sort_by, direction)], page=page, limit=limit)


# ---------------- Rating Aggregator ----------------
class RatingAggregator:
    """Keeps a movie's average_rating / total_reviews in step with its reviews."""

    def __init__(self, db: Database):
        self.db = db

    def recompute(self, movie_id: str) -> Optional[Dict]:
        # Full scan under the store lock; never an incremental delta
        with self.db.lock:
            ratings = [r["rating"] for r in self.db.reviews.find({"movie_id": movie_id})]
            updated = self.db.movies.update_one(
                {"movie_id": movie_id},
                {"average_rating": average_rating(ratings), "total_reviews": len(ratings)},
            )

        if updated is None:
            logger.warning(f"[Ratings] Movie {movie_id} vanished before its rating could be updated")
        else:
            logger.debug(
                f"[Ratings] Movie {movie_id}: average={updated['average_rating']} total={updated['total_reviews']}"
            )
        return updated


# ---------------- Catalog ----------------
class MovieCatalog:
    def __init__(self, db: Database):
        self.db = db

    def get(self, movie_id: str) -> Dict:
        movie = self.db.movies.find_one({"movie_id": movie_id})
        if not movie:
            raise NotFound("Movie not found")
        return movie

    def create(self, data: schemas.MovieCreate) -> Dict:
        now = get_current_timestamp()
        movie = {
            "movie_id": str(uuid.uuid4()),
            **data.model_dump(mode="json"),
            "average_rating": 0.0,
            "total_reviews": 0,
            "created_at": now,
            "updated_at": now,
        }
        self.db.movies.insert_one(movie)
        logger.info(f"[Movies] Added '{movie['title']}' ({movie['movie_id']})")
        return movie

    def search(self, params: schemas.MovieSearchParams) -> Dict:
        q = build_movie_query(params)
        with self.db.lock:
            total = self.db.movies.count(q.filter)
            movies = self.db.movies.find(q.filter, sort=q.sort, skip=q.skip, limit=q.limit)
        return {"movies": movies, "pagination": paginate(total, q.page, q.limit)}

    def featured(self, limit: int = 6) -> Dict:
        return {
            "featured": self.db.movies.find({"featured": True}, limit=limit),
            "trending": self.db.movies.find({"trending": True}, limit=limit),
        }
