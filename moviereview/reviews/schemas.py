from pydantic import AliasChoices, BaseModel, Field, StrictInt, field_validator
from typing import List, Optional

from moviereview.movies.schemas import Pagination

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 2000


def _check_rating(v: int) -> int:
    if v < 1 or v > 5:
        raise ValueError('Rating must be between 1 and 5')
    return v


def _check_text(v: str) -> str:
    v = v.strip()
    if len(v) < MIN_TEXT_LENGTH:
        raise ValueError(f'Review text must be at least {MIN_TEXT_LENGTH} characters')
    if len(v) > MAX_TEXT_LENGTH:
        raise ValueError(f'Review text cannot exceed {MAX_TEXT_LENGTH} characters')
    return v


class ReviewCreate(BaseModel):
    rating: StrictInt
    review_text: str = Field(..., validation_alias=AliasChoices("review_text", "reviewText"))

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, v):
        return _check_rating(v)

    @field_validator('review_text')
    @classmethod
    def validate_text(cls, v):
        return _check_text(v)


class ReviewUpdate(BaseModel):
    """Partial update: omitted fields keep their stored value."""
    rating: Optional[StrictInt] = None
    review_text: Optional[str] = Field(None, validation_alias=AliasChoices("review_text", "reviewText"))

    @field_validator('rating')
    @classmethod
    def validate_rating(cls, v):
        return v if v is None else _check_rating(v)

    @field_validator('review_text')
    @classmethod
    def validate_text(cls, v):
        return v if v is None else _check_text(v)


class ReviewAuthor(BaseModel):
    user_id: str
    username: str
    profile_picture: Optional[str] = None


class ReviewedMovie(BaseModel):
    movie_id: str
    title: str
    poster_url: Optional[str] = None
    average_rating: float = 0


class Review(BaseModel):
    review_id: str
    movie_id: str
    user_id: str
    rating: int
    review_text: str
    created_at: str
    updated_at: Optional[str] = None
    user: Optional[ReviewAuthor] = None
    movie: Optional[ReviewedMovie] = None


class ReviewListResponse(BaseModel):
    reviews: List[Review]
    pagination: Pagination


class ReviewMutationResponse(BaseModel):
    message: str
    review: Review
