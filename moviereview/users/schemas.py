from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import List, Optional
import re

from moviereview.movies.schemas import MovieSummary
from moviereview.reviews.schemas import Review


class WatchlistAdd(BaseModel):
    movie_id: str = Field(..., validation_alias=AliasChoices("movie_id", "movieId"))

    @field_validator('movie_id')
    @classmethod
    def validate_movie_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Movie ID is required')
        return v


class WatchlistResponse(BaseModel):
    watchlist: List[MovieSummary]


class UserProfile(BaseModel):
    """Public profile — no email, no password."""
    user_id: str
    username: str
    profile_picture: Optional[str] = None
    join_date: Optional[str] = None
    watchlist: List[MovieSummary] = []
    reviews: List[Review] = []


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        if v is None:
            return v
        v = v.strip()
        if len(v) < 3 or len(v) > 20:
            raise ValueError('Username must be between 3 and 20 characters')
        if not re.match(r'^[a-zA-Z0-9_]+$', v):
            raise ValueError('Username can only contain letters, numbers, and underscores')
        return v


class ProfileUpdateResponse(BaseModel):
    message: str
    user: dict
