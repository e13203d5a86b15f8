from datetime import datetime
from pydantic import AliasChoices, BaseModel, Field, HttpUrl, field_validator
from typing import List, Optional


class CastMember(BaseModel):
    name: str = Field(..., min_length=1)
    character: Optional[str] = None


class MovieCreate(BaseModel):
    """Admin payload for a new movie. Rating fields are derived, never accepted."""
    title: str = Field(..., min_length=1, max_length=200)
    genre: List[str] = Field(..., min_length=1)
    release_year: int
    director: str = Field(..., min_length=1, max_length=100)
    cast: List[CastMember] = []
    synopsis: str = Field(..., min_length=1, max_length=2000)
    poster_url: HttpUrl
    trailer_url: Optional[str] = ""
    duration: int = Field(..., gt=0, description="Duration in minutes")
    language: str = Field(..., min_length=1)
    featured: bool = False
    trending: bool = False

    @field_validator('title', 'director', 'synopsis', 'language', mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('genre')
    @classmethod
    def validate_genre(cls, v):
        genres = [g.strip() for g in v if g and g.strip()]
        if not genres:
            raise ValueError('At least one genre is required')
        return genres

    @field_validator('release_year')
    @classmethod
    def validate_release_year(cls, v):
        latest = datetime.now().year + 5
        if v < 1888 or v > latest:
            raise ValueError(f'Release year must be between 1888 and {latest}')
        return v


class Movie(BaseModel):
    movie_id: str
    title: str
    genre: List[str]
    release_year: int
    director: str
    cast: List[CastMember] = []
    synopsis: str
    poster_url: str
    trailer_url: Optional[str] = ""
    duration: int
    language: str
    average_rating: float = 0
    total_reviews: int = 0
    featured: bool = False
    trending: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class MovieSummary(BaseModel):
    movie_id: str
    title: str
    poster_url: str
    average_rating: float
    release_year: int
    genre: List[str]
    director: str


class MovieSearchParams(BaseModel):
    """Raw listing parameters, kept as strings so bad values can be dropped."""
    search: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[str] = None
    min_rating: Optional[str] = Field(None, validation_alias=AliasChoices("min_rating", "minRating"))
    max_rating: Optional[str] = Field(None, validation_alias=AliasChoices("max_rating", "maxRating"))
    sort_by: Optional[str] = Field("created_at", validation_alias=AliasChoices("sort_by", "sortBy"))
    sort_order: Optional[str] = Field("desc", validation_alias=AliasChoices("sort_order", "sortOrder"))
    page: Optional[str] = "1"
    limit: Optional[str] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool


class MovieListResponse(BaseModel):
    movies: List[Movie]
    pagination: Pagination


class FeaturedResponse(BaseModel):
    featured: List[Movie]
    trending: List[Movie]
