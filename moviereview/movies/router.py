from fastapi import APIRouter, Depends, Request, status
from moviereview.authentication.schemas import TokenData
from moviereview.authentication.security import require_admin
from moviereview.database import Database, get_db
from moviereview.movies import utils, schemas
from moviereview.reviews.utils import ReviewStore

router = APIRouter(prefix="/movies", tags=["Movies"])


def get_catalog(db: Database = Depends(get_db)) -> utils.MovieCatalog:
    return utils.MovieCatalog(db)


def get_search_params(request: Request) -> schemas.MovieSearchParams:
    """Read listing parameters in either snake_case or camelCase (minRating, sortBy...)."""
    return schemas.MovieSearchParams.model_validate(dict(request.query_params))


@router.get("/", response_model=schemas.MovieListResponse)
def list_movies(
    params: schemas.MovieSearchParams = Depends(get_search_params),
    catalog: utils.MovieCatalog = Depends(get_catalog),
):
    """
    Browse and search movies.
    Supports text search, genre (comma list), exact year, rating range,
    sorting and pagination. Invalid or empty filters are ignored.
    """
    return catalog.search(params)


@router.get("/featured/list", response_model=schemas.FeaturedResponse)
def featured_movies(catalog: utils.MovieCatalog = Depends(get_catalog)):
    return catalog.featured()


@router.get("/{movie_id}")
def get_movie(movie_id: str, db: Database = Depends(get_db)):
    """A movie with its ten most recent reviews."""
    movie = utils.MovieCatalog(db).get(movie_id)
    reviews = ReviewStore(db).recent_for_movie(movie_id)
    return {"movie": schemas.Movie(**movie), "reviews": reviews}


@router.post("/", status_code=status.HTTP_201_CREATED)
def add_movie(
    movie: schemas.MovieCreate,
    current_user: TokenData = Depends(require_admin),
    catalog: utils.MovieCatalog = Depends(get_catalog),
):
    """Admin: add a new movie."""
    created = catalog.create(movie)
    return {"message": "Movie added successfully", "movie": schemas.Movie(**created)}
