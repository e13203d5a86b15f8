from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from moviereview.reviews import utils, schemas
from moviereview.authentication.schemas import TokenData
from moviereview.authentication.security import get_current_user
from moviereview.database import Database, get_db

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_store(db: Database = Depends(get_db)) -> utils.ReviewStore:
    return utils.ReviewStore(db)


@router.get("/movie/{movie_id}", response_model=schemas.ReviewListResponse)
def list_reviews(
    movie_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("created_at", description="Sort by created_at or rating (descending)"),
    sort_by_camel: Optional[str] = Query(None, alias="sortBy"),
    store: utils.ReviewStore = Depends(get_review_store),
):
    """List a movie's reviews, newest (or highest rated) first."""
    page_ = store.list_for_movie(movie_id, page=page, page_size=limit, sort_by=sort_by_camel or sort_by)
    return {"reviews": list(page_), "pagination": page_.pagination}


@router.post("/movie/{movie_id}", response_model=schemas.ReviewMutationResponse, status_code=status.HTTP_201_CREATED)
def submit_review(
    movie_id: str,
    review_data: schemas.ReviewCreate,
    current_user: TokenData = Depends(get_current_user),
    store: utils.ReviewStore = Depends(get_review_store),
):
    """Submit a review — limited to one per user per movie."""
    review = store.submit(current_user.user_id, movie_id, review_data.rating, review_data.review_text)
    return {"message": "Review submitted successfully", "review": review}


@router.put("/{review_id}", response_model=schemas.ReviewMutationResponse)
def update_review(
    review_id: str,
    updates: schemas.ReviewUpdate,
    current_user: TokenData = Depends(get_current_user),
    store: utils.ReviewStore = Depends(get_review_store),
):
    """Edit your own review. Omitted fields are left unchanged."""
    review = store.update(review_id, current_user.user_id, rating=updates.rating, text=updates.review_text)
    return {"message": "Review updated successfully", "review": review}


@router.delete("/{review_id}")
def delete_review(
    review_id: str,
    current_user: TokenData = Depends(get_current_user),
    store: utils.ReviewStore = Depends(get_review_store),
):
    """Delete a review (only the author or an admin)."""
    store.delete(review_id, current_user.user_id, current_user.role)
    return {"message": "Review deleted successfully"}
