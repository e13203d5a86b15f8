from fastapi import APIRouter, Depends
from moviereview.authentication.schemas import TokenData
from moviereview.authentication.security import get_current_user
from moviereview.database import Database, get_db
from moviereview.errors import Forbidden
from moviereview.users import schemas, utils

router = APIRouter(prefix="/users", tags=["Users"])


def get_watchlist_manager(db: Database = Depends(get_db)) -> utils.WatchlistManager:
    return utils.WatchlistManager(db)


def _require_self(user_id: str, current_user: TokenData) -> None:
    if user_id != current_user.user_id:
        raise Forbidden("You can only modify your own watchlist")


# Public profile
@router.get("/{user_id}", response_model=schemas.UserProfile)
def get_user_profile(user_id: str, db: Database = Depends(get_db)):
    """Profile, watchlist and the ten latest reviews of a user."""
    return utils.get_profile(db, user_id)


@router.put("/{user_id}", response_model=schemas.ProfileUpdateResponse)
def update_user_profile(
    user_id: str,
    update: schemas.ProfileUpdate,
    current_user: TokenData = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    user = utils.update_profile(
        db,
        user_id,
        current_user.user_id,
        username=update.username,
        profile_picture=update.profile_picture,
    )
    return {"message": "Profile updated successfully", "user": user}


# ---------------- Watchlist Routes ----------------
@router.get("/{user_id}/watchlist", response_model=schemas.WatchlistResponse)
def get_watchlist(
    user_id: str,
    current_user: TokenData = Depends(get_current_user),
    watchlist: utils.WatchlistManager = Depends(get_watchlist_manager),
):
    return {"watchlist": watchlist.list(user_id)}


@router.post("/{user_id}/watchlist")
def add_to_watchlist(
    user_id: str,
    item: schemas.WatchlistAdd,
    current_user: TokenData = Depends(get_current_user),
    watchlist: utils.WatchlistManager = Depends(get_watchlist_manager),
):
    _require_self(user_id, current_user)
    watchlist.add(user_id, item.movie_id)
    return {"message": "Movie added to watchlist successfully"}


@router.delete("/{user_id}/watchlist/{movie_id}")
def remove_from_watchlist(
    user_id: str,
    movie_id: str,
    current_user: TokenData = Depends(get_current_user),
    watchlist: utils.WatchlistManager = Depends(get_watchlist_manager),
):
    _require_self(user_id, current_user)
    watchlist.remove(user_id, movie_id)
    return {"message": "Movie removed from watchlist successfully"}
