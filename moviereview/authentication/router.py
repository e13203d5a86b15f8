from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from moviereview.authentication import schemas, utils, security
from moviereview.database import Database, get_db
from moviereview.errors import NotFound, Unauthenticated

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(user: dict) -> str:
    return security.create_access_token(data={"sub": user["user_id"], "role": user["role"]})


# Register
@router.post('/register', response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, db: Database = Depends(get_db)):
    new_user = utils.create_user(db, user, security.hash_password(user.password))
    return {
        "access_token": _issue_token(new_user),
        "token_type": "bearer",
        "user": utils.to_private(new_user),
    }

# Login
@router.post('/login', response_model=schemas.AuthResponse)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Database = Depends(get_db)):
    """Log in with username (or email) and password."""
    user = utils.get_user_by_login(db, form_data.username)
    if not user or not security.verify_password(form_data.password, user["hashed_password"]):
        logger.info(f"[Auth] Failed login for '{form_data.username}'")
        raise Unauthenticated("Invalid credentials")

    return {
        "access_token": _issue_token(user),
        "token_type": "bearer",
        "user": utils.to_private(user),
    }

# Who Am I
@router.get("/me", response_model=schemas.UserResponse)
def me(current_user: schemas.TokenData = Depends(security.get_current_user), db: Database = Depends(get_db)):
    user = utils.get_user_by_id(db, current_user.user_id)
    if not user:
        raise NotFound("User not found")
    return utils.to_private(user)
