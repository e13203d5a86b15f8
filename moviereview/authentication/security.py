from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.hash import pbkdf2_sha256

from moviereview.authentication import schemas, utils
from moviereview.config import settings
from moviereview.database import Database, get_db
from moviereview.errors import Forbidden, Unauthenticated

# auto_error=False so a missing token surfaces as our own Unauthenticated error
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# ---------------- Passwords ----------------
def hash_password(password: str) -> str:
    return pbkdf2_sha256.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pbkdf2_sha256.verify(password, hashed_password)


# ---------------- Tokens ----------------
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid authentication token")


# ---------------- Dependencies ----------------
def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
) -> schemas.TokenData:
    """Resolve the bearer token to the (still existing) user it was issued for."""
    if not token:
        raise Unauthenticated("Authentication required")

    payload = decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Invalid authentication token")

    user = utils.get_user_by_id(db, user_id)
    if not user:
        raise Unauthenticated("User no longer exists")

    return schemas.TokenData(user_id=user["user_id"], username=user["username"], role=user["role"])


def require_admin(current_user: schemas.TokenData = Depends(get_current_user)) -> schemas.TokenData:
    if current_user.role != schemas.UserRole.ADMIN.value:
        raise Forbidden("Admin access required")
    return current_user
