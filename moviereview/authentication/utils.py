import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple
from urllib.parse import quote_plus

from loguru import logger

from moviereview.authentication import schemas
from moviereview.database import Database, DuplicateKeyError
from moviereview.errors import ValidationError


def get_current_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_profile_picture(username: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote_plus(username)}&background=random"


def get_user_by_id(db: Database, user_id: str) -> Optional[Dict]:
    return db.users.find_one({"user_id": user_id})


def get_user_by_username(db: Database, username: str) -> Optional[Dict]:
    return db.users.find_one({"username": username})


def get_user_by_login(db: Database, login: str) -> Optional[Dict]:
    """Find a user by username, falling back to email."""
    return get_user_by_username(db, login) or db.users.find_one({"email": login.strip().lower()})


def user_exists(db: Database, username: str, email: str) -> Tuple[bool, str]:
    if db.users.find_one({"email": email}):
        return True, "Email already registered"
    if get_user_by_username(db, username):
        return True, "Username already taken"
    return False, ""


def to_private(user: Dict) -> Dict:
    """User view for the account owner: everything except the password hash."""
    return {k: v for k, v in user.items() if k != "hashed_password"}


def create_user(db: Database, user: schemas.UserCreate, hashed_password: str) -> Dict:
    with db.lock:
        exists, message = user_exists(db, user.username, user.email)
        if exists:
            raise ValidationError(message)

        new_user = {
            "user_id": str(uuid.uuid4()),
            "username": user.username,
            "email": user.email,
            "hashed_password": hashed_password,
            "profile_picture": default_profile_picture(user.username),
            "role": schemas.UserRole.USER.value,
            "watchlist": [],
            "created_at": get_current_timestamp(),
        }
        try:
            db.users.insert_one(new_user)
        except DuplicateKeyError as e:
            field = e.fields[0]
            raise ValidationError("Email already registered" if field == "email" else "Username already taken")

    logger.info(f"[Auth] Registered user {new_user['username']} ({new_user['user_id']})")
    return new_user
