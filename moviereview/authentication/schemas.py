from pydantic import BaseModel, EmailStr, field_validator
import re
from enum import Enum
from typing import List, Optional

# USER ROLES
class UserRole(str, Enum):
    USER = "user"     # 👤 Browse, review, keep a watchlist
    ADMIN = "admin"   # ⚙️ Adds movies, moderates reviews

# USER REGISTRATION CONTRACT
class UserCreate(BaseModel):
    username: str
    email: EmailStr  # Built-in email validation
    password: str

    # USERNAME VALIDATION PROCESS
    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if len(v) < 3 or len(v) > 20:
            raise ValueError('Username must be between 3 and 20 characters')
        if not re.match(r'^[a-zA-Z0-9_]+$', v):
            raise ValueError('Username can only contain letters, numbers, and underscores')
        return v

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()

    # PASSWORD VALIDATION PROCESS
    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        if not any(c.isupper() for c in v):
            raise ValueError('Password must contain at least one uppercase letter')
        if not any(c.islower() for c in v):
            raise ValueError('Password must contain at least one lowercase letter')
        if not any(c.isdigit() for c in v):
            raise ValueError('Password must contain at least one digit')
        if len(v) > 72:
            raise ValueError("Password cannot exceed 72 characters")
        return v

# USER RESPONSE CONTRACT (Safe data - no passwords)
class UserResponse(BaseModel):
    user_id: str
    username: str
    email: str
    role: str
    profile_picture: Optional[str] = None
    watchlist: List[str] = []
    created_at: Optional[str] = None

# TOKEN RESPONSE CONTRACT
class Token(BaseModel):
    access_token: str  # 🔑 JWT token
    token_type: str = "bearer"  # 🏷️ Standard token type

class AuthResponse(Token):
    user: UserResponse

# TOKEN DATA CONTRACT (What's embedded in JWT)
class TokenData(BaseModel):
    user_id: str          # 👤 User identifier
    username: Optional[str] = None
    role: str = UserRole.USER.value  # 🎭 User role for authorization
