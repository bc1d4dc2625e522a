# /backend/app/utils/security.py

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.database import get_database

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

# =========================
# PASSWORD HASHING
# =========================

def hash_password(password: str) -> str:
    password_bytes = password.encode("utf-8")

    # bcrypt hard limit
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]

    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    password_bytes = plain_password.encode("utf-8")

    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]

    return bcrypt.checkpw(
        password_bytes,
        hashed_password.encode("utf-8")
    )

# =========================
# JWT TOKEN
# =========================

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    to_encode = data.copy()

    expire = datetime.utcnow() + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

# =========================
# CURRENT USER
# =========================

async def _user_from_token(token: str) -> dict:
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    db = get_database()
    user = await db.users.find_one({"_id": user_id})

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
):
    return await _user_from_token(credentials.credentials)

# =========================
# UPLOAD CONTEXT
# =========================

@dataclass(frozen=True)
class UploadContext:
    """Owning user of an upload, resolved once per request."""
    user_id: str
    is_demo: bool = False


async def ensure_demo_user() -> str:
    """Get or create the shared demo user and return its id."""
    db = get_database()
    await db.users.update_one(
        {"_id": settings.DEMO_USER_ID},
        {"$setOnInsert": {
            "_id": settings.DEMO_USER_ID,
            "email": "demo@example.com",
            "username": "demo",
            "hashed_password": "",
            "is_active": True,
            "created_at": datetime.utcnow(),
        }},
        upsert=True,
    )
    return settings.DEMO_USER_ID


async def get_upload_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> UploadContext:
    """
    Resolve the owning user for pipeline calls.

    Authenticated requests use the token's user. Anonymous requests are
    rejected unless ALLOW_DEMO_USER is set, in which case they act as the
    demo user.
    """
    if credentials is not None:
        user = await _user_from_token(credentials.credentials)
        return UploadContext(user_id=str(user["_id"]))

    if not settings.ALLOW_DEMO_USER:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in to upload files"
        )

    user_id = await ensure_demo_user()
    logger.info(f"Anonymous upload, using demo user {user_id}")
    return UploadContext(user_id=user_id, is_demo=True)
