from datetime import datetime, timedelta, timezone
from typing import Optional

import redis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from . import models
from .config import settings
from .database import get_db
from .errors import forbidden, unauthenticated

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)

ACCESS = "access"
REFRESH = "refresh"


# --- Password Hashing Functions ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# --- JWT Token Creation ---
def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "role": role, "type": ACCESS, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: int, jti: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    to_encode = {"sub": str(user_id), "jti": jti, "type": REFRESH, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str = ACCESS) -> dict:
    """Decode and check a token, raising a 401 ApiError on any problem."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise unauthenticated("Token expired", "TOKEN_EXPIRED")
    except JWTError:
        raise unauthenticated("Invalid or expired token", "INVALID_TOKEN")
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise unauthenticated("Invalid or expired token", "INVALID_TOKEN")
    return payload


# --- Refresh token registry ---
class RefreshTokenRegistry:
    """Revocable set of issued refresh tokens, keyed by their jti and kept in Redis.

    One registry is created per application at startup and handed to the
    handlers through `get_token_registry`.
    """

    key_prefix = "refresh_token:"

    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def _key(self, jti: str) -> str:
        return f"{self.key_prefix}{jti}"

    def add(self, jti: str, user_id: int):
        self.client.set(self._key(jti), str(user_id), ex=self.ttl_seconds)

    def contains(self, jti: str) -> bool:
        return bool(self.client.exists(self._key(jti)))

    def revoke(self, jti: str):
        self.client.delete(self._key(jti))


def get_token_registry(request: Request) -> RefreshTokenRegistry:
    return request.app.state.token_registry


# --- User Authentication Dependencies ---
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> models.User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise unauthenticated("No token provided", "NO_TOKEN")
    payload = decode_token(credentials.credentials, ACCESS)
    try:
        user_id = int(payload["sub"])
    except ValueError:
        raise unauthenticated("Invalid or expired token", "INVALID_TOKEN")

    result = await db.execute(select(models.User).where(models.User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise unauthenticated("User not found", "USER_NOT_FOUND")
    return user


async def get_admin_user(current_user: models.User = Depends(get_current_user)) -> models.User:
    if current_user.role != models.Role.ADMIN.value:
        raise forbidden("Admin access required", "FORBIDDEN")
    return current_user
