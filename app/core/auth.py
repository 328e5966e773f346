"""
Authentication Utility - JWT verification and role dependencies.

Sign-in happens at the identity provider, which mints HS256 tokens with the
shared secret and `sub` set to the portal user id. This module provides:
- JWT token creation (dev tooling and tests) and verification
- FastAPI dependencies for protected routes, by role
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.db.postgres import get_db_session, sql
from app.schemas.schemas import UserRole

settings = get_settings()

# Bearer token extractor
bearer_scheme = HTTPBearer()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    # Role is read from the database, not the token, so demotions apply at once
    with get_db_session() as db:
        result = db.execute(
            sql("SELECT id, email, role FROM users WHERE id = :id"),
            {"id": str(user_id)}
        )
        user = result.fetchone()

    if not user:
        raise credentials_exception

    return {"user_id": user[0], "email": user[1], "role": user[2]}


async def get_current_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require admin role. Super admins pass too."""
    if user["role"] not in (UserRole.admin.value, UserRole.super_admin.value):
        raise HTTPException(status_code=403, detail="Admins only")
    return user


async def get_current_super_admin(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require super_admin role."""
    if user["role"] != UserRole.super_admin.value:
        raise HTTPException(status_code=403, detail="Super admins only")
    return user
