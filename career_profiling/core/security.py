"""
Bearer token verification and role gating

Tokens are issued by the auth service; this module only verifies them
and resolves the local User row.
"""
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from career_profiling.config import settings
from career_profiling.database import get_db
from career_profiling.models import User, UserRole
from career_profiling.utils.datetime_utils import utc_now

# Missing headers are turned into 401 below rather than FastAPI's default
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.
    
    Args:
        data: Claims to encode (``sub`` = user id, ``role``)
        expires_delta: Optional custom lifetime
    """
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    
    now = utc_now()
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})
    
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a token and return its claims, or None if it is invalid"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the Bearer token to an active User"""
    if credentials is None:
        raise _credentials_exception()
    
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_exception()
    
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _credentials_exception()
    
    user = db.query(User).filter(User.id == user_id).first()
    if user is None or not user.is_active:
        raise _credentials_exception()
    
    return user


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting a route to the given roles
    
    Usage:
        current_user: User = Depends(require_roles(UserRole.ADMIN))
    """
    allowed = set(roles)
    
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(status_code=403, detail="Not enough permissions")
        return current_user
    
    return dependency
