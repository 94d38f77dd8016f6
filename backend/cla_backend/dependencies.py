# backend/cla_backend/dependencies.py
"""
FastAPI dependencies for authentication.

The bearer JWT identifies the acting user: ``sub`` (or ``username``) is the
LF username checked against signature ACLs, ``email`` the caller's primary
email. A caller's GitHub OAuth token, needed for GitHub organization
approval list edits, is passed in the ``X-GitHub-Token`` header.

Usage:
    from fastapi import Depends
    from cla_backend.dependencies import get_current_user

    @router.put("/protected")
    async def protected_endpoint(user: AuthUser = Depends(get_current_user)):
        return {"user_name": user.user_name}
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .models import AuthUser

logger = logging.getLogger("cla.dependencies")

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthUser:
    """
    Decode the bearer JWT into the acting user.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_name = payload.get("username") or payload.get("sub")
    if not user_name:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token payload missing username",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.debug(f"User authenticated via JWT: {user_name}")
    return AuthUser(user_name=user_name, email=payload.get("email"))


async def get_github_access_token(
    x_github_token: Optional[str] = Header(default=None, alias="X-GitHub-Token"),
) -> Optional[str]:
    return x_github_token or None
