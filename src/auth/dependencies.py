# src/auth/dependencies.py
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from src.auth.jwt import authenticated_user_from_token, TokenError, TokenExpired
from src.auth.schemas import AuthenticatedUser, ErrorDetail

_log = logging.getLogger(__name__)

AUTH_ERROR_DETAIL_MISSING = ErrorDetail(code="AUTH_001", message="Authentication credentials were not provided.")
AUTH_ERROR_DETAIL_INVALID = ErrorDetail(code="AUTH_001", message="Invalid authentication credentials.")
AUTH_ERROR_DETAIL_EXPIRED = ErrorDetail(code="AUTH_002", message="Token has expired.")

# auto_error=False means it returns None if no header, instead of raising HTTPException
bearer_scheme = HTTPBearer(auto_error=False, description="JWT Access Token for authentication.")


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency resolving the bearer token to an AuthenticatedUser."""
    if not credentials:
        _log.warning("Auth failed: No token provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_ERROR_DETAIL_MISSING.model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return authenticated_user_from_token(credentials.credentials)
    except TokenExpired:
        _log.info("Auth failed: Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_ERROR_DETAIL_EXPIRED.model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )
    except TokenError as e:
        _log.warning(f"Auth failed: Invalid token ({e.code}): {e.message}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTH_ERROR_DETAIL_INVALID.model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )
