# src/auth/jwt.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from config.settings import auth_settings
from src.auth.schemas import AuthenticatedUser, Role, parse_role


# --- Custom Exceptions ---
class TokenError(Exception):
    """Base class for token-related errors."""
    def __init__(self, message="Token error occurred", code="TOKEN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

class TokenExpired(TokenError):
    """Raised when a token's expiration time has passed."""
    def __init__(self, message="Token has expired", code="TOKEN_EXPIRED"):
        super().__init__(message, code)

class TokenInvalid(TokenError):
    """Raised when a token is invalid (bad signature, wrong format, claims etc.)."""
    def __init__(self, message="Token is invalid", code="TOKEN_INVALID"):
        super().__init__(message, code)


# --- Token Creation ---
def create_access_token(*, user_id: str, role: Role = Role.RESPONDENT, email: str | None = None) -> str:
    """Creates a signed access token for the given user."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role.value,
        "exp": now + timedelta(seconds=auth_settings.access_ttl_seconds),
        "iat": now,
        "nbf": now,
        "iss": auth_settings.jwt_issuer,
        "aud": auth_settings.jwt_audience,
        "typ": "access",
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, auth_settings.jwt_secret, algorithm=auth_settings.jwt_algorithm)


# --- Token Decoding and Validation ---
def decode_and_validate(token: str) -> Dict[str, Any]:
    """
    Decodes and validates an access token.

    Raises:
        TokenExpired: If the token has expired.
        TokenInvalid: If the token is invalid (bad signature, format, claims).
    """
    if not token:
        raise TokenInvalid("Token cannot be empty.")

    try:
        payload = jwt.decode(
            token,
            auth_settings.jwt_secret,
            algorithms=[auth_settings.jwt_algorithm],
            audience=auth_settings.jwt_audience,
            issuer=auth_settings.jwt_issuer,
            options={"require": ["exp", "iat", "iss", "aud", "sub", "typ"]},
            leeway=timedelta(seconds=10),
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except jwt.InvalidTokenError as e:
        raise TokenInvalid(f"Token validation failed: {e}")

    if payload.get("typ") != "access":
        raise TokenInvalid("Invalid token type. Expected 'access'.")
    return payload


def authenticated_user_from_token(token: str) -> AuthenticatedUser:
    payload = decode_and_validate(token)
    return AuthenticatedUser(
        id=payload["sub"],
        role=parse_role(payload.get("role")),
        email=payload.get("email"),
    )
