# src/auth/schemas.py
import enum
from dataclasses import dataclass
from pydantic import BaseModel, Field


class Role(str, enum.Enum):
    """Closed set of account roles; dashboards dispatch on this."""
    RESPONDENT = "respondent"
    COACH = "coach"
    TRAINER = "trainer"
    PARTNER = "partner"
    ADMIN = "admin"


@dataclass(frozen=True) # Immutable user state
class AuthenticatedUser:
    id: str
    role: Role
    email: str | None = None


class ErrorDetail(BaseModel):
    """Standard error response detail."""
    code: str = Field(..., description="Application-specific error code.")
    message: str = Field(..., description="User-friendly error message.")


class ErrorResponse(BaseModel):
    """Standard error response model."""
    detail: ErrorDetail


def parse_role(role_name: str | None) -> Role:
    """
    Returns the Role for a claim value.
    Missing or unknown values fall back to RESPONDENT, the least privileged role.
    """
    if role_name is None:
        return Role.RESPONDENT
    try:
        return Role(role_name.lower())
    except ValueError:
        return Role.RESPONDENT
