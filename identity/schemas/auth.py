"""
Pydantic models for auth request validation.

Defines schemas for registration, login, logout, refresh, and account recovery.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, EmailStr, field_validator

from common.utils import validate_password

PASSWORD_RULE_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)

INDIVIDUAL_FIELDS = ("fullName",)
ORGANIZATION_FIELDS = ("organizationName", "organizationType", "contactPersonName", "phone")


def check_password_rule(value: str) -> str:
    is_valid, _ = validate_password(value)
    if not is_valid:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        raise ValueError(PASSWORD_RULE_MESSAGE)
    return value


class RegisterRequest(BaseModel):
    """Request body for account registration."""
    email: EmailStr
    password: str
    role: Literal["individual", "organization"]

    # Individual accounts
    fullName: Optional[str] = Field(None, min_length=1, max_length=60)

    # Organization accounts
    organizationName: Optional[str] = Field(None, min_length=1, max_length=100)
    organizationType: Optional[str] = Field(None, min_length=1)
    contactPersonName: Optional[str] = Field(None, min_length=1, max_length=60)
    phone: Optional[str] = Field(None, min_length=1)

    @field_validator(
        "fullName", "organizationName", "organizationType", "contactPersonName",
        mode="before",
    )
    @classmethod
    def strip_names(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_rule(value)

    def role_field_errors(self) -> List[Dict[str, str]]:
        """
        Check the fields the chosen role requires.

        Returns:
            List of ``{path, message}`` items, empty when complete
        """
        if self.role == "individual":
            if not self.fullName:
                return [{
                    "path": "fullName",
                    "message": "Full name is required for individual users",
                }]
            return []

        if not all(getattr(self, field) for field in ORGANIZATION_FIELDS):
            return [{
                "path": "organizationName",
                "message": (
                    "Organization name, type, contact person name, and phone "
                    "are required for organization users"
                ),
            }]
        return []

    def to_account_fields(self) -> Dict[str, Any]:
        """Fields stored on the new account; the other role's fields are dropped."""
        role_fields = INDIVIDUAL_FIELDS if self.role == "individual" else ORGANIZATION_FIELDS
        fields = {
            "email": str(self.email),
            "password": self.password,
            "role": self.role,
        }
        for field in role_fields:
            fields[field] = getattr(self, field)
        return fields


class LoginRequest(BaseModel):
    """Request body for email/password login."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Request body for closing a single session."""
    refreshToken: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    """Request body for exchanging a refresh token."""
    refreshToken: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    """Request body for starting a password reset."""
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request body for completing a password reset (token is in the query)."""
    password: str

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return check_password_rule(value)
