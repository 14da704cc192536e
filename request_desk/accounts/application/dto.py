"""
Accounts Application DTOs
=========================

Pydantic models for the authentication API.
"""

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


RoleStr = Literal["submitter", "handler"]
ViewStr = Literal["submitter", "handler"]


# ========== Request DTOs ==========

class SignUpRequest(BaseModel):
    """Request model for account registration."""
    email: str = Field(..., min_length=3, description="Account email")
    password: str = Field(..., min_length=6, description="Account password")
    name: str = Field(..., min_length=1, description="Display name")
    role: RoleStr = Field(default="submitter", description="Requested role")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()


class SignInRequest(BaseModel):
    """Request model for password sign-in."""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


# ========== Response DTOs ==========

class UserInfo(BaseModel):
    """Identity of the caller."""
    id: UUID
    email: str
    display_name: str


class SignUpResponse(BaseModel):
    """Response model for registration."""
    user: UserInfo
    role: RoleStr


class SessionResponse(BaseModel):
    """Response model for sign-in."""
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user: UserInfo
    role: RoleStr
    view: ViewStr


class MeResponse(BaseModel):
    """Response model for the current caller."""
    user: UserInfo
    role: RoleStr
    view: ViewStr
