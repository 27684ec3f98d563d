"""
Admin user Pydantic schemas for request/response validation.
"""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, ConfigDict


class AdminLogin(BaseModel):
    """Schema for admin login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class AdminCreate(BaseModel):
    """Schema for provisioning an admin account."""

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=8, max_length=100)


class AdminResponse(BaseModel):
    """Schema for admin response (excludes sensitive data)."""

    id: int
    email: EmailStr
    username: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    """Schema for JWT token payload."""

    sub: int  # Admin user ID
    exp: datetime
