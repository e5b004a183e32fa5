"""User schemas for API validation."""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    """Schema for user registration."""
    username: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=1, max_length=100)


class UserUpdate(BaseModel):
    """Schema for updating the current user."""
    username: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=1, max_length=100)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class UserResponse(BaseModel):
    """Schema for user response."""
    id: str
    username: str
    email: str
    created: datetime
    roles: List[str] = []

    class Config:
        from_attributes = True


class UserCreatedResponse(BaseModel):
    id: str


# ─── Identity ───────────────────────────────

class UserById(BaseModel):
    id: str


class UserByUsername(BaseModel):
    username: str


class UserByEmail(BaseModel):
    email: str


UserIdentity = Union[UserById, UserByUsername, UserByEmail]


# ─── Tokens ─────────────────────────────────

class TokenResponse(BaseModel):
    """Schema for JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class TokenIdentity(BaseModel):
    """Identity carried by a verified access token."""
    user_id: str
    roles: List[str] = []


class UserLogin(BaseModel):
    """Schema for user login."""
    username: str
    password: str
