"""Authentication data models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserIdentity(BaseModel):
    id: str
    display_name: str = ""
    email: str | None = None


class AuthCredentials(BaseModel):
    username: str
    code: str


class AuthResult(BaseModel):
    success: bool
    token: str | None = None
    user: UserIdentity | None = None
    error: str | None = None


class TokenValidation(BaseModel):
    valid: bool
    user: UserIdentity | None = None
    expires_at: datetime | None = None
