"""Pydantic schemas for authentication payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    active_account: str
    created_at: datetime


class AuthResponse(BaseModel):
    access_token: str = Field(..., description="Opaque token for session management")
    token_type: str = Field(default="bearer")
    user: UserOut


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordUpdateRequest(BaseModel):
    access_token: str = Field(..., description="Recovery token taken from the link fragment")
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self) -> "PasswordUpdateRequest":
        if self.password != self.confirm_password:
            raise ValueError("Las contraseñas no coinciden.")
        return self


class MessageResponse(BaseModel):
    message: str


class AccountSelection(BaseModel):
    account_label: str = Field(..., pattern="^(demo|real)$")


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: datetime
