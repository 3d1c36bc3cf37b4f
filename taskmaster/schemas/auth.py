"""Pydantic schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    name: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str


class UserPublic(BaseModel):
    """User fields safe to return to clients."""

    id: int
    name: str
    email: str
    created_at: datetime
    last_login_at: datetime | None

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    token: str
    user: UserPublic
