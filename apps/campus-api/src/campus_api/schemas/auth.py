from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from campus_api.repositories.user_store import UserAccount


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=255)
    roll_number: str = Field(min_length=1, max_length=64)
    department: str = Field(min_length=1, max_length=255)


class VerifyOtpRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    otp: str = Field(min_length=4, max_length=16)


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserProfile(BaseModel):
    user_id: str
    username: str
    email: str
    roll_number: str
    department: str
    year: str
    is_verified: bool
    created_at: datetime

    @classmethod
    def from_account(cls, user: UserAccount) -> "UserProfile":
        return cls(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            roll_number=user.roll_number,
            department=user.department,
            year=user.year,
            is_verified=user.is_verified,
            created_at=user.created_at,
        )
