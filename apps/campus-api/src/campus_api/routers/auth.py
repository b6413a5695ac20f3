from __future__ import annotations

import time

from fastapi import APIRouter, Depends, status

from campus_api.dependencies import get_auth_service, get_login_limiter, get_verified_user
from campus_api.errors import (
    ApiError,
    InvalidCredentialsError,
    InvalidOtpError,
    UnverifiedUserError,
    UserAlreadyExistsError,
)
from campus_api.rate_limit import SlidingWindowLimiter
from campus_api.repositories.user_store import UserAccount
from campus_api.response import success_response
from campus_api.schemas.auth import LoginRequest, RegisterRequest, UserProfile, VerifyOtpRequest
from campus_api.services.auth_service import AuthService

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> dict:
    try:
        user = await auth.register(
            username=body.username,
            email=body.email,
            password=body.password,
            roll_number=body.roll_number,
            department=body.department,
        )
    except UserAlreadyExistsError as exc:
        raise ApiError("USER_ALREADY_EXISTS", str(exc), 409) from exc
    return success_response(
        {"user_id": user.user_id, "email": user.email, "otp_sent": True},
        meta={},
    )


@router.post("/verify")
async def verify(body: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)) -> dict:
    try:
        user = await auth.verify(email=body.email, otp=body.otp)
    except InvalidOtpError as exc:
        raise ApiError("INVALID_OTP", str(exc), 400) from exc
    return success_response(UserProfile.from_account(user).model_dump(mode="json"), meta={})


@router.post("/login")
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    limiter: SlidingWindowLimiter = Depends(get_login_limiter),
) -> dict:
    limiter_key = body.identifier.lower().strip()
    if not limiter.allow(limiter_key, now_seconds=time.time()):
        raise ApiError("RATE_LIMIT_EXCEEDED", "Too many login attempts", 429)
    try:
        result = await auth.login(identifier=body.identifier, password=body.password)
    except InvalidCredentialsError as exc:
        raise ApiError("INVALID_CREDENTIALS", "invalid credentials", 401) from exc
    except UnverifiedUserError as exc:
        raise ApiError("UNVERIFIED", str(exc), 401) from exc
    limiter.reset(limiter_key)
    return success_response(
        {
            "access_token": result.access_token,
            "token_type": "bearer",
            "expires_in_seconds": result.expires_in_seconds,
            "user": UserProfile.from_account(result.user).model_dump(mode="json"),
        },
        meta={},
    )


@router.get("/me")
async def me(user: UserAccount = Depends(get_verified_user)) -> dict:
    return success_response(UserProfile.from_account(user).model_dump(mode="json"), meta={})
