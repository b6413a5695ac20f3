from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
import hmac
import logging
from typing import Protocol
from uuid import uuid4

from devkit.timezone import now_utc
from shared.security import JWTManager, TokenError, generate_otp, hash_password, verify_password

from campus_api.errors import (
    InvalidCredentialsError,
    InvalidOtpError,
    InvalidTokenError,
    UnverifiedUserError,
)
from campus_api.repositories.user_store import UserAccount, UserStore, verified

logger = logging.getLogger(__name__)


class OtpSender(Protocol):
    async def send(self, email: str, otp: str) -> None: ...


class LoggingOtpSender:
    """Records the dispatch instead of delivering mail."""

    async def send(self, email: str, otp: str) -> None:
        logger.info("otp_dispatched", extra={"email": email})


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    expires_in_seconds: int
    user: UserAccount


class AuthService:
    def __init__(
        self,
        store: UserStore,
        jwt: JWTManager,
        *,
        otp_sender: OtpSender | None = None,
        otp_ttl_seconds: int = 10 * 60,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._store = store
        self._jwt = jwt
        self._otp_sender = otp_sender or LoggingOtpSender()
        self._otp_ttl = timedelta(seconds=otp_ttl_seconds)
        self._clock = clock

    async def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        roll_number: str,
        department: str,
    ) -> UserAccount:
        now = self._clock()
        otp = generate_otp()
        user = await self._store.add(
            UserAccount(
                user_id=str(uuid4()),
                username=username.strip(),
                email=email.lower().strip(),
                roll_number=roll_number.strip(),
                department=department.strip(),
                password_hash=hash_password(password),
                otp_code=otp,
                otp_expires_at=now + self._otp_ttl,
                created_at=now,
            )
        )
        await self._otp_sender.send(user.email, otp)
        logger.info("user_registered", extra={"user_id": user.user_id})
        return user

    async def verify(self, *, email: str, otp: str) -> UserAccount:
        user = await self._store.find_by_identifier(email)
        if user is None or user.email != email.lower().strip():
            raise InvalidOtpError("invalid or expired otp")
        if not user.otp_code or not hmac.compare_digest(user.otp_code, otp.strip()):
            raise InvalidOtpError("invalid or expired otp")
        if user.otp_expires_at is None or self._clock() > user.otp_expires_at:
            raise InvalidOtpError("invalid or expired otp")
        return await self._store.save(verified(user))

    async def login(self, *, identifier: str, password: str) -> LoginResult:
        user = await self._store.find_by_identifier(identifier)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("invalid credentials")
        if not user.is_verified:
            raise UnverifiedUserError("please verify your email first")
        token = self._jwt.issue_access_token(user.user_id, str(uuid4()))
        logger.info("user_logged_in", extra={"user_id": user.user_id})
        return LoginResult(access_token=token, expires_in_seconds=self._jwt.access_seconds, user=user)

    async def resolve_token(self, token: str) -> UserAccount:
        try:
            payload = self._jwt.decode(token)
        except TokenError as exc:
            raise InvalidTokenError(str(exc)) from exc
        if payload.typ != "access":
            raise InvalidTokenError("access token required")
        user = await self._store.get_by_id(payload.sub)
        if user is None:
            raise InvalidTokenError("user no longer exists")
        return user

