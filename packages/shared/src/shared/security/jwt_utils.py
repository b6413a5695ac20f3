from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import json
from typing import Any

_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    """Raised when a bearer token cannot be trusted."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode_json(segment: str) -> dict[str, Any]:
    padding = "=" * (-len(segment) % 4)
    try:
        decoded = json.loads(base64.urlsafe_b64decode(segment + padding))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise TokenError("malformed token") from exc
    if not isinstance(decoded, dict):
        raise TokenError("malformed token")
    return decoded


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthTokenPayload:
    sub: str
    exp: int
    iat: int
    typ: str
    jti: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class JWTManager:
    """Issues and verifies HS256 access tokens for campus accounts."""

    def __init__(
        self,
        secret: str,
        access_minutes: int = 7 * 24 * 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self._secret = secret.encode("utf-8")
        self._access_minutes = access_minutes
        self._clock = clock

    @property
    def access_seconds(self) -> int:
        return self._access_minutes * 60

    def issue_access_token(self, subject: str, jti: str) -> str:
        issued = self._clock()
        payload = AuthTokenPayload(
            sub=subject,
            iat=int(issued.timestamp()),
            exp=int((issued + timedelta(minutes=self._access_minutes)).timestamp()),
            typ="access",
            jti=jti,
        )
        signing_input = ".".join(
            _b64encode(json.dumps(part, separators=(",", ":")).encode("utf-8"))
            for part in (_HEADER, payload.to_dict())
        )
        return f"{signing_input}.{self._sign(signing_input)}"

    def decode(self, token: str) -> AuthTokenPayload:
        segments = token.split(".")
        if len(segments) != 3:
            raise TokenError("malformed token")
        header_raw, payload_raw, signature = segments
        signing_input = f"{header_raw}.{payload_raw}"
        if not hmac.compare_digest(self._sign(signing_input), signature):
            raise TokenError("invalid token signature")
        if _b64decode_json(header_raw).get("alg") != _HEADER["alg"]:
            raise TokenError("unsupported token algorithm")

        claims = _b64decode_json(payload_raw)
        try:
            exp = int(claims.get("exp", 0))
            iat = int(claims.get("iat", 0))
        except (TypeError, ValueError) as exc:
            raise TokenError("malformed token") from exc
        if exp <= int(self._clock().timestamp()):
            raise TokenError("token expired")
        if not claims.get("sub"):
            raise TokenError("token has no subject")
        return AuthTokenPayload(
            sub=str(claims["sub"]),
            exp=exp,
            iat=iat,
            typ=str(claims.get("typ", "")),
            jti=str(claims.get("jti", "")),
        )

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._secret, signing_input.encode("utf-8"), hashlib.sha256).digest()
        return _b64encode(digest)
