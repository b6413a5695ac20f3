from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from devkit.db import AsyncDatabaseManager, Base
from devkit.timezone import ensure_utc, now_utc
from sqlalchemy import Boolean, DateTime, String, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, mapped_column

from campus_api.db import prepare_schema, table_args
from campus_api.errors import UserAlreadyExistsError


@dataclass(frozen=True)
class UserAccount:
    user_id: str
    username: str
    email: str
    roll_number: str
    department: str
    password_hash: str
    year: str = "1st Year"
    is_verified: bool = False
    otp_code: str | None = None
    otp_expires_at: datetime | None = None
    created_at: datetime = field(default_factory=now_utc)


class UserORM(Base):
    __tablename__ = "users"
    __table_args__ = table_args()

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    roll_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[str] = mapped_column(String(32), nullable=False, default="1st Year")
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    otp_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserStore:
    def __init__(self, *, db: AsyncDatabaseManager | None = None) -> None:
        self._db = db
        self._orm_ready = False
        self._users: dict[str, UserAccount] = {}

    async def ensure_ready(self) -> None:
        if self._db is None or self._orm_ready:
            return
        await prepare_schema(self._db)
        self._orm_ready = True

    async def add(self, user: UserAccount) -> UserAccount:
        if self._db is None:
            for existing in self._users.values():
                if existing.email == user.email or existing.roll_number == user.roll_number:
                    raise UserAlreadyExistsError("email or roll number already registered")
                if existing.username == user.username:
                    raise UserAlreadyExistsError("username already registered")
            self._users[user.user_id] = user
            return user

        await self.ensure_ready()

        async def _run(session):
            session.add(self._to_row(user))
            return user

        try:
            return await self._db.run_with_session(_run)
        except IntegrityError as exc:
            raise UserAlreadyExistsError("email, username or roll number already registered") from exc

    async def get_by_id(self, user_id: str) -> UserAccount | None:
        if self._db is None:
            return self._users.get(user_id)

        await self.ensure_ready()

        async def _run(session):
            row = await session.get(UserORM, user_id)
            return self._to_entity(row) if row else None

        return await self._db.run_with_session(_run)

    async def find_by_identifier(self, identifier: str) -> UserAccount | None:
        """Look a user up by e-mail (case-insensitive) or roll number."""
        email = identifier.lower().strip()
        if self._db is None:
            return next(
                (
                    item
                    for item in self._users.values()
                    if item.email == email or item.roll_number == identifier.strip()
                ),
                None,
            )

        await self.ensure_ready()

        async def _run(session):
            stmt = select(UserORM).where(or_(UserORM.email == email, UserORM.roll_number == identifier.strip()))
            row = (await session.scalars(stmt)).first()
            return self._to_entity(row) if row else None

        return await self._db.run_with_session(_run)

    async def save(self, user: UserAccount) -> UserAccount:
        if self._db is None:
            self._users[user.user_id] = user
            return user

        await self.ensure_ready()

        async def _run(session):
            await session.merge(self._to_row(user))
            return user

        return await self._db.run_with_session(_run)

    @staticmethod
    def _to_row(user: UserAccount) -> UserORM:
        return UserORM(
            user_id=user.user_id,
            username=user.username,
            email=user.email,
            roll_number=user.roll_number,
            department=user.department,
            year=user.year,
            password_hash=user.password_hash,
            is_verified=user.is_verified,
            otp_code=user.otp_code,
            otp_expires_at=user.otp_expires_at,
            created_at=user.created_at,
        )

    @staticmethod
    def _to_entity(row: UserORM) -> UserAccount:
        return UserAccount(
            user_id=row.user_id,
            username=row.username,
            email=row.email,
            roll_number=row.roll_number,
            department=row.department,
            year=row.year,
            password_hash=row.password_hash,
            is_verified=bool(row.is_verified),
            otp_code=row.otp_code,
            otp_expires_at=ensure_utc(row.otp_expires_at),
            created_at=ensure_utc(row.created_at) or now_utc(),
        )


def verified(user: UserAccount) -> UserAccount:
    return replace(user, is_verified=True, otp_code=None, otp_expires_at=None)
