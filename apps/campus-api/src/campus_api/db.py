from __future__ import annotations

from typing import Any

from devkit.db import AsyncDatabaseManager, Base, is_postgres_url

from campus_api.config import load_campus_settings

_SETTINGS = load_campus_settings()
DB_SCHEMA = "campus" if is_postgres_url(_SETTINGS.DATABASE_URL) else None


def table_args(*constraints: Any) -> Any:
    if not DB_SCHEMA:
        return constraints or {}
    if constraints:
        return (*constraints, {"schema": DB_SCHEMA})
    return {"schema": DB_SCHEMA}


def build_database(database_url: str | None) -> AsyncDatabaseManager | None:
    if not is_postgres_url(database_url):
        return None
    assert database_url is not None
    return AsyncDatabaseManager(database_url)


async def prepare_schema(db: AsyncDatabaseManager) -> None:
    await db.bootstrap(Base.metadata, schema_name=DB_SCHEMA)
