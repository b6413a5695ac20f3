"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings, load_settings
from devkit.db import AsyncDatabaseManager, Base, is_postgres_url, is_transient_db_error, normalize_postgres_dsn
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from devkit.timezone import ensure_utc, now_utc

__all__ = [
    "AsyncDatabaseManager",
    "Base",
    "ServiceSettings",
    "configure_logging",
    "configure_otel",
    "configure_probe_access_log_filter",
    "ensure_utc",
    "is_postgres_url",
    "is_transient_db_error",
    "load_settings",
    "normalize_postgres_dsn",
    "now_utc",
]
