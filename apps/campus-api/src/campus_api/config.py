from __future__ import annotations

from devkit.config import ServiceSettings

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"


class CampusSettings(ServiceSettings):
    SERVICE_NAME: str = "campus-api"
    GOOGLE_MAPS_API_KEY: str | None = None
    PLACES_BASE_URL: str = PLACES_BASE_URL
    STATUS_TTL_SECONDS: int = 15 * 60
    STATUS_FETCH_TIMEOUT_SECONDS: float = 5.0
    ACCESS_TOKEN_MINUTES: int = 7 * 24 * 60
    OTP_TTL_SECONDS: int = 10 * 60
    LOGIN_ATTEMPTS_PER_WINDOW: int = 5
    LOGIN_WINDOW_SECONDS: int = 300
    ENRICH_PAUSE_SECONDS: float = 0.2
    ENRICH_RADIUS_METERS: int = 500


def load_campus_settings() -> CampusSettings:
    return CampusSettings()
