from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Any

import httpx
from geo_engine.models import GeoPoint

from campus_api.config import PLACES_BASE_URL
from campus_api.errors import ExternalSourceUnavailableError

logger = logging.getLogger(__name__)

_EMPTY_STATUSES = frozenset({"ZERO_RESULTS", "NOT_FOUND"})


@dataclass(frozen=True)
class PlaceCandidate:
    place_id: str
    formatted_address: str | None = None


class PlacesClient:
    """Thin client over the Google Places Details and Find Place endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = PLACES_BASE_URL,
        timeout_seconds: float = 5.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("places api key cannot be empty")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._client_factory = client_factory

    async def fetch_open_status(self, external_ref: str) -> bool | None:
        payload = await self._get(
            "/details/json",
            {"place_id": external_ref, "fields": "opening_hours"},
        )
        result = payload.get("result") or {}
        opening_hours = result.get("opening_hours") if isinstance(result, dict) else None
        if not isinstance(opening_hours, dict) or "open_now" not in opening_hours:
            return None
        open_now = opening_hours["open_now"]
        if open_now is None:
            return None
        if not isinstance(open_now, bool):
            raise ExternalSourceUnavailableError(f"malformed open_now value: {open_now!r}")
        return open_now

    async def find_place(
        self,
        name: str,
        near: GeoPoint,
        radius_meters: int = 500,
    ) -> PlaceCandidate | None:
        payload = await self._get(
            "/findplacefromtext/json",
            {
                "input": name,
                "inputtype": "textquery",
                "locationbias": f"circle:{radius_meters}@{near.lat},{near.lng}",
                "fields": "place_id,formatted_address,geometry",
            },
        )
        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return None
        place_id = candidates[0].get("place_id")
        if not place_id:
            return None
        return PlaceCandidate(
            place_id=str(place_id),
            formatted_address=candidates[0].get("formatted_address") or None,
        )

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {**params, "key": self._api_key}
        try:
            factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
            async with factory() as client:
                response = await client.get(f"{self._base_url}{path}", params=query)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ExternalSourceUnavailableError("places request timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise ExternalSourceUnavailableError(
                f"places returned http {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExternalSourceUnavailableError("places request failed") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalSourceUnavailableError("places returned a non-json body") from exc
        if not isinstance(payload, dict):
            raise ExternalSourceUnavailableError("places returned an unexpected payload")

        api_status = payload.get("status", "OK")
        if api_status == "OK" or api_status in _EMPTY_STATUSES:
            return payload
        logger.warning(
            "places_api_rejected",
            extra={"path": path, "api_status": api_status, "error_message": payload.get("error_message")},
        )
        raise ExternalSourceUnavailableError(f"places api status {api_status}")


class UnconfiguredStatusSource:
    """Stands in for the Places client when no API key is configured."""

    async def fetch_open_status(self, external_ref: str) -> bool | None:
        raise ExternalSourceUnavailableError("places api key is not configured")
