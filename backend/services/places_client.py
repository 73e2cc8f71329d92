"""
Lightweight Google Places client (text search, nearby search, details) with
shared throttling.

API keys travel as query parameters and are never logged.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, List, Optional

import requests

from domain.errors import MissingCredentialsError, PlacesRequestDenied, PlacesServiceError
from domain.models import GeoLocation, PlaceCandidate, PlaceDetails
from settings import settings

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DETAIL_FIELDS = ",".join(
    [
        "name",
        "formatted_address",
        "formatted_phone_number",
        "website",
        "url",
        "rating",
        "user_ratings_total",
        "types",
        "geometry",
        "editorial_summary",
        "reviews",
        "opening_hours",
    ]
)


class PlacesProvider(ABC):
    """Read-only, idempotent place lookups."""

    @abstractmethod
    def search_places_by_text(self, query: str, location: GeoLocation, radius_m: float) -> List[PlaceCandidate]:
        ...

    @abstractmethod
    def search_places_nearby(self, location: GeoLocation, radius_m: float) -> List[PlaceCandidate]:
        ...

    @abstractmethod
    def fetch_place_details(self, place_id: str) -> Optional[PlaceDetails]:
        ...


def candidate_from_result(item: dict) -> Optional[PlaceCandidate]:
    """Convert one Places search result; None when it has no usable coordinates."""
    loc = (item.get("geometry") or {}).get("location") or {}
    lat = loc.get("lat")
    lng = loc.get("lng")
    if lat is None or lng is None:
        return None
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        return None
    rating = item.get("rating")
    return PlaceCandidate(
        name=str(item.get("name") or ""),
        latitude=lat_f,
        longitude=lng_f,
        place_id=str(item.get("place_id") or ""),
        types=tuple(str(t) for t in (item.get("types") or [])),
        rating=float(rating) if isinstance(rating, (int, float)) else None,
    )


def details_from_result(place_id: str, item: dict) -> PlaceDetails:
    editorial = (item.get("editorial_summary") or {}).get("overview")
    hours = (item.get("opening_hours") or {}).get("weekday_text") or []
    reviews = [r.get("text") for r in (item.get("reviews") or []) if isinstance(r, dict) and r.get("text")]
    rating = item.get("rating")
    total = item.get("user_ratings_total")
    return PlaceDetails(
        place_id=place_id,
        name=str(item.get("name") or ""),
        formatted_address=item.get("formatted_address"),
        phone=item.get("formatted_phone_number") or item.get("international_phone_number"),
        website=item.get("website"),
        url=item.get("url"),
        rating=float(rating) if isinstance(rating, (int, float)) else None,
        user_ratings_total=int(total) if isinstance(total, (int, float)) else None,
        types=tuple(str(t) for t in (item.get("types") or [])),
        editorial_summary=editorial or None,
        opening_hours=tuple(str(h) for h in hours),
        reviews=tuple(str(r) for r in reviews),
    )


class GooglePlacesClient(PlacesProvider):
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = PLACES_BASE_URL,
        timeout: float = 10.0,
        min_interval_sec: float = 0.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_interval_sec = min_interval_sec
        self.session = session or requests.Session()
        self._lock = threading.Lock()
        self._last_request_ts = 0.0
        self.logger = logging.getLogger(__name__)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _throttled_get(self, endpoint: str, params: dict) -> dict:
        """Perform a GET against a Places endpoint with a simple per-client rate limit."""
        if not self.api_key:
            raise MissingCredentialsError("GOOGLE_API_KEY")
        with self._lock:
            delta = time.time() - self._last_request_ts
            if delta < self.min_interval_sec:
                time.sleep(self.min_interval_sec - delta)
            self._last_request_ts = time.time()

        url = f"{self.base_url}/{endpoint}/json"
        try:
            resp = self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise PlacesServiceError(f"Places {endpoint} request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise PlacesServiceError(f"Places {endpoint} returned non-JSON body") from exc

        status = data.get("status", "OK")
        if status == "REQUEST_DENIED":
            raise PlacesRequestDenied(f"Places {endpoint} request denied", status=status)
        if status not in ("OK", "ZERO_RESULTS"):
            raise PlacesServiceError(f"Places {endpoint} returned status {status}", status=status)
        return data

    def _candidates(self, data: dict) -> List[PlaceCandidate]:
        results: List[PlaceCandidate] = []
        for item in data.get("results") or []:
            cand = candidate_from_result(item)
            if cand is not None:
                results.append(cand)
        return results

    def search_places_by_text(self, query: str, location: GeoLocation, radius_m: float) -> List[PlaceCandidate]:
        data = self._throttled_get(
            "textsearch",
            {
                "query": query,
                "location": f"{location.latitude},{location.longitude}",
                "radius": str(int(radius_m)),
            },
        )
        results = self._candidates(data)
        self.logger.debug(
            "GooglePlacesClient.search_places_by_text: query=%r lat=%.6f lon=%.6f radius_m=%.1f got %d results",
            query,
            location.latitude,
            location.longitude,
            radius_m,
            len(results),
        )
        return results

    def search_places_nearby(self, location: GeoLocation, radius_m: float) -> List[PlaceCandidate]:
        data = self._throttled_get(
            "nearbysearch",
            {
                "location": f"{location.latitude},{location.longitude}",
                "radius": str(int(radius_m)),
            },
        )
        results = self._candidates(data)
        self.logger.debug(
            "GooglePlacesClient.search_places_nearby: lat=%.6f lon=%.6f radius_m=%.1f got %d results",
            location.latitude,
            location.longitude,
            radius_m,
            len(results),
        )
        return results

    def fetch_place_details(self, place_id: str) -> Optional[PlaceDetails]:
        data = self._throttled_get("details", {"place_id": place_id, "fields": DETAIL_FIELDS})
        result: Any = data.get("result")
        if not isinstance(result, dict):
            return None
        return details_from_result(place_id, result)


_default_places_client: Optional[GooglePlacesClient] = None


def get_default_places_client() -> GooglePlacesClient:
    global _default_places_client
    if _default_places_client is None:
        _default_places_client = GooglePlacesClient(
            api_key=settings.GOOGLE_API_KEY,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            min_interval_sec=settings.PLACES_MIN_INTERVAL,
        )
    return _default_places_client
