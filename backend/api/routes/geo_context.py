"""
Geo context API route.

Looks up nearby places from the device location and camera direction and
returns the ones the user is most likely pointing at.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.dependencies import all_finite, client_identifier, rate_limit_headers
from domain.errors import MissingCredentialsError, PlacesServiceError
from domain.models import GeoLocation, Vector3D
from services.place_scoring import NearbyPlace, rank_nearby_places
from services.places_client import PlacesProvider, get_default_places_client
from services.rate_limit import RateLimiter, get_default_rate_limiter
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)

MAX_PLACES = 5
CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=300"


def get_places() -> PlacesProvider:
    return get_default_places_client()


def get_rate_limiter() -> RateLimiter:
    return get_default_rate_limiter()


class DirectionModel(BaseModel):
    x: float
    y: float
    z: float


class GeoContextRequest(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    direction: Optional[DirectionModel] = None
    fov: float = Field(default=60.0, gt=0, lt=180)
    heading: Optional[float] = None


class NearbyPlaceResponse(BaseModel):
    name: str
    latitude: float
    longitude: float
    confidence: float
    type: str
    placeId: str
    distance: float
    bearing: float


class GeoContextResponse(BaseModel):
    places: List[NearbyPlaceResponse]


def place_to_response(place: NearbyPlace) -> NearbyPlaceResponse:
    cand = place.candidate
    return NearbyPlaceResponse(
        name=cand.name,
        latitude=cand.latitude,
        longitude=cand.longitude,
        confidence=round(place.confidence, 4),
        type=place.primary_type,
        placeId=cand.place_id,
        distance=round(place.distance_meters, 1),
        bearing=round(place.bearing_degrees, 1),
    )


def _lookup(location: GeoLocation, direction: Vector3D) -> List[NearbyPlace]:
    try:
        candidates = get_places().search_places_nearby(location, settings.GENERAL_SEARCH_RADIUS_M)
    except MissingCredentialsError as exc:
        logger.warning("Geo context unavailable: %s", exc.message)
        return []
    except PlacesServiceError as exc:
        logger.warning("Geo context search failed: %s", exc.message)
        return []
    return rank_nearby_places(
        location,
        candidates,
        settings.GENERAL_SEARCH_RADIUS_M,
        direction=direction,
        limit=MAX_PLACES,
    )


@router.post("/geo-context", response_model=GeoContextResponse)
def geo_context(body: GeoContextRequest, request: Request):
    status = get_rate_limiter().check_rate_limit(client_identifier(request))
    headers = rate_limit_headers(status)
    if not status.allowed:
        return JSONResponse({"error": "Rate limit exceeded"}, status_code=429, headers=headers)

    if body.latitude is None or body.longitude is None or body.direction is None:
        return JSONResponse({"error": "Location and direction required"}, status_code=400)
    d = body.direction
    if not all_finite((body.latitude, body.longitude, body.heading, d.x, d.y, d.z)):
        return JSONResponse({"error": "Invalid coordinates"}, status_code=400)
    if not (-90 <= body.latitude <= 90) or not (-180 <= body.longitude <= 180):
        return JSONResponse({"error": "Invalid coordinates"}, status_code=400)

    location = GeoLocation(body.latitude, body.longitude, body.heading)
    direction = Vector3D(body.direction.x, body.direction.y, body.direction.z)
    places = _lookup(location, direction)
    if places:
        headers["Cache-Control"] = CACHE_CONTROL

    payload = GeoContextResponse(places=[place_to_response(p) for p in places])
    return JSONResponse(payload.model_dump(), headers=headers)
