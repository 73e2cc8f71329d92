"""
Tap context API route.

Receives a tap location and a camera frame and returns what the user tapped on.
API keys stay server-side; error bodies never carry internal details.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from api.dependencies import all_finite, client_identifier, rate_limit_headers
from domain.errors import FrameTooLargeError, InvalidFrameError
from domain.models import GeoLocation, Point2D, ResolutionResult, ResultKind
from services.disambiguation import DisambiguationEngine, build_default_engine
from services.frame_utils import decode_frame, downscale_frame, extract_roi
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)

_engine: Optional[DisambiguationEngine] = None


def get_engine() -> DisambiguationEngine:
    global _engine
    if _engine is None:
        _engine = build_default_engine()
    return _engine


class TapContextRequest(BaseModel):
    image: Optional[str] = None  # base64, optional data-URL prefix
    tapX: Optional[float] = None  # normalized 0-1
    tapY: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    heading: Optional[float] = None
    fov: float = Field(default=60.0, gt=0, lt=180)
    roiSize: Optional[int] = Field(default=None, gt=0)


class TapPointResponse(BaseModel):
    x: float
    y: float


class TapContextResponse(BaseModel):
    kind: str
    title: str
    subtitle: str = ""
    description: Optional[str] = None
    details: Optional[str] = None
    year: Optional[str] = None
    confidence: float
    url: Optional[str] = None
    tapPoint: Optional[TapPointResponse] = None


def result_to_response(result: ResolutionResult) -> TapContextResponse:
    return TapContextResponse(
        kind=result.kind.value,
        title=result.title,
        subtitle=result.subtitle,
        description=result.description or None,
        details=result.details or None,
        year=result.year,
        confidence=result.confidence,
        url=result.url,
        tapPoint=TapPointResponse(x=result.tap_point.x, y=result.tap_point.y) if result.tap_point else None,
    )


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


def _prepare_frame(raw: bytes, tap: Point2D, roi_size: Optional[int]) -> bytes:
    if roi_size:
        raw = extract_roi(raw, tap, roi_size)
    return downscale_frame(raw, settings.FRAME_MAX_DIM)


@router.post("/tap-context", response_model=TapContextResponse)
def tap_context(body: TapContextRequest, request: Request):
    """
    Identify the thing at the tapped point.

    Status codes: 400 for a missing/oversized frame, a missing tap or
    non-finite coordinates, 429 when the client is throttled, 500 when the
    lookup failed unexpectedly.
    """
    if not body.image or body.tapX is None or body.tapY is None:
        return _bad_request("Image and tap coordinates required")
    if not all_finite((body.tapX, body.tapY, body.latitude, body.longitude, body.heading)):
        return _bad_request("Invalid coordinates")

    tap = Point2D(min(max(body.tapX, 0.0), 1.0), min(max(body.tapY, 0.0), 1.0))
    try:
        raw = decode_frame(body.image, settings.MAX_FRAME_BYTES)
        frame = _prepare_frame(raw, tap, body.roiSize)
    except FrameTooLargeError:
        return _bad_request("Frame too large")
    except InvalidFrameError as exc:
        return _bad_request(exc.message)

    location = None
    if body.latitude is not None and body.longitude is not None:
        location = GeoLocation(body.latitude, body.longitude, body.heading)

    result = get_engine().resolve_intent(
        frame,
        tap,
        fov_degrees=body.fov,
        location=location,
        client_id=client_identifier(request),
    )
    headers = rate_limit_headers(result.rate_limit)

    if result.is_error:
        if result.kind == ResultKind.RATE_LIMITED:
            return JSONResponse({"error": "Rate limit exceeded"}, status_code=429, headers=headers)
        return JSONResponse({"error": "Context lookup failed"}, status_code=500)

    return JSONResponse(result_to_response(result).model_dump(), headers=headers)
