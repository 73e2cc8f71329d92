"""
Fallback ladder: an ordered list of result builders, first non-None wins.

Each rung is a pure function of the evidence gathered during one attempt, so
every rung can be tested on its own. Rate limiting and unexpected errors are
not rungs; the engine handles those before and around the ladder.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from domain.models import (
    GeoLocation,
    PlaceDetails,
    Point2D,
    RateLimitStatus,
    ResolutionResult,
    ResultKind,
    ScoredCandidate,
    VisionHint,
)
from services.place_enrichment import (
    build_description,
    build_details,
    build_vision_details,
    format_place_type,
)
from services.place_scoring import NearbyPlace

PLACE_MATCH_CONFIDENCE = 0.9
VISION_ONLY_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.3

DEFAULT_TITLE = "Building"


@dataclass(frozen=True)
class LadderInputs:
    """Evidence collected by one disambiguation attempt."""
    tap_point: Point2D
    location: Optional[GeoLocation] = None
    hint: Optional[VisionHint] = None
    match: Optional[ScoredCandidate] = None
    details: Optional[PlaceDetails] = None
    nearby: Optional[NearbyPlace] = None
    places_configured: bool = True


Rung = Callable[[LadderInputs], Optional[ResolutionResult]]


def place_match_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    """Accepted candidate with a detail record: full merged result."""
    if inputs.match is None or inputs.details is None:
        return None
    details = inputs.details
    hint = inputs.hint
    raw_type = (hint.type if hint else None) or (details.types[0] if details.types else None)
    title = (hint.name if hint else None) or details.name or inputs.match.candidate.name or DEFAULT_TITLE
    return ResolutionResult(
        kind=ResultKind.PLACE_MATCH,
        title=title,
        subtitle=format_place_type(raw_type),
        description=build_description(details, hint),
        details=build_details(details, hint),
        year=hint.construction_year if hint else None,
        # Enrichment success is treated as strong evidence regardless of the match score.
        confidence=PLACE_MATCH_CONFIDENCE,
        url=details.url or details.website,
        tap_point=inputs.tap_point,
    )


def vision_only_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    hint = inputs.hint
    if hint is None:
        return None
    return ResolutionResult(
        kind=ResultKind.VISION_ONLY,
        title=hint.name or DEFAULT_TITLE,
        subtitle=format_place_type(hint.type),
        description=hint.description or "",
        details=build_vision_details(hint),
        year=hint.construction_year,
        confidence=VISION_ONLY_CONFIDENCE,
        tap_point=inputs.tap_point,
    )


def nearby_place_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    nearby = inputs.nearby
    if inputs.hint is not None or nearby is None:
        return None
    place_type = format_place_type(nearby.primary_type)
    return ResolutionResult(
        kind=ResultKind.NEARBY_PLACE,
        title=nearby.candidate.name or "Unknown Place",
        subtitle=place_type,
        description=f"A {place_type.lower()} located nearby.",
        confidence=nearby.confidence,
        tap_point=inputs.tap_point,
    )


def location_required_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    if inputs.location is not None:
        return None
    return ResolutionResult(
        kind=ResultKind.LOCATION_REQUIRED,
        title="Location Required",
        subtitle="Please enable location permissions to get real information about places you tap on.",
        confidence=FALLBACK_CONFIDENCE,
        tap_point=inputs.tap_point,
    )


def not_configured_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    if inputs.places_configured:
        return None
    return ResolutionResult(
        kind=ResultKind.NOT_CONFIGURED,
        title="API Key Not Configured",
        subtitle="Google Places API key is required. Add GOOGLE_API_KEY to your .env file.",
        confidence=FALLBACK_CONFIDENCE,
        tap_point=inputs.tap_point,
    )


def nothing_found_rung(inputs: LadderInputs) -> Optional[ResolutionResult]:
    tap = inputs.tap_point
    if inputs.location is not None:
        subtitle = (
            f"Location: {inputs.location.latitude:.4f}, {inputs.location.longitude:.4f}. "
            "Try tapping on a visible building or landmark."
        )
    else:
        subtitle = f"Tapped at ({tap.x * 100:.0f}%, {tap.y * 100:.0f}%)"
    return ResolutionResult(
        kind=ResultKind.NOTHING_FOUND,
        title="No Information Found",
        subtitle=subtitle,
        confidence=FALLBACK_CONFIDENCE,
        tap_point=tap,
    )


DEFAULT_LADDER: List[Rung] = [
    place_match_rung,
    vision_only_rung,
    nearby_place_rung,
    location_required_rung,
    not_configured_rung,
    nothing_found_rung,
]


def run_ladder(inputs: LadderInputs, rungs: Optional[List[Rung]] = None) -> ResolutionResult:
    for rung in rungs or DEFAULT_LADDER:
        result = rung(inputs)
        if result is not None:
            return result
    return nothing_found_rung(inputs)


def rate_limited_result(status: RateLimitStatus, now: float, tap_point: Optional[Point2D] = None) -> ResolutionResult:
    retry_in = max(0, int(round(status.reset_at - now)))
    return ResolutionResult(
        kind=ResultKind.RATE_LIMITED,
        title="Too Many Requests",
        subtitle=f"Please try again in {retry_in} seconds.",
        confidence=0.0,
        tap_point=tap_point,
        rate_limit=status,
    )


def lookup_failed_result(tap_point: Optional[Point2D] = None) -> ResolutionResult:
    return ResolutionResult(
        kind=ResultKind.ERROR,
        title="Lookup Failed",
        subtitle="Context lookup failed",
        confidence=0.0,
        tap_point=tap_point,
    )
