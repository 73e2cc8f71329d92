"""
Multi-signal disambiguation engine.

One call to `resolve_intent` is one identification attempt:

1. Project the tap into a camera-space direction.
2. Ask the vision collaborator for a hint (never aborts the attempt).
3. With a location, search for a candidate: named match first (Strategy A),
   then directional nearby match (Strategy B).
4. Fetch details for an accepted candidate.
5. Run the fallback ladder over the collected evidence.

The engine keeps no state between attempts. Staleness and in-flight gating
belong to the caller (see `services.perception_session`).
"""
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Callable, List, Optional

from domain.errors import MissingCredentialsError, PlacesRequestDenied, PlacesServiceError
from domain.models import (
    GeoLocation,
    HintResult,
    NoHint,
    PlaceDetails,
    Point2D,
    ResolutionResult,
    ScoredCandidate,
    Vector3D,
    VisionHint,
    hint_of,
)
from services.fallback_ladder import LadderInputs, lookup_failed_result, rate_limited_result, run_ladder
from services.geo_math import tap_to_direction
from services.place_scoring import (
    NAMED_MAX_DISTANCE_M,
    NearbyPlace,
    rank_nearby_places,
    select_directional_match,
    select_named_match,
)
from services.places_client import PlacesProvider, get_default_places_client
from services.rate_limit import RateLimiter, get_default_rate_limiter
from services.vision_client import GeminiVisionClient, VisionClient
from services.vision_hints import parse_vision_response
from settings import settings

logger = logging.getLogger(__name__)

DEFAULT_FOV_DEGREES = 60.0
UNKNOWN_CLIENT = "unknown"


def named_search_queries(hint: VisionHint, location: GeoLocation) -> List[str]:
    """Queries tried in order for Strategy A, without duplicates."""
    name = (hint.name or "").strip()
    candidates = [
        name,
        f"{name} near {location.latitude},{location.longitude}",
        f"{name} {hint.type or ''}".strip(),
    ]
    queries: List[str] = []
    for q in candidates:
        if q and q not in queries:
            queries.append(q)
    return queries


class DisambiguationEngine:
    def __init__(
        self,
        vision_client: Optional[VisionClient],
        places: Optional[PlacesProvider],
        rate_limiter: Optional[RateLimiter] = None,
        named_radius_m: float = NAMED_MAX_DISTANCE_M,
        directional_radius_m: float = 150.0,
        general_radius_m: float = 500.0,
        clock: Callable[[], float] = time.time,
    ):
        self.vision_client = vision_client
        self.places = places
        self.rate_limiter = rate_limiter
        self.named_radius_m = named_radius_m
        self.directional_radius_m = directional_radius_m
        self.general_radius_m = general_radius_m
        self._clock = clock

    def resolve_intent(
        self,
        frame: Optional[bytes],
        tap_point: Point2D,
        fov_degrees: float = DEFAULT_FOV_DEGREES,
        location: Optional[GeoLocation] = None,
        client_id: Optional[str] = None,
    ) -> ResolutionResult:
        """
        Resolve one confirmed intent into a single ResolutionResult.

        Never raises: rate limiting, missing configuration, collaborator
        failures and unexpected errors all come back as typed results.
        """
        rate_status = None
        try:
            if self.rate_limiter is not None:
                rate_status = self.rate_limiter.check_rate_limit(client_id or UNKNOWN_CLIENT)
                if not rate_status.allowed:
                    logger.info("Rate limit exceeded for client %s", client_id or UNKNOWN_CLIENT)
                    return rate_limited_result(rate_status, self._clock(), tap_point)
            result = self._resolve(frame, tap_point, fov_degrees, location)
        except Exception as exc:
            # Only the exception type is logged; messages may carry request details.
            logger.error("Context lookup failed: %s", type(exc).__name__, exc_info=logger.isEnabledFor(logging.DEBUG))
            result = lookup_failed_result(tap_point)
        if rate_status is not None:
            result = dataclasses.replace(result, rate_limit=rate_status)
        logger.info("Resolved tap as %s (confidence=%.2f)", result.kind.value, result.confidence)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _resolve(
        self,
        frame: Optional[bytes],
        tap_point: Point2D,
        fov_degrees: float,
        location: Optional[GeoLocation],
    ) -> ResolutionResult:
        direction = tap_to_direction(tap_point, fov_degrees)
        hint = hint_of(self.extract_hint(frame))

        match: Optional[ScoredCandidate] = None
        details: Optional[PlaceDetails] = None
        nearby: Optional[NearbyPlace] = None
        places_configured = self.places is not None

        if location is not None and self.places is not None:
            try:
                match = self.find_candidate(hint, location, direction)
                if match is not None:
                    details = self.enrich(match)
                if hint is None and details is None:
                    nearby = self.find_nearby_place(location)
            except MissingCredentialsError as exc:
                logger.warning("Place search skipped: %s", exc.message)
                places_configured = False

        return run_ladder(
            LadderInputs(
                tap_point=tap_point,
                location=location,
                hint=hint,
                match=match,
                details=details,
                nearby=nearby,
                places_configured=places_configured,
            )
        )

    def extract_hint(self, frame: Optional[bytes]) -> HintResult:
        """Ask the vision collaborator for a hint. Failures become NoHint."""
        if self.vision_client is None:
            return NoHint("vision disabled")
        try:
            text = self.vision_client.identify(frame or b"")
        except MissingCredentialsError as exc:
            logger.warning("Vision skipped: %s", exc.message)
            return NoHint("vision not configured")
        except Exception as exc:
            logger.warning("Vision identification failed: %s", exc)
            return NoHint("vision unavailable")
        result = parse_vision_response(text)
        logger.debug("Vision hint result: %s", result)
        return result

    def find_candidate(
        self,
        hint: Optional[VisionHint],
        location: GeoLocation,
        direction: Vector3D,
    ) -> Optional[ScoredCandidate]:
        """Strategy A, then Strategy B; the first accepted candidate wins."""
        if hint is not None and hint.name:
            match = self._named_match(hint, location)
            if match is not None:
                return match
        return self._directional_match(hint, location, direction)

    def _named_match(self, hint: VisionHint, location: GeoLocation) -> Optional[ScoredCandidate]:
        for query in named_search_queries(hint, location):
            try:
                results = self.places.search_places_by_text(query, location, self.named_radius_m)
            except PlacesRequestDenied:
                logger.info("Text search denied; falling back to nearby search")
                return None
            except PlacesServiceError as exc:
                logger.warning("Text search failed for %r: %s", query, exc.message)
                continue
            if not results:
                logger.info("Text search returned no results for %r", query)
                return None
            match = select_named_match(hint.name, location, results, self.named_radius_m)
            if match is not None:
                logger.info(
                    "Named match: %s distance=%.0fm name_score=%.2f score=%.2f",
                    match.candidate.name,
                    match.distance_meters,
                    match.name_score,
                    match.score,
                )
                return match
        return None

    def _directional_match(
        self,
        hint: Optional[VisionHint],
        location: GeoLocation,
        direction: Vector3D,
    ) -> Optional[ScoredCandidate]:
        try:
            results = self.places.search_places_nearby(location, self.directional_radius_m)
        except PlacesServiceError as exc:
            logger.warning("Nearby search failed: %s", exc.message)
            return None
        match = select_directional_match(
            location,
            direction,
            results,
            radius_m=self.directional_radius_m,
            hint_type=hint.type if hint else None,
        )
        if match is not None:
            logger.info(
                "Directional match: %s distance=%.0fm score=%.2f",
                match.candidate.name,
                match.distance_meters,
                match.score,
            )
        return match

    def enrich(self, match: ScoredCandidate) -> Optional[PlaceDetails]:
        place_id = match.candidate.place_id
        if not place_id:
            return None
        try:
            return self.places.fetch_place_details(place_id)
        except PlacesServiceError as exc:
            logger.warning("Place details failed for %s: %s", place_id, exc.message)
            return None

    def find_nearby_place(self, location: GeoLocation) -> Optional[NearbyPlace]:
        """General nearby search, ranked by distance and rating only."""
        try:
            results = self.places.search_places_nearby(location, self.general_radius_m)
        except PlacesServiceError as exc:
            logger.warning("General nearby search failed: %s", exc.message)
            return None
        ranked = rank_nearby_places(location, results, self.general_radius_m, direction=None, limit=1)
        return ranked[0] if ranked else None


def build_default_engine() -> DisambiguationEngine:
    """Engine wired to the Gemini/Google Places clients and the shared rate limiter."""
    vision = None
    if settings.VISION_ENABLED:
        vision = GeminiVisionClient(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return DisambiguationEngine(
        vision_client=vision,
        places=get_default_places_client(),
        rate_limiter=get_default_rate_limiter(),
        named_radius_m=settings.NAMED_SEARCH_RADIUS_M,
        directional_radius_m=settings.DIRECTIONAL_SEARCH_RADIUS_M,
        general_radius_m=settings.GENERAL_SEARCH_RADIUS_M,
    )
