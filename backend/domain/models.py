"""
Core domain models for the spatial intent resolution pipeline.
These are framework-agnostic and can be used across all services.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class Point2D:
    """A screen point, normalized to 0-1 on both axes."""
    x: float
    y: float


@dataclass(frozen=True)
class Vector3D:
    """A direction in camera space: x right, y up, z forward."""
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class IntentSignal:
    """
    A cheap, local estimate of "the user might be pointing at something".

    Produced continuously by the on-device detector; consumed only by the
    perception state machine.
    """
    position: Optional[Point2D] = None
    direction: Optional[Vector3D] = None
    strength: float = 0.0


class PerceptionState(str, Enum):
    """States of the perception gating machine."""
    IDLE = "IDLE"
    CANDIDATE = "CANDIDATE"
    INTENT_LOCKED = "INTENT_LOCKED"
    DISPLAY = "DISPLAY"
    RELEASE = "RELEASE"


@dataclass
class PerceptionContext:
    """Mutable context owned by the state machine. Observers only ever see copies."""
    state: PerceptionState = PerceptionState.IDLE
    confidence: float = 0.0
    stability_duration_ms: float = 0.0
    last_signal_timestamp: Optional[float] = None
    last_direction: Optional[Vector3D] = None


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    heading_degrees: Optional[float] = None  # compass heading of the camera, if known


# ============================================
# Vision hints
# ============================================

@dataclass(frozen=True)
class VisionHint:
    """Structured fields extracted from the vision collaborator's answer."""
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    details: Optional[str] = None
    construction_year: Optional[str] = None
    architectural_style: Optional[str] = None
    significance: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return any((self.name, self.type, self.description, self.details))


@dataclass(frozen=True)
class ParsedHint:
    """Hint parsed from a well-formed JSON answer."""
    hint: VisionHint


@dataclass(frozen=True)
class PartialHint:
    """Hint recovered by pattern extraction from a malformed answer."""
    hint: VisionHint


@dataclass(frozen=True)
class NoHint:
    """No hint could be obtained for this attempt."""
    reason: str = "unavailable"


HintResult = Union[ParsedHint, PartialHint, NoHint]


def hint_of(result: HintResult) -> Optional[VisionHint]:
    """Return the usable VisionHint carried by a hint result, if any."""
    if isinstance(result, (ParsedHint, PartialHint)) and result.hint.is_usable:
        return result.hint
    return None


# ============================================
# Places
# ============================================

@dataclass(frozen=True)
class PlaceCandidate:
    name: str
    latitude: float
    longitude: float
    place_id: str
    types: Tuple[str, ...] = ()
    rating: Optional[float] = None


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: PlaceCandidate
    distance_meters: float
    bearing_degrees: float
    name_score: float
    score: float


@dataclass(frozen=True)
class PlaceDetails:
    """Detail record for a single place."""
    place_id: str
    name: str
    formatted_address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    url: Optional[str] = None
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    types: Tuple[str, ...] = ()
    editorial_summary: Optional[str] = None
    opening_hours: Tuple[str, ...] = ()  # weekday_text lines
    reviews: Tuple[str, ...] = ()  # review texts, most relevant first


# ============================================
# Results
# ============================================

@dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds
    limit: int = 60


class ResultKind(str, Enum):
    """What kind of outcome a resolution attempt produced."""
    PLACE_MATCH = "place_match"
    VISION_ONLY = "vision_only"
    NEARBY_PLACE = "nearby_place"
    LOCATION_REQUIRED = "location_required"
    NOT_CONFIGURED = "not_configured"
    NOTHING_FOUND = "nothing_found"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


@dataclass(frozen=True)
class ResolutionResult:
    """
    The single output of one disambiguation attempt.

    Immutable; the caller owns its display lifecycle.
    """
    kind: ResultKind
    title: str
    subtitle: str = ""
    description: str = ""
    details: str = ""
    year: Optional[str] = None
    confidence: float = 0.0
    url: Optional[str] = None
    tap_point: Optional[Point2D] = None
    rate_limit: Optional[RateLimitStatus] = None

    @property
    def is_error(self) -> bool:
        """Outcomes reported as an HTTP error rather than a result card."""
        return self.kind in (ResultKind.RATE_LIMITED, ResultKind.ERROR)
