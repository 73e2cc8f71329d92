"""
Candidate scoring for the two search strategies plus the general nearby ranking.

Strategy A (named match) favors name similarity with a distance tiebreaker.
Strategy B (directional match) favors nearness and agreement with the tap
bearing, with a bonus when the vision hint's type matches a place type.

Every ranking sorts on a total key (score, distance, place_id, name) so the
same inputs always select the same candidate.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from domain.models import GeoLocation, PlaceCandidate, ScoredCandidate, Vector3D
from services.geo_math import (
    bearing_difference,
    direction_bearing_degrees,
    haversine_meters,
    initial_bearing_degrees,
)

# Strategy A
NAME_EXACT_SCORE = 1.0
NAME_CONTAINS_SCORE = 0.7
NAME_WEIGHT = 0.7
NAMED_DISTANCE_WEIGHT = 0.3
NAMED_MAX_DISTANCE_M = 2000.0

# Strategy B
DISTANCE_FALLOFF_M = 50.0
DIRECTION_WINDOW_DEG = 45.0
DIRECTION_WEIGHT = 0.5
TYPE_BONUS = 0.3
DIRECTIONAL_MIN_SCORE = 0.2

# General nearby ranking
NEARBY_DISTANCE_SPAN_M = 1000.0
NEARBY_MIN_DISTANCE_SCORE = 0.3
NEARBY_DEFAULT_RATING_SCORE = 0.7
NEARBY_MIN_CONFIDENCE = 0.3


def name_score(hint_name: Optional[str], place_name: Optional[str]) -> float:
    """
    Similarity of a vision-read name and a place name in [0, 1].

    1.0 for a case-insensitive exact match, 0.7 when one contains the other,
    otherwise the share of overlapping words.
    """
    a = (hint_name or "").strip().lower()
    b = (place_name or "").strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return NAME_EXACT_SCORE
    if a in b or b in a:
        return NAME_CONTAINS_SCORE
    hint_words = a.split()
    place_words = b.split()
    overlap = len([w for w in hint_words if w in place_words])
    return overlap / max(len(hint_words), len(place_words))


def type_matches(hint_type: Optional[str], place_types: Iterable[str]) -> bool:
    if not hint_type:
        return False
    needle = hint_type.strip().lower()
    if not needle:
        return False
    for t in place_types:
        tag = t.lower()
        if needle in tag or tag in needle:
            return True
    return False


def _ranking_key(item: ScoredCandidate) -> tuple:
    return (-item.score, item.distance_meters, item.candidate.place_id, item.candidate.name)


def rank(items: Iterable[ScoredCandidate]) -> List[ScoredCandidate]:
    return sorted(items, key=_ranking_key)


def _distance_and_bearing(location: GeoLocation, cand: PlaceCandidate) -> tuple:
    distance = haversine_meters(location.latitude, location.longitude, cand.latitude, cand.longitude)
    bearing = initial_bearing_degrees(location.latitude, location.longitude, cand.latitude, cand.longitude)
    return distance, bearing


def score_named_candidates(
    hint_name: str,
    location: GeoLocation,
    candidates: Sequence[PlaceCandidate],
    max_distance_m: float = NAMED_MAX_DISTANCE_M,
) -> List[ScoredCandidate]:
    """Strategy A scoring: 0.7 * name score + 0.3 * distance closeness."""
    scored = []
    for cand in candidates:
        distance, bearing = _distance_and_bearing(location, cand)
        n_score = name_score(hint_name, cand.name)
        closeness = 1 - min(distance / max_distance_m, 1.0)
        scored.append(
            ScoredCandidate(
                candidate=cand,
                distance_meters=distance,
                bearing_degrees=bearing,
                name_score=n_score,
                score=NAME_WEIGHT * n_score + NAMED_DISTANCE_WEIGHT * closeness,
            )
        )
    return rank(scored)


def select_named_match(
    hint_name: str,
    location: GeoLocation,
    candidates: Sequence[PlaceCandidate],
    max_distance_m: float = NAMED_MAX_DISTANCE_M,
) -> Optional[ScoredCandidate]:
    ranked = score_named_candidates(hint_name, location, candidates, max_distance_m)
    if ranked and ranked[0].distance_meters < max_distance_m:
        return ranked[0]
    return None


def score_directional_candidates(
    location: GeoLocation,
    direction: Vector3D,
    candidates: Sequence[PlaceCandidate],
    hint_type: Optional[str] = None,
) -> List[ScoredCandidate]:
    """
    Strategy B scoring: distance score + 0.5 * direction score + type bonus.

    Bearing differences wrap into [0, 180], so 359 and 1 degrees are 2 apart.
    """
    tap_bearing = direction_bearing_degrees(direction, location.heading_degrees)
    scored = []
    for cand in candidates:
        distance, bearing = _distance_and_bearing(location, cand)
        distance_score = 1 / (1 + distance / DISTANCE_FALLOFF_M)
        diff = bearing_difference(bearing, tap_bearing)
        direction_score = max(0.0, 1 - diff / DIRECTION_WINDOW_DEG) if diff < DIRECTION_WINDOW_DEG else 0.0
        bonus = TYPE_BONUS if type_matches(hint_type, cand.types) else 0.0
        scored.append(
            ScoredCandidate(
                candidate=cand,
                distance_meters=distance,
                bearing_degrees=bearing,
                name_score=0.0,
                score=distance_score + DIRECTION_WEIGHT * direction_score + bonus,
            )
        )
    return rank(scored)


def select_directional_match(
    location: GeoLocation,
    direction: Vector3D,
    candidates: Sequence[PlaceCandidate],
    radius_m: float,
    hint_type: Optional[str] = None,
) -> Optional[ScoredCandidate]:
    ranked = score_directional_candidates(location, direction, candidates, hint_type)
    if not ranked:
        return None
    best = ranked[0]
    if best.distance_meters < radius_m and best.score > DIRECTIONAL_MIN_SCORE:
        return best
    return None


@dataclass(frozen=True)
class NearbyPlace:
    """A place from the general nearby search with its heuristic confidence."""
    candidate: PlaceCandidate
    distance_meters: float
    bearing_degrees: float
    confidence: float

    @property
    def primary_type(self) -> str:
        return self.candidate.types[0] if self.candidate.types else "establishment"


def nearby_confidence(distance_m: float, rating: Optional[float], direction_match: Optional[float] = None) -> float:
    """
    Distance/rating blend used for the general nearby search.

    With a direction match the blend is 0.4 distance + 0.3 rating + 0.3
    direction. Without one the distance and rating weights are renormalized
    and the result is clamped to [0.3, 1.0].
    """
    distance_score = max(NEARBY_MIN_DISTANCE_SCORE, 1 - distance_m / NEARBY_DISTANCE_SPAN_M)
    rating_score = rating / 5 if rating else NEARBY_DEFAULT_RATING_SCORE
    if direction_match is not None:
        return 0.4 * distance_score + 0.3 * rating_score + 0.3 * direction_match
    blend = (0.4 * distance_score + 0.3 * rating_score) / 0.7
    return max(NEARBY_MIN_CONFIDENCE, min(1.0, blend))


def rank_nearby_places(
    location: GeoLocation,
    candidates: Sequence[PlaceCandidate],
    radius_m: float,
    direction: Optional[Vector3D] = None,
    limit: int = 5,
) -> List[NearbyPlace]:
    """
    Rank nearby places by heuristic confidence, dropping anything beyond radius_m.

    When a direction is given, agreement within 90 degrees adds to the score.
    """
    tap_bearing = direction_bearing_degrees(direction, location.heading_degrees) if direction else None
    places = []
    for cand in candidates:
        distance, bearing = _distance_and_bearing(location, cand)
        if distance > radius_m:
            continue
        direction_match = None
        if tap_bearing is not None:
            direction_match = 1 - min(bearing_difference(bearing, tap_bearing) / 90.0, 1.0)
        places.append(
            NearbyPlace(
                candidate=cand,
                distance_meters=distance,
                bearing_degrees=bearing,
                confidence=nearby_confidence(distance, cand.rating, direction_match),
            )
        )
    places.sort(key=lambda p: (-p.confidence, p.distance_meters, p.candidate.place_id, p.candidate.name))
    return places[:limit]
