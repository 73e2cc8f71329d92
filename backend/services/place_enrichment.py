"""
Merging of a place detail record with the vision hint into display text.
"""
from __future__ import annotations

from typing import List, Optional

from domain.models import PlaceDetails, VisionHint

REVIEW_SNIPPET_MAX_CHARS = 200


def format_place_type(raw_type: Optional[str], default: str = "Location") -> str:
    """'tourist_attraction' -> 'Tourist Attraction'."""
    if not raw_type or not raw_type.strip():
        return default
    words = raw_type.replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words if w)


def truncate_review(text: str, max_chars: int = REVIEW_SNIPPET_MAX_CHARS) -> str:
    text = text.strip()
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def build_description(details: PlaceDetails, hint: Optional[VisionHint]) -> str:
    """Prefer the editorial summary, appending the vision description when distinct."""
    vision_description = hint.description if hint else None
    editorial = details.editorial_summary
    if editorial:
        if vision_description and vision_description.strip() != editorial.strip():
            return f"{editorial} {vision_description}"
        return editorial
    if vision_description:
        return vision_description
    place_type = details.types[0].replace("_", " ") if details.types else "location"
    address = details.formatted_address or "this location"
    return f"{details.name} is a {place_type} located at {address}."


def build_details(details: PlaceDetails, hint: Optional[VisionHint]) -> str:
    """
    Concatenate the details block in priority order, one paragraph per fact.
    """
    parts: List[str] = []
    editorial = details.editorial_summary
    if editorial:
        parts.append(editorial)
    if hint is not None:
        if hint.details and hint.details != editorial:
            parts.append(hint.details)
        if hint.significance:
            parts.append(f"Significance: {hint.significance}")
        if hint.architectural_style:
            parts.append(f"Architectural Style: {hint.architectural_style}")
        if hint.construction_year:
            parts.append(f"Built: {hint.construction_year}")
    if details.formatted_address:
        parts.append(f"Address: {details.formatted_address}")
    if details.rating:
        parts.append(f"Rating: {details.rating}/5 ({details.user_ratings_total or 0} reviews)")
    if details.phone:
        parts.append(f"Phone: {details.phone}")
    if details.opening_hours:
        parts.append(f"Hours: {details.opening_hours[0]}")
    if details.reviews and details.reviews[0].strip():
        parts.append(f'Review: "{truncate_review(details.reviews[0])}"')
    return "\n\n".join(parts)


def build_vision_details(hint: VisionHint) -> str:
    parts = [
        hint.details,
        hint.significance,
        f"Architectural style: {hint.architectural_style}" if hint.architectural_style else None,
    ]
    return "\n\n".join(p for p in parts if p)
