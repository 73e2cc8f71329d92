"""
Parsing of the vision collaborator's free-text answer into a tagged hint.

The model is asked for bare JSON, but answers regularly arrive wrapped in
Markdown fences, with trailing prose, or truncated. Parsing therefore runs in
two stages:

1. Strip fences, grab the outermost ``{...}`` block and decode it as JSON
   -> ``ParsedHint``.
2. If that fails, pull ``name`` / ``type`` / ``description`` out with
   patterns -> ``PartialHint``.

Anything else is ``NoHint``. Callers pattern-match on the three cases instead
of null-checking individual fields.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from domain.models import HintResult, NoHint, ParsedHint, PartialHint, VisionHint

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_NULL_STRINGS = {"", "null", "none", "n/a", "unknown"}


def _field_patterns(field: str) -> tuple:
    return (
        re.compile(field + r"[\"\s:]+\"([^\"]+)\"", re.IGNORECASE),
        re.compile(field + r"[\"\s:]+([^\n,}]+)", re.IGNORECASE),
    )


_NAME_PATTERNS = _field_patterns("name")
_TYPE_PATTERNS = _field_patterns("type")
_DESCRIPTION_PATTERNS = _field_patterns("description")


def _clean(value: Any) -> Optional[str]:
    """Coerce a JSON value to a trimmed string, mapping null-ish values to None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip().strip("\"'").strip()
    if text.lower() in _NULL_STRINGS:
        return None
    return text


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).replace("```", "").strip()


def hint_from_mapping(data: dict) -> VisionHint:
    """Build a VisionHint from the JSON keys the vision prompt asks for."""
    return VisionHint(
        name=_clean(data.get("name")),
        type=_clean(data.get("type")),
        description=_clean(data.get("description")),
        details=_clean(data.get("details")),
        construction_year=_clean(data.get("year")),
        architectural_style=_clean(data.get("architecturalStyle") or data.get("architectural_style")),
        significance=_clean(data.get("significance")),
    )


def _first_match(patterns: tuple, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return _clean(match.group(1))
    return None


def extract_partial_hint(text: str) -> Optional[VisionHint]:
    """Best-effort pattern extraction of name/type/description."""
    hint = VisionHint(
        name=_first_match(_NAME_PATTERNS, text),
        type=_first_match(_TYPE_PATTERNS, text),
        description=_first_match(_DESCRIPTION_PATTERNS, text),
    )
    return hint if hint.is_usable else None


def parse_vision_response(text: Optional[str]) -> HintResult:
    """Turn raw vision text into ParsedHint, PartialHint or NoHint."""
    if not text or not text.strip():
        return NoHint("empty response")

    cleaned = strip_code_fences(text)
    match = _OBJECT_RE.search(cleaned)
    if match:
        try:
            data = json.loads(match.group(0))
        except ValueError as exc:
            logger.debug("Vision response is not valid JSON: %s", exc)
        else:
            if isinstance(data, dict):
                return ParsedHint(hint_from_mapping(data))
            logger.debug("Vision response JSON is not an object: %s", type(data).__name__)
    else:
        logger.debug("No JSON object found in vision response")

    partial = extract_partial_hint(cleaned)
    if partial is not None:
        logger.info("Vision response recovered by pattern extraction: name=%s", partial.name)
        return PartialHint(partial)
    return NoHint("unparseable response")
