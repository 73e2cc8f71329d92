"""
Vision collaborator: asks Gemini (Google AI Studio REST API) to identify the
specific building in a cropped camera frame.

The client returns the model's raw text. Turning that text into a hint is the
job of `services.vision_hints`.
"""
from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from domain.errors import MissingCredentialsError, VisionServiceError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

IDENTIFY_BUILDING_PROMPT = """You are analyzing a cropped region from a mobile camera where the user tapped on a specific building. Your job is to identify THIS EXACT building.

CRITICAL INSTRUCTIONS:
1. Look for ANY text, signs, numbers, or names on the building - street numbers, building names, business signs, ANYTHING
2. Look for distinctive architectural features, colors, materials, or design elements
3. If you see ANY identifying information (even partial), extract it
4. DO NOT just say "apartment building" or "residential building" - try to identify the SPECIFIC building

Respond ONLY with valid JSON (no markdown, no code blocks):
{
  "name": "specific building name, address number, business name, or distinctive identifier",
  "type": "specific type: temple/church/mosque/restaurant/hotel/office_building/residential_building/monument/landmark/etc",
  "description": "2-3 sentence description focusing on identifying features you can see",
  "details": "specific architectural features, materials, visible text or signs, estimated era (4-5 sentences)",
  "year": "construction year or era if deducible from architecture, or null",
  "architecturalStyle": "specific architectural style if identifiable, or null",
  "significance": "why this building might be notable, or null"
}

REMEMBER: Extract ANY identifying information you see. Even "Red brick building with '123' on door" is better than "apartment building"."""


class VisionClient(ABC):
    """Identifies the object in one still image region."""

    @abstractmethod
    def identify(self, image: bytes) -> str:
        """Return the raw text answer for the image."""


def _extract_text(payload: Any) -> Optional[str]:
    try:
        return payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None


class GeminiVisionClient(VisionClient):
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash",
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        prompt: str = IDENTIFY_BUILDING_PROMPT,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.prompt = prompt

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    def identify(self, image: bytes) -> str:
        if not self.api_key:
            raise MissingCredentialsError("GEMINI_API_KEY")
        if not image:
            raise VisionServiceError("Empty image")

        body = {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {
                            "inline_data": {
                                "mime_type": "image/jpeg",
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                    ]
                }
            ]
        }
        logger.debug("Calling Gemini endpoint %s with %d image bytes", self.endpoint, len(image))
        try:
            resp = self.session.post(
                self.endpoint,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise VisionServiceError(f"Gemini request failed: {type(exc).__name__}") from exc

        if resp.status_code != 200:
            logger.warning("Gemini API error: status=%s body=%s", resp.status_code, resp.text[:300])
            raise VisionServiceError(
                f"Gemini returned HTTP {resp.status_code}",
                context={"status_code": resp.status_code},
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise VisionServiceError("Gemini returned non-JSON body") from exc

        text = _extract_text(payload)
        if not text:
            raise VisionServiceError("Gemini response carried no text")
        logger.debug("Gemini text response: %s", text[:300])
        return text
