"""
Exception types raised by the collaborator clients.

Everything the resolution pipeline absorbs derives from ResolutionError, so the
engine can tell expected collaborator failures apart from genuine bugs.
"""
from typing import Any, Dict, Optional


class ResolutionError(Exception):
    """Base exception for all resolution-pipeline errors."""

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context or {}


class MissingCredentialsError(ResolutionError):
    """A collaborator cannot be called because its API key is not configured."""

    def __init__(self, setting_name: str):
        super().__init__(f"Missing required environment variable: {setting_name}")
        self.setting_name = setting_name


class VisionServiceError(ResolutionError):
    """The vision collaborator failed or returned an unusable answer."""


class PlacesServiceError(ResolutionError):
    """The place-search collaborator failed (network, HTTP or API status)."""

    def __init__(self, message: str, *, status: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status


class PlacesRequestDenied(PlacesServiceError):
    """The Places API refused the request (API not enabled, key restrictions)."""


class InvalidFrameError(ResolutionError):
    """An uploaded camera frame is missing, malformed or too large."""


class FrameTooLargeError(InvalidFrameError):
    """The decoded frame exceeds the configured size limit."""
