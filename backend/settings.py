import os

# Basic settings helper to read environment configuration.


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        # Credentials. Gemini (Google AI Studio) shares the Google key unless overridden.
        self.GOOGLE_API_KEY: str | None = os.getenv("GOOGLE_API_KEY") or None
        self.GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY") or self.GOOGLE_API_KEY
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        self.VISION_ENABLED: bool = _as_bool(os.getenv("VISION_ENABLED"), True)

        # Outbound HTTP
        self.HTTP_TIMEOUT_SECONDS: float = _as_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 10.0)
        self.PLACES_MIN_INTERVAL: float = _as_float(os.getenv("PLACES_MIN_INTERVAL"), 0.0)

        # Request limits
        self.RATE_LIMIT_MAX_REQUESTS: int = _as_int(os.getenv("RATE_LIMIT_MAX_REQUESTS"), 60)
        self.RATE_LIMIT_WINDOW_SECONDS: float = _as_float(os.getenv("RATE_LIMIT_WINDOW_SECONDS"), 60.0)
        self.MAX_FRAME_BYTES: int = _as_int(os.getenv("MAX_FRAME_BYTES"), 5 * 1024 * 1024)
        self.FRAME_MAX_DIM: int = _as_int(os.getenv("FRAME_MAX_DIM"), 1024)

        # Candidate search radii (meters)
        self.NAMED_SEARCH_RADIUS_M: float = _as_float(os.getenv("NAMED_SEARCH_RADIUS_M"), 2000.0)
        self.DIRECTIONAL_SEARCH_RADIUS_M: float = _as_float(os.getenv("DIRECTIONAL_SEARCH_RADIUS_M"), 150.0)
        self.GENERAL_SEARCH_RADIUS_M: float = _as_float(os.getenv("GENERAL_SEARCH_RADIUS_M"), 500.0)
        self.DEFAULT_FOV_DEGREES: float = _as_float(os.getenv("DEFAULT_FOV_DEGREES"), 60.0)

        # Perception gating thresholds
        self.PERCEPTION_ENTER_THRESHOLD: float = _as_float(os.getenv("PERCEPTION_ENTER_THRESHOLD"), 0.3)
        self.PERCEPTION_LOCK_THRESHOLD: float = _as_float(os.getenv("PERCEPTION_LOCK_THRESHOLD"), 0.7)
        self.PERCEPTION_STABILITY_MS: float = _as_float(os.getenv("PERCEPTION_STABILITY_MS"), 300.0)
        self.PERCEPTION_CANDIDATE_TIMEOUT_MS: float = _as_float(os.getenv("PERCEPTION_CANDIDATE_TIMEOUT_MS"), 500.0)
        self.PERCEPTION_DISPLAY_TIMEOUT_MS: float = _as_float(os.getenv("PERCEPTION_DISPLAY_TIMEOUT_MS"), 2000.0)
        self.PERCEPTION_RELEASE_FADE_MS: float = _as_float(os.getenv("PERCEPTION_RELEASE_FADE_MS"), 200.0)
        self.PERCEPTION_DIRECTION_CHANGE_RAD: float = _as_float(os.getenv("PERCEPTION_DIRECTION_CHANGE_RAD"), 0.1)

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def places_configured(self) -> bool:
        return bool(self.GOOGLE_API_KEY)


settings = Settings()
