"""
Caller-side ordering around the disambiguation engine.

The engine is stateless, so whoever drives it owns the rules that keep the
display honest:

- a new tap invalidates the live result immediately;
- only one attempt runs at a time, extra taps are skipped while one is in flight;
- an attempt that finishes after a later tap or reset is discarded.

Signals flow through a PerceptionStateMachine; its intent lock triggers an
attempt at the signal's screen position, and entering RELEASE retires the
live result.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from domain.models import (
    GeoLocation,
    IntentSignal,
    PerceptionContext,
    PerceptionState,
    Point2D,
    ResolutionResult,
)
from services.disambiguation import DEFAULT_FOV_DEGREES, DisambiguationEngine
from services.perception_state_machine import PerceptionStateMachine

logger = logging.getLogger(__name__)

SCREEN_CENTER = Point2D(0.5, 0.5)

FrameSource = Callable[[], Optional[bytes]]
LocationSource = Callable[[], Optional[GeoLocation]]


class PerceptionSession:
    def __init__(
        self,
        engine: DisambiguationEngine,
        capture_frame: FrameSource,
        get_location: LocationSource,
        fov_degrees: float = DEFAULT_FOV_DEGREES,
        machine: Optional[PerceptionStateMachine] = None,
    ):
        self.engine = engine
        self.capture_frame = capture_frame
        self.get_location = get_location
        self.fov_degrees = fov_degrees
        self.machine = machine or PerceptionStateMachine()
        self.machine.on_intent(self._on_intent)
        self.machine.on_state_change(self._on_state_change)

        self._lock = threading.Lock()
        self._in_progress = False
        self._generation = 0
        self._live_result: Optional[ResolutionResult] = None

    @property
    def live_result(self) -> Optional[ResolutionResult]:
        with self._lock:
            return self._live_result

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._in_progress

    def handle_tap(self, tap_point: Point2D) -> Optional[ResolutionResult]:
        """
        Run one identification attempt for an explicit tap.

        Returns the result when it became the live result, or None when the
        tap was skipped (attempt already in flight) or superseded.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._live_result = None
            if self._in_progress:
                logger.debug("Attempt already in flight; skipping tap at (%.2f, %.2f)", tap_point.x, tap_point.y)
                return None
            self._in_progress = True

        try:
            result = self.engine.resolve_intent(
                self._capture(),
                tap_point,
                fov_degrees=self.fov_degrees,
                location=self._locate(),
            )
        finally:
            with self._lock:
                self._in_progress = False

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale result %s", result.kind.value)
                return None
            self._live_result = result
        return result

    def on_signal(self, signal: Optional[IntentSignal], now_ms: Optional[float] = None) -> PerceptionState:
        return self.machine.update(signal, now_ms)

    def tick(self, now_ms: Optional[float] = None) -> PerceptionState:
        return self.machine.tick(now_ms)

    def dismiss(self) -> None:
        """User closed the result card."""
        with self._lock:
            self._generation += 1
            self._live_result = None

    def reset(self) -> None:
        self.dismiss()
        self.machine.reset()

    def _on_intent(self, signal: IntentSignal, context: PerceptionContext) -> None:
        position = signal.position or SCREEN_CENTER
        logger.info("Intent locked at (%.2f, %.2f) confidence=%.2f", position.x, position.y, context.confidence)
        self.handle_tap(position)

    def _on_state_change(self, state: str) -> None:
        if state == PerceptionState.RELEASE.value:
            with self._lock:
                self._live_result = None

    def _capture(self) -> Optional[bytes]:
        try:
            return self.capture_frame()
        except Exception:
            logger.exception("Frame capture failed")
            return None

    def _locate(self) -> Optional[GeoLocation]:
        try:
            return self.get_location()
        except Exception:
            logger.exception("Location lookup failed")
            return None
