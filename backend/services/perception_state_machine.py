"""
Perception state machine.

Decides *when* an expensive identification request may fire, driven by a
cheap local intent signal and timers:

    IDLE -> CANDIDATE -> INTENT_LOCKED -> DISPLAY -> RELEASE -> IDLE

Time is an explicit input. Every `update`/`tick` accepts `now_ms`; when it is
omitted the injected clock is read instead, so tests never wait on a real
clock. The machine is synchronous and never raises out of `update`: malformed
signals count as "no signal" and observer failures are logged.
"""
from __future__ import annotations

import dataclasses
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from domain.models import IntentSignal, PerceptionContext, PerceptionState, Vector3D
from services.confidence_smoothing import ConfidenceSmoother
from services.vector_math import angle_between_3d, is_finite_point, is_finite_vector, length_3d

logger = logging.getLogger(__name__)

StateObserver = Callable[[str], None]
IntentHandler = Callable[[IntentSignal, PerceptionContext], None]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class PerceptionThresholds:
    enter_threshold: float = 0.3
    lock_threshold: float = 0.7
    stability_ms: float = 300.0
    candidate_timeout_ms: float = 500.0
    display_timeout_ms: float = 2000.0
    release_fade_ms: float = 200.0
    direction_change_threshold_rad: float = 0.1

    @classmethod
    def from_settings(cls, settings) -> "PerceptionThresholds":
        return cls(
            enter_threshold=settings.PERCEPTION_ENTER_THRESHOLD,
            lock_threshold=settings.PERCEPTION_LOCK_THRESHOLD,
            stability_ms=settings.PERCEPTION_STABILITY_MS,
            candidate_timeout_ms=settings.PERCEPTION_CANDIDATE_TIMEOUT_MS,
            display_timeout_ms=settings.PERCEPTION_DISPLAY_TIMEOUT_MS,
            release_fade_ms=settings.PERCEPTION_RELEASE_FADE_MS,
            direction_change_threshold_rad=settings.PERCEPTION_DIRECTION_CHANGE_RAD,
        )


class PerceptionStateMachine:
    def __init__(
        self,
        thresholds: Optional[PerceptionThresholds] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.thresholds = thresholds or PerceptionThresholds()
        self._clock = clock
        self._smoother = ConfidenceSmoother()
        self._context = PerceptionContext()
        self._observers: List[StateObserver] = []
        self._intent_handlers: List[IntentHandler] = []
        # Release bookkeeping, not part of the public context.
        self._release_started_at: Optional[float] = None
        self._low_confidence_since: Optional[float] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_state(self) -> PerceptionState:
        return self._context.state

    def get_context(self) -> PerceptionContext:
        """Return a copy; mutating it never touches the machine."""
        return dataclasses.replace(self._context)

    def on_state_change(self, observer: StateObserver) -> None:
        self._observers.append(observer)

    def on_intent(self, handler: IntentHandler) -> None:
        """Register a handler invoked exactly once per INTENT_LOCKED transition."""
        self._intent_handlers.append(handler)

    def update(self, signal: Optional[IntentSignal], now_ms: Optional[float] = None) -> PerceptionState:
        """Feed one intent signal (or None for "nothing detected") and re-evaluate."""
        now = self._now(now_ms)
        strength = self._strength_of(signal)
        qualifying = self._is_qualifying(signal, strength)
        state = self._context.state

        if state == PerceptionState.IDLE:
            if qualifying:
                self._enter_candidate(signal, strength, now)
        elif state == PerceptionState.CANDIDATE:
            self._context.confidence = self._smoother.smooth(strength)
            if qualifying:
                self._accumulate_stability(signal.direction, now)
                if self._ready_to_lock():
                    self._lock_intent(signal)
            else:
                self._check_candidate_timeout(now)
        elif state == PerceptionState.DISPLAY:
            self._context.confidence = self._smoother.smooth(strength)
            if qualifying:
                self._context.last_signal_timestamp = now
            self._track_low_confidence(now)
            self._check_display_timeout(now)
        elif state == PerceptionState.RELEASE:
            self._check_release_fade(now)
        return self._context.state

    def tick(self, now_ms: Optional[float] = None) -> PerceptionState:
        """Re-evaluate timeouts without a new signal."""
        now = self._now(now_ms)
        state = self._context.state
        if state == PerceptionState.CANDIDATE:
            self._check_candidate_timeout(now)
        elif state == PerceptionState.DISPLAY:
            self._track_low_confidence(now)
            self._check_display_timeout(now)
        elif state == PerceptionState.RELEASE:
            self._check_release_fade(now)
        return self._context.state

    def reset(self) -> None:
        """Force IDLE and clear all timers and history."""
        previous = self._context.state
        self._clear()
        if previous != PerceptionState.IDLE:
            self._notify(PerceptionState.IDLE)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _enter_candidate(self, signal: IntentSignal, strength: float, now: float) -> None:
        self._smoother.reset()
        self._context.confidence = self._smoother.smooth(strength)
        self._context.stability_duration_ms = 0.0
        self._context.last_direction = signal.direction
        self._context.last_signal_timestamp = now
        self._transition(PerceptionState.CANDIDATE)

    def _accumulate_stability(self, direction: Vector3D, now: float) -> None:
        ctx = self._context
        if ctx.last_direction is None:
            changed = True
        else:
            changed = angle_between_3d(ctx.last_direction, direction) > self.thresholds.direction_change_threshold_rad
        if changed:
            ctx.stability_duration_ms = 0.0
            ctx.last_direction = direction
        else:
            elapsed = now - (ctx.last_signal_timestamp if ctx.last_signal_timestamp is not None else now)
            ctx.stability_duration_ms += max(0.0, elapsed)
        ctx.last_signal_timestamp = now

    def _ready_to_lock(self) -> bool:
        return (
            self._context.stability_duration_ms >= self.thresholds.stability_ms
            and self._context.confidence >= self.thresholds.lock_threshold
        )

    def _lock_intent(self, signal: IntentSignal) -> None:
        self._transition(PerceptionState.INTENT_LOCKED)
        snapshot = self.get_context()
        for handler in list(self._intent_handlers):
            try:
                handler(signal, snapshot)
            except Exception:
                logger.exception("Intent handler failed")
        # INTENT_LOCKED only marks the instant of the decision.
        self._low_confidence_since = None
        self._transition(PerceptionState.DISPLAY)

    def _check_candidate_timeout(self, now: float) -> None:
        last = self._context.last_signal_timestamp
        if last is None or now - last >= self.thresholds.candidate_timeout_ms:
            self._begin_release(now)

    def _track_low_confidence(self, now: float) -> None:
        if self._context.confidence < self.thresholds.enter_threshold:
            if self._low_confidence_since is None:
                self._low_confidence_since = now
        else:
            self._low_confidence_since = None

    def _check_display_timeout(self, now: float) -> None:
        timeout = self.thresholds.display_timeout_ms
        last = self._context.last_signal_timestamp
        no_signal = last is None or now - last >= timeout
        low_confidence = (
            self._low_confidence_since is not None
            and now - self._low_confidence_since >= timeout
        )
        if no_signal or low_confidence:
            self._begin_release(now)

    def _begin_release(self, now: float) -> None:
        self._release_started_at = now
        self._transition(PerceptionState.RELEASE)

    def _check_release_fade(self, now: float) -> None:
        started = self._release_started_at
        if started is None or now - started >= self.thresholds.release_fade_ms:
            self._clear()
            self._notify(PerceptionState.IDLE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _clear(self) -> None:
        self._smoother.reset()
        self._context = PerceptionContext()
        self._release_started_at = None
        self._low_confidence_since = None

    def _transition(self, new_state: PerceptionState) -> None:
        if self._context.state == new_state:
            return
        logger.debug("Perception state %s -> %s", self._context.state.value, new_state.value)
        self._context.state = new_state
        self._notify(new_state)

    def _notify(self, state: PerceptionState) -> None:
        for observer in list(self._observers):
            try:
                observer(state.value)
            except Exception:
                logger.exception("State observer failed for %s", state.value)

    def _now(self, now_ms: Optional[float]) -> float:
        if now_ms is not None:
            return float(now_ms)
        return float(self._clock())

    @staticmethod
    def _strength_of(signal: Optional[IntentSignal]) -> float:
        if signal is None:
            return 0.0
        try:
            strength = float(signal.strength)
        except (TypeError, ValueError, AttributeError):
            return 0.0
        return strength if math.isfinite(strength) else 0.0

    def _is_qualifying(self, signal: Optional[IntentSignal], strength: float) -> bool:
        if signal is None:
            return False
        try:
            if not is_finite_point(signal.position) or not is_finite_vector(signal.direction):
                return False
            if length_3d(signal.direction) == 0:
                return False
        except (TypeError, ValueError, AttributeError):
            return False
        return strength >= self.thresholds.enter_threshold
