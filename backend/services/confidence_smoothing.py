"""
Temporal smoothing for confidence scores, to keep gating decisions from jittering.
"""
from __future__ import annotations

import math
from typing import List

MAX_HISTORY_SIZE = 5
SMOOTHING_ALPHA = 0.5
MIN_CONFIDENCE = 0.0
MAX_CONFIDENCE = 1.0


def _clamp(value: float) -> float:
    if not math.isfinite(value):
        return MIN_CONFIDENCE
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


class ConfidenceSmoother:
    """Bounded exponential moving average; recent samples weigh more."""

    def __init__(self, max_history: int = MAX_HISTORY_SIZE, alpha: float = SMOOTHING_ALPHA):
        self.max_history = max_history
        self.alpha = alpha
        self._history: List[float] = []

    def smooth(self, confidence: float) -> float:
        """Add a new sample and return the smoothed value, clamped to [0, 1]."""
        self._history.append(_clamp(confidence))
        if len(self._history) > self.max_history:
            self._history.pop(0)
        return self._ema()

    def current(self) -> float:
        """Smoothed value without adding a sample; 0.0 when empty."""
        return self._ema()

    def reset(self) -> None:
        self._history = []

    def __len__(self) -> int:
        return len(self._history)

    def _ema(self) -> float:
        if not self._history:
            return 0.0
        ema = self._history[0]
        for value in self._history[1:]:
            ema = self.alpha * value + (1 - self.alpha) * ema
        return ema
