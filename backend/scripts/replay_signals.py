"""Replay a recorded intent-signal trace through the perception state machine.

Usage (from backend/):
    python -m scripts.replay_signals trace.json [--enter 0.3] [--lock 0.7]

The trace is a JSON list of samples:

    [{"t": 0, "x": 0.5, "y": 0.5, "dx": 0, "dy": 0, "dz": 1, "strength": 0.8}, ...]

A sample without position or direction counts as "nothing detected". Every
state transition and intent lock is logged, which makes it easy to tune the
gating thresholds against real recordings without a camera attached.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from domain.models import IntentSignal, PerceptionContext, Point2D, Vector3D
from services.perception_state_machine import PerceptionStateMachine, PerceptionThresholds
from settings import settings

logger = logging.getLogger("replay_signals")


def signal_from_sample(sample: Dict[str, Any]) -> Optional[IntentSignal]:
    if "x" not in sample or "dz" not in sample:
        return None
    return IntentSignal(
        position=Point2D(float(sample["x"]), float(sample.get("y", 0.5))),
        direction=Vector3D(float(sample.get("dx", 0.0)), float(sample.get("dy", 0.0)), float(sample["dz"])),
        strength=float(sample.get("strength", 0.0)),
    )


def replay(samples: List[Dict[str, Any]], thresholds: PerceptionThresholds) -> List[Dict[str, Any]]:
    """Feed samples in order; return the list of transitions and locks observed."""
    machine = PerceptionStateMachine(thresholds=thresholds)
    events: List[Dict[str, Any]] = []
    now = {"t": 0.0}

    def on_state(state: str) -> None:
        events.append({"t": now["t"], "event": "state", "state": state})
        logger.info("t=%7.1fms  -> %s", now["t"], state)

    def on_intent(signal: IntentSignal, ctx: PerceptionContext) -> None:
        events.append({"t": now["t"], "event": "intent", "confidence": ctx.confidence})
        logger.info("t=%7.1fms  INTENT at (%.2f, %.2f) confidence=%.2f", now["t"], signal.position.x, signal.position.y, ctx.confidence)

    machine.on_state_change(on_state)
    machine.on_intent(on_intent)

    for sample in samples:
        now["t"] = float(sample.get("t", now["t"]))
        machine.update(signal_from_sample(sample), now_ms=now["t"])
    return events


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("trace", type=Path, help="JSON file with a list of signal samples")
    parser.add_argument("--enter", type=float, default=settings.PERCEPTION_ENTER_THRESHOLD)
    parser.add_argument("--lock", type=float, default=settings.PERCEPTION_LOCK_THRESHOLD)
    parser.add_argument("--stability-ms", type=float, default=settings.PERCEPTION_STABILITY_MS)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    samples = json.loads(args.trace.read_text(encoding="utf-8"))
    if not isinstance(samples, list):
        logger.error("Trace must be a JSON list of samples")
        return 2

    base = PerceptionThresholds.from_settings(settings)
    thresholds = dataclasses.replace(
        base,
        enter_threshold=args.enter,
        lock_threshold=args.lock,
        stability_ms=args.stability_ms,
    )
    events = replay(samples, thresholds)
    locks = sum(1 for e in events if e["event"] == "intent")
    logger.info("%d samples, %d transitions, %d intent locks", len(samples), len(events) - locks, locks)
    return 0


if __name__ == "__main__":
    sys.exit(main())
