"""Rolling majority-vote aggregation of per-segment predictions.

Per-segment predictions are noisy, so the displayed verdict is derived from a
bounded FIFO of recent segment outcomes rather than from the latest segment
alone. Silent segments occupy window slots but are excluded from the vote.

Both votes are strict majorities: a segment is ``REAL`` only when more than
half of its sub-predictions are 1, and the window is authentic only when more
than half of its non-silent entries are ``REAL``. Exact ties resolve to
``FAKE``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Iterable, Sequence, Tuple

LOGGER = logging.getLogger("vocalcheck.aggregator")

HISTORY_SIZE = 15

SILENT_DETAILS = "Silent segment detected - please speak into the microphone"
INSUFFICIENT_DETAILS = "Not enough voice data to determine authenticity - please speak more clearly"


class SegmentOutcome(Enum):
    REAL = "real"
    FAKE = "fake"
    SILENT = "silent"


@dataclass(frozen=True, slots=True)
class WindowScore:
    is_authentic: bool
    confidence: float
    total: int
    real_total: int


@dataclass(frozen=True, slots=True)
class VerdictRecord:
    """Snapshot of the aggregate verdict emitted after one segment."""

    confidence: float
    is_authentic: bool
    details: str
    segment_index: int | None = None
    outcome: SegmentOutcome | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


def majority_vote(predictions: Sequence[int]) -> SegmentOutcome:
    if not predictions:
        raise ValueError("Prediction vector is empty")
    real_count = sum(1 for pred in predictions if pred == 1)
    return SegmentOutcome.REAL if real_count * 2 > len(predictions) else SegmentOutcome.FAKE


def score_window(outcomes: Iterable[SegmentOutcome]) -> WindowScore:
    voiced = [outcome for outcome in outcomes if outcome is not SegmentOutcome.SILENT]
    total = len(voiced)
    if total == 0:
        return WindowScore(is_authentic=True, confidence=0.0, total=0, real_total=0)
    real_total = sum(1 for outcome in voiced if outcome is SegmentOutcome.REAL)
    consistency = max(real_total, total - real_total) / total
    return WindowScore(
        is_authentic=real_total * 2 > total,
        confidence=consistency * 100.0,
        total=total,
        real_total=real_total,
    )


class TemporalAggregator:
    """Owns the rolling history; all mutations are serialized by one lock."""

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        if history_size <= 0:
            raise ValueError("history_size must be positive")
        self.history_size = history_size
        self._history: Deque[SegmentOutcome] = deque(maxlen=history_size)
        self._silent_segments = 0
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def history(self) -> Tuple[SegmentOutcome, ...]:
        return tuple(self._history)

    @property
    def silent_segments(self) -> int:
        return self._silent_segments

    @property
    def closed(self) -> bool:
        return self._closed

    def score(self) -> WindowScore:
        return score_window(self._history)

    async def add_silence(self, segment_index: int | None = None) -> VerdictRecord | None:
        async with self._lock:
            if self._closed:
                return None
            self._history.append(SegmentOutcome.SILENT)
            self._silent_segments += 1
            return VerdictRecord(
                confidence=0.0,
                is_authentic=True,
                details=SILENT_DETAILS,
                segment_index=segment_index,
                outcome=SegmentOutcome.SILENT,
            )

    async def add_predictions(
        self, predictions: Sequence[int], segment_index: int | None = None
    ) -> VerdictRecord | None:
        outcome = majority_vote(predictions)
        async with self._lock:
            if self._closed:
                return None
            self._history.append(outcome)
            score = score_window(self._history)
            silent = self._silent_segments
        real_count = sum(1 for pred in predictions if pred == 1)
        LOGGER.debug(
            "Segment %s: %d/%d real -> %s (window %d/%d real)",
            segment_index,
            real_count,
            len(predictions),
            outcome.value,
            score.real_total,
            score.total,
        )
        return VerdictRecord(
            confidence=score.confidence,
            is_authentic=score.is_authentic,
            details=_describe(score, real_count, len(predictions), silent),
            segment_index=segment_index,
            outcome=outcome,
        )

    def verdict(self) -> VerdictRecord:
        score = self.score()
        if score.total == 0:
            details = INSUFFICIENT_DETAILS
        elif score.is_authentic:
            details = (
                f"Voice patterns consistent with natural human speech "
                f"({score.real_total}/{score.total} recent segments authentic, "
                f"{self._silent_segments} silent)"
            )
        else:
            details = (
                f"Suspicious artifacts detected in voice synthesis patterns "
                f"({score.total - score.real_total}/{score.total} recent segments suspicious, "
                f"{self._silent_segments} silent)"
            )
        return VerdictRecord(
            confidence=score.confidence,
            is_authentic=score.is_authentic,
            details=details,
        )

    async def reset(self) -> None:
        async with self._lock:
            self._history.clear()
            self._silent_segments = 0

    async def close(self) -> None:
        async with self._lock:
            self._closed = True


def _describe(score: WindowScore, real_count: int, n: int, silent: int) -> str:
    if score.total == 0:
        return INSUFFICIENT_DETAILS
    if score.is_authentic:
        return (
            f"Voice patterns consistent with natural human speech "
            f"({real_count}/{n} segments authentic, {silent} silent)"
        )
    return (
        f"Suspicious artifacts detected in voice synthesis patterns "
        f"({n - real_count}/{n} segments suspicious, {silent} silent)"
    )


__all__ = [
    "SegmentOutcome",
    "WindowScore",
    "VerdictRecord",
    "TemporalAggregator",
    "majority_vote",
    "score_window",
    "HISTORY_SIZE",
]
