"""Bounded in-memory feed of verdicts for display."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..pipeline.aggregator import VerdictRecord

LOGGER = logging.getLogger("vocalcheck.results")


class ResultFeed:
    """Keeps the newest verdicts first, plus the most recent error message."""

    def __init__(self, limit: int = 20) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self._records: List[VerdictRecord] = []
        self._listeners: List[Callable[[VerdictRecord], None]] = []
        self.error: Optional[str] = None

    def push(self, record: VerdictRecord) -> None:
        self._records = [record, *self._records][: self.limit]
        self.error = None
        for listener in list(self._listeners):
            listener(record)

    def report_error(self, message: str) -> None:
        LOGGER.warning("Segment error: %s", message)
        self.error = message

    def subscribe(self, listener: Callable[[VerdictRecord], None]) -> None:
        self._listeners.append(listener)

    def list(self) -> List[VerdictRecord]:
        return list(self._records)

    @property
    def latest(self) -> Optional[VerdictRecord]:
        return self._records[0] if self._records else None

    def clear(self) -> None:
        self._records = []
        self.error = None

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["ResultFeed"]
