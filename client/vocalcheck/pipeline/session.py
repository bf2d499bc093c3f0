"""Recording session driving the streaming classification pipeline."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from ..audio.segmenter import Segmenter
from ..audio.silence import SilenceGate
from ..audio.sources import AudioSource
from ..audio.types import AudioSegment
from ..audio.wav import encode_wav
from ..config import DetectorSettings, get_settings
from ..errors import AcquisitionError, InferenceError
from ..services.inference import InferenceClient
from ..store.results import ResultFeed
from .aggregator import TemporalAggregator, VerdictRecord

LOGGER = logging.getLogger("vocalcheck.session")


@dataclass(slots=True)
class SessionStats:
    segments: int = 0
    voiced: int = 0
    silent: int = 0
    failed: int = 0


class DetectionSession:
    """Owns the per-session pipeline state.

    The segment loop never waits on inference: each segment gets its own task
    (normalize, gate, infer, aggregate) and tasks may finish out of order.
    Aggregator mutations are serialized by the aggregator's lock, and once
    :meth:`stop` closes the aggregator no late task can change its state.
    """

    def __init__(
        self,
        source: AudioSource,
        settings: DetectorSettings | None = None,
        *,
        client: InferenceClient | None = None,
        feed: ResultFeed | None = None,
        gate: SilenceGate | None = None,
        aggregator: TemporalAggregator | None = None,
        on_verdict: Optional[Callable[[VerdictRecord], None]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.source = source
        self.segmenter = Segmenter(self.settings.segment_ms)
        self.gate = gate or SilenceGate(self.settings.silence_threshold)
        self.aggregator = aggregator or TemporalAggregator(self.settings.history_size)
        self.feed = feed or ResultFeed(self.settings.result_limit)
        self._owns_client = client is None
        self.client = client or InferenceClient(self.settings)
        self.on_verdict = on_verdict
        self.stats = SessionStats()
        self.is_speaking = False
        self.fatal_error: str | None = None
        self._stopped = False
        self._started = False
        self._closed = False
        self._loop_task: asyncio.Task | None = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def is_processing(self) -> bool:
        return bool(self._inflight)

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    async def start(self) -> None:
        if self._started:
            return
        try:
            await self.source.open()
        except AcquisitionError as exc:
            self._fail(str(exc))
            await self.stop()
            raise
        self._started = True
        self._loop_task = asyncio.create_task(self._segment_loop())
        LOGGER.info("Detection session started")

    async def run(self) -> VerdictRecord:
        """Process the source to exhaustion and return the final verdict."""
        await self.start()
        try:
            if self._loop_task is not None:
                await self._loop_task
            while self._inflight:
                await asyncio.gather(*list(self._inflight), return_exceptions=True)
        finally:
            await self.stop()
        if self.fatal_error:
            raise AcquisitionError(self.fatal_error)
        return self.aggregator.verdict()

    async def stop(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stopped = True
        await self.aggregator.close()
        task, self._loop_task = self._loop_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.source.close()
        pending = list(self._inflight)
        for inflight in pending:
            inflight.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_client:
            await self.client.aclose()
        LOGGER.info(
            "Detection session stopped (%d segment(s), %d voiced, %d silent, %d failed)",
            self.stats.segments,
            self.stats.voiced,
            self.stats.silent,
            self.stats.failed,
        )

    async def reset(self) -> None:
        await self.aggregator.reset()
        self.feed.clear()

    async def _segment_loop(self) -> None:
        try:
            async for segment in self.segmenter.segments(self.source):
                if self._stopped:
                    break
                self.stats.segments += 1
                task = asyncio.create_task(self._process(segment))
                self._inflight.add(task)
                task.add_done_callback(self._task_done)
        except AcquisitionError as exc:
            self._fail(str(exc))
            self._stopped = True
            await self.aggregator.close()

    async def _process(self, segment: AudioSegment) -> None:
        clip = encode_wav(segment, self.settings.sample_rate)
        verdict = self.gate.check(clip)
        if verdict.error:
            self.feed.report_error(f"Segment {segment.index}: {verdict.error}")
        if verdict.is_silent:
            self.is_speaking = False
            self.stats.silent += 1
            self._publish(await self.aggregator.add_silence(segment.index))
            return
        self.is_speaking = True
        self.stats.voiced += 1
        try:
            predictions = await self.client.predict(clip)
        except InferenceError as exc:
            self.stats.failed += 1
            if not self._stopped:
                self.feed.report_error(str(exc))
            return
        self._publish(await self.aggregator.add_predictions(predictions, segment.index))

    def _task_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Segment task crashed: %s", exc, exc_info=exc)

    def _publish(self, record: VerdictRecord | None) -> None:
        if record is None:
            return
        self.feed.push(record)
        if self.on_verdict:
            self.on_verdict(record)

    def _fail(self, message: str) -> None:
        LOGGER.error("Acquisition failed: %s", message)
        self.fatal_error = message
        self.feed.report_error(message)


__all__ = ["DetectionSession", "SessionStats"]
