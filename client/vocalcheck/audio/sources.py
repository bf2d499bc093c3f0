"""Audio sources feeding the segmenter."""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import AsyncIterator

import numpy as np
import soundfile as sf

from ..errors import AcquisitionError

LOGGER = logging.getLogger("vocalcheck.sources")


class AudioSource:
    """Produces float32 PCM blocks shaped (frames, channels)."""

    sample_rate: int
    channels: int

    async def open(self) -> None:
        return None

    def blocks(self) -> AsyncIterator[np.ndarray]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


def _as_frames(samples: np.ndarray) -> np.ndarray:
    data = np.asarray(samples, dtype=np.float32)
    if data.ndim == 1:
        return data.reshape(-1, 1)
    return data


class BufferSource(AudioSource):
    """Replays an in-memory buffer, optionally paced like a live stream."""

    def __init__(
        self,
        samples: np.ndarray,
        sample_rate: int,
        *,
        block_frames: int | None = None,
        realtime: bool = False,
    ) -> None:
        self.samples = _as_frames(samples)
        self.sample_rate = int(sample_rate)
        self.channels = int(self.samples.shape[1])
        self.block_frames = block_frames or max(1, self.sample_rate // 10)
        self.realtime = realtime
        self._closed = False

    async def blocks(self) -> AsyncIterator[np.ndarray]:
        delay = self.block_frames / float(self.sample_rate)
        for offset in range(0, self.samples.shape[0], self.block_frames):
            if self._closed:
                return
            yield self.samples[offset : offset + self.block_frames]
            if self.realtime:
                await asyncio.sleep(delay)
            else:
                await asyncio.sleep(0)

    async def close(self) -> None:
        self._closed = True


class FileSource(BufferSource):
    """Decodes an uploaded file's full buffer once, then replays it."""

    def __init__(
        self,
        source: str | Path | bytes,
        *,
        block_frames: int | None = None,
        realtime: bool = False,
    ) -> None:
        self.source = source
        self._block_frames = block_frames
        self._realtime = realtime
        self._closed = False
        self.samples = np.zeros((0, 1), dtype=np.float32)
        self.sample_rate = 0
        self.channels = 1
        self.block_frames = 1
        self.realtime = realtime

    async def open(self) -> None:
        target = io.BytesIO(self.source) if isinstance(self.source, bytes) else str(self.source)
        try:
            data, rate = sf.read(target, dtype="float32", always_2d=True)
        except (RuntimeError, TypeError, ValueError, OSError) as exc:
            raise AcquisitionError(f"Unable to decode audio: {exc}") from exc
        if data.size == 0:
            raise AcquisitionError("Audio file contains no samples")
        BufferSource.__init__(
            self,
            data,
            rate,
            block_frames=self._block_frames,
            realtime=self._realtime,
        )
        LOGGER.info(
            "Decoded %d frame(s) at %d Hz, %d channel(s)",
            data.shape[0],
            rate,
            self.channels,
        )


class MicrophoneSource(AudioSource):
    """Live capture from the default input device via sounddevice."""

    def __init__(
        self,
        sample_rate: int = 44100,
        channels: int = 1,
        *,
        block_frames: int | None = None,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.block_frames = block_frames or max(1, sample_rate // 10)
        self.device = device
        self._sd = self._try_import_sounddevice()
        self._stream = None
        self._queue: asyncio.Queue | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _try_import_sounddevice(self):
        try:
            import sounddevice as sd  # type: ignore

            return sd
        except (ImportError, OSError):
            return None

    async def open(self) -> None:
        if self._sd is None:
            raise AcquisitionError("sounddevice is not available; microphone capture disabled")
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        try:
            self._stream = self._sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="float32",
                blocksize=self.block_frames,
                device=self.device,
                callback=self._callback,
            )
            self._stream.start()
        except Exception as exc:
            self._stream = None
            raise AcquisitionError(f"Microphone unavailable: {exc}") from exc
        LOGGER.info("Microphone capture started at %d Hz", self.sample_rate)

    def _callback(self, indata, frames, time_info, status) -> None:  # noqa: ARG002
        if status:
            LOGGER.warning("Input stream status: %s", status)
        if self._loop is None or self._queue is None:
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, indata.copy())

    async def blocks(self) -> AsyncIterator[np.ndarray]:
        if self._queue is None:
            raise AcquisitionError("Microphone source is not open")
        while True:
            block = await self._queue.get()
            if block is None:
                return
            yield block

    async def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:  # pragma: no cover - device dependent
                LOGGER.warning("Error closing microphone stream: %s", exc)
            LOGGER.info("Microphone capture stopped")
        if self._queue is not None:
            self._queue.put_nowait(None)


__all__ = ["AudioSource", "BufferSource", "FileSource", "MicrophoneSource"]
