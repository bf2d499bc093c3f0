import asyncio

import numpy as np
import pytest

from client.vocalcheck.audio.segmenter import Segmenter
from client.vocalcheck.audio.sources import AudioSource, BufferSource
from client.vocalcheck.errors import AcquisitionError


def _collect(segmenter, source):
    async def run():
        return [segment async for segment in segmenter.segments(source)]

    return asyncio.run(run())


@pytest.mark.parametrize("block_frames", [1000, 8820, 12345])
def test_segments_are_contiguous_and_exact(block_frames):
    rate = 44_100
    samples = np.arange(rate, dtype=np.float32) / rate
    source = BufferSource(samples, rate, block_frames=block_frames)
    segments = _collect(Segmenter(200), source)

    assert len(segments) == 5
    for idx, segment in enumerate(segments):
        assert segment.index == idx
        assert segment.start_sample == idx * 8820
        assert segment.num_frames == 8820
        assert segment.duration == pytest.approx(0.2)
    joined = np.concatenate([segment.samples[:, 0] for segment in segments])
    assert np.array_equal(joined, samples[: 5 * 8820])


def test_trailing_partial_segment_is_dropped():
    rate = 8000
    samples = np.ones(int(rate * 0.5), dtype=np.float32)
    segments = _collect(Segmenter(200), BufferSource(samples, rate, block_frames=700))
    assert [segment.num_frames for segment in segments] == [1600, 1600]


def test_multichannel_blocks_keep_their_layout():
    rate = 8000
    stereo = np.stack([np.zeros(1600), np.ones(1600)], axis=1)
    segments = _collect(Segmenter(200), BufferSource(stereo, rate))
    assert len(segments) == 1
    assert segments[0].channels == 2
    assert np.all(segments[0].samples[:, 1] == 1.0)


def test_emitted_segments_do_not_alias_buffer():
    rate = 8000
    samples = np.concatenate([np.zeros(1600), np.ones(1600)]).astype(np.float32)
    first, second = _collect(Segmenter(200), BufferSource(samples, rate, block_frames=400))
    assert np.all(first.samples == 0.0)
    assert np.all(second.samples == 1.0)


class _BrokenSource(AudioSource):
    sample_rate = 8000
    channels = 1

    async def blocks(self):
        yield np.zeros(1600, dtype=np.float32)
        raise OSError("device unplugged")


def test_source_failure_surfaces_as_acquisition_error():
    seen = []

    async def run():
        async for segment in Segmenter(200).segments(_BrokenSource()):
            seen.append(segment)

    with pytest.raises(AcquisitionError):
        asyncio.run(run())
    assert len(seen) == 1


def test_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        Segmenter(0)
