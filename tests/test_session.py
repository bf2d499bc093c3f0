import asyncio

import httpx
import numpy as np
import pytest

from client.vocalcheck.audio.silence import SilenceGate
from client.vocalcheck.audio.sources import BufferSource, FileSource
from client.vocalcheck.audio.types import SilenceVerdict
from client.vocalcheck.config import DetectorSettings
from client.vocalcheck.errors import AcquisitionError, NetworkError, ServerError
from client.vocalcheck.pipeline.aggregator import SegmentOutcome
from client.vocalcheck.pipeline.session import DetectionSession
from client.vocalcheck.services.inference import InferenceClient

RATE = 44_100
SEGMENT = RATE // 5
SETTINGS = DetectorSettings(server_url="http://classifier.test")


class ScriptedClient(InferenceClient):
    """Answers per segment index; values may be vectors or exceptions."""

    def __init__(self, script, delays=None):
        super().__init__(SETTINGS, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))))
        self.script = script
        self.delays = delays or {}
        self.calls = []
        self.active = 0
        self.peak = 0

    async def predict(self, clip):
        self.calls.append(clip.segment_index)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(clip.segment_index, 0))
            answer = self.script[clip.segment_index]
            if isinstance(answer, Exception):
                raise answer
            return answer
        finally:
            self.active -= 1


def _audio(pattern, make_tone):
    """Build one segment of tone (True) or silence (False) per entry."""
    tone = make_tone(0.2, amplitude=0.3)
    blocks = [tone if voiced else np.zeros(SEGMENT, dtype=np.float32) for voiced in pattern]
    return np.concatenate(blocks)


def test_end_to_end_over_http(make_tone):
    def handler(request):
        assert request.url.path == "/predict"
        return httpx.Response(200, json={"predictions": [1, 1, 0]})

    async def run():
        client = InferenceClient(SETTINGS, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        source = BufferSource(_audio([True, False, True], make_tone), RATE)
        session = DetectionSession(source, SETTINGS, client=client)
        verdict = await session.run()
        return session, verdict

    session, verdict = asyncio.run(run())
    assert verdict.is_authentic is True
    assert verdict.confidence == 100.0
    assert (session.stats.segments, session.stats.voiced, session.stats.silent) == (3, 2, 1)
    assert session.aggregator.silent_segments == 1
    assert len(session.feed) == 3
    assert session.feed.error is None


def test_server_error_leaves_history_untouched(make_tone):
    script = {
        0: [1, 1],
        1: [0, 0, 1],
        2: ServerError("API request failed: 500 Internal Server Error", 500),
        3: [1],
        4: NetworkError("API request failed: connection reset"),
    }

    async def run():
        client = ScriptedClient(script)
        source = BufferSource(_audio([True] * 5, make_tone), RATE, block_frames=SEGMENT)
        session = DetectionSession(source, SETTINGS, client=client)
        verdict = await session.run()
        return session, verdict

    session, verdict = asyncio.run(run())
    assert sorted(session.aggregator.history, key=lambda o: o.value) == [
        SegmentOutcome.FAKE,
        SegmentOutcome.REAL,
        SegmentOutcome.REAL,
    ]
    assert session.stats.failed == 2
    assert {record.segment_index for record in session.feed.list()} == {0, 1, 3}
    assert verdict.is_authentic is True
    assert verdict.confidence == pytest.approx(200 / 3)


def test_results_are_attributed_to_their_segment(make_tone):
    script = {0: [0], 1: [1], 2: [0], 3: [1]}
    delays = {0: 0.08, 1: 0.06, 2: 0.04, 3: 0.0}

    async def run():
        client = ScriptedClient(script, delays)
        source = BufferSource(_audio([True] * 4, make_tone), RATE, block_frames=SEGMENT)
        session = DetectionSession(source, SETTINGS, client=client)
        await session.run()
        return session

    session = asyncio.run(run())
    for record in session.feed.list():
        expected = SegmentOutcome.REAL if script[record.segment_index] == [1] else SegmentOutcome.FAKE
        assert record.outcome is expected
    # completion order was reversed relative to capture order
    assert [r.segment_index for r in reversed(session.feed.list())] == [3, 2, 1, 0]


def test_segmentation_is_not_blocked_by_inference(make_tone):
    script = {idx: [1] for idx in range(4)}
    delays = {idx: 0.5 for idx in range(4)}

    async def run():
        client = ScriptedClient(script, delays)
        source = BufferSource(_audio([True] * 4, make_tone), RATE, block_frames=SEGMENT // 4, realtime=True)
        session = DetectionSession(source, SETTINGS, client=client)
        await session.run()
        return client

    client = asyncio.run(run())
    assert client.peak >= 2
    assert sorted(client.calls) == [0, 1, 2, 3]


def test_stop_discards_inflight_results(make_tone):
    async def run():
        release = asyncio.Event()

        class Hanging(ScriptedClient):
            async def predict(self, clip):
                self.calls.append(clip.segment_index)
                await release.wait()
                return [1]

        client = Hanging({})
        source = BufferSource(_audio([True] * 3, make_tone), RATE, block_frames=SEGMENT)
        session = DetectionSession(source, SETTINGS, client=client)
        await session.start()
        for _ in range(100):
            if len(client.calls) == 3:
                break
            await asyncio.sleep(0.01)
        assert session.is_processing
        await session.stop()
        release.set()
        await asyncio.sleep(0.01)
        return session

    session = asyncio.run(run())
    assert session.aggregator.history == ()
    assert len(session.feed) == 0
    assert not session.is_processing
    assert not session.is_running


def test_gate_decode_failure_still_classifies(make_tone):
    class BrokenGate(SilenceGate):
        def check(self, clip):
            return SilenceVerdict(is_silent=False, rms=None, error="Missing data chunk")

    errors = []

    async def run():
        client = ScriptedClient({0: [1]})
        source = BufferSource(np.zeros(SEGMENT, dtype=np.float32), RATE)
        session = DetectionSession(source, SETTINGS, client=client, gate=BrokenGate())
        session.feed.report_error = lambda message: errors.append(message)
        await session.run()
        return session

    session = asyncio.run(run())
    assert errors and "Missing data chunk" in errors[0]
    assert session.aggregator.history == (SegmentOutcome.REAL,)
    assert session.is_speaking is True


def test_undecodable_upload_is_fatal():
    async def run():
        session = DetectionSession(FileSource(b"definitely not audio"), SETTINGS, client=ScriptedClient({}))
        with pytest.raises(AcquisitionError):
            await session.run()
        return session

    session = asyncio.run(run())
    assert session.fatal_error
    assert session.feed.error == session.fatal_error
    assert session.stats.segments == 0


def test_file_source_decodes_wav(tmp_path, make_tone):
    import soundfile as sf

    path = tmp_path / "speech.wav"
    sf.write(str(path), _audio([True, True, False], make_tone), RATE, subtype="PCM_16")
    verdicts = []

    async def run():
        client = ScriptedClient({0: [1, 1], 1: [1, 0, 0]})
        session = DetectionSession(FileSource(path), SETTINGS, client=client, on_verdict=verdicts.append)
        return await session.run()

    verdict = asyncio.run(run())
    assert len(verdicts) == 3
    assert verdict.confidence == 50.0
    assert verdict.is_authentic is False


def test_reset_clears_window_counter_and_feed(make_tone):
    async def run():
        client = ScriptedClient({0: [1], 2: [0, 0]})
        source = BufferSource(_audio([True, False, True], make_tone), RATE, block_frames=SEGMENT)
        session = DetectionSession(source, SETTINGS, client=client)
        await session.run()
        before = (len(session.aggregator.history), session.aggregator.silent_segments, len(session.feed))
        session.feed.report_error("stale")
        await session.reset()
        return session, before

    session, before = asyncio.run(run())
    assert before == (3, 1, 3)
    assert session.aggregator.history == ()
    assert session.aggregator.silent_segments == 0
    assert len(session.feed) == 0
    assert session.feed.error is None
