"""Command-line interface for VocalCheck."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .audio.sources import FileSource, MicrophoneSource
from .config import DetectorSettings, get_settings
from .errors import AcquisitionError
from .pipeline.aggregator import VerdictRecord
from .pipeline.session import DetectionSession
from .services.inference import InferenceClient
from .services.status import StatusMonitor


def _build_settings(args) -> DetectorSettings:
    overrides = {}
    if getattr(args, "server", None):
        overrides["server_url"] = args.server
    if getattr(args, "threshold", None) is not None:
        overrides["silence_threshold"] = args.threshold
    return get_settings().model_copy(update=overrides)


def _make_client(settings: DetectorSettings) -> InferenceClient:
    return InferenceClient(settings)


def _format_record(record: VerdictRecord) -> str:
    stamp = record.timestamp.astimezone().strftime("%H:%M:%S")
    if record.confidence == 0:
        label = "SILENT"
    else:
        label = "AUTHENTIC" if record.is_authentic else "SUSPICIOUS"
        label = f"{label} ({record.confidence:.1f}%)"
    return f"[{stamp}] #{record.segment_index}: {label} - {record.details}"


def _record_dict(record: VerdictRecord) -> dict:
    return {
        "id": record.id,
        "timestamp": record.timestamp.isoformat(),
        "segment_index": record.segment_index,
        "outcome": record.outcome.value if record.outcome else None,
        "confidence": round(record.confidence, 2),
        "is_authentic": record.is_authentic,
        "details": record.details,
    }


def _print_report(session: DetectionSession, verdict: VerdictRecord, source_label: str) -> None:
    print(f"\n{'='*60}")
    print("  Voice Authenticity Report")
    print(f"{'='*60}\n")
    print(f"Source: {source_label}")
    if verdict.confidence == 0:
        print("Verdict: UNDETERMINED")
    else:
        print(f"Verdict: {'AUTHENTIC' if verdict.is_authentic else 'SUSPICIOUS'}")
    print(f"Confidence: {verdict.confidence:.1f}%")
    print(f"Details: {verdict.details}")
    stats = session.stats
    print(
        f"\nSegments: {stats.segments} ({stats.voiced} voiced, "
        f"{stats.silent} silent, {stats.failed} failed)"
    )
    if session.feed.error:
        print(f"\nLast error: {session.feed.error}")
    print(f"\n{'='*60}\n")


async def _analyze(args) -> int:
    settings = _build_settings(args)
    path = Path(args.file)
    source = FileSource(path, realtime=args.realtime)
    on_verdict = None if args.json else (lambda record: print(_format_record(record)))
    session = DetectionSession(
        source,
        settings,
        client=_make_client(settings),
        on_verdict=on_verdict,
    )
    try:
        verdict = await session.run()
    except AcquisitionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await session.client.aclose()
    if args.json:
        print(
            json.dumps(
                {
                    "file": str(path),
                    "verdict": _record_dict(verdict),
                    "stats": {
                        "segments": session.stats.segments,
                        "voiced": session.stats.voiced,
                        "silent": session.stats.silent,
                        "failed": session.stats.failed,
                    },
                    "error": session.feed.error,
                    "results": [_record_dict(record) for record in session.feed.list()],
                },
                indent=2,
            )
        )
    else:
        _print_report(session, verdict, str(path.resolve()))
    return 0


def analyze_command(args):
    """Analyze an audio file."""
    if not Path(args.file).exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        sys.exit(1)
    sys.exit(asyncio.run(_analyze(args)))


async def _listen(args) -> int:
    settings = _build_settings(args)
    source = MicrophoneSource(settings.sample_rate)
    session = DetectionSession(
        source,
        settings,
        client=_make_client(settings),
        on_verdict=lambda record: print(_format_record(record)),
    )
    try:
        await session.start()
    except AcquisitionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        await session.client.aclose()
        return 1
    monitor = StatusMonitor(
        session.client,
        interval=settings.status_interval,
        on_change=lambda connected: print(
            f"{settings.server_url}: {'API Connected' if connected else 'API Offline'}"
        ),
    )
    monitor.start()
    print("Listening... press Ctrl+C to stop.")
    try:
        elapsed = 0.0
        while session.is_running and (args.seconds is None or elapsed < args.seconds):
            await asyncio.sleep(0.2)
            elapsed += 0.2
    finally:
        await monitor.stop()
        await session.stop()
        await session.client.aclose()
    if session.fatal_error:
        print(f"Error: {session.fatal_error}", file=sys.stderr)
        return 1
    _print_report(session, session.aggregator.verdict(), "microphone")
    return 0


def listen_command(args):
    """Classify live microphone input."""
    try:
        code = asyncio.run(_listen(args))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


async def _status(args) -> bool:
    settings = _build_settings(args)
    client = _make_client(settings)
    try:
        return await client.test_connection()
    finally:
        await client.aclose()


def status_command(args):
    """Check classifier reachability."""
    settings = _build_settings(args)
    connected = asyncio.run(_status(args))
    print(f"{settings.server_url}: {'API Connected' if connected else 'API Offline'}")
    sys.exit(0 if connected else 1)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="vocalcheck",
        description="Streaming deepfake voice detection against a remote classifier",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", help="Analyze an audio file")
    analyze_parser.add_argument("file", help="Audio file to analyze")
    analyze_parser.add_argument("-s", "--server", help="Classifier base URL")
    analyze_parser.add_argument("-t", "--threshold", type=float, help="Silence RMS threshold")
    analyze_parser.add_argument("-r", "--realtime", action="store_true", help="Pace the file like a live stream")
    analyze_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    analyze_parser.set_defaults(func=analyze_command)

    listen_parser = subparsers.add_parser("listen", help="Classify live microphone input")
    listen_parser.add_argument("-n", "--seconds", type=float, help="Stop after N seconds")
    listen_parser.add_argument("-s", "--server", help="Classifier base URL")
    listen_parser.add_argument("-t", "--threshold", type=float, help="Silence RMS threshold")
    listen_parser.set_defaults(func=listen_command)

    status_parser = subparsers.add_parser("status", help="Check classifier reachability")
    status_parser.add_argument("-s", "--server", help="Classifier base URL")
    status_parser.set_defaults(func=status_command)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
