"""VocalCheck: streaming voice authenticity detection."""

from .config import DetectorSettings, get_settings
from .errors import (
    AcquisitionError,
    DecodeError,
    InferenceError,
    NetworkError,
    ServerError,
    VocalCheckError,
)
from .pipeline.aggregator import SegmentOutcome, TemporalAggregator, VerdictRecord
from .pipeline.session import DetectionSession

__version__ = "0.1.0"

__all__ = [
    "DetectorSettings",
    "get_settings",
    "AcquisitionError",
    "DecodeError",
    "InferenceError",
    "NetworkError",
    "ServerError",
    "VocalCheckError",
    "SegmentOutcome",
    "TemporalAggregator",
    "VerdictRecord",
    "DetectionSession",
]
