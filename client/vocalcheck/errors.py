"""Error taxonomy for the detection pipeline."""

from __future__ import annotations


class VocalCheckError(Exception):
    pass


class AcquisitionError(VocalCheckError):
    """Audio source unavailable, denied or broken. Fatal to the session."""


class DecodeError(VocalCheckError):
    """A segment could not be decoded back into samples."""


class InferenceError(VocalCheckError):
    """Base class for classifier call failures."""


class NetworkError(InferenceError):
    pass


class ServerError(InferenceError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "VocalCheckError",
    "AcquisitionError",
    "DecodeError",
    "InferenceError",
    "NetworkError",
    "ServerError",
]
