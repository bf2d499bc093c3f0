"""HTTP client for the remote authenticity classifier."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from ..audio.types import EncodedClip
from ..config import DetectorSettings, get_settings
from ..errors import NetworkError, ServerError

LOGGER = logging.getLogger("vocalcheck.inference")


class InferenceClient:
    def __init__(
        self,
        settings: DetectorSettings | None = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.settings.timeout)

    def _url(self, path: str) -> str:
        base = self.settings.server_url.rstrip("/")
        return f"{base}{path}"

    async def test_connection(self) -> bool:
        try:
            resp = await self._client.get(self._url("/test"))
        except httpx.HTTPError as exc:
            LOGGER.info("Classifier unreachable: %s", exc)
            return False
        return resp.is_success

    async def predict(self, clip: EncodedClip) -> List[int]:
        files = {"file": ("audio.wav", clip.data, "audio/wav")}
        try:
            resp = await self._client.post(self._url("/predict"), files=files)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise ServerError(
                f"API request failed: {status} {exc.response.reason_phrase}", status
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"API request failed: {exc}") from exc
        return self._parse_predictions(resp)

    def _parse_predictions(self, resp: httpx.Response) -> List[int]:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ServerError(f"Invalid response: {exc}", resp.status_code) from exc
        predictions = payload.get("predictions") if isinstance(payload, dict) else None
        if not isinstance(predictions, list) or not predictions:
            raise ServerError("Invalid response: missing predictions", resp.status_code)
        parsed: List[int] = []
        for value in predictions:
            if isinstance(value, bool) or value not in (0, 1):
                raise ServerError(f"Invalid response: unexpected prediction {value!r}", resp.status_code)
            parsed.append(int(value))
        return parsed

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["InferenceClient"]
