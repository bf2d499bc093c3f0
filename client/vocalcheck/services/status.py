"""Background liveness polling for the classifier endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .inference import InferenceClient

LOGGER = logging.getLogger("vocalcheck.status")


class StatusMonitor:
    def __init__(
        self,
        client: InferenceClient,
        *,
        interval: float = 30.0,
        on_change: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self.client = client
        self.interval = interval
        self.on_change = on_change
        self.is_connected: bool | None = None
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def check(self) -> bool:
        connected = await self.client.test_connection()
        if connected != self.is_connected:
            LOGGER.info("Classifier %s", "reachable" if connected else "unreachable")
            self.is_connected = connected
            if self.on_change:
                self.on_change(connected)
        return connected

    async def _run(self) -> None:
        while True:
            try:
                await self.check()
            except Exception as exc:
                LOGGER.error("Status check failed: %s", exc, exc_info=exc)
            await asyncio.sleep(self.interval)


__all__ = ["StatusMonitor"]
