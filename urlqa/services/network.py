"""Online/offline flag consulted before each chat submission"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """Holds the last known connectivity state.

    `is_online` is read synchronously; `check()` refreshes it by probing a URL.
    Any HTTP response counts as online, transport errors as offline.
    """

    def __init__(
        self,
        probe_url: str,
        timeout: float = 5.0,
        online: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.probe_url = probe_url
        self.timeout = timeout
        self.transport = transport
        self._online = online
        self._task: Optional[asyncio.Task] = None

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Network status: {'online' if online else 'offline'}")
        self._online = online

    async def check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                await client.head(self.probe_url)
            self.set_online(True)
        except httpx.TransportError as e:
            logger.warning(f"Connectivity probe failed: {type(e).__name__}: {e}")
            self.set_online(False)
        return self._online

    def start(self, interval: float) -> None:
        """Start periodic probing on the running loop; first probe after `interval`"""
        if interval <= 0 or self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(interval))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.check()
