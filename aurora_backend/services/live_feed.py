# aurora_backend/services/live_feed.py
import asyncio
import logging
from typing import List, Optional

from aurora_backend.core.models import Appointment, AppointmentStatus
from aurora_backend.core.repositories import AppointmentStore, Unsubscribe


class AppointmentFeed:
    """
    Live view of the appointments with one status, scoped to an `async with`
    block. Snapshot callbacks arrive on the store's listener thread and are
    handed to the event loop through a queue; leaving the block always
    unsubscribes.

        async with AppointmentFeed(store, AppointmentStatus.PENDING) as feed:
            items = await feed.next(timeout=15)
    """

    def __init__(self, store: AppointmentStore, status: AppointmentStatus):
        self.store = store
        self.status = status
        self._queue: "asyncio.Queue[List[Appointment]]" = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    async def __aenter__(self) -> "AppointmentFeed":
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self.store.watch(self.status, self._on_snapshot)
        logging.info(f"Appointment feed opened for status '{self.status.value}'")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logging.info(f"Appointment feed closed for status '{self.status.value}'")

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def _on_snapshot(self, appointments: List[Appointment]) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, appointments)

    async def next(self, timeout: Optional[float] = None) -> List[Appointment]:
        """Waits for the next snapshot; raises asyncio.TimeoutError after `timeout` seconds."""
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)
