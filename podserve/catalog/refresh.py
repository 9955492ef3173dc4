"""Periodic background rescan of the media directory."""

import asyncio
import logging
from typing import Callable

from .builder import CatalogBuildError, build_snapshot
from .models import Metadata, Snapshot
from .store import CatalogStore

logger = logging.getLogger(__name__)


class RefreshLoop:
    """Rebuilds the catalog on a fixed interval and installs it on change.

    The loop waits for either the interval to elapse or ``stop()`` to be
    called, whichever comes first, so shutdown never has to wait out a full
    interval and never starts a new scan.
    """

    def __init__(
        self,
        store: CatalogStore,
        metadata: Metadata,
        interval: float = 60.0,
        builder: Callable[[Metadata], Snapshot] = build_snapshot,
    ):
        self.store = store
        self.metadata = metadata
        self.interval = interval
        self.builder = builder
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    async def refresh_once(self) -> bool:
        """
        Run one refresh tick.

        Builds a fresh snapshot in a worker thread and installs it only if its
        feed document differs from the one currently served.

        Returns:
            True if the store was replaced, False otherwise
        """
        try:
            snapshot = await asyncio.to_thread(self.builder, self.metadata)
        except CatalogBuildError as e:
            logger.error(f"Catalog refresh failed, keeping previous catalog: {e}")
            return False

        if snapshot.feed == self.store.read().feed:
            return False

        generation = self.store.replace(snapshot)
        logger.info(
            "Catalog updated",
            extra={"items": len(snapshot.items), "generation": generation},
        )
        return True

    async def run(self) -> None:
        """Refresh every ``interval`` seconds until stopped."""
        logger.info(f"Refresh loop started, interval {self.interval}s")
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stop.is_set():
                break
            try:
                await self.refresh_once()
            except Exception as e:
                logger.error(f"Unexpected error in refresh loop: {e}", exc_info=True)
        logger.info("Refresh loop stopped")

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        if self._task is None:
            self._loop = asyncio.get_running_loop()
            self._stop.clear()
            self._task = asyncio.create_task(self.run(), name="catalog-refresh")
        return self._task

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it to finish its current tick."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    def request_stop(self) -> None:
        """Ask the loop to exit without waiting for it.

        Safe to call from a signal handler or another thread.
        """
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._stop.set)
        else:
            self._stop.set()

    @property
    def running(self) -> bool:
        """Whether the loop task has been started and has not finished."""
        return self._task is not None and not self._task.done()
