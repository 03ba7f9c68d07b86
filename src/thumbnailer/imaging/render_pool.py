"""Bounded worker threads for decode, resize and encode jobs.

Pillow work is CPU-bound, so it never runs on the event loop. A job first
waits for one of ``max_concurrent`` render slots; if none frees up within
``queue_timeout`` seconds the job is refused with
:class:`~thumbnailer.imaging.errors.RenderQueueFullError`. Every job builds
its own surface, so workers share no drawable state.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

from thumbnailer.imaging.errors import RenderQueueFullError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from thumbnailer.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RenderPool:
    """Render slots plus the worker threads that fill them."""

    def __init__(self, settings: Settings) -> None:
        self._slots = asyncio.Semaphore(settings.max_concurrent)
        self._workers = ThreadPoolExecutor(
            max_workers=settings.max_concurrent,
            thread_name_prefix="thumbnail-render",
        )
        self._queue_timeout = settings.queue_timeout
        self._waiting = 0
        self._rendering = 0
        self._stats_lock = threading.Lock()

    def _adjust(self, waiting: int = 0, rendering: int = 0) -> None:
        with self._stats_lock:
            self._waiting += waiting
            self._rendering += rendering

    @asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        self._adjust(waiting=1)
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self._queue_timeout)
        except TimeoutError:
            logger.warning("No render slot free after %.1fs, refusing job", self._queue_timeout)
            raise RenderQueueFullError(f"No render slot free after {self._queue_timeout:.1f}s") from None
        finally:
            self._adjust(waiting=-1)

        self._adjust(rendering=1)
        try:
            yield
        finally:
            self._slots.release()
            self._adjust(rendering=-1)

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Run ``func(*args)`` on a worker thread once a render slot is free.

        Raises:
            RenderQueueFullError: If no slot frees up within the queue timeout.
        """
        async with self._slot():
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(self._workers, func, *args)

    @property
    def active_count(self) -> int:
        """Jobs currently holding a render slot."""
        with self._stats_lock:
            return self._rendering

    @property
    def queue_depth(self) -> int:
        """Jobs waiting for a render slot."""
        with self._stats_lock:
            return self._waiting

    def shutdown(self) -> None:
        """Stop the worker threads, waiting for in-flight renders to finish."""
        self._workers.shutdown(wait=True)
