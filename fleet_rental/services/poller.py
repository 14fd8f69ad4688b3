# fleet_rental/services/poller.py
"""
Periodic polling with out-of-order protection.

Each tick starts a fetch tagged with a monotonic sequence number. Ticks do not
wait for the previous fetch, so a slow response can resolve after a newer one;
only a response newer than the last applied one is applied, the rest are dropped.

The loop is an explicit asyncio task owned by whoever consumes the data:
start() when the consumer comes up, stop() when it goes away.
"""

import asyncio
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from fleet_rental.exceptions import FleetError
from fleet_rental.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class LatestResponsePoller(Generic[T]):
    def __init__(self, name: str, fetch: Callable[[], Awaitable[T]],
                 apply: Callable[[T], None], interval_seconds: float):
        self.name = name
        self.fetch = fetch
        self.apply = apply
        self.interval_seconds = interval_seconds
        self._issued_seq = 0
        self._applied_seq = 0
        self._task: Optional[asyncio.Task] = None
        self._inflight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def applied_seq(self) -> int:
        return self._applied_seq

    async def poll_once(self) -> bool:
        """Fetch and apply. Returns False when the fetch failed or a newer response won."""
        self._issued_seq += 1
        seq = self._issued_seq
        try:
            result = await self.fetch()
        except FleetError as e:
            logger.warning(f"[POLL][{self.name}] #{seq} failed: {e.message}")
            return False
        except Exception as e:
            logger.error(f"[POLL][{self.name}] #{seq} unexpected error: {e}", exc_info=True)
            return False

        if seq <= self._applied_seq:
            logger.debug(f"[POLL][{self.name}] #{seq} discarded — #{self._applied_seq} already applied")
            return False

        self._applied_seq = seq
        self.apply(result)
        return True

    async def _run(self):
        while True:
            task = asyncio.create_task(self.poll_once(), name=f"poll-{self.name}-{self._issued_seq + 1}")
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await asyncio.sleep(self.interval_seconds)

    def start(self):
        if self.running:
            return
        logger.info(f"[POLL][{self.name}] started — every {self.interval_seconds}s")
        self._task = asyncio.create_task(self._run(), name=f"poller-{self.name}")

    async def stop(self):
        """Cancel the loop and any fetch still in flight."""
        tasks = list(self._inflight)
        if self._task is not None:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        self._inflight.clear()
        logger.info(f"[POLL][{self.name}] stopped")
