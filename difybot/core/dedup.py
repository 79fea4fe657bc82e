"""In-memory guard against handling the same Slack message twice."""

import asyncio
import logging
import threading
from collections import OrderedDict
from typing import Optional

logger = logging.getLogger(__name__)


class DedupGuard:
    """Bounded, insertion-ordered set of already-handled message ids.

    Slack may redeliver events, and one message can reach several listeners
    (`app_mention` and `message`). Handlers call `claim()` before replying;
    only the first caller for a given id gets True.

    The set is trimmed back to `capacity` by a background sweep every
    `trim_interval` seconds, not on insert. Contents are lost on restart.

    Usage:
        guard = DedupGuard(capacity=100, trim_interval=60.0)
        guard.start()

        if guard.claim(event["ts"]):
            ...  # first delivery, handle it

        await guard.stop()
    """

    def __init__(self, capacity: int = 100, trim_interval: float = 60.0):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.trim_interval = trim_interval
        self._ids: OrderedDict[str, None] = OrderedDict()
        # Held only for O(1) updates and the eviction loop, never across an await.
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, message_id: str) -> bool:
        return self.has_handled(message_id)

    def has_handled(self, message_id: str) -> bool:
        with self._lock:
            return message_id in self._ids

    def mark_handled(self, message_id: str) -> None:
        """Record `message_id`; re-marking keeps its original position."""
        with self._lock:
            self._ids.setdefault(message_id, None)

    def claim(self, message_id: str) -> bool:
        """Atomically check and mark.

        Returns:
            True if the id was not handled before (caller should proceed),
            False if another delivery already claimed it
        """
        with self._lock:
            if message_id in self._ids:
                return False
            self._ids[message_id] = None
            return True

    def trim(self) -> int:
        """Evict the oldest ids beyond capacity.

        Returns:
            Number of evicted ids
        """
        with self._lock:
            overflow = len(self._ids) - self.capacity
            for _ in range(max(overflow, 0)):
                self._ids.popitem(last=False)
        if overflow > 0:
            logger.debug(f"Dedup guard trimmed {overflow} ids (capacity {self.capacity})")
        return max(overflow, 0)

    async def _sweep(self):
        while True:
            await asyncio.sleep(self.trim_interval)
            self.trim()

    def start(self):
        """Start the periodic trim task on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._sweep())
            logger.info(
                f"Dedup guard sweep started (capacity={self.capacity}, interval={self.trim_interval}s)"
            )

    async def stop(self):
        """Cancel the periodic trim task."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Dedup guard sweep stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
