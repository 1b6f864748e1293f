import asyncio
import logging
from collections import defaultdict
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Iterable

logger = logging.getLogger(__name__)


class KeyedLocks:
    """
    One asyncio lock per key, e.g. (trader_id, currency) or a portfolio id.

    Calls on the same key run one at a time; different keys don't block each
    other. In-process only; the database row locks cover multi-process setups.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: Dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        self._waiters[key] += 1
        lock = self._locks[key]
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                # nobody else queued on this key
                del self._waiters[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def hold_many(self, keys: Iterable[Hashable]) -> AsyncIterator[None]:
        """Hold several keys, taken in the order given; callers pass a stable order."""
        async with AsyncExitStack() as stack:
            for key in dict.fromkeys(keys):
                await stack.enter_async_context(self.hold(key))
            yield

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())
