import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable


class RepositoryLeases:
    """
    In-process mutual exclusion keyed by repository identity.

    Only serializes callers sharing this object; separate processes can still race.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]
