"""
In-flight guard against double submission.

A caller holding a key (e.g. ``quote:{user}``) makes a second concurrent
request for the same key fail fast instead of queueing behind the first.
The guard is process-local.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator


class BusyError(Exception):
    """The same operation is already running for this caller."""

    def __init__(self, key: str):
        super().__init__(f"Operation already in progress: {key}")
        self.key = key


class BusyGuard:
    def __init__(self) -> None:
        self._held: set[str] = set()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        # check-and-add runs without an await, so it is atomic on the loop
        if self.is_busy(key):
            raise BusyError(key)
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)

    def is_busy(self, key: str) -> bool:
        return key in self._held


busy_guard = BusyGuard()
