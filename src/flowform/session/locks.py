"""Per-session mutual exclusion.

Every mutation of a session runs under that session's lock, so two
``submit_answer`` calls for the same session never interleave. Locks of
different sessions are independent.
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class SessionLockRegistry:
    """Hands out one ``asyncio.Lock`` per session id.

    Locks are held weakly: once no coroutine holds or waits on a lock it
    is dropped, so finished sessions do not accumulate.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        """Run the enclosed block with exclusive access to ``session_id``."""
        lock = self.get(session_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
