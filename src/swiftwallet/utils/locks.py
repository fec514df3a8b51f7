"""Concurrency control for (user, chain) balance rows.

Each balance row is a serialization point: operations touching the same
(user, chain) pair run one after another, operations on disjoint pairs never
wait for each other.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from swiftwallet.errors import LockTimeoutError

logger = logging.getLogger(__name__)

RowKey = tuple[str, str]


class RowLockRegistry:
    """Registry of per-row asyncio locks.

    Locks are bound to the event loop that first contends for them, so a
    registry lives as long as the store that owns it rather than the process.
    """

    def __init__(self, timeout: Optional[float] = 30.0):
        self.timeout = timeout
        self._locks: dict[RowKey, asyncio.Lock] = {}

    def get(self, key: RowKey) -> asyncio.Lock:
        """Get or create the lock for a row."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def acquire(self, key: RowKey, operation: str = "balance_operation") -> asyncio.Lock:
        """Acquire a row lock, honouring the registry timeout."""
        lock = self.get(key)
        try:
            if self.timeout:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for {key} after {self.timeout}s: {operation}")
            raise LockTimeoutError(
                f"Could not acquire lock for {key[0]}/{key[1]} within {self.timeout}s",
                user_id=key[0],
                chain=key[1],
            )

        logger.debug(f"Lock acquired for {key}: {operation}")
        return lock


class RowLockSet:
    """The row locks held by one atomic scope.

    Keys are acquired at most once and released together when the scope ends.
    """

    def __init__(self, registry: RowLockRegistry, operation: str = "balance_operation"):
        self.registry = registry
        self.operation = operation
        self._held: dict[RowKey, asyncio.Lock] = {}

    @property
    def keys(self) -> list[RowKey]:
        return list(self._held)

    def holds(self, key: RowKey) -> bool:
        return key in self._held

    async def acquire(self, key: RowKey) -> None:
        """Acquire a single key unless already held."""
        if key in self._held:
            return
        self._held[key] = await self.registry.acquire(key, self.operation)

    async def acquire_many(self, keys: Iterable[RowKey]) -> None:
        """Acquire several keys in sorted order so opposite transfers cannot deadlock."""
        for key in sorted(set(keys)):
            await self.acquire(key)

    def release_all(self) -> None:
        """Release every held lock."""
        for key, lock in reversed(list(self._held.items())):
            lock.release()
            logger.debug(f"Lock released for {key}: {self.operation}")
        self._held.clear()


@asynccontextmanager
async def row_locks(
    registry: RowLockRegistry,
    keys: Iterable[RowKey],
    operation: str = "balance_operation",
):
    """Functional context manager holding a set of row locks.

    Example:
        async with row_locks(registry, [("user1", "ethereum")], operation="adjust"):
            # Read-modify-write of the row here
            pass
    """
    held = RowLockSet(registry, operation)
    try:
        await held.acquire_many(keys)
        yield held
    finally:
        held.release_all()
