"""In-memory pool state storage with per-pool write serialisation.

``PoolLocks`` hands out one re-entrant lock per pool id so that a single
read-modify-write never interleaves with another writer of the same pool,
while writers of different pools proceed independently. The SQL-backed
store reuses it for the same guarantee within one process.
"""

import threading
import weakref
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager

from prediction_amm.core.exceptions import ConcurrentModificationError
from prediction_amm.core.models import PoolState


class PoolLocks:
    """Re-entrant locks keyed by pool id, created on demand.

    The table holds its locks weakly: an entry lives only while some
    thread is inside ``hold`` for that pool, so ids that are never used
    again (including ids of pools that do not exist) are not retained.
    """

    def __init__(self) -> None:
        """Initialize an empty lock table."""
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        """Return the number of pools with a live lock."""
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, pool_id: str) -> Iterator[None]:
        """Hold the lock for a pool for the duration of the ``with`` block.

        Args:
            pool_id: Pool whose writers should be excluded.

        """
        with self._guard:
            lock = self._locks.get(pool_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[pool_id] = lock
        with lock:
            yield


def check_version(current: PoolState | None, state: PoolState) -> None:
    """Reject a write whose version does not follow the stored one.

    A pool with no stored state accepts any version. Otherwise ``state``
    must carry exactly ``current.version + 1``.

    Raises:
        ConcurrentModificationError: If another write landed first.

    """
    if current is not None and state.version != current.version + 1:
        raise ConcurrentModificationError(state.pool_id, state.version)


class InMemoryPoolStateStore:
    """Dictionary-backed ``PoolStateStore`` for tests and embedded use.

    States are immutable dataclasses, so handing out the stored instance
    is safe; callers replace rather than mutate.

    Example::

        store = InMemoryPoolStateStore()
        engine = PoolEngine(store)
        engine.initialize("pool_1", Decimal(1000), Decimal(1000))

    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._states: dict[str, PoolState] = {}
        self._locks = PoolLocks()
        self._write_guard = threading.Lock()

    def get(self, pool_id: str) -> PoolState | None:
        """Return the stored state for a pool, or ``None`` if absent."""
        return self._states.get(pool_id)

    def save(self, state: PoolState) -> None:
        """Persist a complete state snapshot, replacing the previous version.

        Raises:
            ConcurrentModificationError: If ``state.version`` is not one
                past the stored version.

        """
        with self._write_guard:
            check_version(self._states.get(state.pool_id), state)
            self._states[state.pool_id] = state

    def lock(self, pool_id: str) -> AbstractContextManager[None]:
        """Return a context manager that excludes other writers of a pool."""
        return self._locks.hold(pool_id)

    def pool_ids(self) -> list[str]:
        """Return all stored pool ids, sorted."""
        return sorted(self._states)

    def clear(self) -> None:
        """Drop every stored pool."""
        self._states.clear()
