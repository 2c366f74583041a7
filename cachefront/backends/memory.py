"""In-process cache backends: per-instance (Local) and process-wide (Shared)."""

import time

from ..entry import Entry
from ..errors import KeyExistsError, NotFoundError
from ..keys import DerivedKey
from ..reaper import ExpiryReaper, Storage
from .base import BackendAdapter


class _MapBackend(BackendAdapter):
    """Primitives over a ``namespace_hash -> key_hash -> Entry`` mapping."""

    def __init__(self, storage: Storage):
        self._storage = storage

    @property
    def storage(self) -> Storage:
        return self._storage

    def _live_entry(self, key: DerivedKey) -> Entry | None:
        bucket = self._storage.get(key.namespace_hash)
        if bucket is None:
            return None
        entry = bucket.get(key.key_hash)
        if entry is None:
            return None

        # Expired entries are dropped as soon as they are seen
        if not entry.is_live(time.time()):
            del bucket[key.key_hash]
            return None
        return entry

    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        if not overwrite and self._live_entry(key) is not None:
            raise KeyExistsError("This key already exists.")
        self._storage.setdefault(key.namespace_hash, {})[key.key_hash] = entry

    async def get(self, key: DerivedKey) -> Entry:
        entry = self._live_entry(key)
        if entry is None:
            raise NotFoundError("No such element found.")
        return entry

    async def exists(self, key: DerivedKey) -> bool:
        return self._live_entry(key) is not None

    async def delete(self, key: DerivedKey) -> None:
        bucket = self._storage.get(key.namespace_hash)
        if bucket is not None:
            bucket.pop(key.key_hash, None)

    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        # Absent and non-numeric entries are left untouched
        entry = self._live_entry(key)
        if entry is not None and entry.numeric:
            self._storage[key.namespace_hash][key.key_hash] = entry.incremented(delta)

    async def clear(self, namespace_hash: str | None = None) -> None:
        # Mutate in place: reapers hold a reference to this mapping
        if namespace_hash is None:
            self._storage.clear()
        else:
            self._storage.pop(namespace_hash, None)


class LocalBackend(_MapBackend):
    """Storage owned by a single Cache instance."""

    name = "local"

    def __init__(self):
        super().__init__({})


class SharedStore:
    """Process-wide storage that any number of Cache instances attach to.

    The store has no owner: last writer wins on every key and stopping its
    reaper affects every attached instance.
    """

    def __init__(self):
        self._storage: Storage = {}
        self._reaper = ExpiryReaper(self._storage)

    @classmethod
    def create(cls) -> "SharedStore":
        """Create an independent store (useful for isolation in tests)."""
        return cls()

    def attach(self) -> "SharedBackend":
        """Return an adapter with read/write access to this store."""
        return SharedBackend(self)

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def reaper(self) -> ExpiryReaper:
        return self._reaper

    def start_reaper(self) -> bool:
        return self._reaper.start()

    def stop_reaper(self) -> bool:
        return self._reaper.stop()

    def run_reaper(self) -> int:
        return self._reaper.sweep()

    def teardown(self) -> None:
        """Stop the reaper and drop every entry."""
        self._reaper.stop()
        self._storage.clear()


class SharedBackend(_MapBackend):
    """Adapter over a SharedStore."""

    name = "shared"

    def __init__(self, store: SharedStore):
        super().__init__(store.storage)
        self.store = store


# Process-wide shared store
_shared_store: SharedStore | None = None


def get_shared_store() -> SharedStore:
    """Get the process-wide shared store, creating it on first use."""
    global _shared_store  # noqa: PLW0603
    if _shared_store is None:
        _shared_store = SharedStore.create()
    return _shared_store


def reset_shared_store() -> None:
    """Tear down the process-wide shared store (useful for testing)."""
    global _shared_store  # noqa: PLW0603
    if _shared_store is not None:
        _shared_store.teardown()
    _shared_store = None


def start_global_reaper() -> bool:
    """Start sweeping the process-wide shared store every second."""
    return get_shared_store().start_reaper()


def stop_global_reaper() -> bool:
    """Stop the process-wide reaper."""
    return get_shared_store().stop_reaper()


def run_global_reaper() -> int:
    """Sweep the process-wide shared store once."""
    return get_shared_store().run_reaper()
