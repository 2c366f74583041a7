"""Cache facade: one API over every storage backend."""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from .backends import BackendAdapter, FileBackend, LocalBackend, SharedStore
from .backends.memory import get_shared_store
from .entry import Entry
from .errors import (
    BackendUnavailableError,
    CacheError,
    InvalidArgumentError,
    NotFoundError,
)
from .keys import DerivedKey, KeyCodec
from .reaper import ExpiryReaper
from .strategy import Strategy
from .utils import gather_in_order, validate_key, validate_keys, validate_number

logger = logging.getLogger(__name__)


class Cache:
    """
    Storage-agnostic cache.

    Binds a namespace, a default TTL and one active strategy. Every operation
    derives a backend key from the namespace and the logical key, then
    dispatches to the adapter of the active strategy, so call sites do not
    change when the strategy does.

    Args:
        strategy: Strategy name ("local", "shared", "redis", "memcached",
            "sqlite", "file") or numeric code
        namespace: Prefix isolating this cache's keys from others on the same backend
        default_ttl: Seconds until entries expire when no TTL is given (0 = never)
        verbose: Log the underlying cause of backend faults
        shared_store: Store used by the "shared" strategy (process-wide store by default)
    """

    def __init__(
        self,
        strategy: str | int | Strategy = Strategy.LOCAL,
        *,
        namespace: str = "",
        default_ttl: int = 0,
        verbose: bool = False,
        shared_store: SharedStore | None = None,
    ):
        self._codec = KeyCodec()
        self._local = LocalBackend()
        self._backends: dict[Strategy, BackendAdapter] = {Strategy.LOCAL: self._local}
        self._shared_store = shared_store
        self._reaper = ExpiryReaper(self._local.storage)
        self._ready = True

        self.strategy = strategy
        self.namespace = namespace
        self.default_ttl = default_ttl
        self.verbose = verbose

    def __repr__(self) -> str:
        return (
            f"Cache(strategy={self.strategy_name!r}, namespace={self.namespace!r}, "
            f"default_ttl={self.default_ttl})"
        )

    async def __aenter__(self) -> "Cache":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.stop_reaper()
        await self.close_connections(include_active=True)

    # Configuration

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    @strategy.setter
    def strategy(self, value: str | int | Strategy) -> None:
        self._strategy = Strategy.parse(value)

    @property
    def strategy_name(self) -> str:
        return self._strategy.label

    @property
    def namespace(self) -> str:
        return self._namespace

    @namespace.setter
    def namespace(self, value: str | None) -> None:
        self._namespace = value if isinstance(value, str) else ""
        self._codec.namespace_hash(self._namespace)

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @default_ttl.setter
    def default_ttl(self, value: int | None) -> None:
        if value is None:
            self._default_ttl = 0
            return
        value = validate_number(value, "Default TTL")
        self._default_ttl = max(math.floor(value), 0)

    @property
    def shared_store(self) -> SharedStore:
        if self._shared_store is None:
            self._shared_store = get_shared_store()
        return self._shared_store

    def _resolve_ttl(self, ttl: int | None) -> int:
        if ttl is None:
            return self._default_ttl
        ttl = validate_number(ttl, "TTL")
        return max(math.floor(ttl), 0)

    def _derive(self, key: str) -> DerivedKey:
        return self._codec.derive(self._namespace, validate_key(key))

    # Backend dispatch

    def _backend(self) -> BackendAdapter:
        backend = self._backends.get(self._strategy)
        if backend is None and self._strategy == Strategy.SHARED:
            backend = self._backends[Strategy.SHARED] = self.shared_store.attach()
        if backend is None:
            raise BackendUnavailableError(f"{self.strategy_name} is not connected.")
        backend.verbose = self.verbose
        return backend

    async def _run(self, primitive: str, *args: Any) -> Any:
        try:
            backend = self._backend()
            return await getattr(backend, primitive)(*args)
        except CacheError as e:
            if self.verbose and (
                e.__cause__ is not None or isinstance(e, BackendUnavailableError)
            ):
                logger.warning(
                    f"{self.strategy_name} {primitive} failed: {e}",
                    exc_info=e.__cause__ or e,
                )
            raise

    # Single-key operations

    async def push(
        self, key: str, value: Any, overwrite: bool = False, ttl: int | None = None
    ) -> None:
        """Store a value; without overwrite, a live entry makes this fail."""
        derived = self._derive(key)
        entry = Entry.build(value, self._resolve_ttl(ttl))
        await self._run("put", derived, entry, overwrite)

    set = push

    async def pull(self, key: str, quiet: bool = False) -> Any:
        """Return a stored value; when quiet, a missing entry returns None."""
        derived = self._derive(key)
        try:
            entry = await self._run("get", derived)
        except NotFoundError:
            if quiet:
                return None
            raise
        return entry.value

    get = pull

    async def has(self, key: str) -> bool:
        return await self._run("exists", self._derive(key))

    async def remove(self, key: str) -> None:
        await self._run("delete", self._derive(key))

    async def increment(self, key: str, delta: int | float = 1) -> None:
        """Add delta to a numeric entry."""
        derived = self._derive(key)
        delta = validate_number(delta, "Delta")
        if delta == 0:
            return
        await self._run("increment", derived, delta)

    async def decrement(self, key: str, delta: int | float = 1) -> None:
        await self.increment(key, -validate_number(delta, "Delta"))

    # Multi-key operations

    async def push_multi(
        self,
        elements: Mapping[str, Any],
        overwrite: bool = False,
        ttl: int | None = None,
    ) -> None:
        """Store several values concurrently."""
        if not isinstance(elements, Mapping):
            raise InvalidArgumentError("Elements must be a mapping of keys to values.")
        keys = validate_keys(elements)
        ttl = self._resolve_ttl(ttl)
        await gather_in_order(self.push(key, elements[key], overwrite, ttl) for key in keys)

    set_multi = push_multi

    async def pull_multi(
        self, keys: Sequence[str], quiet: bool = False, omit_not_found: bool = False
    ) -> dict[str, Any]:
        """
        Return several values keyed by their original keys, in input order.

        Args:
            keys: Keys to read
            quiet: Map missing entries to None instead of failing
            omit_not_found: Leave out keys that resolved to None (quiet mode)
        """
        keys = validate_keys(keys)
        values = await gather_in_order(self.pull(key, quiet) for key in keys)
        if omit_not_found:
            return {k: v for k, v in zip(keys, values) if v is not None}
        return dict(zip(keys, values))

    get_multi = pull_multi

    async def has_multi(self, keys: Sequence[str]) -> dict[str, bool]:
        keys = validate_keys(keys)
        found = await gather_in_order(self.has(key) for key in keys)
        return dict(zip(keys, found))

    async def has_all(self, keys: Sequence[str]) -> bool:
        """True only if every key exists; all checks are issued before deciding."""
        keys = validate_keys(keys)
        found = await gather_in_order(self.has(key) for key in keys)
        return all(found)

    async def remove_multi(self, keys: Sequence[str]) -> None:
        keys = validate_keys(keys)
        await gather_in_order(self.remove(key) for key in keys)

    async def increment_multi(self, keys: Sequence[str], delta: int | float = 1) -> None:
        keys = validate_keys(keys)
        delta = validate_number(delta, "Delta")
        await gather_in_order(self.increment(key, delta) for key in keys)

    async def decrement_multi(self, keys: Sequence[str], delta: int | float = 1) -> None:
        await self.increment_multi(keys, -validate_number(delta, "Delta"))

    async def invalidate(self, all_namespaces: bool = False) -> None:
        """Drop every entry in the current namespace, or in all namespaces."""
        namespace_hash = self._codec.namespace_hash(self._namespace)
        await self._run("clear", None if all_namespaces else namespace_hash)

    # Expired entry collection

    def start_reaper(self) -> bool:
        """Sweep local storage now and every second. False if already running."""
        return self._reaper.start()

    def stop_reaper(self) -> bool:
        return self._reaper.stop()

    def run_reaper(self) -> int:
        """Sweep local storage once. Returns number of removed entries."""
        return self._reaper.sweep()

    async def sweep_sqlite(self) -> int:
        """Delete expired rows from the connected SQLite database."""
        backend = self._backends.get(Strategy.SQLITE)
        if backend is None:
            raise BackendUnavailableError("sqlite is not connected.")
        return await backend.sweep()

    # Connections

    async def _bind(self, strategy: Strategy, backend: BackendAdapter) -> None:
        self._ready = False
        try:
            backend.verbose = self.verbose
            if not await backend.probe():
                await backend.close()
                raise BackendUnavailableError(f"Unable to connect to {strategy.label}.")
            previous = self._backends.get(strategy)
            self._backends[strategy] = backend
            if previous is not None and previous is not backend:
                await previous.close()
        finally:
            self._ready = True
        if self.verbose:
            logger.info(f"Connected {strategy.label} backend")

    async def connect_redis(
        self,
        url: str = "redis://localhost:6379/0",
        db: int = 0,
        *,
        client: Any = None,
        **options: Any,
    ) -> None:
        """Connect the redis strategy, from a URL or an existing client."""
        from .backends.redisdb import RedisBackend

        if client is not None:
            backend = RedisBackend(client)
        else:
            backend = RedisBackend.from_url(url, db=db, **options)
        await self._bind(Strategy.REDIS, backend)

    async def connect_memcached(
        self,
        servers: str | Iterable[str] = "localhost:11211",
        *,
        client: Any = None,
        **options: Any,
    ) -> None:
        """Connect the memcached strategy, from server addresses or a client."""
        from .backends.memcached import MemcachedBackend

        if client is not None:
            backend = MemcachedBackend(client)
        else:
            if not isinstance(servers, str):
                servers = list(servers)
            backend = MemcachedBackend.from_servers(servers, **options)
        await self._bind(Strategy.MEMCACHED, backend)

    async def connect_sqlite(self, path: str | Path = ":memory:") -> None:
        """Open (and create if needed) the SQLite database used by the sqlite strategy."""
        from .backends.sqlite import SQLiteBackend

        if not str(path):
            raise InvalidArgumentError("Invalid database path.")
        await self._bind(Strategy.SQLITE, await SQLiteBackend.connect(path))

    def set_storage_directory(self, path: str | Path) -> None:
        """Set the directory the file strategy stores entries in."""
        if not str(path):
            raise InvalidArgumentError("Invalid path.")
        self._backends[Strategy.FILE] = FileBackend(path)

    def is_connected(self, strategy: str | int | Strategy | None = None) -> bool:
        strategy = self._strategy if strategy is None else Strategy.parse(strategy)
        return strategy == Strategy.SHARED or strategy in self._backends

    def is_ready(self) -> bool:
        """False while a connection is being established."""
        return self._ready

    async def probe(self) -> bool:
        """Actively check that the active backend answers."""
        try:
            return await self._backend().probe()
        except BackendUnavailableError:
            return False

    async def close_connections(self, include_active: bool = False) -> None:
        """Close external connections not used by the active strategy (or all)."""
        for strategy in list(self._backends):
            if strategy in (Strategy.LOCAL, Strategy.SHARED):
                continue
            if include_active or strategy != self._strategy:
                backend = self._backends.pop(strategy)
                await backend.close()
