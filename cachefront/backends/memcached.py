"""Memcached cache backend using pymemcache."""

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from typing import Any

from pymemcache.client.base import Client
from pymemcache.client.hash import HashClient
from pymemcache.exceptions import MemcacheError

from ..entry import Entry
from ..errors import (
    BackendTransactionError,
    KeyExistsError,
    NotFoundError,
    UnsupportedOperationError,
)
from ..keys import KEY_PREFIX, KEY_SEPARATOR, DerivedKey
from ..serializers import decode_value
from .base import BackendAdapter

logger = logging.getLogger(__name__)

# Memcached reads larger expiry values as absolute unix timestamps
MAX_RELATIVE_EXPIRE = 60 * 60 * 24 * 30

PROBE_KEY = f"{KEY_PREFIX}{KEY_SEPARATOR}probe"


def _to_expire(entry: Entry) -> int:
    seconds = entry.remaining_ttl_seconds()
    if seconds is None:
        return 0
    if seconds > MAX_RELATIVE_EXPIRE:
        return math.ceil(entry.expires_at)
    return seconds


class MemcachedBackend(BackendAdapter):
    """Memcached cache backend.

    The pymemcache client is synchronous, so every call runs in a worker
    thread. Writes without overwrite use ``add``, which is atomic on the
    server. Increments are integral: float deltas are truncated toward zero
    and memcached clamps decrements at 0.
    """

    name = "memcached"

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_servers(
        cls, servers: str | Sequence[str] = "localhost:11211", **options: Any
    ) -> "MemcachedBackend":
        """Create a backend for one server or a hashed pool of servers."""
        if isinstance(servers, str):
            servers = [servers]
        servers = list(servers) or ["localhost:11211"]
        if len(servers) == 1:
            return cls(Client(servers[0], **options))
        return cls(HashClient(servers, **options))

    @property
    def client(self) -> Any:
        return self._client

    async def _run(self, method: Callable, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.to_thread(method, *args, **kwargs)
        except (MemcacheError, OSError) as e:
            raise BackendTransactionError(
                "An error occurred in Memcached transaction."
            ) from e

    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        data = entry.encoded()
        expire = _to_expire(entry)
        if overwrite:
            await self._run(
                self._client.set, key.composite, data, expire=expire, noreply=False
            )
            return

        stored = await self._run(
            self._client.add, key.composite, data, expire=expire, noreply=False
        )
        if not stored:
            raise KeyExistsError("This key already exists.")

    async def get(self, key: DerivedKey) -> Entry:
        data = await self._run(self._client.get, key.composite)
        if data is None:
            raise NotFoundError("No such element found.")
        return Entry.build(decode_value(data))

    async def exists(self, key: DerivedKey) -> bool:
        return await self._run(self._client.get, key.composite) is not None

    async def delete(self, key: DerivedKey) -> None:
        await self._run(self._client.delete, key.composite, noreply=False)

    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        amount = int(delta)
        if self.verbose and amount != delta:
            logger.warning(
                f"Memcached doesn't support floating point deltas, "
                f"{delta} is applied as {amount}"
            )
        if amount == 0:
            return

        # Missing keys return None and are left absent
        if amount > 0:
            await self._run(self._client.incr, key.composite, amount, noreply=False)
        else:
            await self._run(self._client.decr, key.composite, -amount, noreply=False)

    async def clear(self, namespace_hash: str | None = None) -> None:
        raise UnsupportedOperationError(
            "Cache invalidation is not supported when using Memcached."
        )

    async def probe(self) -> bool:
        # Any answer, even a miss, shows the server is reachable
        try:
            await self._run(self._client.get, PROBE_KEY)
            return True
        except BackendTransactionError as e:
            if self.verbose:
                logger.warning(f"Memcached probe failed: {e.__cause__}")
            return False

    async def close(self) -> None:
        await self._run(self._client.close)
