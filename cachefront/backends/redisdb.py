"""Redis cache backend using redis.asyncio."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError, ResponseError

from ..entry import Entry
from ..errors import (
    BackendTransactionError,
    KeyExistsError,
    NotFoundError,
    NotNumericError,
)
from ..keys import DerivedKey, scan_pattern
from ..serializers import decode_value
from .base import BackendAdapter

logger = logging.getLogger(__name__)

DELETE_BATCH_SIZE = 500


@contextmanager
def _redis_transaction() -> Iterator[None]:
    try:
        yield
    except RedisError as e:
        raise BackendTransactionError("An error occurred in Redis transaction.") from e


class RedisBackend(BackendAdapter):
    """Redis cache backend.

    Values are stored as JSON under the composite key and expiry is left to
    Redis. Writes without overwrite use ``SET NX``, so they are atomic.
    """

    name = "redis"

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(
        cls, url: str = "redis://localhost:6379/0", db: int = 0, **options: Any
    ) -> "RedisBackend":
        """Create a backend with a client built from a connection URL."""
        return cls(aioredis.from_url(url, db=max(int(db), 0), **options))

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        data = entry.encoded()
        remaining = entry.remaining_ttl()
        px = max(int(remaining * 1000), 1) if remaining is not None else None

        with _redis_transaction():
            stored = await self._client.set(key.composite, data, px=px, nx=not overwrite)
        if not overwrite and not stored:
            raise KeyExistsError("This key already exists.")

    async def get(self, key: DerivedKey) -> Entry:
        with _redis_transaction():
            data = await self._client.get(key.composite)
        if data is None:
            raise NotFoundError("No such element found.")
        return Entry.build(decode_value(data))

    async def exists(self, key: DerivedKey) -> bool:
        with _redis_transaction():
            return bool(await self._client.exists(key.composite))

    async def delete(self, key: DerivedKey) -> None:
        with _redis_transaction():
            await self._client.delete(key.composite)

    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        # Not atomic with the increment: the key may expire in between
        with _redis_transaction():
            if not await self._client.exists(key.composite):
                raise NotFoundError("No such element found.")
            try:
                await self._client.incrbyfloat(key.composite, delta)
            except ResponseError as e:
                if "float" not in str(e).lower():
                    raise
                raise NotNumericError("The stored value is not numeric.") from e

    async def clear(self, namespace_hash: str | None = None) -> None:
        pattern = scan_pattern(namespace_hash)
        with _redis_transaction():
            batch = []
            async for name in self._client.scan_iter(match=pattern):
                batch.append(name)
                if len(batch) >= DELETE_BATCH_SIZE:
                    await self._client.delete(*batch)
                    batch = []
            if batch:
                await self._client.delete(*batch)

    async def probe(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            if self.verbose:
                logger.warning(f"Redis probe failed: {e}")
            return False

    async def close(self) -> None:
        with _redis_transaction():
            await self._client.aclose()
