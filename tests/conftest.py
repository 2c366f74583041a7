"""Pytest configuration and fixtures for cachefront tests."""

import fnmatch
import shutil
import tempfile
import time

import pytest
import pytest_asyncio
from pymemcache.exceptions import MemcacheClientError
from redis.exceptions import ResponseError

from cachefront.backends.memory import LocalBackend, SharedStore, reset_shared_store
from cachefront.config import reset_config
from cachefront.core import Cache

ALL_STRATEGIES = ["local", "shared", "redis", "memcached", "sqlite", "file"]


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis covering the commands we use."""

    def __init__(self):
        self.data: dict[str, tuple[bytes, float | None]] = {}
        self.closed = False

    def _live(self, name):
        item = self.data.get(name)
        if item is None:
            return None
        value, expires = item
        if expires is not None and time.time() >= expires:
            del self.data[name]
            return None
        return value

    async def set(self, name, value, ex=None, px=None, nx=False):
        if nx and self._live(name) is not None:
            return None
        expires = None
        if px is not None:
            expires = time.time() + px / 1000
        elif ex is not None:
            expires = time.time() + ex
        self.data[name] = (value, expires)
        return True

    async def get(self, name):
        return self._live(name)

    async def exists(self, *names):
        return sum(1 for name in names if self._live(name) is not None)

    async def delete(self, *names):
        return sum(1 for name in names if self.data.pop(name, None) is not None)

    async def incrbyfloat(self, name, amount):
        current = self._live(name)
        try:
            number = float(current) if current is not None else 0.0
        except ValueError:
            raise ResponseError("value is not a valid float") from None
        result = number + amount
        expires = self.data[name][1] if name in self.data else None
        self.data[name] = (f"{result:.17g}".encode(), expires)
        return result

    async def scan_iter(self, match=None):
        for name in list(self.data):
            if match is None or fnmatch.fnmatchcase(name, match):
                yield name

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


class FakeMemcache:
    """In-memory stand-in for pymemcache's Client."""

    def __init__(self):
        self.data: dict[str, tuple[bytes, float | None]] = {}
        self.expires: dict[str, int] = {}
        self.closed = False

    def _live(self, key):
        item = self.data.get(key)
        if item is None:
            return None
        value, expires = item
        if expires is not None and time.time() >= expires:
            del self.data[key]
            return None
        return value

    def _store(self, key, value, expire):
        self.expires[key] = expire
        expires = None
        if expire:
            expires = expire if expire > 60 * 60 * 24 * 30 else time.time() + expire
        self.data[key] = (value, expires)

    def set(self, key, value, expire=0, noreply=None):
        self._store(key, value, expire)
        return True

    def add(self, key, value, expire=0, noreply=None):
        if self._live(key) is not None:
            return False
        self._store(key, value, expire)
        return True

    def get(self, key, default=None):
        value = self._live(key)
        return default if value is None else value

    def delete(self, key, noreply=None):
        return self.data.pop(key, None) is not None

    def _apply(self, key, amount):
        current = self._live(key)
        if current is None:
            return None
        if not current.isdigit():
            raise MemcacheClientError(
                b"cannot increment or decrement non-numeric value"
            )
        number = max(int(current) + amount, 0)
        self.data[key] = (str(number).encode(), self.data[key][1])
        return number

    def incr(self, key, value, noreply=False):
        return self._apply(key, value)

    def decr(self, key, value, noreply=False):
        return self._apply(key, -value)

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_cache_state():
    """Reset configuration and the process-wide shared store around each test."""
    reset_config()
    reset_shared_store()
    yield
    reset_config()
    reset_shared_store()


@pytest.fixture
def temp_cache_dir():
    """Provide a temporary directory for file and SQLite tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def local_backend():
    """Provide a fresh local backend."""
    return LocalBackend()


@pytest.fixture
def shared_store():
    """Provide an independent shared store."""
    store = SharedStore.create()
    yield store
    store.teardown()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_memcache():
    return FakeMemcache()


async def build_cache(strategy, shared_store, temp_cache_dir, **kwargs):
    """Create a Cache with the given strategy connected to a test backend."""
    cache = Cache(strategy, shared_store=shared_store, **kwargs)
    if strategy == "redis":
        await cache.connect_redis(client=FakeRedis())
    elif strategy == "memcached":
        await cache.connect_memcached(client=FakeMemcache())
    elif strategy == "sqlite":
        await cache.connect_sqlite(":memory:")
    elif strategy == "file":
        cache.set_storage_directory(temp_cache_dir)
    return cache


@pytest_asyncio.fixture(params=ALL_STRATEGIES)
async def any_cache(request, shared_store, temp_cache_dir):
    """Provide a namespaced Cache for every strategy."""
    cache = await build_cache(
        request.param, shared_store, temp_cache_dir, namespace="tests"
    )
    yield cache
    cache.stop_reaper()
    await cache.close_connections(include_active=True)


@pytest_asyncio.fixture
async def local_cache():
    """Provide a namespaced local Cache."""
    cache = Cache("local", namespace="tests")
    yield cache
    cache.stop_reaper()
