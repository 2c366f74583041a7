"""Configuration system for cachefront."""

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .strategy import Strategy

if TYPE_CHECKING:
    from .core import Cache


@dataclass
class CacheConfig:
    """Configuration for cache behavior."""

    namespace: str = ""
    default_ttl: int = 0
    strategy: str | int = "local"
    verbose: bool = False

    # Backend-specific settings
    storage_dir: str = "./.cache"
    redis_url: str = "redis://localhost:6379/0"
    redis_db: int = 0
    memcached_servers: list[str] = field(default_factory=lambda: ["localhost:11211"])
    sqlite_path: str = "./cachefront.sqlite3"

    def __post_init__(self):
        """Load configuration from environment variables."""
        self.namespace = os.getenv("CACHEFRONT_NAMESPACE", self.namespace)
        self.default_ttl = self._get_int_env("CACHEFRONT_DEFAULT_TTL", self.default_ttl)
        self.strategy = os.getenv("CACHEFRONT_STRATEGY", self.strategy)
        self.verbose = self._get_bool_env("CACHEFRONT_VERBOSE", self.verbose)

        # Backend-specific settings
        self.storage_dir = os.getenv("CACHEFRONT_STORAGE_DIR", self.storage_dir)
        self.redis_url = os.getenv("CACHEFRONT_REDIS_URL", self.redis_url)
        self.redis_db = self._get_int_env("CACHEFRONT_REDIS_DB", self.redis_db)
        servers = os.getenv("CACHEFRONT_MEMCACHED_SERVERS")
        if servers is not None:
            self.memcached_servers = [s.strip() for s in servers.split(",") if s.strip()]
        self.sqlite_path = os.getenv("CACHEFRONT_SQLITE_PATH", self.sqlite_path)

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_int_env(self, key: str, default: int) -> int:
        """Get integer value from environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    @property
    def resolved_strategy(self) -> Strategy:
        return Strategy.parse(self.strategy)


# Global configuration instance
_config = CacheConfig()


def configure(**kwargs: Any) -> None:
    """Update global cache configuration."""
    for key, value in kwargs.items():
        if hasattr(_config, key):
            setattr(_config, key, value)
        else:
            raise ValueError(f"Unknown configuration key: {key}")


def get_config() -> CacheConfig:
    """Get current global configuration."""
    return _config


def reset_config() -> None:
    """Reset configuration to defaults (useful for testing)."""
    global _config  # noqa: PLW0603
    _config = CacheConfig()


async def open_cache(config: CacheConfig | None = None) -> "Cache":
    """Create a Cache for the configured strategy and connect its backend."""
    from .core import Cache

    config = config or get_config()
    strategy = config.resolved_strategy
    cache = Cache(
        strategy,
        namespace=config.namespace,
        default_ttl=config.default_ttl,
        verbose=config.verbose,
    )

    if strategy == Strategy.FILE:
        cache.set_storage_directory(config.storage_dir)
    elif strategy == Strategy.REDIS:
        await cache.connect_redis(config.redis_url, db=config.redis_db)
    elif strategy == Strategy.MEMCACHED:
        await cache.connect_memcached(config.memcached_servers)
    elif strategy == Strategy.SQLITE:
        await cache.connect_sqlite(config.sqlite_path)
    return cache
