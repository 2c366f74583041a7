"""cachefront - Storage-agnostic caching facade with pluggable backends."""

__version__ = "0.1.0"

# Backends (for advanced usage)
from .backends import (
    BackendAdapter,
    FileBackend,
    LocalBackend,
    SharedBackend,
    SharedStore,
    get_shared_store,
    reset_shared_store,
    run_global_reaper,
    start_global_reaper,
    stop_global_reaper,
)

# Configuration
from .config import CacheConfig, configure, get_config, open_cache, reset_config

# Core
from .core import Cache
from .entry import Entry, NumericValue, OpaqueValue

# Errors
from .errors import (
    BackendTransactionError,
    BackendUnavailableError,
    CacheError,
    InvalidArgumentError,
    InvalidKeyError,
    KeyExistsError,
    NotFoundError,
    NotNumericError,
    SerializationError,
    UnsupportedOperationError,
)
from .keys import DerivedKey, KeyCodec
from .reaper import ExpiryReaper
from .strategy import Strategy, is_supported_strategy, supported_strategies

__all__ = [
    # Backends
    "BackendAdapter",
    "FileBackend",
    "LocalBackend",
    "SharedBackend",
    "SharedStore",
    # Errors
    "BackendTransactionError",
    "BackendUnavailableError",
    # Core
    "Cache",
    # Configuration
    "CacheConfig",
    "CacheError",
    "DerivedKey",
    "Entry",
    "ExpiryReaper",
    "InvalidArgumentError",
    "InvalidKeyError",
    "KeyCodec",
    "KeyExistsError",
    "NotFoundError",
    "NotNumericError",
    "NumericValue",
    "OpaqueValue",
    "SerializationError",
    "Strategy",
    "UnsupportedOperationError",
    "configure",
    "get_config",
    "get_shared_store",
    "is_supported_strategy",
    "open_cache",
    "reset_config",
    "reset_shared_store",
    "run_global_reaper",
    "start_global_reaper",
    "stop_global_reaper",
    "supported_strategies",
]
