"""Backend adapter implementations."""

from .base import BackendAdapter
from .disk import FileBackend
from .memory import (
    LocalBackend,
    SharedBackend,
    SharedStore,
    get_shared_store,
    reset_shared_store,
    run_global_reaper,
    start_global_reaper,
    stop_global_reaper,
)

__all__ = [
    "BackendAdapter",
    "FileBackend",
    "LocalBackend",
    "SharedBackend",
    "SharedStore",
    "get_shared_store",
    "reset_shared_store",
    "run_global_reaper",
    "start_global_reaper",
    "stop_global_reaper",
]
