"""File-based cache backend: one file per key under a namespace directory."""

import asyncio
import logging
import re
from pathlib import Path

from ..entry import Entry
from ..errors import (
    BackendTransactionError,
    BackendUnavailableError,
    KeyExistsError,
    NotFoundError,
)
from ..keys import NO_NAMESPACE, DerivedKey
from ..serializers import decode_value
from .base import BackendAdapter

logger = logging.getLogger(__name__)

FILE_SUFFIX = ".cache"

# Directory names this backend creates: md5 namespace digests or the sentinel
NAMESPACE_DIR = re.compile(rf"[0-9a-f]{{32}}|{re.escape(NO_NAMESPACE)}")


def _write(path: Path, data: bytes, overwrite: bool) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if overwrite:
        path.write_bytes(data)
        return
    # Exclusive create fails if the file already exists
    with path.open("xb") as fh:
        fh.write(data)


def _read(path: Path) -> tuple[bytes, float]:
    return path.read_bytes(), path.stat().st_mtime


def _remove_namespace(directory: Path) -> None:
    """Remove cache files from a namespace directory, then the directory if empty."""
    if not directory.is_dir():
        return
    for path in directory.glob(f"*{FILE_SUFFIX}"):
        path.unlink(missing_ok=True)
    if not any(directory.iterdir()):
        directory.rmdir()


def _owned_namespaces(root: Path) -> list[Path]:
    return [
        path
        for path in root.iterdir()
        if path.is_dir() and NAMESPACE_DIR.fullmatch(path.name)
    ]


class FileBackend(BackendAdapter):
    """File-based cache backend.

    Files hold the serialized value only, so TTLs are neither stored nor
    checked and increments are not supported (they resolve as no-ops).
    Filesystem calls run in worker threads. Clearing removes only the
    namespace directories and ``.cache`` files this backend writes; anything
    else under the storage directory is left alone.
    """

    name = "file"

    def __init__(self, storage_dir: str | Path):
        """Initialize file backend, creating the storage directory if needed."""
        self.storage_dir = Path(storage_dir)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackendUnavailableError("Cannot create the directory.") from e

    def _path(self, key: DerivedKey) -> Path:
        return self.storage_dir / key.namespace_hash / f"{key.key_hash}{FILE_SUFFIX}"

    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        data = entry.encoded()
        try:
            await asyncio.to_thread(_write, self._path(key), data, overwrite)
        except FileExistsError:
            raise KeyExistsError("This key already exists.") from None
        except OSError as e:
            raise BackendTransactionError(
                "An error occurred while writing the file."
            ) from e

    async def get(self, key: DerivedKey) -> Entry:
        try:
            data, modified = await asyncio.to_thread(_read, self._path(key))
        except FileNotFoundError:
            raise NotFoundError("No such element found.") from None
        except OSError as e:
            raise BackendTransactionError(
                "An error occurred while reading the file content."
            ) from e

        return Entry.build(decode_value(data), now=modified)

    async def exists(self, key: DerivedKey) -> bool:
        try:
            return await asyncio.to_thread(self._path(key).is_file)
        except OSError as e:
            raise BackendTransactionError(
                "Unable to check for the file existence."
            ) from e

    async def delete(self, key: DerivedKey) -> None:
        try:
            await asyncio.to_thread(self._path(key).unlink, missing_ok=True)
        except OSError as e:
            raise BackendTransactionError(
                "An error occurred while removing the file."
            ) from e

    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        if self.verbose:
            logger.info(
                "Increment and decrement are not supported on files, "
                "consider Redis or SQLite for counters."
            )

    async def clear(self, namespace_hash: str | None = None) -> None:
        try:
            if namespace_hash is None:
                targets = await asyncio.to_thread(_owned_namespaces, self.storage_dir)
            else:
                targets = [self.storage_dir / namespace_hash]
            for target in targets:
                await asyncio.to_thread(_remove_namespace, target)
        except OSError as e:
            raise BackendTransactionError("Unable to remove the directory.") from e

    async def probe(self) -> bool:
        return await asyncio.to_thread(self.storage_dir.is_dir)
