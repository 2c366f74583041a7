"""SQLite cache backend using aiosqlite."""

import asyncio
import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ..entry import Entry, NumericValue, TIMESTAMP_FORMAT, format_timestamp
from ..errors import (
    BackendTransactionError,
    BackendUnavailableError,
    KeyExistsError,
    NotFoundError,
    NotNumericError,
)
from ..keys import DerivedKey
from ..serializers import decode_value, encode_value
from .base import BackendAdapter

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ("namespace", "key", "value", "numeric", "date", "expire")

CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS cache_storage (
        namespace TEXT,
        key TEXT,
        value TEXT,
        numeric INTEGER,
        date DATETIME,
        expire DATETIME,
        PRIMARY KEY (namespace, key)
    )
"""

LIVE_ROW = "namespace = ? AND key = ? AND (expire IS NULL OR expire >= ?)"


def parse_timestamp(text: str | None) -> float | None:
    """Parse a stored UTC timestamp, with or without fractional seconds."""
    if text is None:
        return None
    for fmt in (TIMESTAMP_FORMAT, "%Y-%m-%d %H:%M:%S"):
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.replace(tzinfo=timezone.utc).timestamp()
    return None


@contextmanager
def _sqlite_transaction() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise BackendTransactionError(
            "An error occurred during the transaction with SQLite3."
        ) from e


class SQLiteBackend(BackendAdapter):
    """SQLite cache backend.

    Expiry is a stored column filtered on every read. Expired rows stay in
    the table until ``sweep`` is called; no timer runs against the database.
    """

    name = "sqlite"

    def __init__(self, db_path: str | Path = ":memory:"):
        """Initialize SQLite backend.

        Args:
            db_path: Database file, or ":memory:" for an in-memory database.
        """
        self.db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @classmethod
    async def connect(cls, db_path: str | Path = ":memory:") -> "SQLiteBackend":
        backend = cls(db_path)
        await backend.init()
        return backend

    async def init(self) -> None:
        """Open the connection and create the schema."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute(CREATE_TABLE)
            await self._db.commit()
        except sqlite3.Error as e:
            raise BackendUnavailableError(
                "An error occurred while trying to connect with SQLite database."
            ) from e
        logger.debug(f"SQLite cache storage ready at {self.db_path}")

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise BackendUnavailableError("SQLite3 is not connected.")
        return self._db

    async def put(self, key: DerivedKey, entry: Entry, overwrite: bool) -> None:
        params = (
            key.namespace_hash,
            key.key_hash,
            entry.encoded().decode(),
            1 if isinstance(entry.payload(), NumericValue) else 0,
            format_timestamp(entry.created_at),
            format_timestamp(entry.expires_at) if entry.expires_at is not None else None,
        )
        db = self.db

        async with self._write_lock:
            with _sqlite_transaction():
                if overwrite:
                    await db.execute(
                        "INSERT OR REPLACE INTO cache_storage "
                        "(namespace, key, value, numeric, date, expire) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        params,
                    )
                    await db.commit()
                    return

                # An expired row still holds the primary key until swept
                await db.execute(
                    "DELETE FROM cache_storage WHERE namespace = ? AND key = ? "
                    "AND expire IS NOT NULL AND expire < ?",
                    (key.namespace_hash, key.key_hash, format_timestamp(time.time())),
                )
                try:
                    await db.execute(
                        "INSERT INTO cache_storage "
                        "(namespace, key, value, numeric, date, expire) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        params,
                    )
                except sqlite3.IntegrityError as e:
                    await db.rollback()
                    raise KeyExistsError("This key already exists.") from e
                await db.commit()

    async def get(self, key: DerivedKey) -> Entry:
        with _sqlite_transaction():
            async with self.db.execute(
                f"SELECT value, numeric, date, expire FROM cache_storage "
                f"WHERE {LIVE_ROW} LIMIT 1",
                (key.namespace_hash, key.key_hash, format_timestamp(time.time())),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            raise NotFoundError("No such element found.")
        return Entry(
            value=decode_value(row["value"]),
            numeric=bool(row["numeric"]),
            created_at=parse_timestamp(row["date"]) or time.time(),
            expires_at=parse_timestamp(row["expire"]),
        )

    async def exists(self, key: DerivedKey) -> bool:
        with _sqlite_transaction():
            async with self.db.execute(
                f"SELECT 1 FROM cache_storage WHERE {LIVE_ROW} LIMIT 1",
                (key.namespace_hash, key.key_hash, format_timestamp(time.time())),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def delete(self, key: DerivedKey) -> None:
        db = self.db
        async with self._write_lock:
            with _sqlite_transaction():
                await db.execute(
                    "DELETE FROM cache_storage WHERE namespace = ? AND key = ?",
                    (key.namespace_hash, key.key_hash),
                )
                await db.commit()

    async def increment(self, key: DerivedKey, delta: int | float) -> None:
        # Summed in Python: SQLite renders REAL as text with 15 significant digits
        db = self.db
        params = (key.namespace_hash, key.key_hash, format_timestamp(time.time()))
        async with self._write_lock:
            with _sqlite_transaction():
                async with db.execute(
                    f"SELECT value, numeric FROM cache_storage WHERE {LIVE_ROW} LIMIT 1",
                    params,
                ) as cursor:
                    row = await cursor.fetchone()
                if row is None:
                    return
                if not row["numeric"]:
                    raise NotNumericError("The stored value is not numeric.")

                value = encode_value(decode_value(row["value"]) + delta).decode()
                await db.execute(
                    "UPDATE cache_storage SET value = ? WHERE namespace = ? AND key = ?",
                    (value, key.namespace_hash, key.key_hash),
                )
                await db.commit()

    async def clear(self, namespace_hash: str | None = None) -> None:
        db = self.db
        async with self._write_lock:
            with _sqlite_transaction():
                if namespace_hash is None:
                    await db.execute("DELETE FROM cache_storage")
                else:
                    await db.execute(
                        "DELETE FROM cache_storage WHERE namespace = ?",
                        (namespace_hash,),
                    )
                await db.commit()

    async def sweep(self) -> int:
        """Delete expired rows. Returns number of deleted rows."""
        db = self.db
        async with self._write_lock:
            with _sqlite_transaction():
                cursor = await db.execute(
                    "DELETE FROM cache_storage WHERE expire IS NOT NULL AND expire < ?",
                    (format_timestamp(time.time()),),
                )
                removed = cursor.rowcount
                await db.commit()
        if removed:
            logger.debug(f"Swept {removed} expired rows from {self.db_path}")
        return removed

    async def probe(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("PRAGMA table_info(cache_storage)") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            if self.verbose:
                logger.warning(f"SQLite probe failed: {e}")
            return False
        columns = {row["name"] for row in rows}
        return all(column in columns for column in TABLE_COLUMNS)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
