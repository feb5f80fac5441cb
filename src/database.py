from abc import ABC, abstractmethod
import logging
import os
import sqlite3
import typing

logger = logging.getLogger(__name__)


# exception class for data errors in the store, every error the cli reports is one of these
class DataError(Exception):
    message: str

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# the backing file could not be opened or created
class StorageOpenError(DataError):
    pass


# a write to the backing file failed
class StorageWriteError(DataError):
    pass


# a read from the backing file failed
class StorageReadError(DataError):
    pass


# an operation was attempted after the store was closed
class StoreClosedError(DataError):
    pass


# there is no record stored under a key
class NotFoundError(DataError):
    key: str

    def __init__(self, key: str, message: typing.Optional[str] = None):
        super().__init__(message or f"no record for '{key}'")
        self.key = key


# Abstract class for a store of raw records, a record is a string key and a bytes value
class IStore(ABC):
    # get: returns the value stored under key, raises NotFoundError if missing
    @abstractmethod
    def get(self, key: str) -> bytes:
        pass

    # put: stores value under key, replacing anything already there
    @abstractmethod
    def put(self, key: str, value: bytes):
        pass

    # delete: removes the record under key, raises NotFoundError if missing
    @abstractmethod
    def delete(self, key: str):
        pass

    # get_all: returns every record in the store
    @abstractmethod
    def get_all(self) -> dict[str, bytes]:
        pass

    # close: releases the store, safe to call more than once
    @abstractmethod
    def close(self):
        pass

    # clear: removes all records from the store (not used regularly)
    @abstractmethod
    def clear(self):
        pass


# subclass of IStore that keeps records in a single sqlite table on disk
# every call is its own transaction, so a failed write never touches earlier commits
class KeyValueStore(IStore):
    path: str

    _conn: typing.Optional[sqlite3.Connection]

    def __init__(self, path: str, conn: sqlite3.Connection):
        self.path = path
        self._conn = conn

    # opens (and creates if needed) the store at path, parent directories included
    @classmethod
    def open(cls, path: str) -> "KeyValueStore":
        path = os.path.abspath(os.path.expanduser(path))
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            conn = sqlite3.connect(path)
        except (OSError, sqlite3.Error) as e:
            raise StorageOpenError(f"could not open database at {path}: {e}") from e
        try:
            with conn:
                conn.execute(
                    "CREATE TABLE IF NOT EXISTS records (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
                )
        except sqlite3.Error as e:
            conn.close()
            raise StorageOpenError(f"could not open database at {path}: {e}") from e
        logger.debug("opened database %s", path)
        return cls(path, conn)

    def __enter__(self) -> "KeyValueStore":
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def closed(self) -> bool:
        return self._conn is None

    # returns the live connection or fails if the store has been closed
    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError(f"database {self.path} is closed")
        return self._conn

    def get(self, key: str) -> bytes:
        conn = self._connection()
        try:
            row = conn.execute(
                "SELECT value FROM records WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageReadError(f"could not read '{key}': {e}") from e
        if row is None:
            raise NotFoundError(key)
        return bytes(row[0])

    def put(self, key: str, value: bytes):
        conn = self._connection()
        try:
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO records (key, value) VALUES (?, ?)",
                    (key, sqlite3.Binary(value)),
                )
        except sqlite3.Error as e:
            raise StorageWriteError(f"could not write '{key}': {e}") from e

    def delete(self, key: str):
        conn = self._connection()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM records WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageWriteError(f"could not delete '{key}': {e}") from e
        if cursor.rowcount == 0:
            raise NotFoundError(key)

    def get_all(self) -> dict[str, bytes]:
        conn = self._connection()
        try:
            rows = conn.execute(
                "SELECT key, value FROM records ORDER BY key"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageReadError(f"could not read {self.path}: {e}") from e
        return {key: bytes(value) for key, value in rows}

    def close(self):
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.debug("closed database %s", self.path)

    def clear(self):
        conn = self._connection()
        try:
            with conn:
                conn.execute("DELETE FROM records")
        except sqlite3.Error as e:
            raise StorageWriteError(f"could not clear {self.path}: {e}") from e

    # closes the store and removes the backing file, used for a full reset
    def destroy(self):
        self.close()
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageWriteError(f"could not remove {self.path}: {e}") from e
        logger.debug("removed database %s", self.path)
