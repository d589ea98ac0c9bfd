"""Persistent store client module.

Wraps the SQLite persistence functions in database.py behind the
save/probe/list_all contract used by the recorder. Every sqlite3 error
leaving this module is translated into StoreUnavailable.
"""

import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import database

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """Raised when the persistence engine cannot be reached or rejects a call."""
    pass


@dataclass(frozen=True)
class Sample:
    """One timestamped observation.

    ``id`` and ``persisted_at`` are only set once the store has durably
    written the sample.
    """
    recorded_at: float
    id: Optional[int] = None
    persisted_at: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recorded_at": self.recorded_at,
            "persisted_at": self.persisted_at,
        }


@dataclass(frozen=True)
class Ack:
    """Store acknowledgement of a durable write."""
    id: int
    persisted_at: float


class SqliteStore:
    """Thread-safe store client backed by a SQLite file.

    Each calling thread gets its own connection, opened lazily. A connection
    that raised is closed and dropped, so the next call from that thread
    reconnects.
    """

    def __init__(
        self,
        db_path: str,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store client.

        Args:
            db_path: Path to the SQLite database file (schema must exist)
            timeout: Seconds to wait on a locked database before failing
            clock: Source of persisted_at timestamps
        """
        self._db_path = db_path
        self._timeout = timeout
        self._clock = clock
        self._local = threading.local()

    def _connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = database.get_connection(self._db_path, self._timeout)
            self._local.conn = conn
        return conn

    def _reset_connection(self) -> None:
        conn = getattr(self._local, "conn", None)
        self._local.conn = None
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error:
                logger.debug("Ignoring error while closing broken connection")

    def save(self, sample: Sample) -> Ack:
        """Durably persist a sample.

        Raises:
            StoreUnavailable: If the write did not complete
        """
        persisted_at = self._clock()
        try:
            record_id = database.insert_time_record(
                self._connection(), sample.recorded_at, persisted_at
            )
        except sqlite3.Error as e:
            self._reset_connection()
            raise StoreUnavailable(f"save failed: {e}") from e
        return Ack(id=record_id, persisted_at=persisted_at)

    def probe(self) -> None:
        """Cheap liveness check with no side effects on data.

        Raises:
            StoreUnavailable: If the store does not answer
        """
        self.count()

    def count(self) -> int:
        try:
            return database.count_time_records(self._connection())
        except sqlite3.Error as e:
            self._reset_connection()
            raise StoreUnavailable(f"count failed: {e}") from e

    def list_all(self) -> List[Sample]:
        """Return every persisted sample ordered by recorded_at ascending.

        Raises:
            StoreUnavailable: If the read fails
        """
        try:
            rows = database.get_all_time_records(self._connection())
        except sqlite3.Error as e:
            self._reset_connection()
            raise StoreUnavailable(f"list failed: {e}") from e
        return [
            Sample(recorded_at=recorded_at, id=record_id, persisted_at=persisted_at)
            for record_id, recorded_at, persisted_at in rows
        ]

    def close(self) -> None:
        """Close the calling thread's connection, if any."""
        self._reset_connection()
