"""Database module for SQLite operations.

All SQL operations are isolated here. No other module writes SQL.
"""

import sqlite3
from typing import List, Tuple


def init_db(path: str) -> sqlite3.Connection:
    """Initialize database with tables and PRAGMAs.

    Args:
        path: Path to the SQLite database file (use ':memory:' for in-memory)

    Returns:
        sqlite3.Connection: Database connection with row factory set
    """
    conn = _create_connection(path)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS time_records (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            recorded_at REAL NOT NULL,
            persisted_at REAL NOT NULL
        )
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_recorded_at
        ON time_records (recorded_at)
    """)

    conn.commit()
    return conn


def _create_connection(path: str, timeout: float = 30.0) -> sqlite3.Connection:
    """Create a new database connection with proper settings.

    Args:
        path: Path to the SQLite database file
        timeout: Seconds to wait on a locked database before failing

    Returns:
        sqlite3.Connection: Database connection with row factory and PRAGMAs set
    """
    conn = sqlite3.connect(path, check_same_thread=False, timeout=timeout)
    conn.row_factory = sqlite3.Row

    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.commit()

    return conn


def get_connection(path: str, timeout: float = 30.0) -> sqlite3.Connection:
    """Get a new database connection for a worker thread.

    Each thread should call this to get its own connection to avoid
    thread-safety issues with SQLite connections.

    Args:
        path: Path to the SQLite database file
        timeout: Seconds to wait on a locked database before failing

    Returns:
        sqlite3.Connection: New database connection with row factory and PRAGMAs set
    """
    return _create_connection(path, timeout)


def insert_time_record(
    conn: sqlite3.Connection, recorded_at: float, persisted_at: float
) -> int:
    """Insert a time record and commit it.

    The commit is issued here, not batched: a record counts as persisted
    only once it is durable.

    Args:
        conn: Database connection
        recorded_at: Unix timestamp the sample was taken at
        persisted_at: Unix timestamp of the write

    Returns:
        The row id assigned to the new record
    """
    cursor = conn.execute(
        "INSERT INTO time_records (recorded_at, persisted_at) VALUES (?, ?)",
        (recorded_at, persisted_at),
    )
    conn.commit()
    return cursor.lastrowid


def count_time_records(conn: sqlite3.Connection) -> int:
    """Count persisted time records.

    Args:
        conn: Database connection

    Returns:
        Number of rows in time_records
    """
    cursor = conn.execute("SELECT COUNT(*) FROM time_records")
    return cursor.fetchone()[0]


def get_all_time_records(
    conn: sqlite3.Connection,
) -> List[Tuple[int, float, float]]:
    """Get all time records ordered by recorded_at ASC.

    Ties on recorded_at are broken by id so that the order is stable.

    Args:
        conn: Database connection

    Returns:
        List of (id, recorded_at, persisted_at) tuples
    """
    cursor = conn.execute(
        """SELECT id, recorded_at, persisted_at FROM time_records
           ORDER BY recorded_at ASC, id ASC"""
    )
    return [(row[0], row[1], row[2]) for row in cursor.fetchall()]
