"""Tests for database.py module."""

import pytest
import sqlite3
from database import (
    init_db,
    get_connection,
    insert_time_record,
    count_time_records,
    get_all_time_records,
)


class TestInitDb:
    """Tests for database initialization."""

    def test_time_records_table_exists_after_init(self, db_conn):
        cursor = db_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
        )
        tables = [row[0] for row in cursor.fetchall()]
        assert tables == ["time_records"]

    def test_recorded_at_index_exists(self, db_conn):
        cursor = db_conn.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name='time_records'"
        )
        indexes = [row[0] for row in cursor.fetchall()]
        assert "idx_recorded_at" in indexes

    def test_pragma_journal_mode_wal(self, db_conn):
        """Verify WAL mode is enabled (not applicable to in-memory DBs)."""
        cursor = db_conn.execute("PRAGMA journal_mode")
        result = cursor.fetchone()[0]
        assert result in ("wal", "memory")

    def test_pragma_synchronous_normal(self, db_conn):
        cursor = db_conn.execute("PRAGMA synchronous")
        result = cursor.fetchone()[0]
        assert result == 1  # NORMAL = 1

    def test_init_is_idempotent(self, db_path):
        conn = init_db(db_path)
        insert_time_record(conn, 100.0, 101.0)
        conn.close()

        conn = init_db(db_path)
        assert count_time_records(conn) == 1
        conn.close()


class TestTimeRecords:
    """Tests for time_records table operations."""

    def test_insert_returns_increasing_ids(self, db_conn):
        first = insert_time_record(db_conn, 100.0, 100.5)
        second = insert_time_record(db_conn, 101.0, 101.5)
        third = insert_time_record(db_conn, 102.0, 102.5)

        assert first < second < third

    def test_insert_is_committed(self, db_path, db_conn):
        """A record must be visible to another connection right after insert."""
        insert_time_record(db_conn, 100.0, 100.5)

        other = get_connection(db_path)
        try:
            assert count_time_records(other) == 1
        finally:
            other.close()

    def test_count_empty_table(self, db_conn):
        assert count_time_records(db_conn) == 0

    def test_get_all_ordered_by_recorded_at(self, db_conn):
        # Inserted out of recorded_at order, as a drain after restart could do
        insert_time_record(db_conn, 300.0, 400.0)
        insert_time_record(db_conn, 100.0, 401.0)
        insert_time_record(db_conn, 200.0, 402.0)

        rows = get_all_time_records(db_conn)

        assert [row[1] for row in rows] == [100.0, 200.0, 300.0]
        assert [row[2] for row in rows] == [401.0, 402.0, 400.0]

    def test_get_all_breaks_ties_by_id(self, db_conn):
        first = insert_time_record(db_conn, 100.0, 200.0)
        second = insert_time_record(db_conn, 100.0, 201.0)

        rows = get_all_time_records(db_conn)

        assert [row[0] for row in rows] == [first, second]

    def test_get_all_empty(self, db_conn):
        assert get_all_time_records(db_conn) == []

    def test_missing_table_raises_operational_error(self, db_path):
        conn = get_connection(db_path)
        try:
            with pytest.raises(sqlite3.OperationalError):
                count_time_records(conn)
        finally:
            conn.close()
