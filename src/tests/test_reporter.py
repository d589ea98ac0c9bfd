"""Tests for reporter.py module."""

import json
import os
import threading
import time
from unittest.mock import Mock

import pytest

from recorder import Recorder
from reporter import Reporter
from store import SqliteStore, StoreUnavailable


@pytest.fixture
def mock_config(tmp_path):
    """Create a mock config with temp output path."""
    config = Mock()
    config.output.report_interval_seconds = 1
    config.output.json_path = str(tmp_path / "status.json")
    config.output.include_records = False
    return config


@pytest.fixture
def sqlite_recorder(db_path_initialized):
    rec = Recorder(SqliteStore(db_path_initialized))
    yield rec
    rec.shutdown(0)


def read_output(config):
    with open(config.output.json_path, "r") as f:
        return json.load(f)


class TestReporterCycle:
    """Tests for the reporter cycle functionality."""

    def test_status_only_output(self, mock_config, sqlite_recorder):
        sqlite_recorder._sample_tick()
        sqlite_recorder._sample_tick()

        Reporter(mock_config, sqlite_recorder)._run_cycle()
        output = read_output(mock_config)

        assert output["database_connected"] is True
        assert output["pending_records"] == 0
        assert output["total_record_count"] == 2
        assert isinstance(output["timestamp"], float)
        assert "records" not in output
        assert "error" not in output

    def test_output_includes_records_when_enabled(self, mock_config, sqlite_recorder):
        mock_config.output.include_records = True
        for _ in range(3):
            sqlite_recorder._sample_tick()

        Reporter(mock_config, sqlite_recorder)._run_cycle()
        output = read_output(mock_config)

        assert output["total"] == 3
        assert len(output["records"]) == 3
        recorded = [r["recorded_at"] for r in output["records"]]
        assert recorded == sorted(recorded)
        for record in output["records"]:
            assert set(record) == {"id", "recorded_at", "persisted_at"}
            assert record["id"] is not None

    def test_unavailable_store_produces_error_block(self, mock_config):
        mock_config.output.include_records = True
        failing_store = Mock()
        failing_store.save.side_effect = StoreUnavailable("disk gone")
        rec = Recorder(failing_store)
        rec._sample_tick()
        rec._sample_tick()

        Reporter(mock_config, rec)._run_cycle()
        output = read_output(mock_config)

        assert output["database_connected"] is False
        assert output["pending_records"] == 2
        assert "records" not in output
        assert output["error"]["pending_records"] == 2
        assert output["error"]["database_connected"] is False
        assert "disk gone" not in json.dumps(output)

    def test_atomic_write_leaves_no_tmp_file(self, mock_config, sqlite_recorder):
        Reporter(mock_config, sqlite_recorder)._run_cycle()

        assert os.path.exists(mock_config.output.json_path)
        assert not os.path.exists(f"{mock_config.output.json_path}.tmp")

    def test_write_failure_cleans_up_and_raises(self, tmp_path, sqlite_recorder):
        config = Mock()
        config.output.include_records = False
        config.output.json_path = str(tmp_path / "missing-dir" / "status.json")

        with pytest.raises(OSError):
            Reporter(config, sqlite_recorder)._run_cycle()

        assert not os.path.exists(config.output.json_path)


class TestReporterRun:
    def test_run_writes_and_stops_on_shutdown(self, mock_config, sqlite_recorder):
        mock_config.output.report_interval_seconds = 0.05
        reporter = Reporter(mock_config, sqlite_recorder)
        shutdown_event = threading.Event()

        thread = threading.Thread(target=reporter.run, args=(shutdown_event,))
        thread.start()
        deadline = time.time() + 2
        while not os.path.exists(mock_config.output.json_path) and time.time() < deadline:
            time.sleep(0.01)
        shutdown_event.set()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert os.path.exists(mock_config.output.json_path)
        assert sqlite_recorder.state.get_thread_last_run("reporter") > 0

    def test_run_survives_cycle_error(self, mock_config):
        rec = Mock()
        rec.status.side_effect = RuntimeError("boom")
        reporter = Reporter(mock_config, rec)
        shutdown_event = threading.Event()

        thread = threading.Thread(target=reporter.run, args=(shutdown_event,))
        thread.start()
        time.sleep(0.1)
        shutdown_event.set()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert rec.status.called

    def test_run_closes_its_store_connection_on_exit(self, mock_config):
        mock_config.output.report_interval_seconds = 0.05
        rec = Recorder(Mock())
        closed_by = []
        rec._store.close.side_effect = lambda: closed_by.append(
            threading.current_thread().name
        )
        shutdown_event = threading.Event()

        thread = threading.Thread(
            target=Reporter(mock_config, rec).run, args=(shutdown_event,), name="reporter"
        )
        thread.start()
        time.sleep(0.1)
        shutdown_event.set()
        thread.join(timeout=2)

        assert not thread.is_alive()
        assert closed_by == ["reporter"]
