"""Reporter thread module for JSON status output.

Publishes the recorder's query surface (status counters and, optionally,
the full record list) as a JSON file for external consumers.
"""

import json
import logging
import os
import time
from typing import Any, Dict

from recorder import ServiceUnavailable


logger = logging.getLogger(__name__)


class Reporter:
    """Reporter thread that writes recorder status to a JSON file.

    Each cycle snapshots the recorder counters, optionally lists all
    records, and writes the result atomically to the configured output
    path. While the store is unavailable the record list is replaced by an
    error block carrying the pending queue depth.
    """

    def __init__(self, config: Any, recorder: Any) -> None:
        """Initialize the reporter.

        Args:
            config: Configuration object with output settings
            recorder: Recorder instance to report on
        """
        self._config = config
        self._recorder = recorder

    def run(self, shutdown_event: Any) -> None:
        """Run the reporter loop.

        Continuously generates JSON output at the configured interval until
        shutdown_event is set. The store connection opened by this thread is
        closed on exit.

        Args:
            shutdown_event: Threading event to signal shutdown
        """
        try:
            while not shutdown_event.is_set():
                try:
                    cycle_start = time.time()
                    self._run_cycle()
                    self._recorder.state.update_thread_last_run("reporter", time.time())

                    # Sleep for remainder of interval
                    elapsed = time.time() - cycle_start
                    sleep_time = max(0, self._config.output.report_interval_seconds - elapsed)

                    # Check shutdown_event during sleep
                    if shutdown_event.wait(timeout=sleep_time):
                        break

                except Exception as e:
                    logger.exception(f"Error in reporter cycle: {e}")
                    # Sleep briefly before retrying
                    if shutdown_event.wait(timeout=5):
                        break
        finally:
            self._recorder.release_store_connection()

    def _run_cycle(self) -> None:
        """Execute a single reporter cycle."""
        output = self.build_output()
        self._write_output(output)

        logger.debug(
            f"Reporter cycle complete: connected={output['database_connected']}, "
            f"pending={output['pending_records']}"
        )

    def build_output(self) -> Dict[str, Any]:
        """Assemble the output document.

        Returns:
            Status fields, plus either records/total or an error block when
            records are included
        """
        output = self._recorder.status()

        if not self._config.output.include_records:
            return output

        try:
            records = self._recorder.get_all_records()
        except ServiceUnavailable as e:
            logger.warning(f"Store unavailable while listing records: {e.message}")
            output["error"] = {
                "error": "Failed to retrieve records",
                "message": e.message,
                "database_connected": self._recorder.is_available(),
                "pending_records": e.pending_count,
            }
            return output

        output["records"] = [record.to_dict() for record in records]
        output["total"] = len(records)
        return output

    def _write_output(self, output: Dict[str, Any]) -> None:
        """Write output JSON atomically.

        Writes to a temp file first, then uses os.replace() for atomic rename.

        Args:
            output: The output dictionary to write
        """
        json_path = self._config.output.json_path
        tmp_path = f"{json_path}.tmp"

        try:
            with open(tmp_path, 'w') as f:
                json.dump(output, f, indent=2)

            os.replace(tmp_path, json_path)

        except Exception:
            # Clean up temp file on error
            try:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
            except OSError:
                logger.debug(f"Could not remove temp file {tmp_path}")
            raise
