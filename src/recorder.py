"""Recording scheduler module.

Drives the two periodic activities of the recorder:

* sample: every interval_seconds, take a timestamp and persist it, or queue
  it while the store is unavailable.
* recovery: every recovery_interval_seconds, probe an unavailable store and
  drain the overflow queue once it answers again.

Each activity runs on its own worker thread, so an activity never overlaps
itself. A slow tick pushes the next one to the following free slot; missed
slots are skipped, not replayed.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import RecordingConfig
from overflow_queue import OverflowQueue
from state_manager import StateManager
from store import Sample, StoreUnavailable

logger = logging.getLogger(__name__)

# Extra wait after the shutdown timeout before giving up on workers.
FORCE_CANCEL_GRACE_SECONDS = 5.0


class ServiceUnavailable(Exception):
    """Raised by record queries while the store is unavailable.

    Carries a human-readable message and the current queue depth; never the
    raw store error.
    """

    def __init__(self, message: str, pending_count: int) -> None:
        super().__init__(message)
        self.message = message
        self.pending_count = pending_count


@dataclass(frozen=True)
class ShutdownReport:
    """Final counters returned by Recorder.shutdown().

    ``completed`` is False when workers were still running after the
    timeout and the force-cancel grace window.
    """
    total_persisted: int
    pending_count: int
    completed: bool


class Recorder:
    """Resilient time recorder.

    Samples are saved straight to the store while it is available. On a
    store failure the recorder switches to UNAVAILABLE and queues samples
    instead; the recovery worker probes the store and drains the queue in
    FIFO order once it is back.
    """

    def __init__(
        self,
        store: Any,
        state_manager: Optional[StateManager] = None,
        queue: Optional[OverflowQueue] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the recorder.

        Args:
            store: Store client exposing save(), probe(), list_all() and close()
            state_manager: Shared connectivity state (a new one if omitted)
            queue: Overflow queue (a new one if omitted)
            clock: Source of sample timestamps
        """
        self._store = store
        self._state = state_manager if state_manager is not None else StateManager()
        self._queue = queue if queue is not None else OverflowQueue()
        self._clock = clock

        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        self._drain_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._shutdown_report: Optional[ShutdownReport] = None

    @property
    def state(self) -> StateManager:
        return self._state

    def start(self, config: RecordingConfig) -> None:
        """Start the sample and recovery workers.

        Sampling starts immediately; the first recovery probe runs one
        recovery interval after start.

        Raises:
            RuntimeError: If the recorder was already started or shut down
        """
        with self._lifecycle_lock:
            if self._threads or self._shutdown_report is not None:
                raise RuntimeError("Recorder can only be started once")

            self._threads = [
                threading.Thread(
                    target=self._run_periodic,
                    args=("sample", self._sample_tick, config.interval_seconds, 0),
                    name="sample",
                    daemon=True,
                ),
                threading.Thread(
                    target=self._run_periodic,
                    args=(
                        "recovery",
                        self._recovery_tick,
                        config.recovery_interval_seconds,
                        config.recovery_interval_seconds,
                    ),
                    name="recovery",
                    daemon=True,
                ),
            ]
            for thread in self._threads:
                thread.start()

        logger.info(
            f"Time recording started: interval={config.interval_seconds}s, "
            f"recovery_interval={config.recovery_interval_seconds}s"
        )

    def _run_periodic(
        self,
        name: str,
        tick: Callable[[], None],
        interval: float,
        initial_delay: float,
    ) -> None:
        """Run tick at a fixed rate until shutdown.

        An error escaping one run is logged and the worker moves on to the
        next slot. The worker's store connection is closed on exit.

        Args:
            name: Worker name, used for logging and last-run tracking
            tick: The activity to run
            interval: Seconds between scheduled runs
            initial_delay: Seconds to wait before the first run
        """
        try:
            next_run = time.monotonic() + initial_delay
            if initial_delay > 0 and self._stop_event.wait(timeout=initial_delay):
                return

            while not self._stop_event.is_set():
                try:
                    tick()
                    self._state.update_thread_last_run(name, time.time())
                except Exception as e:
                    logger.exception(f"Error in {name} worker: {e}")

                next_run += interval
                now = time.monotonic()
                if next_run <= now:
                    skipped = int((now - next_run) // interval) + 1
                    next_run += skipped * interval
                    logger.debug(f"{name} tick overran, skipping {skipped} slot(s)")

                if self._stop_event.wait(timeout=max(0.0, next_run - time.monotonic())):
                    break
        finally:
            self.release_store_connection()

    def _sample_tick(self) -> None:
        """Take one sample and persist or queue it."""
        try:
            sample = Sample(recorded_at=self._clock())

            if not self._state.is_available():
                self._queue.append(sample)
                logger.warning(
                    f"Store unavailable, queued sample {sample.recorded_at} "
                    f"({len(self._queue)} pending)"
                )
                return

            if len(self._queue) > 0:
                # Older samples are still pending; this one goes behind them.
                self._queue.append(sample)
                self._drain()
                return

            try:
                self._store.save(sample)
            except StoreUnavailable as e:
                self._queue.append(sample)
                if self._state.mark_unavailable():
                    logger.error(
                        f"Store connection lost, queueing sample {sample.recorded_at}: {e}"
                    )
                return

            self._state.record_persisted()
            logger.debug(f"Sample persisted: {sample.recorded_at}")

            self._drain()

        except Exception:
            logger.exception("Unexpected error in sample tick, sample dropped")

    def _recovery_tick(self) -> None:
        """Probe an unavailable store and drain the queue if it answers."""
        try:
            if self._state.is_available():
                return

            try:
                self._store.probe()
            except StoreUnavailable as e:
                logger.debug(f"Store still unavailable: {e}")
                return

            if self._state.mark_available():
                logger.info(
                    f"Store connection restored, draining {len(self._queue)} pending samples"
                )
            self._drain()

        except Exception:
            logger.exception("Unexpected error in recovery tick")

    def _drain(self) -> int:
        """Persist queued samples in FIFO order, stopping at the first failure.

        At most one drain runs at a time. A caller that finds a drain already
        running returns immediately; the running drain picks up whatever was
        appended meanwhile.

        Returns:
            Number of samples persisted by this call
        """
        drained = 0
        while True:
            if not self._drain_lock.acquire(blocking=False):
                logger.debug("Drain already in progress, skipping")
                return drained
            try:
                count, exhausted = self._drain_locked()
                drained += count
            finally:
                self._drain_lock.release()

            # Samples appended while the lock was held saw it taken and skipped.
            if not (
                exhausted
                and len(self._queue) > 0
                and self._state.is_available()
                and not self._stop_event.is_set()
            ):
                return drained

    def _drain_locked(self) -> Tuple[int, bool]:
        """Drain loop body; the caller must hold the drain lock.

        Returns:
            (samples persisted, whether the queue was found empty)
        """
        drained = 0
        exhausted = False

        while self._state.is_available() and not self._stop_event.is_set():
            sample = self._queue.peek()
            if sample is None:
                exhausted = True
                break

            try:
                self._store.save(sample)
            except StoreUnavailable as e:
                if self._state.mark_unavailable():
                    logger.error(
                        f"Failed to persist queued sample {sample.recorded_at}, "
                        f"keeping it queued: {e}"
                    )
                break

            self._queue.pop_front()
            self._state.record_persisted()
            drained += 1

        if drained > 0:
            logger.info(
                f"Persisted {drained} pending samples of {drained + len(self._queue)}"
            )
        return drained, exhausted

    def get_all_records(self) -> List[Sample]:
        """Return every persisted sample ordered by recorded_at.

        Raises:
            ServiceUnavailable: If the store is unavailable or the read fails
        """
        if not self._state.is_available():
            raise ServiceUnavailable(
                "Database is currently unavailable", len(self._queue)
            )

        try:
            return self._store.list_all()
        except StoreUnavailable as e:
            logger.error(f"Failed to read records from store: {e}")
            self._state.mark_unavailable()
            raise ServiceUnavailable("Database access failed", len(self._queue)) from e

    def is_available(self) -> bool:
        return self._state.is_available()

    def pending_count(self) -> int:
        return len(self._queue)

    def total_persisted(self) -> int:
        return self._state.total_persisted()

    def release_store_connection(self) -> None:
        """Close the store connection held by the calling thread."""
        try:
            self._store.close()
        except Exception as e:
            logger.warning(f"Failed to close store connection: {e}")

    def status(self) -> Dict[str, Any]:
        """Snapshot of the recorder counters. Never fails."""
        return {
            "database_connected": self.is_available(),
            "pending_records": self.pending_count(),
            "total_record_count": self.total_persisted(),
            "timestamp": time.time(),
        }

    def shutdown(self, timeout: float) -> ShutdownReport:
        """Stop the workers and report the final counters.

        New ticks stop immediately. In-flight work gets ``timeout`` seconds
        to finish, then a fixed grace window after cancellation. Queued
        samples are not flushed; they are reported in pending_count.

        Calling shutdown again returns the first report.

        Args:
            timeout: Seconds to wait for in-flight ticks

        Returns:
            ShutdownReport with the final counters
        """
        with self._lifecycle_lock:
            if self._shutdown_report is not None:
                return self._shutdown_report

            logger.info("Shutting down time recording...")
            self._stop_event.set()

            deadline = time.monotonic() + max(0.0, timeout)
            for thread in self._threads:
                thread.join(timeout=max(0.0, deadline - time.monotonic()))

            completed = True
            alive = [t for t in self._threads if t.is_alive()]
            if alive:
                logger.warning(
                    f"Cancelling workers still running after {timeout}s: "
                    f"{', '.join(t.name for t in alive)}"
                )
                grace_deadline = time.monotonic() + FORCE_CANCEL_GRACE_SECONDS
                for thread in alive:
                    thread.join(timeout=max(0.0, grace_deadline - time.monotonic()))
                still_alive = [t for t in alive if t.is_alive()]
                if still_alive:
                    completed = False
                    logger.error(
                        f"Workers did not stop: {', '.join(t.name for t in still_alive)}"
                    )

            pending = self._queue.snapshot()
            if pending:
                logger.warning(
                    f"{len(pending)} samples left unpersisted, recorded between "
                    f"{pending[0].recorded_at} and {pending[-1].recorded_at}"
                )

            self._shutdown_report = ShutdownReport(
                total_persisted=self._state.total_persisted(),
                pending_count=len(pending),
                completed=completed,
            )

        logger.info(
            f"Time recording stopped. Total persisted: "
            f"{self._shutdown_report.total_persisted}, "
            f"pending: {self._shutdown_report.pending_count}"
        )
        return self._shutdown_report
