"""State manager module for thread-safe shared state.

Provides controlled access to the connectivity flag and counters shared
by the sample and recovery workers.

Startup Behavior Note:
    The store is assumed Available at startup. The first sample tick is
    what discovers an outage that already existed when the process started;
    that sample is queued, not lost.
"""

import threading
from typing import Any, Dict


AVAILABLE = "AVAILABLE"
UNAVAILABLE = "UNAVAILABLE"


class StateManager:
    """Thread-safe manager for connectivity state and counters.

    All access to shared state is protected by an RLock. The state manager
    is the single controlled access point for inter-thread shared data.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

        self._state: Dict[str, Any] = {
            "connectivity": AVAILABLE,
            "total_persisted": 0,
            "thread_last_run": {"sample": 0, "recovery": 0, "reporter": 0},
        }

    def is_available(self) -> bool:
        """Return True while the store is believed to accept writes."""
        with self._lock:
            return self._state["connectivity"] == AVAILABLE

    def get_connectivity(self) -> str:
        """Return the current connectivity state (AVAILABLE or UNAVAILABLE)."""
        with self._lock:
            return self._state["connectivity"]

    def mark_unavailable(self) -> bool:
        """Transition to UNAVAILABLE.

        Returns:
            True if the state changed, False if it was already UNAVAILABLE
        """
        with self._lock:
            changed = self._state["connectivity"] != UNAVAILABLE
            self._state["connectivity"] = UNAVAILABLE
            return changed

    def mark_available(self) -> bool:
        """Transition to AVAILABLE.

        Only the recovery probe should call this, after a successful probe.

        Returns:
            True if the state changed, False if it was already AVAILABLE
        """
        with self._lock:
            changed = self._state["connectivity"] != AVAILABLE
            self._state["connectivity"] = AVAILABLE
            return changed

    def record_persisted(self) -> int:
        """Count one successful save.

        Returns:
            The new total
        """
        with self._lock:
            self._state["total_persisted"] += 1
            return self._state["total_persisted"]

    def total_persisted(self) -> int:
        with self._lock:
            return self._state["total_persisted"]

    def update_thread_last_run(self, thread_name: str, timestamp: float) -> None:
        """Update the last run timestamp for a worker.

        Args:
            thread_name: Name of the worker (sample, recovery, reporter)
            timestamp: Unix timestamp
        """
        with self._lock:
            self._state["thread_last_run"][thread_name] = timestamp

    def get_thread_last_run(self, thread_name: str) -> float:
        """Get the last run timestamp for a worker.

        Args:
            thread_name: Name of the worker (sample, recovery, reporter)

        Returns:
            Unix timestamp, or 0 if the worker has never run
        """
        with self._lock:
            return self._state["thread_last_run"].get(thread_name, 0)
