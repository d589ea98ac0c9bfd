"""Overflow queue module.

Holds samples that could not be persisted yet, in production order.
"""

import threading
from collections import deque
from typing import Deque, List, Optional

from store import Sample


class OverflowQueue:
    """Unbounded, thread-safe FIFO of samples awaiting persistence.

    Appends may come from any thread. Removal from the front is expected
    from one drainer at a time; the recorder guarantees that with its
    drain lock.
    """

    def __init__(self) -> None:
        self._items: Deque[Sample] = deque()
        self._lock = threading.Lock()

    def append(self, sample: Sample) -> None:
        """Add a sample at the tail. Never fails."""
        with self._lock:
            self._items.append(sample)

    def peek(self) -> Optional[Sample]:
        """Return the head sample without removing it, or None if empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items[0]

    def pop_front(self) -> Optional[Sample]:
        """Remove and return the head sample, or None if empty."""
        with self._lock:
            if not self._items:
                return None
            return self._items.popleft()

    def snapshot(self) -> List[Sample]:
        """Return a point-in-time copy of the queued samples, head first."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
