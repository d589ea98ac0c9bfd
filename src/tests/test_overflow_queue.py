"""Tests for overflow_queue.py module."""

import threading

from overflow_queue import OverflowQueue
from store import Sample


class TestOverflowQueue:
    def test_empty_queue(self):
        queue = OverflowQueue()

        assert len(queue) == 0
        assert queue.peek() is None
        assert queue.pop_front() is None
        assert queue.snapshot() == []

    def test_fifo_order(self):
        queue = OverflowQueue()
        samples = [Sample(recorded_at=float(i)) for i in range(3)]
        for sample in samples:
            queue.append(sample)

        assert [queue.pop_front() for _ in range(3)] == samples
        assert len(queue) == 0

    def test_peek_does_not_remove(self):
        queue = OverflowQueue()
        first = Sample(recorded_at=1.0)
        queue.append(first)
        queue.append(Sample(recorded_at=2.0))

        assert queue.peek() is first
        assert queue.peek() is first
        assert len(queue) == 2

    def test_snapshot_is_a_copy(self):
        queue = OverflowQueue()
        queue.append(Sample(recorded_at=1.0))

        snapshot = queue.snapshot()
        snapshot.clear()

        assert len(queue) == 1

    def test_concurrent_append_while_draining(self):
        """One consumer pops while several producers append; nothing is lost or duplicated."""
        queue = OverflowQueue()
        popped = []
        producers_done = threading.Event()

        def producer(base: int) -> None:
            for i in range(200):
                queue.append(Sample(recorded_at=float(base + i)))

        def consumer() -> None:
            while not (producers_done.is_set() and len(queue) == 0):
                sample = queue.pop_front()
                if sample is not None:
                    popped.append(sample)

        consumer_thread = threading.Thread(target=consumer)
        consumer_thread.start()
        producers = [
            threading.Thread(target=producer, args=(n * 1000,)) for n in range(3)
        ]
        for t in producers:
            t.start()
        for t in producers:
            t.join(timeout=5)
        producers_done.set()
        consumer_thread.join(timeout=5)

        assert not consumer_thread.is_alive()
        values = [s.recorded_at for s in popped]
        assert len(values) == 600
        assert len(set(values)) == 600
        # Each producer's samples come out in the order it appended them
        for n in range(3):
            own = [v for v in values if n * 1000 <= v < n * 1000 + 1000]
            assert own == sorted(own)
