"""
Samples and the queue that holds them until the next flush.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Iterable, List, Optional

import pytz

from . import config

logger = logging.getLogger(__name__)

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1

OVERFLOW_POLICIES = ('drop_oldest', 'reject')


def now_timestamp() -> int:
    """Current wall-clock time as whole seconds since the epoch."""
    return int(datetime.now(pytz.UTC).timestamp())


@dataclass(frozen=True)
class Sample:
    """One (metric path, timestamp, value) observation."""
    path: str
    value: float
    timestamp: int = field(default_factory=now_timestamp)

    def __post_init__(self):
        if not isinstance(self.path, str) or not self.path:
            raise ValueError("Sample path must be a non-empty string")
        try:
            self.path.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ValueError(f"Sample path {self.path!r} is not valid UTF-8: {str(e)}") from e
        if isinstance(self.value, (str, bytes, bytearray)):
            raise TypeError(f"Sample value must be a number, got {type(self.value).__name__}")
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise TypeError(f"Sample timestamp must be an int, got {type(self.timestamp).__name__}")
        if not INT32_MIN <= self.timestamp <= INT32_MAX:
            raise ValueError(f"Sample timestamp {self.timestamp} does not fit in 32 bits")
        # Frozen dataclass, so normalize through object.__setattr__
        object.__setattr__(self, 'value', float(self.value))


class SampleQueue:
    """
    Thread-safe FIFO of pending samples.

    Producers push from any thread; the flush loop takes everything at once
    with drain_all() and hands a failed batch back with requeue(). The lock is
    only held for the list manipulation itself, never across I/O.

    By default the queue is unbounded. With max_size set, the overflow policy
    decides what happens when a producer pushes onto a full queue:
    'drop_oldest' discards the oldest queued sample, 'reject' refuses the new
    one. Either way the discard is counted in `dropped`.
    """

    def __init__(self, max_size: Optional[int] = None, overflow: Optional[str] = None):
        overflow = overflow or config.OVERFLOW_POLICY
        if overflow not in OVERFLOW_POLICIES:
            raise ValueError(f"Unknown overflow policy: {overflow}")
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive")

        self.max_size = max_size
        self.overflow = overflow
        self.dropped = 0
        self.inflight = 0
        self._queue: Deque[Sample] = deque()
        self._lock = threading.Lock()

    def enqueue(self, sample: Sample) -> bool:
        """
        Append a sample to the queue.

        Args:
            sample (Sample): The sample to queue

        Returns:
            bool: True if the sample was accepted, False if it was rejected
        """
        with self._lock:
            if self.max_size is not None and len(self._queue) >= self.max_size:
                self.dropped += 1
                if self.overflow == 'reject':
                    logger.debug("Queue full (%d), rejected sample %s", self.max_size, sample.path)
                    return False
                oldest = self._queue.popleft()
                logger.debug("Queue full (%d), dropped oldest sample %s", self.max_size, oldest.path)
            self._queue.append(sample)
            return True

    def push(self, path: str, value: float, timestamp: Optional[int] = None) -> bool:
        """
        Build a sample and queue it. The timestamp defaults to now.
        """
        if timestamp is None:
            sample = Sample(path, value)
        else:
            sample = Sample(path, value, timestamp)
        return self.enqueue(sample)

    def drain_all(self) -> List[Sample]:
        """
        Remove and return every queued sample, leaving the queue empty.
        The drained samples count as in flight until they are handed back
        with release() or requeue().

        Returns:
            list: The drained samples, oldest first
        """
        with self._lock:
            samples = list(self._queue)
            self._queue.clear()
            self.inflight += len(samples)
        return samples

    def release(self, samples: List[Sample]) -> None:
        """Mark a drained batch as delivered."""
        with self._lock:
            self.inflight = max(0, self.inflight - len(samples))

    def requeue(self, samples: Iterable[Sample]) -> None:
        """
        Put samples back at the front of the queue, ahead of anything pushed
        since they were drained. Capacity is not applied here.
        """
        samples = list(samples)
        with self._lock:
            self._queue.extendleft(reversed(samples))
            self.inflight = max(0, self.inflight - len(samples))

    def is_empty(self) -> bool:
        with self._lock:
            return not self._queue

    def is_idle(self) -> bool:
        """True when nothing is queued and no drained batch is still in flight."""
        with self._lock:
            return not self._queue and not self.inflight

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)
