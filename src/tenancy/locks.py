"""Reader/writer lock for the tenant configuration cache.

Readers share the lock; a writer holds it exclusively. Waiting
writers block new readers so a steady stream of cache hits cannot
starve an install or an invalidation.

The lock is not reentrant and cannot be upgraded: release the read
side before acquiring the write side, then re-check whatever was
read.
"""

import threading
from contextlib import contextmanager


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on threading.Condition.

    Example:
        >>> lock = ReadWriteLock()
        >>> with lock.read():
        ...     value = shared.get(key)
        >>> with lock.write():
        ...     shared[key] = value
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a read lock")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without the write lock")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self):
        """Hold the lock shared for the duration of the block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        """Hold the lock exclusively for the duration of the block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
