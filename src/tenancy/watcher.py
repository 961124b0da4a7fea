"""File change watching for tenant configuration files.

Provides PollingFileWatcher, a per-file observer running on a daemon
thread, and the WatchHandle protocol the cache stores for every
watched tenant. Change detection compares the file's modification
time and size between polls.
"""

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Tuple, Union, runtime_checkable

from tenancy.exceptions import WatcherError

logger = logging.getLogger(__name__)

EVENT_CREATED = "created"
EVENT_MODIFIED = "modified"
EVENT_DELETED = "deleted"


@dataclass(frozen=True)
class FileChangeEvent:
    """A change observed on a watched file.

    Attributes:
        path: The watched file
        kind: One of "created", "modified", "deleted"
    """

    path: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind.upper()} {self.path}"


ChangeCallback = Callable[[FileChangeEvent], None]


@runtime_checkable
class WatchHandle(Protocol):
    """Subscription returned by a watcher factory."""

    @property
    def active(self) -> bool:
        """Whether the watcher is still delivering events."""
        ...

    def stop(self) -> None:
        """Stop delivering events. Must be idempotent."""
        ...


WatcherFactory = Callable[[Path, ChangeCallback], WatchHandle]

_Signature = Optional[Tuple[int, int]]


def _file_signature(path: Path) -> _Signature:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    return (st.st_mtime_ns, st.st_size)


class PollingFileWatcher:
    """Watches a single file by polling its modification time.

    The callback runs on the watcher thread; it should hand slow work
    off to another thread so further changes keep being delivered.
    Exceptions raised by the callback are logged and do not stop the
    watcher.

    Example:
        >>> watcher = PollingFileWatcher(path, on_change, interval=0.5).start()
        >>> ...
        >>> watcher.stop()
    """

    def __init__(
        self,
        path: Union[str, Path],
        callback: ChangeCallback,
        interval: float = 1.0,
    ):
        """Initialize watcher.

        Args:
            path: File to watch (it may not exist yet)
            callback: Called with a FileChangeEvent for every change
            interval: Seconds between polls (default: 1.0)
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.path = Path(path)
        self.interval = interval
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._signature: _Signature = None

    @property
    def active(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stop_event.is_set()
        )

    def start(self) -> "PollingFileWatcher":
        """Record the file's current state and start polling.

        Raises:
            WatcherError: If the watcher was already started or the
                parent directory does not exist
        """
        if self._thread is not None:
            raise WatcherError(self.path, reason="watcher already started")
        if not self.path.parent.is_dir():
            raise WatcherError(self.path, reason="parent directory does not exist")

        self._signature = _file_signature(self.path)
        self._thread = threading.Thread(
            target=self._run,
            name=f"config-watcher:{self.path}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Started watching %s (interval=%.2fs)", self.path, self.interval)
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the watcher thread to exit.

        Safe to call more than once, and from inside the callback.
        """
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.interval * 5)
        logger.debug("Stopped watching %s", self.path)

    def poll(self) -> Optional[FileChangeEvent]:
        """Compare the file against the last observed state.

        Returns:
            The detected change, or None if the file is unchanged
        """
        current = _file_signature(self.path)
        previous = self._signature
        if current == previous:
            return None
        self._signature = current

        if previous is None:
            kind = EVENT_CREATED
        elif current is None:
            kind = EVENT_DELETED
        else:
            kind = EVENT_MODIFIED
        return FileChangeEvent(path=str(self.path), kind=kind)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                event = self.poll()
            except OSError as e:
                logger.error("Failed to poll %s: %s", self.path, e)
                continue
            if event is None:
                continue
            if self._stop_event.is_set():
                break
            try:
                self._callback(event)
            except Exception:
                logger.exception("File watcher callback failed for %s", self.path)


def watch_file(
    path: Union[str, Path],
    callback: ChangeCallback,
    interval: float = 1.0,
) -> PollingFileWatcher:
    """Subscribe ``callback`` to changes of ``path``.

    Returns:
        The started watcher; call ``stop()`` to unsubscribe
    """
    return PollingFileWatcher(path, callback, interval=interval).start()
