"""Stepped, backgrounded filesystem walk."""

import logging
import os
import queue
import threading
from typing import Iterator, List, Optional

from .models import WalkEntry
from .types import BackendIOError


class _WalkStopped(Exception):
    """Raised inside the producer thread when a stop was requested."""


_END = object()


class TreeWalker:
    """
    Walks a directory tree on a background thread.

    Regular files are yielded one per call to next(), in lexicographic order
    within each directory, depth first. Directories, symlinks and every other
    non-regular file are skipped. A bounded queue sits between the traversal
    thread and the consumer, so a slow consumer throttles the scan.

    A filesystem error aborts the walk. It is raised by next() only after
    every entry produced before it has been consumed, and only once.
    """

    def __init__(self, root: str, queue_size: int = 10,
                 poll_interval: float = 0.05,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the walker and start the background traversal.

        Args:
            root: Directory to walk
            queue_size: Capacity of the queue between producer and consumer
            poll_interval: Seconds between stop checks while blocked on the queue
            logger: Optional logger instance
        """
        if queue_size < 1:
            raise ValueError("queue_size must be positive")

        self.root = root
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

        self._results: "queue.Queue" = queue.Queue(maxsize=queue_size)
        self._stop_event = threading.Event()
        self._done_event = threading.Event()
        self._error: Optional[BackendIOError] = None
        self._exhausted = False
        self._error_reported = False

        self._thread = threading.Thread(
            target=self._run,
            name=f"tree-walker:{root}",
            daemon=True
        )
        self._thread.start()

    @property
    def error(self) -> Optional[BackendIOError]:
        """Traversal error, if the walk failed."""
        return self._error

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def next(self) -> Optional[WalkEntry]:
        """
        Return the next regular file of the walk.

        Returns:
            The next WalkEntry, or None once the walk is exhausted or stopped

        Raises:
            BackendIOError: Once, after exhaustion, if the traversal failed
        """
        if not self._exhausted:
            item = self._get()
            if item is not _END:
                return item
            self._exhausted = True

        if self._error is not None and not self._error_reported:
            self._error_reported = True
            raise self._error
        return None

    def stop(self) -> None:
        """
        Ask the background traversal to halt.

        Idempotent. Entries already queued stay retrievable through next()
        until it reports exhaustion.
        """
        if not self._stop_event.is_set():
            self.logger.debug(f"Stopping walk of {self.root}")
            self._stop_event.set()

    def drain(self, timeout: Optional[float] = None) -> int:
        """
        Stop the walk, discard queued entries and wait for the thread to exit.

        A pending traversal error is not raised; it stays available on the
        ``error`` property.

        Returns:
            Number of entries discarded
        """
        self.stop()
        discarded = 0
        while not self._exhausted:
            if self._get() is _END:
                self._exhausted = True
            else:
                discarded += 1
        self._thread.join(timeout)
        return discarded

    def is_alive(self) -> bool:
        """Check if the background traversal thread is still running."""
        return self._thread.is_alive()

    def __iter__(self) -> Iterator[WalkEntry]:
        while True:
            entry = self.next()
            if entry is None:
                return
            yield entry

    def __enter__(self) -> 'TreeWalker':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.drain()

    def _get(self):
        """Block until an entry or the end of the walk is available."""
        while True:
            try:
                return self._results.get(timeout=self.poll_interval)
            except queue.Empty:
                # A stopped producer may exit without managing to enqueue _END.
                if self._done_event.is_set():
                    try:
                        return self._results.get_nowait()
                    except queue.Empty:
                        return _END

    def _run(self) -> None:
        """Producer thread body."""
        try:
            self._walk(self.root)
        except _WalkStopped:
            self.logger.debug(f"Walk of {self.root} stopped early")
        except OSError as e:
            self._error = BackendIOError(
                f"walk of {self.root} failed: {e}",
                context={"root": self.root, "path": e.filename}
            )
            self.logger.debug(f"Walk of {self.root} failed: {e}")
        finally:
            try:
                self._put(_END)
            except _WalkStopped:
                pass
            self._done_event.set()

    def _walk(self, directory: str) -> None:
        for entry in self._sorted_entries(directory):
            self._check_stopped()
            if entry.is_dir(follow_symlinks=False):
                self._walk(entry.path)
            elif entry.is_file(follow_symlinks=False):
                self._put(WalkEntry(path=entry.path, is_directory=False))

    @staticmethod
    def _sorted_entries(directory: str) -> List[os.DirEntry]:
        with os.scandir(directory) as iterator:
            entries = list(iterator)
        # Byte order of names, so output is reproducible for any locale.
        entries.sort(key=lambda entry: os.fsencode(entry.name))
        return entries

    def _check_stopped(self) -> None:
        if self._stop_event.is_set():
            raise _WalkStopped()

    def _put(self, item) -> None:
        """Enqueue an item, giving up as soon as a stop is requested."""
        while True:
            self._check_stopped()
            try:
                self._results.put(item, timeout=self.poll_interval)
                return
            except queue.Full:
                continue
