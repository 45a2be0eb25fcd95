"""
Watch service backed by watchdog.

The router only needs a narrow capability: register a directory, wait for
a directory with pending events, drain them, and hand the directory back so
it can be signalled again. ``WatchdogWatchService`` provides that on top of
a watchdog observer with one non-recursive schedule per directory.
"""

import os
import queue
import threading
from pathlib import Path
from typing import Iterable, Iterator, Optional, Protocol

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from filewatch.watching.errors import ClosedWatchServiceError, WatchInterruptedError
from filewatch.watching.events import EventKind, RawEvent


class WatchKey(Protocol):
    """Handle for one registered directory."""

    directory: Path
    kinds: frozenset[EventKind]

    @property
    def is_valid(self) -> bool: ...

    def poll_events(self) -> list[RawEvent]: ...


class WatchService(Protocol):
    """Native file watch capability consumed by the publisher."""

    def register(self, directory: Path, kinds: Iterable[EventKind]) -> WatchKey: ...

    def take(self) -> WatchKey: ...

    def poll(self) -> Optional[WatchKey]: ...

    def release(self, key: WatchKey) -> None: ...

    def cancel(self, key: WatchKey) -> None: ...

    def close(self) -> None: ...


class DirectoryWatchKey:
    """
    Pending events for one watched directory.

    A key is queued on the service when its first event arrives and is not
    queued again until it has been taken and released.
    """

    def __init__(self, directory: Path, kinds: Iterable[EventKind]):
        self.directory = directory
        self.kinds = frozenset(kinds)
        self.watch: Optional[ObservedWatch] = None
        self._events: list[RawEvent] = []
        self._signalled = False
        self._valid = True
        self._lock = threading.Lock()

    @property
    def is_valid(self) -> bool:
        return self._valid

    def poll_events(self) -> list[RawEvent]:
        """Drain and return pending events."""
        with self._lock:
            events, self._events = self._events, []
        return events

    def _signal(self, event: RawEvent) -> bool:
        """Add an event; True when the key must be queued."""
        with self._lock:
            if not self._valid:
                return False
            self._events.append(event)
            if self._signalled:
                return False
            self._signalled = True
            return True

    def _reset(self) -> bool:
        """Re-arm the key; True when events are still pending."""
        with self._lock:
            if not self._valid or not self._events:
                self._signalled = False
                return False
            return True

    def _invalidate(self) -> None:
        with self._lock:
            self._valid = False
            self._events = []

    def __repr__(self) -> str:
        return f"DirectoryWatchKey({str(self.directory)!r})"


def translate_event(event: FileSystemEvent, key: DirectoryWatchKey) -> Iterator[RawEvent]:
    """
    Turn a watchdog event into raw events for entries of ``key.directory``.

    Moves become a delete of the source name and a create of the destination
    name. Events for the directory itself, for paths outside it and for
    kinds the key was not registered for are dropped.
    """
    if event.event_type == EVENT_TYPE_MOVED:
        candidates = [
            (event.src_path, EVENT_TYPE_DELETED),
            (event.dest_path, EVENT_TYPE_CREATED),
        ]
    elif event.event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED):
        candidates = [(event.src_path, event.event_type)]
    else:
        # opened / closed notifications
        return

    for raw_path, native_kind in candidates:
        if not raw_path:
            continue
        path = Path(os.fsdecode(raw_path))
        if path.parent != key.directory:
            continue
        if EventKind.from_native(native_kind) not in key.kinds:
            continue
        yield RawEvent(path.name, native_kind)


class _KeyEventHandler(FileSystemEventHandler):
    """Forwards watchdog events of one schedule to its key."""

    def __init__(self, service: "WatchdogWatchService", key: DirectoryWatchKey):
        super().__init__()
        self.service = service
        self.key = key

    def on_any_event(self, event: FileSystemEvent) -> None:
        for raw_event in translate_event(event, self.key):
            self.service._signal(self.key, raw_event)


class WatchdogWatchService:
    """WatchService implementation on top of a watchdog observer."""

    def __init__(self, observer: Optional[BaseObserver] = None):
        self._observer = observer if observer is not None else Observer()
        self._ready: "queue.Queue[Optional[DirectoryWatchKey]]" = queue.Queue()
        self._keys: set[DirectoryWatchKey] = set()
        self._lock = threading.RLock()
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, directory: Path, kinds: Iterable[EventKind]) -> DirectoryWatchKey:
        """
        Start watching the direct entries of ``directory``.

        Raises:
            ClosedWatchServiceError: If the service has been closed
            OSError: If the directory cannot be watched
        """
        with self._lock:
            self._ensure_open()
            # Schedules only raise in the caller once the observer is running
            if not self._started:
                self._observer.start()
                self._started = True

            key = DirectoryWatchKey(directory, kinds)
            handler = _KeyEventHandler(self, key)
            key.watch = self._observer.schedule(handler, str(directory), recursive=False)
            self._keys.add(key)

        logger.debug(f"Scheduled watchdog watch for {directory}")
        return key

    def take(self) -> DirectoryWatchKey:
        """
        Block until a key has pending events.

        Raises:
            ClosedWatchServiceError: If the service is or gets closed
            WatchInterruptedError: If the wait is interrupted
        """
        self._ensure_open()
        try:
            key = self._ready.get()
        except KeyboardInterrupt as e:
            raise WatchInterruptedError("Interrupted while waiting for file events") from e
        return self._checked(key)

    def poll(self) -> Optional[DirectoryWatchKey]:
        """Return a key with pending events, or None if there is none."""
        self._ensure_open()
        try:
            key = self._ready.get_nowait()
        except queue.Empty:
            return None
        return self._checked(key)

    def release(self, key: DirectoryWatchKey) -> None:
        """Hand a taken key back so it can be signalled again."""
        if key._reset():
            self._ready.put(key)

    def cancel(self, key: DirectoryWatchKey) -> None:
        """Stop watching the key's directory."""
        with self._lock:
            key._invalidate()
            self._keys.discard(key)
            if self._closed or key.watch is None:
                return
            try:
                self._observer.unschedule(key.watch)
            except KeyError:
                # Already gone, e.g. removed together with its directory
                pass

    def close(self) -> None:
        """Release every watch and wake up blocked callers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for key in self._keys:
                key._invalidate()
            self._keys.clear()

        try:
            if self._started:
                self._observer.unschedule_all()
                self._observer.stop()
                self._observer.join()
        finally:
            self._ready.put(None)
            logger.debug("Watchdog observer stopped")

    def _signal(self, key: DirectoryWatchKey, event: RawEvent) -> None:
        if key._signal(event):
            self._ready.put(key)

    def _checked(self, key: Optional[DirectoryWatchKey]) -> DirectoryWatchKey:
        if key is None:
            # Pass the sentinel on to other blocked callers
            self._ready.put(None)
            raise ClosedWatchServiceError("The watch service has been closed")
        return key

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClosedWatchServiceError("The watch service has been closed")
