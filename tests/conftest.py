"""Shared fixtures: an in-memory watch service and Kubernetes style volumes."""

import os
import shutil
from collections import deque
from pathlib import Path
from typing import Iterable, Optional, Union

import pytest
from loguru import logger

from filewatch.watching.errors import ClosedWatchServiceError, WatchInterruptedError
from filewatch.watching.events import EventKind, RawEvent


class FakeWatchKey:
    def __init__(self, directory: Path, kinds: Iterable[EventKind]):
        self.directory = directory
        self.kinds = frozenset(kinds)
        self.events: list[RawEvent] = []
        self.valid = True
        self.queued = False

    @property
    def is_valid(self) -> bool:
        return self.valid

    def poll_events(self) -> list[RawEvent]:
        events, self.events = self.events, []
        return events

    def __repr__(self) -> str:
        return f"FakeWatchKey({str(self.directory)!r})"


class FakeWatchService:
    """
    Deterministic WatchService.

    Events are injected with ``emit``. A blocking ``take`` with nothing
    pending behaves as if the service had been closed, so loops end once
    every injected event has been delivered.
    """

    def __init__(self):
        self.keys: dict[Path, FakeWatchKey] = {}
        self.registered: list[Path] = []
        self.cancelled: list[Path] = []
        self.released: list[FakeWatchKey] = []
        self.fail_on: set[Path] = set()
        self.fail_cancel = False
        self.interrupt = False
        self.close_calls = 0
        self.closed = False
        self._ready: deque[FakeWatchKey] = deque()

    def register(self, directory: Path, kinds: Iterable[EventKind]) -> FakeWatchKey:
        if self.closed:
            raise ClosedWatchServiceError("closed")
        if directory in self.fail_on:
            raise OSError(f"cannot watch {directory}")
        key = FakeWatchKey(directory, kinds)
        self.keys[directory] = key
        self.registered.append(directory)
        return key

    def emit(self, directory: Path, name: str, kind: Union[EventKind, str]) -> None:
        native = kind.native_kind if isinstance(kind, EventKind) else kind
        key = self.keys[directory]
        key.events.append(RawEvent(name, native))
        if not key.queued:
            key.queued = True
            self._ready.append(key)

    def take(self) -> FakeWatchKey:
        if self.interrupt:
            raise WatchInterruptedError("interrupted")
        if self.closed or not self._ready:
            raise ClosedWatchServiceError("closed")
        return self._ready.popleft()

    def poll(self) -> Optional[FakeWatchKey]:
        if self.closed:
            raise ClosedWatchServiceError("closed")
        return self._ready.popleft() if self._ready else None

    def release(self, key: FakeWatchKey) -> None:
        self.released.append(key)
        if key.valid and key.events:
            self._ready.append(key)
        else:
            key.queued = False

    def cancel(self, key: FakeWatchKey) -> None:
        if self.fail_cancel:
            raise OSError(f"cannot cancel {key.directory}")
        key.valid = False
        self.keys.pop(key.directory, None)
        self.cancelled.append(key.directory)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


class SecretVolume:
    """
    Mimics how kubelet lays out ConfigMap and Secret volumes.

    Every file is a symlink ``<name> -> ..data/<name>`` and ``..data`` is a
    symlink to a timestamped directory that gets swapped atomically.
    """

    def __init__(self, root: Path, files: dict[str, str]):
        self.root = root
        self.root.mkdir(parents=True)
        self.generation = 0
        self.data_dir: Optional[Path] = None
        self.publish(files)

    def path(self, name: str) -> Path:
        return self.root / name

    def publish(self, files: dict[str, str], remove_old: bool = True) -> Optional[Path]:
        """Write a new generation, swap ``..data`` to it and drop the old one."""
        self.generation += 1
        data_dir = self.root / f"..2024_01_01_00_00_{self.generation:02d}.{1000 + self.generation}"
        data_dir.mkdir()
        for name, content in files.items():
            (data_dir / name).write_text(content)

        tmp_link = self.root / "..data_tmp"
        os.symlink(data_dir.name, tmp_link)
        os.replace(tmp_link, self.root / "..data")

        for name in files:
            link = self.root / name
            if not os.path.lexists(link):
                os.symlink(os.path.join("..data", name), link)

        old_dir, self.data_dir = self.data_dir, data_dir
        if old_dir is not None and remove_old:
            shutil.rmtree(old_dir)
        return old_dir


@pytest.fixture
def fake_service() -> FakeWatchService:
    return FakeWatchService()


@pytest.fixture
def log_messages():
    """Collect ``(level, message)`` pairs logged through loguru."""
    messages: list[tuple[str, str]] = []

    def sink(message):
        record = message.record
        messages.append((record["level"].name, record["message"]))

    handler_id = logger.add(sink, level="DEBUG", format="{message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def make_file(tmp_path):
    def _make_file(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return path

    return _make_file


@pytest.fixture
def secret_volume(tmp_path) -> SecretVolume:
    return SecretVolume(tmp_path / "secret", {"token": "v1", "ca.crt": "ca-v1"})
