"""Subscribers receive the subset of their files that changed in a cycle."""

from pathlib import Path
from typing import Callable, Iterable, Optional, Protocol, Sequence

from loguru import logger


class Subscriber(Protocol):
    """Anything interested in a fixed list of files."""

    def subscriptions(self) -> Sequence[Path]:
        """Files this subscriber watches; stable for its lifetime."""
        ...

    def on_events(self, changed: list[Path]) -> None:
        """Called at most once per dispatch cycle with a non-empty subset."""
        ...


class FileChangeSubscriber:
    """Logs changed files and optionally forwards them to a callback."""

    def __init__(
        self,
        paths: Iterable[Path],
        callback: Optional[Callable[[list[Path]], None]] = None,
    ):
        # Keep declaration order, drop repeats
        absolute = (Path(path).absolute() for path in paths)
        self._subscriptions = tuple(dict.fromkeys(absolute))
        self.callback = callback

    def subscriptions(self) -> tuple[Path, ...]:
        return self._subscriptions

    def on_events(self, changed: list[Path]) -> None:
        for path in changed:
            logger.info(f"The file {path} has been changed")

        if self.callback is not None:
            self.callback(changed)

    def __repr__(self) -> str:
        return f"FileChangeSubscriber({len(self._subscriptions)} files)"
