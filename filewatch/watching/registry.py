"""Bookkeeping of directories registered with the watch service."""

from pathlib import Path
from typing import Iterable, Iterator, Optional

from loguru import logger

from filewatch.watching.errors import ClosedWatchServiceError, RegistrationError
from filewatch.watching.events import EventKind
from filewatch.watching.index import SubscriptionIndex
from filewatch.watching.service import WatchKey, WatchService


class WatchDirectoryRegistry:
    """
    Tracks which real parent directories are registered.

    A directory is present iff it holds a live key from the watch service,
    and no directory is ever registered twice. Directories are always
    registered for DELETE on top of the requested kinds; filtering down to
    the requested kinds happens when subscribers are notified.
    """

    def __init__(self, service: WatchService, log=None):
        self.service = service
        self.log = log or logger.bind(component="registry")
        self._keys: dict[Path, WatchKey] = {}

    @property
    def directories(self) -> tuple[Path, ...]:
        return tuple(self._keys)

    def key_for(self, directory: Path) -> Optional[WatchKey]:
        return self._keys.get(directory)

    def register_all(self, directories: Iterable[Path], kinds: Iterable[EventKind]) -> None:
        """
        Register every directory, or none of them.

        Directories registered earlier in the same batch are released again
        before the error is raised.

        Raises:
            RegistrationError: If any directory cannot be registered
        """
        kinds = frozenset(kinds)
        batch: list[Path] = []

        for directory in directories:
            if directory in self._keys:
                continue
            try:
                self._register(directory, kinds)
            except (OSError, ClosedWatchServiceError) as e:
                for registered in reversed(batch):
                    self._release(registered)
                raise RegistrationError(directory, e) from e
            batch.append(directory)

    def move_registration(
        self,
        old_directory: Path,
        new_directory: Path,
        kinds: Iterable[EventKind],
        index: SubscriptionIndex,
    ) -> None:
        """
        Follow a subscription whose real parent directory changed.

        ``new_directory`` is registered unless it already is. ``old_directory``
        is released once no subscription in ``index`` resolves into it.
        Release is best effort: failures are logged, never raised.

        Raises:
            RegistrationError: If ``new_directory`` cannot be registered
        """
        if new_directory not in self._keys:
            try:
                self._register(new_directory, frozenset(kinds))
            except (OSError, ClosedWatchServiceError) as e:
                raise RegistrationError(new_directory, e) from e

        if old_directory != new_directory and old_directory in self._keys:
            if not index.depends_on_directory(old_directory):
                self._release(old_directory)

    def clear(self) -> None:
        """Forget all registrations without touching the service."""
        self._keys.clear()

    def _register(self, directory: Path, kinds: frozenset[EventKind]) -> None:
        # DELETE is always watched, atomic replacements are detected through it
        kinds = kinds | {EventKind.DELETE}
        key = self.service.register(directory, kinds)
        self._keys[directory] = key
        kind_names = ", ".join(sorted(kind.name for kind in kinds))
        self.log.info(f"Registered watch for directory {directory} (event kinds: {kind_names})")

    def _release(self, directory: Path) -> None:
        key = self._keys.pop(directory)
        try:
            self.service.cancel(key)
            self.log.info(f"Released watch for directory {directory}")
        except Exception as e:
            self.log.warning(f"Failed to release watch for directory {directory}: {e}")

    def __contains__(self, directory: object) -> bool:
        return directory in self._keys

    def __iter__(self) -> Iterator[Path]:
        return iter(tuple(self._keys))

    def __len__(self) -> int:
        return len(self._keys)
