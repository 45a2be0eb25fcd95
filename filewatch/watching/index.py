"""
Bidirectional index between subscription paths and real paths.

A subscription path is what a subscriber asked to watch. Its real path is
what the watch service reports events for, and it can change whenever a
symlink along the way is swapped.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from filewatch.watching.paths import real_path_of


@dataclass(frozen=True, slots=True)
class RebindResult:
    """Outcome of re-resolving one subscription."""

    subscription: Path
    old_real_path: Path
    new_real_path: Path

    @property
    def changed(self) -> bool:
        return self.old_real_path != self.new_real_path

    @property
    def old_parent(self) -> Path:
        return self.old_real_path.parent

    @property
    def new_parent(self) -> Path:
        return self.new_real_path.parent

    @property
    def parent_changed(self) -> bool:
        return self.old_parent != self.new_parent


class SubscriptionIndex:
    """
    Maps real paths to the subscriptions backed by them and back.

    For every ``sub -> real`` binding, ``sub`` is a member of the bucket kept
    for ``real``, and every bucket member is bound to that real path.
    """

    def __init__(self, resolve: Callable[[Path], Path] = real_path_of):
        self._resolve = resolve
        # Buckets are dicts used as insertion ordered sets
        self._real_to_subs: dict[Path, dict[Path, None]] = {}
        self._sub_to_real: dict[Path, Path] = {}

    @classmethod
    def build(
        cls,
        subscription_paths: Iterable[Path],
        resolve: Callable[[Path], Path] = real_path_of,
    ) -> tuple["SubscriptionIndex", list[Path]]:
        """
        Create an index for the given subscriptions.

        Args:
            subscription_paths: Subscription paths in subscriber order
            resolve: Real path resolver

        Returns:
            The index and the ordered, de-duplicated parent directories of
            all real paths

        Raises:
            OSError: If a subscription cannot be resolved
        """
        index = cls(resolve)
        directories: dict[Path, None] = {}

        for subscription in subscription_paths:
            real_path = index._resolve(subscription)
            index._bind(subscription, real_path)
            directories[real_path.parent] = None

        return index, list(directories)

    def subscriptions_for(self, real_path: Path) -> tuple[Path, ...]:
        """Return subscriptions currently resolving to ``real_path``."""
        return tuple(self._real_to_subs.get(real_path, ()))

    def real_path_for(self, subscription: Path) -> Optional[Path]:
        """Return the current resolution of ``subscription``."""
        return self._sub_to_real.get(subscription)

    def subscriptions(self) -> tuple[Path, ...]:
        return tuple(self._sub_to_real)

    def real_paths(self) -> tuple[Path, ...]:
        return tuple(self._real_to_subs)

    def depends_on_directory(self, directory: Path) -> bool:
        """Check whether any subscription currently resolves into ``directory``."""
        return any(real_path.parent == directory for real_path in self._real_to_subs)

    def rebind(self, subscription: Path) -> RebindResult:
        """
        Re-resolve a subscription and move it to its new real path.

        The new resolution is computed before anything is touched, so a
        failure leaves the index exactly as it was.

        Raises:
            KeyError: If ``subscription`` is not indexed
            OSError: If the subscription cannot be resolved
        """
        if subscription not in self._sub_to_real:
            raise KeyError(f"Unknown subscription: {subscription}")

        old_real_path = self._sub_to_real[subscription]
        new_real_path = self._resolve(subscription)
        result = RebindResult(subscription, old_real_path, new_real_path)

        if result.changed:
            self._unbind(subscription)
            self._bind(subscription, new_real_path)

        return result

    def restore(self, subscription: Path, real_path: Path) -> None:
        """
        Bind ``subscription`` back to a previously known ``real_path``.

        Raises:
            KeyError: If ``subscription`` is not indexed
        """
        if subscription not in self._sub_to_real:
            raise KeyError(f"Unknown subscription: {subscription}")

        if self._sub_to_real[subscription] != real_path:
            self._unbind(subscription)
            self._bind(subscription, real_path)

    def _bind(self, subscription: Path, real_path: Path) -> None:
        self._real_to_subs.setdefault(real_path, {})[subscription] = None
        self._sub_to_real[subscription] = real_path

    def _unbind(self, subscription: Path) -> None:
        real_path = self._sub_to_real.pop(subscription)
        bucket = self._real_to_subs[real_path]
        del bucket[subscription]
        if not bucket:
            del self._real_to_subs[real_path]

    def __contains__(self, subscription: object) -> bool:
        return subscription in self._sub_to_real

    def __len__(self) -> int:
        return len(self._sub_to_real)
