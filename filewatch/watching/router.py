"""
Routing of raw directory events to subscribers.

One dispatch cycle handles everything the watch service reported for a
single directory key:

1. classify - map each raw event to the subscriptions backed by the
   affected real path and collect the kinds that occurred per subscription
2. heal - a deleted subscription that still exists afterwards was replaced
   atomically (e.g. a Kubernetes ``..data`` symlink swap); re-resolve it and
   move the directory registration if its real parent changed
3. dispatch - notify each subscriber once with its changed subscriptions
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Sequence

from loguru import logger

from filewatch.watching.errors import RegistrationError
from filewatch.watching.events import EventKind, RawEvent
from filewatch.watching.index import SubscriptionIndex
from filewatch.watching.registry import WatchDirectoryRegistry
from filewatch.watching.service import WatchKey, WatchService
from filewatch.watching.subscribers import Subscriber


@dataclass(slots=True)
class DispatchCycle:
    """What happened during one dispatch cycle."""

    directory: Path
    occurred: dict[Path, set[EventKind]] = field(default_factory=dict)
    rebound: list[Path] = field(default_factory=list)
    notified: list[tuple[Subscriber, list[Path]]] = field(default_factory=list)


class EventRouter:
    """Turns the pending events of a key into subscriber notifications."""

    def __init__(
        self,
        subscribers: Sequence[Subscriber],
        index: SubscriptionIndex,
        registry: WatchDirectoryRegistry,
        service: WatchService,
        event_kinds: Iterable[EventKind],
        log=None,
        exists: Callable[[Path], bool] = os.path.exists,
    ):
        self.subscribers = list(subscribers)
        self.index = index
        self.registry = registry
        self.service = service
        self.event_kinds = frozenset(event_kinds)
        self.log = log or logger.bind(component="router")
        self._exists = exists

    def dispatch(self, key: WatchKey) -> DispatchCycle:
        """
        Process the pending events of ``key``.

        The key is always released back to the service, otherwise its
        directory would never be reported again.
        """
        try:
            cycle = DispatchCycle(directory=key.directory)
            cycle.occurred = self.classify(key.directory, key.poll_events())
            cycle.rebound = self.heal(cycle.occurred)
            cycle.notified = self.notify(cycle.occurred)
            return cycle
        finally:
            self.service.release(key)

    def classify(self, directory: Path, events: Iterable[RawEvent]) -> dict[Path, set[EventKind]]:
        """Collect the kinds that occurred per subscription."""
        occurred: dict[Path, set[EventKind]] = {}

        for event in events:
            real_path = directory / event.name
            kind = EventKind.from_native(event.kind)

            for subscription in self.index.subscriptions_for(real_path):
                if subscription == real_path:
                    self.log.debug(f"Event {kind.name} occurred for {subscription}")
                else:
                    self.log.debug(f"Event {kind.name} occurred for {subscription} -> {real_path}")
                occurred.setdefault(subscription, set()).add(kind)

        return occurred

    def heal(self, occurred: dict[Path, set[EventKind]]) -> list[Path]:
        """
        Re-resolve subscriptions that were deleted but still exist.

        Returns:
            Subscriptions whose real path changed
        """
        rebound: list[Path] = []

        for subscription, kinds in occurred.items():
            if EventKind.DELETE not in kinds or not self._exists(subscription):
                continue

            try:
                result = self.index.rebind(subscription)
            except OSError as e:
                self.log.warning(f"Cannot re-resolve {subscription}, keeping previous target: {e}")
                continue

            if not result.changed:
                continue

            if result.parent_changed:
                try:
                    self.registry.move_registration(
                        result.old_parent, result.new_parent, self.event_kinds, self.index
                    )
                except RegistrationError as e:
                    # Keep routing through the old target so the next DELETE retries
                    self.index.restore(subscription, result.old_real_path)
                    self.log.error(f"Cannot follow {subscription} to its new directory: {e}")
                    continue

            rebound.append(subscription)
            self.log.info(
                f"File {subscription} was replaced: {result.old_real_path} -> {result.new_real_path}"
            )

        return rebound

    def notify(self, occurred: dict[Path, set[EventKind]]) -> list[tuple[Subscriber, list[Path]]]:
        """Call each subscriber once with its relevant changed subscriptions."""
        notified: list[tuple[Subscriber, list[Path]]] = []
        if not occurred:
            return notified

        for subscriber in self.subscribers:
            changed = [
                subscription
                for subscription in dict.fromkeys(subscriber.subscriptions())
                if occurred.get(subscription, set()) & self.event_kinds
            ]
            if not changed:
                continue

            try:
                subscriber.on_events(changed)
            except Exception:
                self.log.exception(f"Subscriber {subscriber!r} failed to handle changes")
            notified.append((subscriber, changed))

        return notified
