"""
File change publisher.

Owns the watch service, the subscription index and the directory registry
for its whole lifetime, and drives the receive loop that feeds the router.
"""

import threading
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from loguru import logger

from filewatch.watching.errors import (
    ClosedWatchServiceError,
    PublisherStateError,
    WatchInterruptedError,
)
from filewatch.watching.events import ALL_EVENT_KINDS, EventKind
from filewatch.watching.index import SubscriptionIndex
from filewatch.watching.registry import WatchDirectoryRegistry
from filewatch.watching.router import DispatchCycle, EventRouter
from filewatch.watching.service import WatchService
from filewatch.watching.subscribers import Subscriber


class PublisherState(str, Enum):
    CREATED = "created"
    STARTED = "started"
    STOPPED = "stopped"


class FileChangePublisher:
    """
    Publishes file changes to subscribers.

    Lifecycle is ``CREATED -> STARTED -> STOPPED``. ``stop()`` may be called
    in any state and any number of times; the watch service is closed once.
    """

    def __init__(
        self,
        subscribers: Sequence[Subscriber],
        service: WatchService,
        event_kinds: Iterable[EventKind] = ALL_EVENT_KINDS,
        log=None,
    ):
        self.subscribers = list(subscribers)
        self.service = service
        self.event_kinds = frozenset(event_kinds)
        if not self.event_kinds:
            raise ValueError("At least one event kind must be watched")
        self.log = log or logger.bind(component="publisher")

        self._state = PublisherState.CREATED
        self._index: Optional[SubscriptionIndex] = None
        self._registry: Optional[WatchDirectoryRegistry] = None
        self._router: Optional[EventRouter] = None

    @property
    def state(self) -> PublisherState:
        return self._state

    @property
    def index(self) -> Optional[SubscriptionIndex]:
        return self._index

    @property
    def registry(self) -> Optional[WatchDirectoryRegistry]:
        return self._registry

    def start(self) -> None:
        """
        Index all subscriptions and register their real parent directories.

        Raises:
            PublisherStateError: If the publisher was already started or stopped
            OSError: If a subscription cannot be resolved
            RegistrationError: If a directory cannot be registered
        """
        self._require(PublisherState.CREATED, "start")

        subscriptions = dict.fromkeys(
            subscription
            for subscriber in self.subscribers
            for subscription in subscriber.subscriptions()
        )
        index, directories = SubscriptionIndex.build(subscriptions)
        for subscription in index.subscriptions():
            real_path = index.real_path_for(subscription)
            if real_path != subscription:
                self.log.debug(f"Subscription {subscription} resolves to {real_path}")

        registry = WatchDirectoryRegistry(self.service, log=self.log)
        registry.register_all(directories, self.event_kinds)

        self._index = index
        self._registry = registry
        self._router = EventRouter(
            self.subscribers, index, registry, self.service, self.event_kinds, log=self.log
        )
        self._state = PublisherState.STARTED
        self.log.info(f"Watching {len(index)} files in {len(registry)} directories")

    def take_and_notify(self) -> DispatchCycle:
        """
        Wait for the next directory with events and notify subscribers.

        Raises:
            ClosedWatchServiceError: If the watch service was closed
            WatchInterruptedError: If the wait was interrupted
        """
        self._require(PublisherState.STARTED, "take events")
        # stop() may run on another thread while we wait
        router = self._router
        key = self.service.take()
        return router.dispatch(key)

    def poll_and_notify(self) -> Optional[DispatchCycle]:
        """Like ``take_and_notify`` but returns None when nothing is pending."""
        self._require(PublisherState.STARTED, "poll events")
        router = self._router
        key = self.service.poll()
        if key is None:
            return None
        return router.dispatch(key)

    def run(self) -> bool:
        """
        Block on the watch service and dispatch events until it is closed.

        Returns:
            True on a clean shutdown, False if the loop failed
        """
        return self._loop(self.take_and_notify)

    def run_polling(self, interval: float, stop_event: Optional[threading.Event] = None) -> bool:
        """
        Non-blocking variant of ``run``: poll, and sleep ``interval`` seconds
        whenever nothing is pending, until ``stop_event`` is set.
        """
        stop_event = stop_event or threading.Event()

        def poll_once() -> None:
            if self.poll_and_notify() is None:
                stop_event.wait(interval)

        return self._loop(poll_once, stop_event)

    def stop(self) -> None:
        """Release the watch service and drop all watch state."""
        if self._state is PublisherState.STOPPED:
            return

        self._state = PublisherState.STOPPED
        if self._registry is not None:
            self._registry.clear()
        self._index = None
        self._registry = None
        self._router = None

        try:
            self.service.close()
        except Exception as e:
            self.log.warning(f"Failed to close watch service: {e}")

    def _loop(self, step: Callable[[], None], stop_event: Optional[threading.Event] = None) -> bool:
        self._require(PublisherState.STARTED, "run")
        clean = True
        try:
            while stop_event is None or not stop_event.is_set():
                step()
        except ClosedWatchServiceError:
            self.log.warning("The watch service has been closed")
        except WatchInterruptedError:
            self.log.warning(f"Thread {threading.current_thread().name} was interrupted while watching")
        except Exception:
            clean = False
            self.log.exception("Watching for file changes failed")
        finally:
            self.log.info("File watching has stopped")
            self.stop()
        return clean

    def _require(self, state: PublisherState, action: str) -> None:
        if self._state is not state:
            raise PublisherStateError(
                f"Cannot {action} in state {self._state.value} (expected {state.value})"
            )

    def __enter__(self) -> "FileChangePublisher":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
