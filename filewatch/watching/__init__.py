"""
Watching of individually named files.

``FileChangePublisher`` ties together the subscription index, the directory
registry and the event router on top of a ``WatchService``.
"""

from filewatch.watching.errors import (
    ClosedWatchServiceError,
    FileWatchError,
    PathValidationError,
    PublisherStateError,
    RegistrationError,
    ValidationErrorKind,
    WatchInterruptedError,
)
from filewatch.watching.events import ALL_EVENT_KINDS, EventKind, RawEvent
from filewatch.watching.index import RebindResult, SubscriptionIndex
from filewatch.watching.paths import real_path_of, resolve_subscription, resolve_subscriptions
from filewatch.watching.publisher import FileChangePublisher, PublisherState
from filewatch.watching.registry import WatchDirectoryRegistry
from filewatch.watching.router import DispatchCycle, EventRouter
from filewatch.watching.service import WatchdogWatchService, WatchKey, WatchService
from filewatch.watching.subscribers import FileChangeSubscriber, Subscriber

__all__ = [
    "ALL_EVENT_KINDS",
    "ClosedWatchServiceError",
    "DispatchCycle",
    "EventKind",
    "EventRouter",
    "FileChangePublisher",
    "FileChangeSubscriber",
    "FileWatchError",
    "PathValidationError",
    "PublisherState",
    "PublisherStateError",
    "RawEvent",
    "RebindResult",
    "RegistrationError",
    "Subscriber",
    "SubscriptionIndex",
    "ValidationErrorKind",
    "WatchDirectoryRegistry",
    "WatchInterruptedError",
    "WatchKey",
    "WatchService",
    "WatchdogWatchService",
    "real_path_of",
    "resolve_subscription",
    "resolve_subscriptions",
]
