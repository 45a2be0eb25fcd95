"""Event kinds understood by the watcher and their watchdog counterparts."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from watchdog.events import EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED


class EventKind(str, Enum):
    """Closed set of file change kinds."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"

    @property
    def native_kind(self) -> str:
        """Watchdog event type reported for this kind."""
        return _NATIVE_BY_KIND[self]

    @classmethod
    def from_native(cls, native_kind: str) -> "EventKind":
        """
        Map a watchdog event type to an event kind.

        Raises:
            ValueError: If the native kind has no counterpart
        """
        try:
            return _KIND_BY_NATIVE[native_kind]
        except KeyError:
            raise ValueError(f"Unsupported native event kind: {native_kind!r}") from None

    @classmethod
    def parse(cls, value: str) -> "EventKind":
        """Parse a user supplied kind name (``create``, ``MODIFY``, ``deleted``...)."""
        name = value.strip().lower()
        if name in _KIND_BY_NATIVE:
            return _KIND_BY_NATIVE[name]
        try:
            return cls(name)
        except ValueError:
            choices = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown event kind {value!r} (expected one of: {choices})") from None

    @classmethod
    def parse_many(cls, values: Iterable[str]) -> list["EventKind"]:
        """Parse several kind names, keeping order and dropping repeats."""
        kinds: dict[EventKind, None] = {}
        for value in values:
            if value.strip():
                kinds[cls.parse(value)] = None
        return list(kinds)


_NATIVE_BY_KIND = {
    EventKind.CREATE: EVENT_TYPE_CREATED,
    EventKind.MODIFY: EVENT_TYPE_MODIFIED,
    EventKind.DELETE: EVENT_TYPE_DELETED,
}
_KIND_BY_NATIVE = {native: kind for kind, native in _NATIVE_BY_KIND.items()}

ALL_EVENT_KINDS = frozenset(EventKind)


@dataclass(frozen=True, slots=True)
class RawEvent:
    """A pending event as reported for a watched directory."""

    name: str
    kind: str
