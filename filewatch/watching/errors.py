"""Exceptions raised by the file watcher."""

from enum import Enum
from pathlib import Path
from typing import Optional


class FileWatchError(Exception):
    """Base class for file watcher errors."""


class ValidationErrorKind(str, Enum):
    """Why a candidate path cannot be watched."""

    NOT_ABSOLUTE = "not absolute"
    NOT_FOUND = "not found"
    NOT_REGULAR_FILE = "not a regular file"


class PathValidationError(FileWatchError):
    """A path given to watch is unusable."""

    def __init__(self, path: Path, kind: ValidationErrorKind):
        self.path = path
        self.kind = kind
        super().__init__(f"Cannot watch {path}: {kind.value}")


class RegistrationError(FileWatchError):
    """A directory could not be registered with the watch service."""

    def __init__(self, directory: Path, cause: Optional[BaseException] = None):
        self.directory = directory
        self.cause = cause
        message = f"Cannot register watch for directory {directory}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class PublisherStateError(FileWatchError):
    """An operation was attempted in the wrong lifecycle state."""


class ClosedWatchServiceError(FileWatchError):
    """The watch service has been closed."""


class WatchInterruptedError(FileWatchError):
    """Waiting for events was interrupted."""
