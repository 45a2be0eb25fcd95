"""Validation and symlink resolution of watched file paths."""

from pathlib import Path
from typing import Iterable, Union

from filewatch.watching.errors import PathValidationError, ValidationErrorKind

PathLike = Union[str, Path]


def resolve_subscription(candidate: PathLike) -> Path:
    """
    Validate a path a caller asked to watch.

    The path must be absolute, must exist and must point (possibly through
    a chain of symlinks) at a regular file.

    Args:
        candidate: Path as given by the caller

    Returns:
        The path itself, unresolved, to be used as subscription identity

    Raises:
        PathValidationError: If the path cannot be watched
    """
    path = Path(candidate)

    if not path.is_absolute():
        raise PathValidationError(path, ValidationErrorKind.NOT_ABSOLUTE)

    # exists() and is_file() follow symlinks, so a dangling link is "not found"
    if not path.exists():
        raise PathValidationError(path, ValidationErrorKind.NOT_FOUND)

    if not path.is_file():
        raise PathValidationError(path, ValidationErrorKind.NOT_REGULAR_FILE)

    return path


def resolve_subscriptions(candidates: Iterable[PathLike]) -> list[Path]:
    """Validate every candidate in order, failing on the first bad one."""
    return [resolve_subscription(candidate) for candidate in candidates]


def real_path_of(path: Path) -> Path:
    """
    Fully dereference ``path``.

    Raises:
        OSError: If the entry vanished or the symlink chain loops
    """
    try:
        return path.resolve(strict=True)
    except RuntimeError as e:
        # Symlink loops raise RuntimeError before Python 3.13
        raise OSError(f"Cannot resolve {path}: {e}") from e
