"""
Error taxonomy for bundle resolution, locking, installation and removal.

Every error carries a short ``message`` and optional ``details``. The CLI shows
``message`` and, in verbose mode, ``details``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class AugentError(Exception):
    """Base class for augent errors."""

    kind = "error"

    def __init__(self, message: str, details: str = "") -> None:
        self.message = message
        self.details = details
        super().__init__(f"{message}\n\n{details}" if details else message)


class ConfigurationError(AugentError):
    """Raised when a store file, settings file or platform selection is invalid."""

    kind = "configuration"


class BundleNotFoundError(AugentError):
    """Raised when a referenced dependency or uninstall target does not exist."""

    kind = "bundle-not-found"

    def __init__(self, name: str, details: str = "") -> None:
        self.name = name
        super().__init__(f"Bundle not found: {name}", details)


class CircularDependencyError(AugentError):
    """Raised when dependency resolution revisits a bundle still being resolved."""

    kind = "circular-dependency"

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.chain)}")


class InvalidBundleReferenceError(AugentError):
    """Raised when a source string cannot be parsed into a bundle reference."""

    kind = "invalid-bundle-reference"

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        super().__init__(f"Invalid bundle reference '{reference}': {reason}")


class LockfileOutdatedError(AugentError):
    """Raised in frozen mode when the resolved lock differs from the one on disk."""

    kind = "lockfile-outdated"

    def __init__(self, details: str = "") -> None:
        super().__init__(
            "Lockfile is out of date; run install without --frozen to update it",
            details,
        )


class LockfileMissingError(AugentError):
    """Raised in frozen mode when no lockfile exists."""

    kind = "lockfile-missing"

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Lockfile not found: {path}")


class HashMismatchError(AugentError):
    """Raised when re-fetched content disagrees with the hash recorded in the lock."""

    kind = "hash-mismatch"

    def __init__(self, name: str, expected: str, actual: str) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Content hash mismatch for bundle {name}",
            f"expected {expected}, got {actual}",
        )


class FetchFailedError(AugentError):
    """Raised when a bundle source cannot be fetched. ``reason`` is git's own output."""

    kind = "fetch-failed"

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to fetch {source}", reason)


class MergeFailedError(AugentError):
    """Raised when structured merge input cannot be parsed."""

    kind = "merge-failed"


class PathEscapeError(AugentError):
    """Raised when a local bundle path is absolute or leaves its root."""

    kind = "path-escape"

    def __init__(self, path: str, root: Path | str) -> None:
        self.path = path
        self.root = root
        super().__init__(f"Path '{path}' escapes {root} or is absolute")


class PermissionDeniedError(AugentError):
    """Raised when a filesystem operation is refused."""

    kind = "permission-denied"

    def __init__(self, path: Path, reason: str = "") -> None:
        self.path = path
        super().__init__(f"Permission denied: {path}", reason)


class IoFailureError(AugentError):
    """Raised when a filesystem operation fails for any other reason."""

    kind = "io-failure"

    def __init__(self, path: Path, reason: str = "") -> None:
        self.path = path
        super().__init__(f"I/O failure at {path}", reason)


def wrap_os_error(exc: OSError, path: Path) -> AugentError:
    """Map an ``OSError`` onto the permission/io error kinds, keeping the path."""
    if isinstance(exc, PermissionError):
        return PermissionDeniedError(path, str(exc))
    return IoFailureError(path, str(exc))
