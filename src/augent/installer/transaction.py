"""Roll back file writes and store updates when an install or uninstall fails."""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import Iterable

from augent.core.exceptions import AugentError, wrap_os_error
from augent.core.logging.logger import get_logger
from augent.workspace.store import prune_empty_parents, write_text_atomic

logger = get_logger(__name__)


class Transaction:
    """Remember the prior state of every touched path until committed.

    Used as a context manager: leaving the block with an exception before
    :meth:`commit` restores the backed-up files and deletes files that did not
    exist before.
    """

    def __init__(self, root: Path, store_paths: Iterable[Path] = ()) -> None:
        self.root = root
        self._store_paths = tuple(store_paths)
        self._backups: dict[Path, bytes | None] = {}
        self._committed = False

    def __enter__(self) -> "Transaction":
        for path in self._store_paths:
            self._remember(path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None and not self._committed:
            self.rollback()

    def _remember(self, path: Path) -> None:
        if path in self._backups:
            return
        try:
            self._backups[path] = path.read_bytes() if path.is_file() else None
        except OSError as exc:
            raise wrap_os_error(exc, path) from exc

    def write(self, path: Path, content: bytes) -> None:
        self._remember(path)
        write_text_atomic(path, content)

    def delete(self, path: Path) -> None:
        self._remember(path)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise wrap_os_error(exc, path) from exc
        prune_empty_parents(path, stop_at=self.root)

    def commit(self) -> None:
        self._committed = True

    def rollback(self) -> None:
        logger.debug("Rolling back", data={"paths": len(self._backups)})
        for path, backup in reversed(list(self._backups.items())):
            try:
                if backup is None:
                    if path.exists():
                        path.unlink()
                        prune_empty_parents(path, stop_at=self.root)
                else:
                    write_text_atomic(path, backup)
            except (OSError, AugentError) as exc:
                logger.error("Failed to restore file during rollback", data={"path": str(path), "error": str(exc)})
        self._backups.clear()
