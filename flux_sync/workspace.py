"""Disposable working directories for sync attempts.

Each sync attempt downloads, renders and applies inside its own directory. The
directory is created when the attempt starts and is always removed when the
attempt ends, whether it succeeded, failed or was cancelled.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging
from pathlib import Path
import shutil
import tempfile

from slugify import slugify

from .exceptions import StorageException

_LOGGER = logging.getLogger(__name__)

__all__ = ["WorkspaceManager"]

MAX_PREFIX_LENGTH = 40


class WorkspaceManager:
    """Allocates a uniquely named directory per sync attempt."""

    def __init__(self, root: Path | None = None) -> None:
        """Initialize WorkspaceManager.

        Args:
            root: Parent directory for workspaces, the system temporary
                directory when not set.
        """
        self._root = root
        self._active: set[Path] = set()

    @property
    def active(self) -> set[Path]:
        """Workspaces that are currently in use."""
        return set(self._active)

    @asynccontextmanager
    async def workspace(self, name: str) -> AsyncIterator[Path]:
        """Create a workspace and remove it when the context exits."""
        prefix = slugify(name, max_length=MAX_PREFIX_LENGTH, lowercase=True)
        try:
            if self._root is not None:
                self._root.mkdir(parents=True, exist_ok=True)
            path = Path(tempfile.mkdtemp(prefix=f"{prefix}-", dir=self._root))
        except OSError as err:
            raise StorageException(f"tmp dir error: {err}") from err
        _LOGGER.debug("Created workspace %s", path)
        self._active.add(path)
        try:
            yield path
        finally:
            self._active.discard(path)
            shutil.rmtree(path, ignore_errors=True)
            _LOGGER.debug("Removed workspace %s", path)
