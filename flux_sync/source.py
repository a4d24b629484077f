"""Resolve and download the artifact published by a source object.

The artifact is a gzipped tarball with a single top level directory. It is
downloaded with `curl` and unpacked with `tar`, stripping that directory so
the contents land directly in the workspace:
```python
from flux_sync import source

artifact = source.resolve_artifact(repo)
await source.ArchiveFetcher().fetch(artifact.url, workspace, deadline)
```
"""

from abc import ABC, abstractmethod
import logging
from pathlib import Path

from .command import Command, run_piped
from .config import CommandConfig
from .exceptions import ArtifactMissingError, FetchException
from .manifest import GitRepository, SourceArtifact

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "resolve_artifact",
    "Fetcher",
    "ArchiveFetcher",
]


def resolve_artifact(source: GitRepository) -> SourceArtifact:
    """Return the artifact of the source, failing if it is not addressable."""
    if source.artifact is None or not source.artifact.url:
        raise ArtifactMissingError(f"artifact not found in {source.name}")
    return source.artifact


class Fetcher(ABC):
    """Downloads and unpacks an artifact into a directory."""

    @abstractmethod
    async def fetch(self, url: str, dest: Path, deadline: float | None) -> None:
        """Populate dest with the contents of the artifact at url."""


class ArchiveFetcher(Fetcher):
    """Fetches tarball artifacts with curl and tar."""

    def __init__(self, config: CommandConfig | None = None) -> None:
        """Initialize ArchiveFetcher."""
        self._config = config or CommandConfig()

    async def fetch(self, url: str, dest: Path, deadline: float | None) -> None:
        """Download the tarball and unpack it, stripping the top directory."""
        _LOGGER.debug("Fetching artifact %s into %s", url, dest)
        cmds = [
            Command(
                [
                    self._config.curl_bin,
                    "--silent",
                    "--show-error",
                    "--fail",
                    "--location",
                    url,
                ],
                exc=FetchException,
            ),
            Command(
                [self._config.tar_bin, "-xz", "--strip-components=1", "-C", "."],
                cwd=dest,
                exc=FetchException,
            ),
        ]
        try:
            await run_piped(cmds, deadline=deadline)
        except FetchException as err:
            raise FetchException(f"artifact acquisition failed: {err}") from err
