"""Resource loader for populating a store from the filesystem.

Kustomization and GitRepository documents are read from YAML files and
added to the store before the manager starts. Documents of any other kind are
skipped, so the loader can be pointed at a directory that also contains
ordinary cluster manifests.
"""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass
import logging
from pathlib import Path

import yaml

from flux_sync.exceptions import FluxException, InputException
from flux_sync.manifest import (
    GIT_REPOSITORY,
    KUSTOMIZE_KIND,
    GitRepository,
    Kustomization,
    parse_raw_obj,
)
from flux_sync.store import Store

__all__ = ["ResourceLoader", "LoadOptions", "load_store"]

_LOGGER = logging.getLogger(__name__)

_SUFFIXES = (".yaml", ".yml")
_KINDS = (KUSTOMIZE_KIND, GIT_REPOSITORY)


@dataclass
class LoadOptions:
    """Options for loading resources.

    Attributes:
        path: A file or directory to load resources from.
        recursive: If True, load resources from subdirectories as well.
    """

    path: Path
    recursive: bool = True

    def __post_init__(self) -> None:
        """Resolve the path after initialization."""
        self.path = Path(self.path).expanduser().resolve()


class ResourceLoader:
    """Loads resources from the filesystem."""

    def __init__(self) -> None:
        """Initialize the resource loader."""
        self._processed_files: set[Path] = set()

    async def load(
        self, options: LoadOptions
    ) -> AsyncGenerator[Kustomization | GitRepository, None]:
        """Yield every supported resource found at the path."""
        _LOGGER.info("Loading resources from %s", options.path)

        if options.path.is_file():
            async for resource in self._load_file(options.path):
                yield resource
        elif options.path.is_dir():
            async for resource in self._load_directory(options.path, options):
                yield resource
        else:
            raise FluxException(f"Path does not exist: {options.path}")

        _LOGGER.info("Finished loading resources")

    async def _load_directory(
        self, path: Path, options: LoadOptions
    ) -> AsyncGenerator[Kustomization | GitRepository, None]:
        _LOGGER.debug("Loading directory: %s", path)
        for entry in sorted(path.iterdir()):
            if entry.is_file() and entry.suffix.lower() in _SUFFIXES:
                async for resource in self._load_file(entry):
                    yield resource
            elif options.recursive and entry.is_dir():
                async for resource in self._load_directory(entry, options):
                    yield resource

    async def _load_file(
        self, path: Path
    ) -> AsyncGenerator[Kustomization | GitRepository, None]:
        """Load resources from a file.

        Raises:
            FluxException: If the file can't be read or is not valid YAML.
        """
        if path in self._processed_files:
            _LOGGER.debug("Skipping already processed file: %s", path)
            return
        self._processed_files.add(path)

        _LOGGER.debug("Processing file: %s", path)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise FluxException(f"Failed to read file {path}: {e}") from e

        try:
            docs = [doc for doc in yaml.safe_load_all(content) if doc]
        except yaml.YAMLError as e:
            raise FluxException(f"Invalid YAML in file {path}: {e}") from e

        for doc in docs:
            if not isinstance(doc, dict) or doc.get("kind") not in _KINDS:
                continue
            try:
                yield parse_raw_obj(doc)
            except InputException as e:
                _LOGGER.warning("Skipping document in %s: %s", path, e)


async def load_store(store: Store, path: Path) -> int:
    """Add every resource found at the path to the store.

    Returns the number of resources added.
    """
    loader = ResourceLoader()
    count = 0
    async for resource in loader.load(LoadOptions(path=path)):
        _LOGGER.debug("Loaded %s", resource.resource_id)
        store.add_object(resource)
        count += 1
    return count
