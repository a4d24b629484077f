"""Library for rendering the manifests of a Kustomization with kustomize.

The artifact is unpacked into a workspace and `kustomize build` is run against
the Kustomization path inside it. The rendered output is written to a single
file at the workspace root, named after the Kustomization:
```python
from flux_sync import kustomize

content = await kustomize.KustomizeRenderer().render(workspace, "./apps", deadline)
manifest_path = await kustomize.write_manifest(workspace, "apps", content)
```
"""

from abc import ABC, abstractmethod
import logging
from pathlib import Path, PurePosixPath

import aiofiles
from aiofiles.ospath import isdir
import yaml

from .command import Command, run
from .config import CommandConfig
from .exceptions import (
    KustomizeException,
    KustomizePathException,
)

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Renderer",
    "KustomizeRenderer",
    "build_path",
    "write_manifest",
    "count_objects",
]


def build_path(path: str) -> str:
    """Return the Kustomization path relative to the artifact root.

    Leading slashes are ignored since the path is always relative to the
    artifact, and an empty path refers to the artifact root.
    """
    relative = path.strip().lstrip("/")
    if not relative:
        return "."
    pure = PurePosixPath(relative)
    if ".." in pure.parts:
        raise KustomizePathException(
            f"Kustomization path '{path}' must not leave the artifact root"
        )
    return str(pure)


class Renderer(ABC):
    """Renders the manifests for a path inside a workspace."""

    @abstractmethod
    async def render(
        self, work_dir: Path, path: str, deadline: float | None
    ) -> bytes:
        """Return the rendered manifests."""


class KustomizeRenderer(Renderer):
    """Renders manifests with `kustomize build`."""

    def __init__(self, config: CommandConfig | None = None) -> None:
        """Initialize KustomizeRenderer."""
        self._config = config or CommandConfig()

    async def render(
        self, work_dir: Path, path: str, deadline: float | None
    ) -> bytes:
        """Run kustomize build rooted at the path and return stdout."""
        relative = build_path(path)
        _LOGGER.debug("Building kustomization %s in %s", relative, work_dir)
        if not await isdir(work_dir / relative):
            raise KustomizePathException(
                f"Kustomization path '{path}' is not a directory in the artifact"
            )
        cmd = Command(
            [self._config.kustomize_bin, "build", relative],
            cwd=work_dir,
            exc=KustomizeException,
        )
        try:
            return await run(cmd, deadline=deadline)
        except KustomizeException as err:
            raise KustomizeException(f"kustomize build error: {err}") from err


async def write_manifest(work_dir: Path, name: str, content: bytes) -> Path:
    """Write rendered manifests to `<name>.yaml` at the workspace root."""
    manifest_path = work_dir / f"{name}.yaml"
    try:
        async with aiofiles.open(manifest_path, "wb") as file:
            await file.write(content)
    except OSError as err:
        raise KustomizeException(f"Unable to write {manifest_path}: {err}") from err
    return manifest_path


def count_objects(content: bytes) -> int:
    """Return the number of objects in the rendered manifests."""
    try:
        return sum(1 for doc in yaml.safe_load_all(content) if doc is not None)
    except yaml.YAMLError as err:
        raise KustomizeException(f"Unable to parse kustomize output: {err}") from err
