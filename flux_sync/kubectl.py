"""Library for applying rendered manifests with kubectl."""

from abc import ABC, abstractmethod
import logging
from pathlib import Path

from .command import Command, run
from .config import CommandConfig
from .exceptions import ApplyException

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Applier",
    "KubectlApplier",
]


class Applier(ABC):
    """Applies a manifest file to the cluster."""

    @abstractmethod
    async def apply(
        self, manifest_path: Path, prune: str, deadline: float | None
    ) -> str:
        """Apply the manifests, pruning objects matching the selector if set.

        Returns the output of the apply for auditing.
        """


class KubectlApplier(Applier):
    """Applies manifests with `kubectl apply`."""

    def __init__(self, config: CommandConfig | None = None) -> None:
        """Initialize KubectlApplier."""
        self._config = config or CommandConfig()

    def command(self, manifest_path: Path, prune: str) -> Command:
        """Return the kubectl command for the manifest."""
        args = [self._config.kubectl_bin, "apply", "-f", manifest_path.name]
        if prune:
            args.extend(["--prune", "-l", prune])
        if self._config.kubeconfig:
            args.extend(["--kubeconfig", self._config.kubeconfig])
        if self._config.context:
            args.extend(["--context", self._config.context])
        return Command(args, cwd=manifest_path.parent, exc=ApplyException)

    async def apply(
        self, manifest_path: Path, prune: str, deadline: float | None
    ) -> str:
        """Run kubectl apply and return its output."""
        try:
            out = await run(self.command(manifest_path, prune), deadline=deadline)
        except ApplyException as err:
            raise ApplyException(f"kubectl apply error: {err}") from err
        return out.decode("utf-8", errors="replace")
