"""Configuration objects for flux-sync."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class CommandConfig:
    """Names and options of the external tools used during a sync."""

    curl_bin: str = "curl"
    tar_bin: str = "tar"
    kustomize_bin: str = "kustomize"
    kubectl_bin: str = "kubectl"

    kubeconfig: str | None = None
    """Kubeconfig file passed to kubectl, uses the kubectl default if unset."""

    context: str | None = None
    """Kubeconfig context passed to kubectl."""


@dataclass
class ControllerConfig:
    """Configuration for the KustomizationController."""

    sync_timeout: float = 15.0
    """Deadline in seconds for a single fetch, build and apply attempt."""

    error_requeue_interval: float = 5.0
    """Delay before retrying after a missing source or failed status write."""

    workspace_root: Path | None = None
    """Parent directory of the per attempt workspaces."""


@dataclass
class ManagerConfig:
    """Configuration for the controller manager."""

    max_concurrent_reconciles: int = 4
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    commands: CommandConfig = field(default_factory=CommandConfig)
