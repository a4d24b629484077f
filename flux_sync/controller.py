"""
Kustomization Controller implementation.

This controller reconciles Kustomization resources: it downloads the artifact
published by the referenced source, builds it with kustomize, applies the
result with kubectl and records the outcome in the Kustomization status.

Key Concepts:
    - Kustomization: The desired state, pointing to a source and a path.
    - Source: An object such as a GitRepository exposing an artifact URL.
    - Sync attempt: One fetch, build and apply run inside a disposable
      workspace, bounded by a fixed deadline.

Every reconcile requeues the Kustomization after its interval whether the
attempt succeeded or not. Failures are only visible through the Ready
condition until the next periodic attempt. A missing source or a failed status
write raises instead so the caller can retry sooner.
"""

import asyncio
import copy
from dataclasses import dataclass
import logging

from flux_sync.command import deadline_after
from flux_sync.config import CommandConfig, ControllerConfig
from flux_sync.exceptions import (
    ArtifactMissingError,
    CommandException,
    DependencyNotFoundError,
    StorageException,
)
from flux_sync.kubectl import Applier, KubectlApplier
from flux_sync.kustomize import (
    KustomizeRenderer,
    Renderer,
    count_objects,
    write_manifest,
)
from flux_sync.manifest import GitRepository, Kustomization, NamedResource
from flux_sync.source import ArchiveFetcher, Fetcher, resolve_artifact
from flux_sync.status import (
    STORAGE_OPERATION_FAILED_REASON,
    StatusReporter,
    SyncKind,
    SyncResult,
)
from flux_sync.store import Store
from flux_sync.workspace import WorkspaceManager

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Result",
    "KustomizationController",
]

_STAGES = {
    SyncKind.FETCH_FAILED: "artifact fetch",
    SyncKind.RENDER_FAILED: "kustomize build",
    SyncKind.APPLY_FAILED: "kubectl apply",
}


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile used to schedule the next one."""

    requeue_after: float | None = None
    """Seconds until the next reconcile, or None to wait for an event."""


class KustomizationController:
    """Controller for reconciling Kustomization resources."""

    def __init__(
        self,
        store: Store,
        config: ControllerConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        renderer: Renderer | None = None,
        applier: Applier | None = None,
        commands: CommandConfig | None = None,
    ) -> None:
        """
        Initialize the controller.

        The external steps default to curl/tar, kustomize and kubectl and may
        be replaced, for example with fakes in tests.

        Args:
            store: The store holding Kustomizations and their sources
            config: The configuration for the controller
            fetcher: Downloads and unpacks artifacts
            renderer: Builds manifests from the unpacked artifact
            applier: Applies the rendered manifests
            commands: Tool configuration for the default steps
        """
        self._store = store
        self._config = config or ControllerConfig()
        commands = commands or CommandConfig()
        self._fetcher = fetcher or ArchiveFetcher(commands)
        self._renderer = renderer or KustomizeRenderer(commands)
        self._applier = applier or KubectlApplier(commands)
        self._workspaces = WorkspaceManager(self._config.workspace_root)
        self._reporter = StatusReporter(store)

    @property
    def workspaces(self) -> WorkspaceManager:
        return self._workspaces

    async def reconcile(self, resource_id: NamedResource) -> Result:
        """
        Reconcile a Kustomization resource.

        This method performs the following steps:
        1. Loads the Kustomization, doing nothing if it was deleted.
        2. Loads the referenced source object.
        3. Runs a sync attempt on a copy of the Kustomization.
        4. Writes the resulting status.

        Args:
            resource_id: The identifier for the Kustomization resource.

        Returns:
            The delay until the next periodic reconcile.

        Raises:
            DependencyNotFoundError: If the source object does not exist.
            StatusWriteError: If the status could not be written.
        """
        kustomization = self._store.get_object(resource_id, Kustomization)
        if kustomization is None:
            _LOGGER.debug("Kustomization %s not found, nothing to do", resource_id)
            return Result()

        _LOGGER.info("Reconciling Kustomization %s", resource_id)
        source_id = kustomization.source_id
        source = self._store.get_object(source_id, GitRepository)
        if source is None:
            _LOGGER.error(
                "%s not found for Kustomization %s", source_id, resource_id
            )
            raise DependencyNotFoundError(resource_id, source_id)

        synced = copy.deepcopy(kustomization)
        result = await self.sync(synced, source)
        if not result.success:
            _LOGGER.error(
                "Kustomization %s sync failed (%s): %s",
                resource_id.namespaced_name,
                result.reason,
                result.message,
            )

        self._reporter.report(synced, result)

        _LOGGER.info(
            "Kustomization %s sync finished: %s",
            resource_id.namespaced_name,
            synced.ready_message(),
        )
        return Result(requeue_after=kustomization.spec.interval)

    async def sync(
        self, kustomization: Kustomization, source: GitRepository
    ) -> SyncResult:
        """Fetch, build and apply the Kustomization in a fresh workspace.

        Failures of any step are returned as a failed result rather than
        raised. The deadline covers all steps together, and when it expires the
        result identifies the step that was running.
        """
        try:
            artifact = resolve_artifact(source)
        except ArtifactMissingError as err:
            return SyncResult.failed(SyncKind.ARTIFACT_MISSING, str(err))

        timeout = self._config.sync_timeout
        deadline = deadline_after(timeout)
        stage = SyncKind.FETCH_FAILED
        try:
            async with asyncio.timeout_at(deadline):
                async with self._workspaces.workspace(
                    kustomization.namespaced_name
                ) as work_dir:
                    await self._fetcher.fetch(artifact.url, work_dir, deadline)

                    stage = SyncKind.RENDER_FAILED
                    content = await self._renderer.render(
                        work_dir, kustomization.spec.path, deadline
                    )
                    num_objects = count_objects(content)
                    manifest_path = await write_manifest(
                        work_dir, kustomization.name, content
                    )

                    stage = SyncKind.APPLY_FAILED
                    _LOGGER.info(
                        "Applying %d object manifests for Kustomization %s",
                        num_objects,
                        kustomization.namespaced_name,
                    )
                    output = await self._applier.apply(
                        manifest_path, kustomization.spec.prune, deadline
                    )
        except StorageException as err:
            return SyncResult.failed(
                SyncKind.FETCH_FAILED,
                str(err),
                reason=STORAGE_OPERATION_FAILED_REASON,
            )
        except CommandException as err:
            return SyncResult.failed(stage, str(err))
        except TimeoutError:
            return SyncResult.failed(
                stage, f"sync timed out after {timeout}s during {_STAGES[stage]}"
            )

        _LOGGER.info(
            "Kustomization %s apply output:\n%s",
            kustomization.namespaced_name,
            output,
        )
        return SyncResult.succeeded(artifact.revision or None)
