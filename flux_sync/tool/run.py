"""Flux-sync run action."""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import Any, cast

from flux_sync.config import CommandConfig, ControllerConfig, ManagerConfig
from flux_sync.exceptions import FluxException
from flux_sync.loader import load_store
from flux_sync.manager import Manager
from flux_sync.manifest import CONDITION_TRUE, KUSTOMIZE_KIND, Kustomization
from flux_sync.store import InMemoryStore, Store

from .format import PrintFormatter

_LOGGER = logging.getLogger(__name__)

STATUS_COLUMNS = ["namespace", "name", "ready", "reason", "revision", "message"]


def build_config(**kwargs: Any) -> ManagerConfig:
    """Build the manager configuration from command line flags."""
    defaults = ControllerConfig()
    return ManagerConfig(
        max_concurrent_reconciles=kwargs["max_concurrent_reconciles"],
        controller=ControllerConfig(
            sync_timeout=kwargs["sync_timeout"],
            error_requeue_interval=defaults.error_requeue_interval,
            workspace_root=kwargs.get("workspace_root"),
        ),
        commands=CommandConfig(
            kustomize_bin=kwargs.get("kustomize_bin") or "kustomize",
            kubectl_bin=kwargs.get("kubectl_bin") or "kubectl",
            kubeconfig=kwargs.get("kubeconfig"),
            context=kwargs.get("context"),
        ),
    )


def status_rows(store: Store) -> list[dict[str, Any]]:
    """Return a status table row for each Kustomization in the store."""
    rows = []
    for obj in store.list_objects(KUSTOMIZE_KIND):
        if not isinstance(obj, Kustomization):
            continue
        condition = obj.status.ready_condition
        rows.append(
            {
                "namespace": obj.namespace,
                "name": obj.name,
                "ready": condition.status if condition else "Unknown",
                "reason": condition.reason if condition else "",
                "revision": obj.status.last_applied_revision or "",
                "message": obj.ready_message(),
            }
        )
    return rows


class RunAction:
    """Sync the Kustomizations found in a local directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        defaults = ManagerConfig()
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "run",
                help="Sync Kustomizations to the cluster",
                description=(
                    "Load Kustomization and GitRepository objects from a path and "
                    "periodically build and apply each Kustomization"
                ),
            ),
        )
        args.add_argument(
            "path",
            help="File or directory containing Kustomization and GitRepository objects",
            type=pathlib.Path,
        )
        args.add_argument(
            "--once",
            default=False,
            action=BooleanOptionalAction,
            help="Sync each Kustomization a single time, print the results and exit",
        )
        args.add_argument(
            "--sync-timeout",
            type=float,
            default=defaults.controller.sync_timeout,
            help="Seconds allowed for the fetch, build and apply of one sync",
        )
        args.add_argument(
            "--workspace-root",
            type=pathlib.Path,
            default=None,
            help="Directory in which temporary sync workspaces are created",
        )
        args.add_argument(
            "--max-concurrent-reconciles",
            type=int,
            default=defaults.max_concurrent_reconciles,
            help="Number of Kustomizations synced at the same time",
        )
        args.add_argument(
            "--kustomize-bin",
            default=defaults.commands.kustomize_bin,
            help="Name or path of the kustomize binary",
        )
        args.add_argument(
            "--kubectl-bin",
            default=defaults.commands.kubectl_bin,
            help="Name or path of the kubectl binary",
        )
        args.add_argument(
            "--kubeconfig",
            default=None,
            help="Kubeconfig file used by kubectl",
        )
        args.add_argument(
            "--context",
            default=None,
            help="Kubeconfig context used by kubectl",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        once: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        if kwargs["max_concurrent_reconciles"] < 1:
            raise FluxException("--max-concurrent-reconciles must be at least 1")
        if kwargs["sync_timeout"] <= 0:
            raise FluxException("--sync-timeout must be positive")

        store = InMemoryStore()
        await load_store(store, path)
        if not store.list_objects(KUSTOMIZE_KIND):
            raise FluxException(f"No Kustomizations found in {path}")

        manager = Manager(store, build_config(**kwargs))
        if not once:
            await manager.run()
            return

        await manager.reconcile_all()
        rows = status_rows(store)
        PrintFormatter(STATUS_COLUMNS).print(rows)
        if failed := [row for row in rows if row["ready"] != CONDITION_TRUE]:
            raise FluxException(
                f"{len(failed)} of {len(rows)} Kustomizations are not ready"
            )
