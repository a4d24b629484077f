"""Flux-sync get action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import Any, cast

from flux_sync.manifest import (
    KUSTOMIZE_DOMAIN,
    FLUX_DOMAIN_SUFFIX,
    KUSTOMIZE_KIND,
    Kustomization,
    format_duration,
)
from flux_sync.store import InMemoryStore
from flux_sync.loader import load_store

from .format import JsonFormatter, PrintFormatter, StructFormatter, YamlFormatter

_LOGGER = logging.getLogger(__name__)

API_VERSION = f"{KUSTOMIZE_DOMAIN}{FLUX_DOMAIN_SUFFIX}/v1alpha1"
COLUMNS = ["namespace", "name", "source", "path", "interval", "ready"]

_FORMATTERS: dict[str, type[StructFormatter]] = {
    "yaml": YamlFormatter,
    "json": JsonFormatter,
}


def summary(ks: Kustomization) -> dict[str, Any]:
    """Return the table row for a Kustomization."""
    condition = ks.status.ready_condition
    return {
        "namespace": ks.namespace,
        "name": ks.name,
        "source": f"{ks.spec.source_ref.kind}/{ks.spec.source_ref.name}",
        "path": ks.spec.path or ".",
        "interval": format_duration(ks.spec.interval),
        "ready": condition.status if condition else "Unknown",
    }


def document(ks: Kustomization) -> dict[str, Any]:
    """Return the Kustomization as a kubernetes style document."""
    return {"apiVersion": API_VERSION, "kind": ks.kind, **ks.to_dict()}


async def load_kustomizations(path: pathlib.Path) -> list[Kustomization]:
    """Load the store from the path and return its Kustomizations."""
    store = InMemoryStore()
    await load_store(store, path)
    return [
        obj
        for obj in store.list_objects(KUSTOMIZE_KIND)
        if isinstance(obj, Kustomization)
    ]


class GetAction:
    """Get details about the Kustomizations found in a local directory."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "get",
                aliases=["ks"],
                help="Print Kustomization objects",
                description="Print the Kustomizations and their sources without syncing",
            ),
        )
        args.add_argument(
            "path",
            help="File or directory containing Kustomization and GitRepository objects",
            type=pathlib.Path,
        )
        args.add_argument(
            "--output",
            "-o",
            choices=["yaml", "json"],
            default=None,
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        output: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        kustomizations = await load_kustomizations(path)
        if output:
            _FORMATTERS[output]().print([document(ks) for ks in kustomizations])
            return
        if not kustomizations:
            print(f"No Kustomizations found in {path}")
            return
        PrintFormatter(COLUMNS).print([summary(ks) for ks in kustomizations])
