"""Helpers shared by the flux-sync tests."""

import asyncio
import io
from pathlib import Path
import tarfile
from typing import Any

from flux_sync.kubectl import Applier
from flux_sync.kustomize import Renderer
from flux_sync.manifest import GitRepository, Kustomization
from flux_sync.source import Fetcher


NAMESPACE = "flux-system"
ARTIFACT_URL = "http://source-controller.flux-system/gitrepository/flux-system/repo.tar.gz"
REVISION = "main/4ffd0fb6c3b1f6f1b1c4e0a7a4c1c6b4e6c2d8a9"

MANIFESTS = b"""---
apiVersion: v1
kind: ConfigMap
metadata:
  name: podinfo
  namespace: apps
---
apiVersion: v1
kind: Service
metadata:
  name: podinfo
  namespace: apps
"""


def kustomization_doc(
    name: str = "apps",
    namespace: str = NAMESPACE,
    source: str = "repo",
    path: str = "./apps",
    prune: str | None = None,
    interval: str = "10m",
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Return a Kustomization document."""
    spec: dict[str, Any] = {
        "interval": interval,
        "path": path,
        "sourceRef": {"kind": "GitRepository", "name": source},
    }
    if prune is not None:
        spec["prune"] = prune
    return {
        "apiVersion": "kustomize.fluxcd.io/v1alpha1",
        "kind": "Kustomization",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "annotations": annotations or {},
        },
        "spec": spec,
    }


def git_repository_doc(
    name: str = "repo",
    namespace: str = NAMESPACE,
    url: str | None = ARTIFACT_URL,
    revision: str = REVISION,
) -> dict[str, Any]:
    """Return a GitRepository document, with an artifact unless url is None."""
    doc: dict[str, Any] = {
        "apiVersion": "source.fluxcd.io/v1alpha1",
        "kind": "GitRepository",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"url": "https://github.com/example/repo"},
    }
    if url is not None:
        doc["status"] = {"artifact": {"url": url, "revision": revision}}
    return doc


def write_tarball(path: Path, files: dict[str, str]) -> None:
    """Write a gzipped tarball with a single top level directory."""
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(f"repo-main/{name}")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))


def make_kustomization(**kwargs: Any) -> Kustomization:
    return Kustomization.parse_doc(kustomization_doc(**kwargs))


def make_git_repository(**kwargs: Any) -> GitRepository:
    return GitRepository.parse_doc(git_repository_doc(**kwargs))


class FakeFetcher(Fetcher):
    """Writes a fixed set of files into the workspace."""

    def __init__(
        self, error: Exception | None = None, delay: float = 0
    ) -> None:
        self.error = error
        self.delay = delay
        self.urls: list[str] = []
        self.work_dirs: list[Path] = []
        self.before_fetch: Any = None

    async def fetch(self, url: str, dest: Path, deadline: float | None) -> None:
        self.urls.append(url)
        self.work_dirs.append(dest)
        if self.before_fetch is not None:
            self.before_fetch()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        (dest / "apps").mkdir()
        (dest / "apps" / "kustomization.yaml").write_text("resources: []\n")


class FakeRenderer(Renderer):
    """Returns fixed manifests."""

    def __init__(
        self,
        content: bytes = MANIFESTS,
        error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.content = content
        self.error = error
        self.delay = delay
        self.paths: list[str] = []

    async def render(self, work_dir: Path, path: str, deadline: float | None) -> bytes:
        self.paths.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.content


class FakeApplier(Applier):
    """Records the manifests it was asked to apply."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.applied: list[tuple[str, bytes, str]] = []

    async def apply(
        self, manifest_path: Path, prune: str, deadline: float | None
    ) -> str:
        self.applied.append((manifest_path.name, manifest_path.read_bytes(), prune))
        if self.error is not None:
            raise self.error
        return "configmap/podinfo created\nservice/podinfo created\n"


