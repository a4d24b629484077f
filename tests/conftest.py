"""Test fixtures for flux-sync."""

from pathlib import Path

import pytest

from flux_sync.config import ControllerConfig
from flux_sync.controller import KustomizationController
from flux_sync.store import InMemoryStore

from .common import FakeApplier, FakeFetcher, FakeRenderer


@pytest.fixture
def store() -> InMemoryStore:
    """Create an in-memory store for testing."""
    return InMemoryStore()


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """Directory holding the sync workspaces."""
    return tmp_path / "workspaces"


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def applier() -> FakeApplier:
    return FakeApplier()


@pytest.fixture
def controller_config(workspace_root: Path) -> ControllerConfig:
    return ControllerConfig(
        sync_timeout=5.0,
        error_requeue_interval=0.05,
        workspace_root=workspace_root,
    )


@pytest.fixture
def controller(
    store: InMemoryStore,
    controller_config: ControllerConfig,
    fetcher: FakeFetcher,
    renderer: FakeRenderer,
    applier: FakeApplier,
) -> KustomizationController:
    """Create a KustomizationController with fake sync steps."""
    return KustomizationController(
        store,
        controller_config,
        fetcher=fetcher,
        renderer=renderer,
        applier=applier,
    )
