"""Tests for the kubectl library."""

from pathlib import Path

import pytest

from flux_sync.config import CommandConfig
from flux_sync.exceptions import ApplyException
from flux_sync.kubectl import KubectlApplier


def test_command(tmp_path: Path) -> None:
    """Test the apply command line."""
    applier = KubectlApplier()
    cmd = applier.command(tmp_path / "apps.yaml", "")
    assert cmd.cmd == ["kubectl", "apply", "-f", "apps.yaml"]
    assert cmd.cwd == tmp_path


def test_command_prune(tmp_path: Path) -> None:
    """Test the prune selector and cluster flags."""
    applier = KubectlApplier(
        CommandConfig(kubeconfig="/etc/kubeconfig", context="prod")
    )
    cmd = applier.command(tmp_path / "apps.yaml", "app=podinfo")
    assert cmd.cmd == [
        "kubectl",
        "apply",
        "-f",
        "apps.yaml",
        "--prune",
        "-l",
        "app=podinfo",
        "--kubeconfig",
        "/etc/kubeconfig",
        "--context",
        "prod",
    ]


async def test_apply(tmp_path: Path) -> None:
    """Test the output of the apply is returned."""
    manifest = tmp_path / "apps.yaml"
    manifest.write_text("")
    applier = KubectlApplier(CommandConfig(kubectl_bin="echo"))
    output = await applier.apply(manifest, "app=podinfo", deadline=None)
    assert output == "apply -f apps.yaml --prune -l app=podinfo\n"


async def test_apply_failure(tmp_path: Path) -> None:
    """Test a failed apply."""
    manifest = tmp_path / "apps.yaml"
    manifest.write_text("")
    applier = KubectlApplier(CommandConfig(kubectl_bin="false"))
    with pytest.raises(ApplyException, match="kubectl apply error: .*return code 1"):
        await applier.apply(manifest, "", deadline=None)
