"""Tests for the flux-sync command line tool."""

import json
from pathlib import Path
import shutil

import pytest
import yaml

from flux_sync.tool.flux_sync import main

from ..common import git_repository_doc, kustomization_doc, write_tarball

TESTDATA = Path("tests/testdata/cluster")

requires_curl = pytest.mark.skipif(
    shutil.which("curl") is None or shutil.which("tar") is None,
    reason="curl and tar are required",
)


def test_get(capsys: pytest.CaptureFixture[str]) -> None:
    """Test printing the Kustomizations as a table."""
    main(["get", str(TESTDATA)])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == [
        "NAMESPACE",
        "NAME",
        "SOURCE",
        "PATH",
        "INTERVAL",
        "READY",
    ]
    assert lines[1].split() == [
        "flux-system",
        "apps",
        "GitRepository/flux-system",
        "./apps",
        "10m",
        "Unknown",
    ]
    assert lines[2].split()[1] == "infra"
    assert len(lines) == 3


def test_get_yaml(capsys: pytest.CaptureFixture[str]) -> None:
    """Test printing the Kustomizations as yaml documents."""
    main(["get", str(TESTDATA), "-o", "yaml"])
    docs = list(yaml.safe_load_all(capsys.readouterr().out))
    assert [doc["metadata"]["name"] for doc in docs] == ["apps", "infra"]
    assert docs[0]["apiVersion"] == "kustomize.fluxcd.io/v1alpha1"
    assert docs[0]["kind"] == "Kustomization"
    assert docs[1]["spec"]["interval"] == "1h"


def test_get_json(capsys: pytest.CaptureFixture[str]) -> None:
    """Test printing the Kustomizations as json."""
    main(["get", str(TESTDATA), "-o", "json"])
    docs = json.loads(capsys.readouterr().out)
    assert docs[0]["spec"]["sourceRef"] == {
        "name": "flux-system",
        "kind": "GitRepository",
    }


def test_get_empty(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test a directory without Kustomizations."""
    main(["get", str(tmp_path)])
    assert "No Kustomizations found" in capsys.readouterr().out


def test_missing_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test errors are reported with a non-zero exit code."""
    with pytest.raises(SystemExit) as exc_info:
        main(["get", str(tmp_path / "missing")])
    assert exc_info.value.code == 1
    assert "flux-sync error:" in capsys.readouterr().err


def write_cluster(path: Path, artifact_url: str | None) -> None:
    """Write a Kustomization and its source to a directory."""
    path.mkdir()
    docs = [
        git_repository_doc(name="flux-system", url=artifact_url),
        kustomization_doc(source="flux-system", prune="app=podinfo"),
    ]
    (path / "cluster.yaml").write_text(yaml.dump_all(docs))


@requires_curl
def test_run_once(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test syncing each Kustomization once."""
    tarball = tmp_path / "artifact.tar.gz"
    write_tarball(tarball, {"apps/kustomization.yaml": "resources: []\n"})
    cluster = tmp_path / "cluster"
    write_cluster(cluster, tarball.as_uri())
    workspaces = tmp_path / "workspaces"

    main(
        [
            "run",
            str(cluster),
            "--once",
            "--workspace-root",
            str(workspaces),
            "--kustomize-bin",
            "echo",
            "--kubectl-bin",
            "echo",
        ]
    )

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split()[:4] == ["NAMESPACE", "NAME", "READY", "REASON"]
    assert lines[1].split()[:4] == ["flux-system", "apps", "True", "ApplySucceeded"]
    assert not list(workspaces.iterdir())


def test_run_once_not_ready(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test a Kustomization that can't be synced fails the command."""
    cluster = tmp_path / "cluster"
    write_cluster(cluster, None)

    with pytest.raises(SystemExit) as exc_info:
        main(["run", str(cluster), "--once"])
    assert exc_info.value.code == 1

    captured = capsys.readouterr()
    assert "ArtifactMissing" in captured.out
    assert "1 of 1 Kustomizations are not ready" in captured.err


def test_run_no_kustomizations(tmp_path: Path) -> None:
    """Test running against a directory without Kustomizations."""
    with pytest.raises(SystemExit) as exc_info:
        main(["run", str(tmp_path), "--once"])
    assert exc_info.value.code == 1


def test_run_invalid_flags(tmp_path: Path) -> None:
    """Test invalid flag values are rejected."""
    with pytest.raises(SystemExit) as exc_info:
        main(["run", str(tmp_path), "--max-concurrent-reconciles", "0"])
    assert exc_info.value.code == 1
