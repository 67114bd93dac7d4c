"""Pytest configuration and fixtures."""

import logging
import tempfile
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Generator, Optional

import pytest

from helpers import InMemorySourceClient
from runbook_deploy.artifacts.models import Artifact, ArtifactKind


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_artifact() -> Callable[..., Artifact]:
    """Build artifacts whose depth follows from their path unless given explicitly."""

    def _make(
        path: str,
        depth: Optional[int] = None,
        kind: ArtifactKind = ArtifactKind.SCRIPT,
        content: bytes = b"Write-Output 'ok'",
        root_folder: str = "",
    ) -> Artifact:
        relative = PurePosixPath(path)
        if root_folder:
            relative = relative.relative_to(root_folder)
        return Artifact(
            name=PurePosixPath(path).stem,
            source_path=path,
            source_url=f"mem://{path}",
            kind=kind,
            folder_depth=len(relative.parts) - 1 if depth is None else depth,
            content=content,
            root_folder=root_folder,
        )

    return _make


@pytest.fixture
def sample_tree() -> Dict[str, bytes]:
    """Runbook tree three folders deep plus some non-runbook files."""
    return {
        "runbooks/Start-Nightly.ps1": b"Start-Backup\n",
        "runbooks/README.md": b"# Runbooks",
        "runbooks/backup/Start-Backup.ps1": b"Invoke-Snapshot\n",
        "runbooks/backup/snapshots/Invoke-Snapshot.ps1": b"<# helper #>\nworkflow Invoke-Snapshot {\n}\n",
        "runbooks/reports/Send-Report.graphrunbook": b"{}",
        "tools/lint.ps1": b"# not a runbook",
    }


@pytest.fixture
def sample_source(sample_tree: Dict[str, bytes]) -> InMemorySourceClient:
    return InMemorySourceClient(sample_tree)


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Undo root logger changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
