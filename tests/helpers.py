"""Test doubles shared by the test modules."""

from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Set

import requests

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.source.base import SourceClient
from runbook_deploy.source.models import EntryType, SourceEntry
from runbook_deploy.utils.errors import ArtifactDeployError


class OracleClient(DeploymentClient):
    """Target that accepts an artifact only once all of its dependencies are deployed."""

    def __init__(self, dependencies: Optional[Dict[str, Set[str]]] = None, broken: Iterable[str] = ()):
        self.dependencies = dependencies or {}
        self.broken = set(broken)
        self.deployed: List[str] = []
        self.calls: List[str] = []

    def deploy(self, artifact: Artifact) -> None:
        self.calls.append(artifact.name)
        if artifact.name in self.broken:
            raise ArtifactDeployError(f"{artifact.name} does not parse")
        missing = sorted(self.dependencies.get(artifact.name, set()) - set(self.deployed))
        if missing:
            raise ArtifactDeployError(f"{artifact.name} references missing runbooks: {', '.join(missing)}")
        self.deployed.append(artifact.name)


class InMemorySourceClient(SourceClient):
    """Source tree held in a dict of path -> content."""

    def __init__(self, files: Dict[str, bytes], errors: Optional[Dict[str, Exception]] = None):
        self.files = files
        self.errors = errors or {}
        self.fetched: List[str] = []

    def list_entries(self) -> List[SourceEntry]:
        entries = []
        seen_folders = set()
        for path in self.files:
            for parent in reversed(PurePosixPath(path).parents):
                folder = parent.as_posix()
                if folder != '.' and folder not in seen_folders:
                    seen_folders.add(folder)
                    entries.append(SourceEntry(path=folder, type=EntryType.TREE))
            entries.append(SourceEntry(path=path, type=EntryType.BLOB, url=f"mem://{path}"))
        return entries

    def fetch(self, url: str) -> bytes:
        path = url[len("mem://"):]
        self.fetched.append(path)
        if path in self.errors:
            raise self.errors[path]
        return self.files[path]


def make_http_error(status: int, body: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> requests.HTTPError:
    """Build an HTTPError carrying a real response object."""
    response = requests.Response()
    response.status_code = status
    response.url = "https://example.invalid/resource"
    response.reason = "Reason"
    response.headers.update(headers or {})
    response._content = (body or "").encode()
    return requests.HTTPError(f"{status} error", response=response)
