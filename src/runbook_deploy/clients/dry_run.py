"""Deployment client that only records what would be deployed."""

from typing import List

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class DryRunDeploymentClient(DeploymentClient):
    """Accepts every artifact without contacting a target."""

    def __init__(self):
        self.deployed: List[str] = []

    def deploy(self, artifact: Artifact) -> None:
        logger.info(
            f"[dry-run] Would deploy {artifact.name} as {artifact.kind.runbook_type} "
            f"({len(artifact.content)} bytes from {artifact.source_path})"
        )
        self.deployed.append(artifact.name)
