"""Deployment target interface."""

from abc import ABC, abstractmethod

from runbook_deploy.artifacts.models import Artifact


class DeploymentClient(ABC):
    """Base class for deployment targets.

    ``deploy`` returns normally when the target accepted the artifact and raises
    when it did not. Callers treat any failure as retryable in principle and
    any success as durable for the rest of the run; they never deploy an
    already-deployed artifact again.
    """

    @abstractmethod
    def deploy(self, artifact: Artifact) -> None:
        """Deploy a single artifact.

        Args:
            artifact: The artifact to push to the target

        Raises:
            Exception: If the target rejected the artifact
        """
        pass

    def close(self) -> None:
        """Release any held connections."""
