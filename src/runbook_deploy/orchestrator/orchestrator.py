"""Main orchestrator that coordinates collection, ordering and deployment."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import threading

from runbook_deploy.artifacts.collector import ArtifactCollector, CollectionResult
from runbook_deploy.artifacts.models import Artifact, SUPPORTED_EXTENSIONS
from runbook_deploy.artifacts.storage import LocalStorage
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.orchestrator.adaptive import AdaptiveRetryDeployer
from runbook_deploy.orchestrator.dependency_graph import DependencyGraphBuilder
from runbook_deploy.orchestrator.executor import (
    DeploymentMode,
    DeploymentResult,
    ProgressCallback,
    SequentialDeployer,
)
from runbook_deploy.orchestrator.sequencer import TopologicalSequencer
from runbook_deploy.source.base import SourceClient
from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DeploymentPlan:
    """Structural deploy order grouped by folder depth."""

    collection: CollectionResult
    layers: List[Tuple[int, List[Artifact]]]
    edge_count: int = 0

    @property
    def order(self) -> List[Artifact]:
        return [artifact for _, layer in self.layers for artifact in layer]


@dataclass
class RunReport:
    """Everything one run produced."""

    collection: CollectionResult
    result: DeploymentResult

    def is_success(self) -> bool:
        return self.result.is_success()


class DeploymentOrchestrator:
    """Coordinates collection and exactly one deployment strategy per run."""

    def __init__(
        self,
        source_client: SourceClient,
        deployment_client: DeploymentClient,
        storage: LocalStorage,
        root_folder: str = '',
        extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
        max_passes: Optional[int] = None
    ):
        """Initialize deployment orchestrator.

        Args:
            source_client: Lists and retrieves the source tree
            deployment_client: Pushes single artifacts to the target
            storage: Scratch storage for retrieved content
            root_folder: Folder inside the source tree that holds the artifacts
            extensions: File extensions treated as artifacts
            max_passes: Pass limit for adaptive mode
        """
        self.source_client = source_client
        self.deployment_client = deployment_client
        self.max_passes = max_passes

        self.collector = ArtifactCollector(
            source_client=source_client,
            storage=storage,
            root_folder=root_folder,
            extensions=extensions
        )
        self.graph_builder = DependencyGraphBuilder()
        self.sequencer = TopologicalSequencer()

        self.logger = get_logger(__name__)

    def collect(self) -> CollectionResult:
        """Collect artifacts from the source tree."""
        return self.collector.collect()

    def plan(self, collection: Optional[CollectionResult] = None) -> DeploymentPlan:
        """Compute the structural deploy order without deploying anything.

        Args:
            collection: Previously collected artifacts; collected when omitted

        Returns:
            DeploymentPlan with artifacts grouped deepest-first

        Raises:
            CyclicDependencyError: If the dependency graph has a cycle
            DependencyError: If depth data contradicts an edge
        """
        if collection is None:
            collection = self.collect()

        graph = self.graph_builder.build(collection.artifacts)
        layers = self.sequencer.layers(graph)

        self.logger.info(f"Planned {graph.size()} artifacts in {len(layers)} depth layer(s)")
        return DeploymentPlan(collection=collection, layers=layers, edge_count=len(graph.edges()))

    def deploy(
        self,
        mode: DeploymentMode = DeploymentMode.STRUCTURAL,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> RunReport:
        """Collect, order and deploy artifacts.

        Args:
            mode: Structural (folder depth) or adaptive (repeated passes)
            progress_callback: Optional callback invoked after every attempt
            cancel_event: Optional event checked between artifacts

        Returns:
            RunReport with collection and deployment results

        Raises:
            DeploymentError: On fatal errors (duplicates, cycles, credentials)
        """
        self.logger.info(f"Starting {mode.value} deployment")
        collection = self.collect()

        if mode == DeploymentMode.STRUCTURAL:
            ordered = self.plan(collection).order
            deployer = SequentialDeployer(
                self.deployment_client,
                progress_callback=progress_callback,
                cancel_event=cancel_event
            )
            result = deployer.deploy(ordered)
        else:
            deployer = AdaptiveRetryDeployer(
                self.deployment_client,
                max_passes=self.max_passes,
                progress_callback=progress_callback,
                cancel_event=cancel_event
            )
            result = deployer.deploy(collection.artifacts)

        if collection.has_failures():
            self.logger.warning(
                f"{len(collection.failures)} artifact(s) were not deployed because retrieval failed"
            )

        return RunReport(collection=collection, result=result)
