"""Turns a depth-layered dependency graph into a deploy order."""

from collections import defaultdict
from typing import Dict, List, Tuple

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.orchestrator.dependency_graph import DependencyGraph
from runbook_deploy.utils.errors import DependencyError, ErrorContext
from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class TopologicalSequencer:
    """Orders artifacts deepest-first.

    The graph is layered by depth, so a stable bucket sort by decreasing depth
    is a valid topological order in linear time.
    """

    def layers(self, graph: DependencyGraph) -> List[Tuple[int, List[Artifact]]]:
        """Group artifacts by depth, deepest first.

        Args:
            graph: Dependency graph to order

        Returns:
            (depth, artifacts) pairs; artifacts keep graph insertion order

        Raises:
            CyclicDependencyError: If the graph contains a cycle
            DependencyError: If depth data contradicts an edge
        """
        graph.validate()

        buckets: Dict[int, List[Artifact]] = defaultdict(list)
        for artifact in graph.artifacts():
            buckets[artifact.folder_depth].append(artifact)

        layers = [(depth, buckets[depth]) for depth in sorted(buckets, reverse=True)]
        self._verify(graph, [a for _, layer in layers for a in layer])
        return layers

    def sequence(self, graph: DependencyGraph) -> List[Artifact]:
        """Produce a total deploy order.

        For every edge (dependency -> dependent) the dependency comes first.
        Nothing is returned if the graph is cyclic or its depth data is corrupt.

        Args:
            graph: Dependency graph to order

        Returns:
            Artifacts in deploy order

        Raises:
            CyclicDependencyError: If the graph contains a cycle
            DependencyError: If depth data contradicts an edge
        """
        ordered = [artifact for _, layer in self.layers(graph) for artifact in layer]
        logger.info(f"Sequenced {len(ordered)} artifacts by folder depth")
        return ordered

    def _verify(self, graph: DependencyGraph, ordered: List[Artifact]) -> None:
        position = {artifact.name: index for index, artifact in enumerate(ordered)}
        for dependency, dependent in graph.edges():
            if position[dependency] >= position[dependent]:
                raise DependencyError(
                    f"Depth data is inconsistent: '{dependency}' must deploy before "
                    f"'{dependent}' but is not deeper in the folder tree",
                    context=ErrorContext(artifact=dependency, operation='sequence'),
                    suggestions=['Re-run collection; folder depths do not match artifact paths']
                )
