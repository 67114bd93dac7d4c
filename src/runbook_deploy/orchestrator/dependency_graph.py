"""Dependency graph built from folder nesting depth."""

from typing import Dict, List, Set, Optional, Tuple, Iterable
from dataclasses import dataclass, field
from collections import defaultdict, deque

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.utils.errors import CyclicDependencyError, DependencyError, ErrorContext
from runbook_deploy.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DependencyNode:
    """Node in the dependency graph."""

    name: str
    artifact: Artifact
    dependencies: Set[str] = field(default_factory=set)  # Artifacts that must deploy first
    dependents: Set[str] = field(default_factory=set)  # Artifacts that deploy after this one


class DependencyGraph:
    """Directed graph of artifacts; edges run from dependency to dependent."""

    def __init__(self):
        """Initialize empty dependency graph."""
        self.nodes: Dict[str, DependencyNode] = {}

    def add_artifact(self, artifact: Artifact) -> None:
        """Add an artifact as a node.

        Args:
            artifact: Artifact to add

        Raises:
            DependencyError: If a different artifact with the same name is present
        """
        existing = self.nodes.get(artifact.name)
        if existing is not None:
            if existing.artifact.source_path != artifact.source_path:
                raise DependencyError(
                    f"Artifact '{artifact.name}' already present from '{existing.artifact.source_path}'",
                    context=ErrorContext(artifact=artifact.name, source_path=artifact.source_path)
                )
            existing.artifact = artifact
            return

        self.nodes[artifact.name] = DependencyNode(name=artifact.name, artifact=artifact)

    def add_dependency(self, dependency: str, dependent: str) -> None:
        """Record that ``dependency`` must deploy before ``dependent``.

        Args:
            dependency: Name of the artifact deployed first
            dependent: Name of the artifact that needs it

        Raises:
            DependencyError: If either artifact is not in the graph
        """
        for name in (dependency, dependent):
            if name not in self.nodes:
                raise DependencyError(
                    f"Cannot add edge {dependency} -> {dependent}: '{name}' is not in the graph",
                    context=ErrorContext(artifact=name)
                )
        self.nodes[dependent].dependencies.add(dependency)
        self.nodes[dependency].dependents.add(dependent)

    def get_dependencies(self, name: str) -> Set[str]:
        """Get direct dependencies of an artifact."""
        if name not in self.nodes:
            return set()
        return self.nodes[name].dependencies.copy()

    def get_dependents(self, name: str) -> Set[str]:
        """Get direct dependents of an artifact."""
        if name not in self.nodes:
            return set()
        return self.nodes[name].dependents.copy()

    def get_all_dependencies(self, name: str) -> Set[str]:
        """Get all transitive dependencies of an artifact.

        Args:
            name: Artifact name

        Returns:
            Names of every artifact reachable through dependency edges
        """
        visited = set()
        queue = deque([name])

        while queue:
            current = queue.popleft()
            if current in visited:
                continue

            visited.add(current)

            if current in self.nodes:
                for dep in self.nodes[current].dependencies:
                    if dep not in visited:
                        queue.append(dep)

        visited.discard(name)
        return visited

    def edges(self) -> List[Tuple[str, str]]:
        """All (dependency, dependent) pairs, in node insertion order."""
        order = {name: index for index, name in enumerate(self.nodes)}
        result = []
        for name, node in self.nodes.items():
            for dependent in sorted(node.dependents, key=order.__getitem__):
                result.append((name, dependent))
        return result

    def artifacts(self) -> List[Artifact]:
        """Artifacts in insertion order."""
        return [node.artifact for node in self.nodes.values()]

    def detect_circular_dependencies(self) -> Optional[List[str]]:
        """Detect circular dependencies in the graph.

        Returns:
            List of artifact names forming a cycle, or None if no cycle exists
        """
        # White (0): unvisited, Gray (1): visiting, Black (2): visited
        color = {name: 0 for name in self.nodes}
        parent: Dict[str, str] = {}

        def dfs(name: str) -> Optional[List[str]]:
            color[name] = 1

            for dependent in self.nodes[name].dependents:
                if color[dependent] == 1:
                    # Back edge: walk parents from name up to dependent
                    cycle = [dependent]
                    current = name
                    while current != dependent:
                        cycle.append(current)
                        current = parent.get(current)
                        if current is None:
                            break
                    cycle.append(dependent)
                    return list(reversed(cycle))

                if color[dependent] == 0:
                    parent[dependent] = name
                    cycle = dfs(dependent)
                    if cycle:
                        return cycle

            color[name] = 2
            return None

        for name in self.nodes:
            if color[name] == 0:
                cycle = dfs(name)
                if cycle:
                    return cycle

        return None

    def validate(self) -> None:
        """Validate the dependency graph.

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        cycle = self.detect_circular_dependencies()
        if cycle:
            raise CyclicDependencyError(cycle)

    def has_artifact(self, name: str) -> bool:
        return name in self.nodes

    def size(self) -> int:
        return len(self.nodes)

    def is_empty(self) -> bool:
        return len(self.nodes) == 0


class DependencyGraphBuilder:
    """Derives a dependency graph from folder nesting.

    Every artifact at depth *d* becomes a dependency of every artifact at depth
    *d-1* whose folder is one of its ancestor folders. Artifacts at equal depth,
    and artifacts in sibling folders, get no edge between them. This is a
    heuristic: references between sibling folders are invisible to it.
    """

    def build(self, artifacts: Iterable[Artifact]) -> DependencyGraph:
        """Build the graph.

        Args:
            artifacts: Artifacts in collection order

        Returns:
            DependencyGraph with nodes in input order
        """
        graph = DependencyGraph()
        by_layer: Dict[Tuple[int, str], List[Artifact]] = defaultdict(list)

        artifacts = list(artifacts)
        for artifact in artifacts:
            graph.add_artifact(artifact)
            by_layer[(artifact.folder_depth, artifact.folder)].append(artifact)

        edge_count = 0
        for artifact in artifacts:
            if artifact.folder_depth == 0:
                continue
            # Proper ancestors only; the artifact's own folder is excluded
            for folder in artifact.ancestors[:-1]:
                for dependent in by_layer.get((artifact.folder_depth - 1, folder), []):
                    graph.add_dependency(artifact.name, dependent.name)
                    edge_count += 1

        logger.debug(f"Built dependency graph: {graph.size()} artifacts, {edge_count} edges")
        return graph
