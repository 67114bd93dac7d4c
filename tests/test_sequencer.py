"""Tests for the topological sequencer."""

import pytest

from runbook_deploy.orchestrator.dependency_graph import DependencyGraph, DependencyGraphBuilder
from runbook_deploy.orchestrator.sequencer import TopologicalSequencer
from runbook_deploy.utils.errors import CyclicDependencyError, DependencyError


def _names(artifacts):
    return [a.name for a in artifacts]


class TestSequence:
    """Tests for producing a deploy order."""

    def test_deepest_first(self, make_artifact) -> None:
        artifacts = [
            make_artifact("Root.ps1"),
            make_artifact("a/A.ps1"),
            make_artifact("a/b/B.ps1"),
            make_artifact("a/b/c/C.ps1"),
        ]
        graph = DependencyGraphBuilder().build(artifacts)
        assert _names(TopologicalSequencer().sequence(graph)) == ["C", "B", "A", "Root"]

    def test_every_edge_respected(self, make_artifact) -> None:
        artifacts = [
            make_artifact("Root.ps1"),
            make_artifact("x/X1.ps1"),
            make_artifact("x/deep/XD.ps1"),
            make_artifact("y/Y1.ps1"),
            make_artifact("y/deep/YD.ps1"),
            make_artifact("y/deep/deeper/YDD.ps1"),
            make_artifact("Other.ps1"),
        ]
        graph = DependencyGraphBuilder().build(artifacts)
        ordered = _names(TopologicalSequencer().sequence(graph))

        assert sorted(ordered) == sorted(_names(artifacts))
        for dependency, dependent in graph.edges():
            assert ordered.index(dependency) < ordered.index(dependent)

    def test_stable_within_depth(self, make_artifact) -> None:
        """Artifacts of equal depth keep collection order."""
        artifacts = [
            make_artifact("z/Zed.ps1"),
            make_artifact("a/Alpha.ps1"),
            make_artifact("m/Mid.ps1"),
        ]
        graph = DependencyGraphBuilder().build(artifacts)
        assert _names(TopologicalSequencer().sequence(graph)) == ["Zed", "Alpha", "Mid"]

    def test_layers(self, make_artifact) -> None:
        artifacts = [make_artifact("R.ps1"), make_artifact("a/A.ps1"), make_artifact("b/B.ps1")]
        layers = TopologicalSequencer().layers(DependencyGraphBuilder().build(artifacts))

        assert [(depth, _names(layer)) for depth, layer in layers] == [(1, ["A", "B"]), (0, ["R"])]

    def test_empty_graph(self) -> None:
        assert TopologicalSequencer().sequence(DependencyGraph()) == []


class TestRejection:
    """Tests for graphs that cannot be ordered."""

    def test_cycle_rejected_without_partial_order(self, make_artifact) -> None:
        graph = DependencyGraph()
        for path in ("a/P.ps1", "b/Q.ps1", "R.ps1"):
            graph.add_artifact(make_artifact(path))
        graph.add_dependency("P", "Q")
        graph.add_dependency("Q", "P")

        with pytest.raises(CyclicDependencyError) as exc_info:
            TopologicalSequencer().sequence(graph)
        assert set(exc_info.value.cycle) == {"P", "Q"}

    def test_inconsistent_depth_rejected(self, make_artifact) -> None:
        """An edge the depth order cannot satisfy means corrupt depth data."""
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("Shallow.ps1"))
        graph.add_artifact(make_artifact("a/Deeper.ps1"))
        graph.add_dependency("Shallow", "Deeper")

        with pytest.raises(DependencyError) as exc_info:
            TopologicalSequencer().sequence(graph)
        assert not isinstance(exc_info.value, CyclicDependencyError)
        assert exc_info.value.is_fatal()

    def test_equal_depth_edge_rejected(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("a/First.ps1"))
        graph.add_artifact(make_artifact("b/Second.ps1"))
        graph.add_dependency("Second", "First")

        with pytest.raises(DependencyError):
            TopologicalSequencer().sequence(graph)
