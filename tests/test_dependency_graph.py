"""Tests for the dependency graph and its builder."""

import pytest

from runbook_deploy.orchestrator.dependency_graph import DependencyGraph, DependencyGraphBuilder
from runbook_deploy.utils.errors import CyclicDependencyError, DependencyError


@pytest.fixture
def tree_artifacts(make_artifact):
    """Root, two first-level folders and one second-level folder."""
    return [
        make_artifact("Root.ps1"),
        make_artifact("a/A1.ps1"),
        make_artifact("a/A2.ps1"),
        make_artifact("a/b/B.ps1"),
        make_artifact("c/C.ps1"),
    ]


class TestDependencyGraphBuilder:
    """Tests for deriving edges from folder nesting."""

    def test_deeper_artifacts_are_dependencies(self, tree_artifacts) -> None:
        graph = DependencyGraphBuilder().build(tree_artifacts)

        assert graph.get_dependencies("Root") == {"A1", "A2", "C"}
        assert graph.get_dependencies("A1") == {"B"}
        assert graph.get_dependencies("A2") == {"B"}
        assert graph.get_dependencies("B") == set()
        assert graph.get_dependents("B") == {"A1", "A2"}

    def test_equal_depth_has_no_edges(self, tree_artifacts) -> None:
        graph = DependencyGraphBuilder().build(tree_artifacts)
        for first in ("A1", "A2", "C"):
            assert graph.get_dependencies(first) & {"A1", "A2", "C"} == set()

    def test_sibling_folders_are_independent(self, tree_artifacts) -> None:
        """Artifacts under c/ have nothing to do with artifacts under a/."""
        graph = DependencyGraphBuilder().build(tree_artifacts)
        assert "B" not in graph.get_all_dependencies("C")
        assert graph.get_all_dependencies("Root") == {"A1", "A2", "B", "C"}

    def test_only_adjacent_layers_are_linked(self, make_artifact) -> None:
        """A depth-2 artifact is not a direct dependency of a depth-0 artifact."""
        graph = DependencyGraphBuilder().build([
            make_artifact("Top.ps1"),
            make_artifact("x/y/Deep.ps1"),
        ])
        assert graph.get_dependencies("Top") == set()
        assert graph.edges() == []

    def test_node_order_follows_input(self, tree_artifacts) -> None:
        graph = DependencyGraphBuilder().build(tree_artifacts)
        assert [a.name for a in graph.artifacts()] == ["Root", "A1", "A2", "B", "C"]

    def test_edges_are_reproducible(self, tree_artifacts) -> None:
        first = DependencyGraphBuilder().build(tree_artifacts).edges()
        second = DependencyGraphBuilder().build(tree_artifacts).edges()
        assert first == second
        assert first == [
            ("A1", "Root"),
            ("A2", "Root"),
            ("B", "A1"),
            ("B", "A2"),
            ("C", "Root"),
        ]

    def test_empty_input(self) -> None:
        graph = DependencyGraphBuilder().build([])
        assert graph.is_empty()
        assert graph.size() == 0


class TestDependencyGraph:
    """Tests for graph operations."""

    def test_add_dependency_requires_both_nodes(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("A.ps1"))
        with pytest.raises(DependencyError):
            graph.add_dependency("A", "Missing")

    def test_same_name_different_path_rejected(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("a/Job.ps1"))
        with pytest.raises(DependencyError):
            graph.add_artifact(make_artifact("b/Job.ps1"))

    def test_re_adding_same_artifact_is_allowed(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("a/Job.ps1"))
        graph.add_artifact(make_artifact("a/Job.ps1"))
        assert graph.size() == 1

    def test_detects_two_cycle(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("P.ps1"))
        graph.add_artifact(make_artifact("Q.ps1"))
        graph.add_dependency("P", "Q")
        graph.add_dependency("Q", "P")

        assert graph.detect_circular_dependencies() == ["P", "Q", "P"]
        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.validate()
        assert exc_info.value.cycle == ["P", "Q", "P"]
        assert "P -> Q -> P" in exc_info.value.message

    def test_detects_self_loop(self, make_artifact) -> None:
        graph = DependencyGraph()
        graph.add_artifact(make_artifact("S.ps1"))
        graph.add_dependency("S", "S")
        with pytest.raises(CyclicDependencyError):
            graph.validate()

    def test_acyclic_graph_validates(self, tree_artifacts) -> None:
        graph = DependencyGraphBuilder().build(tree_artifacts)
        assert graph.detect_circular_dependencies() is None
        graph.validate()

    def test_unknown_names_have_no_neighbours(self) -> None:
        graph = DependencyGraph()
        assert graph.get_dependencies("nope") == set()
        assert graph.get_dependents("nope") == set()
        assert not graph.has_artifact("nope")
