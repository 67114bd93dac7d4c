"""Tests for the adaptive retry deployer."""

import threading
from typing import List
from unittest.mock import MagicMock

import pytest

from helpers import OracleClient
from runbook_deploy.orchestrator.adaptive import AdaptiveRetryDeployer
from runbook_deploy.orchestrator.executor import DeploymentMode, DeploymentStatus, RunOutcome
from runbook_deploy.utils.errors import ArtifactDeployError, CredentialError, DuplicateArtifactError


def _chain(make_artifact, length: int):
    """N0 depends on N1, ..., N(k-1) depends on Nk; returned dependents first."""
    artifacts = [make_artifact(f"N{i}.ps1") for i in range(length + 1)]
    dependencies = {f"N{i}": {f"N{i + 1}"} for i in range(length)}
    return artifacts, dependencies


class TestConvergence:
    """Tests for runs that deploy everything."""

    def test_three_artifact_scenario(self, make_artifact) -> None:
        """C needs B, B needs A, collected as [C, B, A]: three passes."""
        artifacts = [make_artifact("C.ps1"), make_artifact("B.ps1"), make_artifact("A.ps1")]
        client = OracleClient({"C": {"B"}, "B": {"A"}})

        result = AdaptiveRetryDeployer(client).deploy(artifacts)

        assert result.outcome == RunOutcome.COMPLETED
        assert result.mode == DeploymentMode.ADAPTIVE
        assert result.is_success()
        assert len(result.passes) == 3
        assert [p.progress for p in result.passes] == [1, 1, 1]
        assert [p.attempted for p in result.passes] == [3, 2, 1]
        assert result.deploy_order == ["A", "B", "C"]
        assert client.deployed == ["A", "B", "C"]
        assert result.records["C"].attempts == 3
        assert result.records["C"].deployed_in_pass == 3

    @pytest.mark.parametrize("depth", [0, 1, 2, 3, 5])
    def test_worst_order_needs_depth_plus_one_passes(self, make_artifact, depth: int) -> None:
        artifacts, dependencies = _chain(make_artifact, depth)

        result = AdaptiveRetryDeployer(OracleClient(dependencies)).deploy(artifacts)

        assert result.outcome == RunOutcome.COMPLETED
        assert len(result.passes) == depth + 1

    @pytest.mark.parametrize("depth", [1, 2, 4])
    def test_best_order_needs_one_pass(self, make_artifact, depth: int) -> None:
        artifacts, dependencies = _chain(make_artifact, depth)

        result = AdaptiveRetryDeployer(OracleClient(dependencies)).deploy(list(reversed(artifacts)))

        assert len(result.passes) == 1
        assert result.deployed_count == depth + 1

    def test_deployed_artifacts_are_never_retried(self, make_artifact) -> None:
        artifacts = [make_artifact(f"{name}.ps1") for name in ("D", "C", "B", "A")]
        client = OracleClient({"D": {"C"}, "C": {"B"}, "B": {"A"}})

        AdaptiveRetryDeployer(client).deploy(artifacts)

        for name in ("A", "B", "C", "D"):
            assert client.deployed.count(name) == 1
        # Each pass only attempts what is still pending
        assert client.calls == ["D", "C", "B", "A", "D", "C", "B", "D", "C", "D"]

    def test_empty_input_completes(self) -> None:
        result = AdaptiveRetryDeployer(OracleClient()).deploy([])
        assert result.outcome == RunOutcome.COMPLETED
        assert result.passes == []
        assert result.is_success()


class TestStall:
    """Tests for runs that stop without deploying everything."""

    def test_two_cycle_never_converges(self, make_artifact) -> None:
        artifacts = [make_artifact("P.ps1"), make_artifact("Q.ps1"), make_artifact("R.ps1")]
        client = OracleClient({"P": {"Q"}, "Q": {"P"}})

        result = AdaptiveRetryDeployer(client).deploy(artifacts)

        assert result.outcome == RunOutcome.STALLED
        assert len(result.passes) == 2
        assert result.passes[-1].progress == 0
        assert result.deployed_count == 1
        assert result.failed_count == 2
        assert result.pending_count == 0
        assert not result.is_success()
        assert [r.name for r in result.get_failed_records()] == ["P", "Q"]
        assert result.records["P"].attempts == 2
        assert "missing runbooks: Q" in result.records["P"].last_error.message

    def test_permanent_error_is_indistinguishable_from_ordering(self, make_artifact) -> None:
        artifacts = [make_artifact("Good.ps1"), make_artifact("Broken.ps1")]

        result = AdaptiveRetryDeployer(OracleClient(broken=["Broken"])).deploy(artifacts)

        assert result.outcome == RunOutcome.STALLED
        assert result.records["Broken"].status == DeploymentStatus.FAILED
        assert result.records["Good"].status == DeploymentStatus.DEPLOYED

    def test_pass_limit(self, make_artifact) -> None:
        artifacts, dependencies = _chain(make_artifact, 2)

        result = AdaptiveRetryDeployer(OracleClient(dependencies), max_passes=2).deploy(artifacts)

        assert result.outcome == RunOutcome.PASS_LIMIT
        assert len(result.passes) == 2
        assert result.deploy_order == ["N2", "N1"]
        assert [r.name for r in result.get_failed_records()] == ["N0"]

    def test_pass_limit_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            AdaptiveRetryDeployer(OracleClient(), max_passes=0)

    def test_summary_lists_failures(self, make_artifact) -> None:
        artifacts = [make_artifact("a/Lonely.ps1")]
        summary = AdaptiveRetryDeployer(OracleClient(broken=["Lonely"])).deploy(artifacts).to_summary()

        assert summary["outcome"] == "stalled"
        assert summary["failed"] == 1
        assert summary["failures"][0]["name"] == "Lonely"
        assert summary["failures"][0]["source_path"] == "a/Lonely.ps1"
        assert summary["failures"][0]["attempts"] == 1


class TestErrorHandling:
    """Tests for errors raised by the client."""

    def test_unexpected_exception_is_recorded(self, make_artifact) -> None:
        client = MagicMock()
        client.deploy.side_effect = RuntimeError("boom")

        result = AdaptiveRetryDeployer(client).deploy([make_artifact("X.ps1")])

        error = result.records["X"].last_error
        assert isinstance(error, ArtifactDeployError)
        assert error.message == "Deployment of X failed: boom"
        assert error.context.artifact == "X"

    def test_credential_error_aborts_run(self, make_artifact) -> None:
        client = MagicMock()
        client.deploy.side_effect = CredentialError("token expired")

        with pytest.raises(CredentialError):
            AdaptiveRetryDeployer(client).deploy([make_artifact("X.ps1"), make_artifact("Y.ps1")])
        assert client.deploy.call_count == 1

    def test_duplicate_names_rejected(self, make_artifact) -> None:
        with pytest.raises(DuplicateArtifactError):
            AdaptiveRetryDeployer(OracleClient()).deploy([make_artifact("a/X.ps1"), make_artifact("b/X.ps1")])


class TestCallbacksAndCancellation:
    """Tests for progress reporting and cancellation."""

    def test_progress_callback(self, make_artifact) -> None:
        events: List[tuple] = []
        artifacts = [make_artifact("B.ps1"), make_artifact("A.ps1")]

        AdaptiveRetryDeployer(
            OracleClient({"B": {"A"}}),
            progress_callback=lambda name, status, detail: events.append((name, status)),
        ).deploy(artifacts)

        assert events == [
            ("B", DeploymentStatus.PENDING),
            ("A", DeploymentStatus.DEPLOYED),
            ("B", DeploymentStatus.DEPLOYED),
        ]

    def test_stall_reports_final_failures(self, make_artifact) -> None:
        events: List[tuple] = []
        AdaptiveRetryDeployer(
            OracleClient(broken=["X"]),
            progress_callback=lambda name, status, detail: events.append((name, status, detail)),
        ).deploy([make_artifact("X.ps1")])

        assert events[-1] == ("X", DeploymentStatus.FAILED, "X does not parse")

    def test_pass_limit_reports_final_failures(self, make_artifact) -> None:
        events: List[tuple] = []
        artifacts, dependencies = _chain(make_artifact, 2)

        AdaptiveRetryDeployer(
            OracleClient(dependencies),
            max_passes=1,
            progress_callback=lambda name, status, detail: events.append((name, status, detail)),
        ).deploy(artifacts)

        failures = [event for event in events if event[1] == DeploymentStatus.FAILED]
        assert failures == [
            ("N0", DeploymentStatus.FAILED, "N0 references missing runbooks: N1"),
            ("N1", DeploymentStatus.FAILED, "N1 references missing runbooks: N2"),
        ]

    def test_cancellation_leaves_pending(self, make_artifact) -> None:
        cancel = threading.Event()

        class CancellingClient(OracleClient):
            def deploy(self, artifact):
                super().deploy(artifact)
                cancel.set()

        artifacts = [make_artifact(f"{n}.ps1") for n in ("A", "B", "C")]
        result = AdaptiveRetryDeployer(CancellingClient(), cancel_event=cancel).deploy(artifacts)

        assert result.outcome == RunOutcome.CANCELLED
        assert result.deployed_count == 1
        assert result.pending_count == 2
        assert result.failed_count == 0
        assert not result.is_success()
