"""Adaptive deployment: discovers a workable order by repeated passes."""

from datetime import datetime, timezone
from typing import List, Optional
import threading

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.orchestrator.executor import (
    BaseDeployer,
    DeploymentMode,
    DeploymentResult,
    PassSummary,
    ProgressCallback,
    RunOutcome,
)


class AdaptiveRetryDeployer(BaseDeployer):
    """Deploys without a known dependency graph.

    Each pass attempts every pending artifact in collection order. An artifact
    the target accepts is never attempted again. A pass that deploys nothing
    ends the run and every artifact still pending is marked failed.

    When the target accepts an artifact exactly when all of its real
    dependencies are deployed, each pass deploys at least the current leaves
    of the unknown graph, so a graph of depth k (k edges on its longest chain)
    is fully deployed within k + 1 passes. A cycle, or an
    error unrelated to ordering, shows up as a pass with zero progress; the
    two cases are not told apart.
    """

    mode = DeploymentMode.ADAPTIVE

    def __init__(
        self,
        client: DeploymentClient,
        max_passes: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """Initialize adaptive deployer.

        Args:
            client: Collaborator that deploys a single artifact
            max_passes: Optional upper bound on passes; unlimited when None
            progress_callback: Optional callback invoked after every attempt
            cancel_event: Optional event checked between artifacts
        """
        super().__init__(client, progress_callback=progress_callback, cancel_event=cancel_event)
        if max_passes is not None and max_passes < 1:
            raise ValueError(f"max_passes must be at least 1, got {max_passes}")
        self.max_passes = max_passes

    def deploy(self, artifacts: List[Artifact]) -> DeploymentResult:
        """Deploy artifacts, retrying failures in later passes.

        Args:
            artifacts: Artifacts in collection order

        Returns:
            DeploymentResult; outcome COMPLETED when nothing is left pending
        """
        start_time = datetime.now(timezone.utc)
        records = self._create_records(artifacts)
        passes: List[PassSummary] = []

        self.logger.info(f"Deploying {len(records)} artifacts adaptively...")

        while True:
            pending = [record for record in records.values() if record.is_pending()]
            if not pending:
                return self._finish(records, passes, RunOutcome.COMPLETED, start_time)

            if self.max_passes is not None and len(passes) >= self.max_passes:
                self.logger.error(f"Pass limit of {self.max_passes} reached with {len(pending)} pending")
                for record in pending:
                    record.mark_failed()
                    self._notify(record, record.last_error.message if record.last_error else None)
                return self._finish(records, passes, RunOutcome.PASS_LIMIT, start_time)

            summary = PassSummary(number=len(passes) + 1)
            passes.append(summary)
            self.logger.info(f"Pass {summary.number}: {len(pending)} pending artifacts")

            for record in pending:
                if self._cancelled():
                    self.logger.warning("Deployment cancelled; remaining artifacts left pending")
                    return self._finish(records, passes, RunOutcome.CANCELLED, start_time)

                summary.attempted += 1
                if self._attempt(record, summary.number):
                    summary.progress += 1
                    summary.deployed.append(record.name)

            self.logger.info(
                f"Pass {summary.number} deployed {summary.progress}/{summary.attempted}"
            )

            if summary.progress == 0:
                self.logger.error(
                    f"Pass {summary.number} made no progress; marking {len(pending)} artifacts failed"
                )
                for record in pending:
                    record.mark_failed()
                    self._notify(record, record.last_error.message if record.last_error else None)
                return self._finish(records, passes, RunOutcome.STALLED, start_time)
