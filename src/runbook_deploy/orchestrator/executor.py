"""Deployment records, run results and the sequential (structural mode) executor."""

from typing import Dict, List, Optional, Callable, Iterable, Any
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import threading

from runbook_deploy.artifacts.models import Artifact
from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.utils.errors import (
    ArtifactDeployError,
    DeploymentError,
    DuplicateArtifactError,
    ErrorCategory,
    ErrorContext,
    error_handler,
)
from runbook_deploy.utils.logging import get_logger, LogContext

logger = get_logger(__name__)


class DeploymentMode(Enum):
    """Strategy used to order a run."""
    STRUCTURAL = "structural"
    ADAPTIVE = "adaptive"


class DeploymentStatus(Enum):
    """Status of a single artifact within a run."""
    PENDING = "pending"
    DEPLOYED = "deployed"
    FAILED = "failed"


class RunOutcome(Enum):
    """How a run ended."""
    COMPLETED = "completed"  # Every artifact was attempted to a final status
    STALLED = "stalled"  # A full pass made no progress
    PASS_LIMIT = "pass_limit"  # max_passes reached with artifacts still pending
    CANCELLED = "cancelled"  # Stopped between artifacts; pending left as is


@dataclass
class DeploymentRecord:
    """Mutable per-artifact state owned by one run."""

    artifact: Artifact
    status: DeploymentStatus = DeploymentStatus.PENDING
    attempts: int = 0
    last_error: Optional[DeploymentError] = None
    deployed_in_pass: Optional[int] = None

    @property
    def name(self) -> str:
        return self.artifact.name

    def is_pending(self) -> bool:
        return self.status == DeploymentStatus.PENDING

    def is_deployed(self) -> bool:
        return self.status == DeploymentStatus.DEPLOYED

    def is_failed(self) -> bool:
        return self.status == DeploymentStatus.FAILED

    def mark_deployed(self, pass_number: int) -> None:
        self.attempts += 1
        self.status = DeploymentStatus.DEPLOYED
        self.deployed_in_pass = pass_number

    def record_failure(self, error: DeploymentError) -> None:
        """Count a failed attempt; the record stays pending."""
        self.attempts += 1
        self.last_error = error

    def mark_failed(self) -> None:
        self.status = DeploymentStatus.FAILED


@dataclass
class PassSummary:
    """Trace of one pass over the pending artifacts."""

    number: int
    attempted: int = 0
    progress: int = 0
    deployed: List[str] = field(default_factory=list)


@dataclass
class DeploymentResult:
    """Run summary: per-artifact records plus how the run ended."""

    mode: DeploymentMode
    outcome: RunOutcome
    records: Dict[str, DeploymentRecord] = field(default_factory=dict)
    passes: List[PassSummary] = field(default_factory=list)
    deploy_order: List[str] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: float = 0.0  # seconds

    @property
    def total_artifacts(self) -> int:
        return len(self.records)

    @property
    def deployed_count(self) -> int:
        return sum(1 for r in self.records.values() if r.is_deployed())

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.records.values() if r.is_failed())

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self.records.values() if r.is_pending())

    def get_failed_records(self) -> List[DeploymentRecord]:
        """Failed records in input order."""
        return [r for r in self.records.values() if r.is_failed()]

    def is_success(self) -> bool:
        """Zero failures and nothing left pending."""
        return self.failed_count == 0 and self.pending_count == 0

    def to_summary(self) -> Dict[str, Any]:
        """Summary for logs and machine-readable output."""
        return {
            'mode': self.mode.value,
            'outcome': self.outcome.value,
            'passes': len(self.passes),
            'deployed': self.deployed_count,
            'failed': self.failed_count,
            'pending': self.pending_count,
            'deploy_order': list(self.deploy_order),
            'failures': [
                {
                    'name': record.name,
                    'source_path': record.artifact.source_path,
                    'attempts': record.attempts,
                    'error': record.last_error.message if record.last_error else None,
                }
                for record in self.get_failed_records()
            ],
            'duration': round(self.duration, 3),
        }


# Type alias for progress callback: (artifact name, status after the attempt, error detail)
ProgressCallback = Callable[[str, DeploymentStatus, Optional[str]], None]


class BaseDeployer:
    """Shared per-artifact attempt handling for both deployment strategies."""

    mode: DeploymentMode

    def __init__(
        self,
        client: DeploymentClient,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        """Initialize deployer.

        Args:
            client: Collaborator that deploys a single artifact
            progress_callback: Optional callback invoked after every attempt
            cancel_event: Optional event checked between artifacts
        """
        self.client = client
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event
        self.logger = get_logger(self.__class__.__module__)

    def _create_records(self, artifacts: Iterable[Artifact]) -> Dict[str, DeploymentRecord]:
        """Create one pending record per artifact, keyed by name in input order.

        Raises:
            DuplicateArtifactError: If two artifacts share a name
        """
        records: Dict[str, DeploymentRecord] = {}
        for artifact in artifacts:
            existing = records.get(artifact.name)
            if existing is not None:
                raise DuplicateArtifactError(
                    artifact.name, existing.artifact.source_path, artifact.source_path
                )
            records[artifact.name] = DeploymentRecord(artifact=artifact)
        return records

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _attempt(self, record: DeploymentRecord, pass_number: int, final: bool = False) -> bool:
        """Deploy one artifact, catching its errors at the artifact boundary.

        Args:
            record: Record of the artifact to deploy
            pass_number: Current pass (1-based)
            final: Mark the artifact failed on failure instead of leaving it pending

        Returns:
            True if the client accepted the artifact

        Raises:
            DeploymentError: Only for fatal errors such as rejected credentials
        """
        artifact = record.artifact

        with LogContext(self.logger, artifact=artifact.name, pass_number=pass_number, operation='deploy'):
            try:
                self.client.deploy(artifact)
            except Exception as e:
                error = error_handler.handle_exception(
                    e,
                    ErrorContext(artifact=artifact.name, source_path=artifact.source_path, operation='deploy')
                )
                if error.is_fatal():
                    self.logger.error(f"Aborting run: {error.message}")
                    raise error
                if error.category == ErrorCategory.UNKNOWN:
                    error = ArtifactDeployError(
                        f"Deployment of {artifact.name} failed: {error.message}",
                        context=error.context,
                        cause=e
                    )

                record.record_failure(error)
                if final:
                    record.mark_failed()
                self.logger.warning(f"Deploy attempt {record.attempts} failed: {error.message}")
                self._notify(record, error.message)
                return False

            record.mark_deployed(pass_number)
            self.logger.info(f"Deployed {artifact.kind.value} {artifact.source_path}")
            self._notify(record, None)
            return True

    def _notify(self, record: DeploymentRecord, detail: Optional[str]) -> None:
        if self.progress_callback:
            self.progress_callback(record.name, record.status, detail)

    def _finish(
        self,
        records: Dict[str, DeploymentRecord],
        passes: List[PassSummary],
        outcome: RunOutcome,
        start_time: datetime
    ) -> DeploymentResult:
        end_time = datetime.now(timezone.utc)
        deploy_order = []
        for summary in passes:
            deploy_order.extend(summary.deployed)

        result = DeploymentResult(
            mode=self.mode,
            outcome=outcome,
            records=records,
            passes=passes,
            deploy_order=deploy_order,
            start_time=start_time,
            end_time=end_time,
            duration=(end_time - start_time).total_seconds()
        )

        if result.is_success():
            self.logger.info(
                f"Deployment completed: {result.deployed_count} artifacts in "
                f"{len(passes)} pass(es), {result.duration:.1f}s"
            )
        else:
            self.logger.error(
                f"Deployment ended ({outcome.value}): {result.deployed_count} deployed, "
                f"{result.failed_count} failed, {result.pending_count} pending"
            )
            for record in result.get_failed_records():
                detail = record.last_error.message if record.last_error else 'no detail'
                self.logger.error(f"Failed: {record.name} after {record.attempts} attempt(s): {detail}")

        return result


class SequentialDeployer(BaseDeployer):
    """Deploys a precomputed order once, without retries.

    A failed artifact is recorded and does not block the artifacts after it.
    """

    mode = DeploymentMode.STRUCTURAL

    def deploy(self, ordered: List[Artifact]) -> DeploymentResult:
        """Deploy artifacts in the given order.

        Args:
            ordered: Artifacts in deploy order

        Returns:
            DeploymentResult with outcome COMPLETED or CANCELLED
        """
        start_time = datetime.now(timezone.utc)
        records = self._create_records(ordered)
        summary = PassSummary(number=1)
        outcome = RunOutcome.COMPLETED

        self.logger.info(f"Deploying {len(records)} artifacts in structural order...")

        for record in records.values():
            if self._cancelled():
                self.logger.warning("Deployment cancelled; remaining artifacts left pending")
                outcome = RunOutcome.CANCELLED
                break

            summary.attempted += 1
            if self._attempt(record, summary.number, final=True):
                summary.progress += 1
                summary.deployed.append(record.name)

        return self._finish(records, [summary], outcome, start_time)
