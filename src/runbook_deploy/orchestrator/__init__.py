"""Orchestrator module for dependency ordering and deployment."""

from runbook_deploy.orchestrator.dependency_graph import (
    DependencyGraph,
    DependencyGraphBuilder,
    DependencyNode,
)
from runbook_deploy.orchestrator.sequencer import TopologicalSequencer
from runbook_deploy.orchestrator.executor import (
    DeploymentMode,
    DeploymentRecord,
    DeploymentResult,
    DeploymentStatus,
    PassSummary,
    ProgressCallback,
    RunOutcome,
    SequentialDeployer,
)
from runbook_deploy.orchestrator.adaptive import AdaptiveRetryDeployer
from runbook_deploy.orchestrator.orchestrator import (
    DeploymentOrchestrator,
    DeploymentPlan,
    RunReport,
)

__all__ = [
    # Dependency graph
    'DependencyGraph',
    'DependencyGraphBuilder',
    'DependencyNode',

    # Ordering
    'TopologicalSequencer',

    # Execution
    'DeploymentMode',
    'DeploymentRecord',
    'DeploymentResult',
    'DeploymentStatus',
    'PassSummary',
    'ProgressCallback',
    'RunOutcome',
    'SequentialDeployer',
    'AdaptiveRetryDeployer',

    # Main orchestrator
    'DeploymentOrchestrator',
    'DeploymentPlan',
    'RunReport',
]
