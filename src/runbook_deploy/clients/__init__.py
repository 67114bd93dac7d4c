"""Deployment targets."""

from runbook_deploy.clients.base import DeploymentClient
from runbook_deploy.clients.automation import AutomationAccountClient
from runbook_deploy.clients.dry_run import DryRunDeploymentClient

__all__ = [
    'DeploymentClient',
    'AutomationAccountClient',
    'DryRunDeploymentClient',
]
