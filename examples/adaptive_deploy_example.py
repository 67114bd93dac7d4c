"""Example of driving the deployment engine from Python instead of the CLI."""

import os
import threading

from runbook_deploy.artifacts import LocalStorage
from runbook_deploy.clients import AutomationAccountClient, DryRunDeploymentClient
from runbook_deploy.orchestrator import DeploymentMode, DeploymentOrchestrator, DeploymentStatus
from runbook_deploy.source import GitHubSourceClient, LocalSourceClient
from runbook_deploy.utils import setup_logging


def preview_structural_order():
    """Example: Print the folder-depth deploy order of a local checkout."""

    orchestrator = DeploymentOrchestrator(
        source_client=LocalSourceClient('./automation-repo'),
        deployment_client=DryRunDeploymentClient(),
        storage=LocalStorage('.runbook-deploy/scratch'),
        root_folder='runbooks'
    )

    plan = orchestrator.plan()
    for depth, layer in plan.layers:
        print(f"Depth {depth}:")
        for artifact in layer:
            print(f"  {artifact.name} ({artifact.kind.runbook_type})")

    for failure in plan.collection.failures:
        print(f"Could not retrieve {failure.source_path}: {failure.error.message}")


def deploy_adaptively_from_github():
    """Example: Let the target discover the order, with a pass limit."""

    source = GitHubSourceClient(
        owner='contoso',
        repository='automation',
        branch='main',
        token=os.environ.get('GITHUB_TOKEN')
    )
    target = AutomationAccountClient(
        subscription_id=os.environ['AZURE_SUBSCRIPTION_ID'],
        resource_group='rg-automation',
        automation_account='aa-contoso',
        location='westeurope',
        token=os.environ['AZURE_ACCESS_TOKEN']
    )

    orchestrator = DeploymentOrchestrator(
        source_client=source,
        deployment_client=target,
        storage=LocalStorage('.runbook-deploy/scratch'),
        root_folder='runbooks',
        max_passes=10
    )

    def on_progress(name, status, detail):
        if status == DeploymentStatus.PENDING:
            print(f"  retry later: {name} ({detail})")
        else:
            print(f"  {status.value}: {name}")

    # Set from another thread (or a signal handler) to stop between artifacts
    cancel_event = threading.Event()

    try:
        report = orchestrator.deploy(
            mode=DeploymentMode.ADAPTIVE,
            progress_callback=on_progress,
            cancel_event=cancel_event
        )
    finally:
        target.close()

    result = report.result
    print(f"\nOutcome: {result.outcome.value} after {len(result.passes)} pass(es)")
    for summary in result.passes:
        print(f"  pass {summary.number}: {summary.progress}/{summary.attempted} deployed")
    for record in result.get_failed_records():
        print(f"  failed: {record.name}: {record.last_error.message if record.last_error else 'no detail'}")


if __name__ == '__main__':
    setup_logging('info', log_dir=None)

    print("=" * 60)
    print("Example 1: Structural deploy order")
    print("=" * 60)
    preview_structural_order()

    print("\n" + "=" * 60)
    print("Example 2: Adaptive deployment")
    print("=" * 60)
    deploy_adaptively_from_github()
