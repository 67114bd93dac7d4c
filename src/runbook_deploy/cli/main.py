"""Main CLI entry point."""

import json
import signal
import sys
import threading
from typing import Optional

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table
from rich.panel import Panel
from rich.tree import Tree
from rich.markup import escape

from runbook_deploy import __version__
from runbook_deploy.artifacts.storage import LocalStorage
from runbook_deploy.clients import AutomationAccountClient, DeploymentClient, DryRunDeploymentClient
from runbook_deploy.config.parser import Config, ConfigValidationError
from runbook_deploy.orchestrator.executor import DeploymentMode, DeploymentStatus, RunOutcome
from runbook_deploy.orchestrator.orchestrator import DeploymentOrchestrator, RunReport
from runbook_deploy.source import GitHubSourceClient, LocalSourceClient, SourceClient
from runbook_deploy.utils.errors import ConfigurationError, DeploymentError, error_handler
from runbook_deploy.utils.logging import setup_logging, get_logger

console = Console()
logger = get_logger(__name__)


@click.group()
@click.version_option(__version__, prog_name='runbook-deploy')
@click.option('--log-level', default='info', type=click.Choice(['debug', 'info', 'warning', 'error']))
@click.option('--log-dir', default='.runbook-deploy/logs', help='Directory for JSON log files')
@click.option('--no-log-file', is_flag=True, help='Log to the console only')
@click.pass_context
def cli(ctx, log_level, log_dir, no_log_file):
    """Dependency-ordered runbook deployment."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level

    # Setup logging
    setup_logging(log_level, log_dir=None if no_log_file else log_dir)


def load_config(config_path: str = "runbook-deploy.yaml") -> Config:
    """Load and validate configuration file."""
    try:
        config = Config(config_path)
        config.load()
        return config
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Configuration file not found: {config_path}")
        sys.exit(1)
    except ConfigValidationError as e:
        console.print("[red]Configuration validation failed:[/red]\n")
        console.print(str(e), markup=False)
        sys.exit(1)


def create_source_client(config: Config) -> SourceClient:
    """Create the source client named by the configuration."""
    source = config.source
    if source.provider == "local":
        return LocalSourceClient(source.path)

    token = config.resolve_secret(source.token_env, required=bool(source.token_env))
    return GitHubSourceClient(
        owner=source.owner,
        repository=source.repository,
        branch=source.branch,
        token=token,
        api_url=source.api_url
    )


def create_deployment_client(config: Config, dry_run: bool = False) -> DeploymentClient:
    """Create the deployment client for the configured target."""
    if dry_run:
        return DryRunDeploymentClient()

    target = config.target
    if target is None:
        raise ConfigurationError(
            "A 'target' section is required unless --dry-run is given",
            suggestions=["Add a target section to the configuration file"]
        )

    return AutomationAccountClient(
        subscription_id=target.subscription_id,
        resource_group=target.resource_group,
        automation_account=target.automation_account,
        location=target.location,
        token=config.resolve_secret(target.token_env),
        publish=target.publish,
        api_version=target.api_version
    )


def create_orchestrator(
    config: Config,
    dry_run: bool = False,
    max_passes: Optional[int] = None
) -> DeploymentOrchestrator:
    """Create deployment orchestrator with all dependencies."""
    settings = config.deployment
    return DeploymentOrchestrator(
        source_client=create_source_client(config),
        deployment_client=create_deployment_client(config, dry_run=dry_run),
        storage=LocalStorage(settings.scratch_dir),
        root_folder=config.source.root_folder,
        extensions=settings.extensions,
        max_passes=max_passes if max_passes is not None else settings.max_passes
    )


class RichProgressCallback:
    """Progress callback that displays updates using Rich."""

    def __init__(self, progress: Progress, task_id):
        self.progress = progress
        self.task_id = task_id
        self.attempts = 0

    def __call__(self, name: str, status: DeploymentStatus, detail: Optional[str]) -> None:
        """Called after every deployment attempt."""
        self.attempts += 1
        if status == DeploymentStatus.DEPLOYED:
            marker = "[green]✓[/green]"
            self.progress.advance(self.task_id)
        elif status == DeploymentStatus.FAILED:
            marker = "[red]✗[/red]"
            self.progress.advance(self.task_id)
        else:
            marker = "[yellow]↻[/yellow]"
        self.progress.update(self.task_id, description=f"{marker} {name}")


def _print_report(report: RunReport) -> None:
    """Display the run summary."""
    result = report.result

    if result.is_success():
        title, style, headline = "Deployment Complete", "green", "[green]✓ Deployment successful[/green]"
    elif result.outcome == RunOutcome.CANCELLED:
        title, style, headline = "Deployment Cancelled", "yellow", "[yellow]⚠ Deployment cancelled[/yellow]"
    else:
        title, style, headline = "Deployment Failed", "red", "[red]✗ Deployment failed[/red]"

    console.print(Panel.fit(
        f"{headline}\n\n"
        f"Mode: {result.mode.value}\n"
        f"Outcome: {result.outcome.value}\n"
        f"Passes: {len(result.passes)}\n"
        f"Deployed: {result.deployed_count}/{result.total_artifacts}\n"
        f"Failed: {result.failed_count}\n"
        f"Pending: {result.pending_count}\n"
        f"Duration: {result.duration:.2f}s",
        title=title,
        border_style=style
    ))

    failed = result.get_failed_records()
    if failed:
        table = Table(title="Failed Artifacts")
        table.add_column("Artifact", style="cyan")
        table.add_column("Path")
        table.add_column("Attempts", justify="right")
        table.add_column("Last Error", style="red")
        for record in failed:
            table.add_row(
                record.name,
                record.artifact.source_path,
                str(record.attempts),
                escape(record.last_error.message) if record.last_error else ""
            )
        console.print(table)

    if report.collection.has_failures():
        console.print("\n[bold]Not retrieved:[/bold]")
        for failure in report.collection.failures:
            console.print(f"  [yellow]⚠[/yellow] {failure.source_path}: {escape(failure.error.message)}")


@cli.command()
@click.option('--config', default='runbook-deploy.yaml', help='Path to configuration file')
@click.option('--mode', type=click.Choice([m.value for m in DeploymentMode]), help='Override the configured mode')
@click.option('--dry-run', is_flag=True, help='Log the deploy order without calling the target')
@click.option('--max-passes', type=click.IntRange(min=1), help='Pass limit for adaptive mode')
@click.option('--json', 'as_json', is_flag=True, help='Print the run summary as JSON')
@click.pass_context
def deploy(ctx, config, mode, dry_run, max_passes, as_json):
    """Deploy runbooks to the automation account."""
    cfg = load_config(config)
    deployment_mode = DeploymentMode(mode) if mode else cfg.deployment.mode

    cancel_event = threading.Event()

    def signal_handler(sig, frame):
        console.print("\n[yellow]Cancelling after the current artifact...[/yellow]")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, signal_handler)
    orchestrator = None

    try:
        if not as_json:
            console.print(Panel.fit(
                f"[bold]Deploying runbooks[/bold]\n"
                f"Source: {_describe_source(cfg)}\n"
                f"Target: {'dry run' if dry_run else _describe_target(cfg)}\n"
                f"Mode: {deployment_mode.value}",
                title="Deployment Configuration",
                border_style="cyan"
            ))

        orchestrator = create_orchestrator(cfg, dry_run=dry_run, max_passes=max_passes)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            disable=as_json
        ) as progress:
            task_id = progress.add_task("[cyan]Deploying...", total=None)
            report = orchestrator.deploy(
                mode=deployment_mode,
                progress_callback=RichProgressCallback(progress, task_id),
                cancel_event=cancel_event
            )

        if as_json:
            summary = report.result.to_summary()
            summary['retrieval_failures'] = [
                {'source_path': f.source_path, 'error': f.error.message}
                for f in report.collection.failures
            ]
            click.echo(json.dumps(summary, indent=2))
        else:
            console.print()
            _print_report(report)

        if not report.is_success():
            sys.exit(1)

    except DeploymentError as e:
        error_handler.log_error(e)
        console.print(f"[red]Deployment error:[/red] {escape(e.to_user_message())}")
        sys.exit(1)
    except Exception as e:
        logger.exception("Unexpected error during deployment")
        console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
        sys.exit(1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        if orchestrator is not None:
            orchestrator.deployment_client.close()


@cli.command()
@click.option('--config', default='runbook-deploy.yaml', help='Path to configuration file')
def plan(config):
    """Show the structural deploy order without deploying."""
    cfg = load_config(config)

    try:
        orchestrator = create_orchestrator(cfg, dry_run=True)
        deployment_plan = orchestrator.plan()
    except DeploymentError as e:
        error_handler.log_error(e)
        console.print(f"[red]Planning error:[/red] {escape(e.to_user_message())}")
        sys.exit(1)

    tree = Tree(f"[bold]Deploy order[/bold] ({len(deployment_plan.order)} artifacts, "
                f"{deployment_plan.edge_count} dependencies)")
    for depth, layer in deployment_plan.layers:
        branch = tree.add(f"[cyan]Depth {depth}[/cyan]")
        for artifact in layer:
            branch.add(f"{artifact.name} [dim]({artifact.kind.value}, {artifact.source_path})[/dim]")
    console.print(tree)

    if deployment_plan.collection.has_failures():
        console.print("\n[bold]Not retrieved:[/bold]")
        for failure in deployment_plan.collection.failures:
            console.print(f"  [yellow]⚠[/yellow] {failure.source_path}: {escape(failure.error.message)}")


@cli.command()
@click.option('--config', default='runbook-deploy.yaml', help='Path to configuration file')
def validate(config):
    """Validate the configuration file."""
    cfg = load_config(config)

    console.print(Panel.fit(
        f"[green]✓ Configuration is valid[/green]\n\n"
        f"Source: {_describe_source(cfg)}\n"
        f"Target: {_describe_target(cfg)}\n"
        f"Mode: {cfg.deployment.mode.value}\n"
        f"Extensions: {', '.join(cfg.deployment.extensions)}",
        title="Configuration",
        border_style="green"
    ))


def _describe_source(cfg: Config) -> str:
    source = cfg.source
    if source.provider == "local":
        location = source.path
    else:
        location = f"{source.owner}/{source.repository}@{source.branch}"
    if source.root_folder:
        location += f" ({source.root_folder})"
    return location


def _describe_target(cfg: Config) -> str:
    if cfg.target is None:
        return "not configured"
    return f"{cfg.target.resource_group}/{cfg.target.automation_account}"


if __name__ == '__main__':
    cli()
