"""
CLI for deploying targets and inspecting their mappings.
Thin wrapper over DeploymentOrchestrator.
"""
import asyncio
import click
import logging
import sys
from typing import Optional

from ..config.orchestrator_factory import create_orchestrator
from ..config.settings import load_config
from ..core.enums import JobPhase, SubmissionMode
from ..core.errors import ServiceError
from ..deploy.progress import ProgressView
from ..services.notifier import LoggingNotifier


def setup_logging(log_level: str):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _print_progress(view: ProgressView):
    if view.visible and view.message:
        click.echo(f"  {view.message}  [components {view.component_percent}% | tests {view.test_percent}%]")


@click.group()
def cli():
    """Submit deployments and follow them to completion"""
    pass


@cli.command()
@click.option('--target', 'target_key', required=True, help='Target to deploy')
@click.option('--mode', type=click.Choice([m.value for m in SubmissionMode]), default=None,
              help='Submission mode (overrides config)')
@click.option('--deployment-class', default=None, help='Named poll budget from config')
@click.option('--show-source', is_flag=True, help='Print deployed source on success')
@click.option('--config', 'config_path', default=None, help='Path to deploywatch YAML config')
@click.option('--log-level', default='INFO', help='Log level')
def deploy(target_key: str, mode: Optional[str], deployment_class: Optional[str], show_source: bool,
           config_path: Optional[str], log_level: str):
    """Deploy a target and wait for the result"""
    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    async def run_deploy() -> bool:
        config = load_config(config_path)
        if mode:
            config.orchestrator.submission_mode = mode

        orchestrator = create_orchestrator(config, notifier=LoggingNotifier(), progress_callback=_print_progress)
        try:
            job = await orchestrator.submit(target_key, deployment_class=deployment_class)
            click.echo(f"Deploying {target_key} ({job.submission_mode.value})...")
            await orchestrator.wait_until_settled()

            click.echo(f"\n{'='*80}")
            if job.phase == JobPhase.SUCCEEDED:
                click.echo(f"✅ Deployment Successful")
                click.echo(f"{'='*80}")
                click.echo(f"Target: {job.target_key}")
                click.echo(f"Job id: {job.job_id}")
                if show_source:
                    source = await orchestrator.view_source()
                    if source:
                        click.echo(f"\n{source}")
            else:
                click.echo(f"❌ Deployment {job.phase.value}")
                click.echo(f"{'='*80}")
                click.echo(f"Target: {job.target_key}")
                click.echo(f"Error: {job.message}")
                for error in orchestrator.progress.component_errors:
                    click.echo(f"  - {error}")
                for test in orchestrator.progress.failed_tests:
                    click.echo(f"  - {test.name}: {test.message}")
            click.echo(f"{'='*80}\n")
            return job.phase == JobPhase.SUCCEEDED
        finally:
            orchestrator.close()
            await orchestrator.services.close()

    try:
        succeeded = asyncio.run(run_deploy())
    except Exception as e:
        logger.error(f"Deployment failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if not succeeded:
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', default=None, help='Path to deploywatch YAML config')
@click.option('--log-level', default='WARNING', help='Log level')
def cards(config_path: Optional[str], log_level: str):
    """List deployable targets with mapping statistics"""
    setup_logging(log_level)

    async def run_cards():
        orchestrator = create_orchestrator(load_config(config_path))
        try:
            return await orchestrator.load_cards()
        finally:
            await orchestrator.services.close()

    try:
        summaries = asyncio.run(run_cards())
    except ServiceError as e:
        raise click.ClickException(str(e))

    for card in summaries:
        deployed = 'deployed' if card.has_deployed_artifact else 'not deployed'
        click.echo(f"{card.target_key:<40} {card.field_count:>4} fields {card.total_mappings:>5} mappings  {deployed}")


@cli.command()
@click.option('--target', 'target_key', required=True, help='Target to inspect')
@click.option('--config', 'config_path', default=None, help='Path to deploywatch YAML config')
@click.option('--log-level', default='WARNING', help='Log level')
def mappings(target_key: str, config_path: Optional[str], log_level: str):
    """Show resolved field mappings for a target"""
    setup_logging(log_level)

    async def run_mappings():
        orchestrator = create_orchestrator(load_config(config_path))
        try:
            return await orchestrator.load_field_mappings(target_key)
        finally:
            await orchestrator.services.close()

    try:
        bundle = asyncio.run(run_mappings())
    except ServiceError as e:
        raise click.ClickException(str(e))

    click.echo(f"{'Picklist Field':<30} {'Picklist Value':<25} {'Date Field':<30} Direction")
    for row in bundle.to_dict()['mappings']:
        click.echo(
            f"{row['picklist_field'] or '':<30} {row['picklist_value'] or '':<25} "
            f"{row['date_field']:<30} {row['direction']}"
        )


@cli.command()
@click.option('--target', 'target_key', required=True, help='Target whose deployed source to print')
@click.option('--config', 'config_path', default=None, help='Path to deploywatch YAML config')
@click.option('--log-level', default='WARNING', help='Log level')
def source(target_key: str, config_path: Optional[str], log_level: str):
    """Print the deployed source of a target"""
    setup_logging(log_level)

    async def run_source():
        orchestrator = create_orchestrator(load_config(config_path), notifier=LoggingNotifier())
        try:
            orchestrator.select_target(target_key)
            return await orchestrator.view_source()
        finally:
            await orchestrator.services.close()

    text = asyncio.run(run_source())
    if text is None:
        sys.exit(1)
    click.echo(text)


@cli.command()
@click.option('--host', default=None, help='Bind host (overrides config)')
@click.option('--port', default=None, type=int, help='Bind port (overrides config)')
@click.option('--config', 'config_path', default=None, help='Path to deploywatch YAML config')
@click.option('--log-level', default=None, help='Log level (overrides config)')
def serve(host: Optional[str], port: Optional[int], config_path: Optional[str], log_level: Optional[str]):
    """Run the HTTP API"""
    from ..api.main import run
    from ..api.state import app_state

    config = load_config(config_path)
    level = log_level or config.logging.level
    setup_logging(level)
    app_state["config"] = config

    run(host=host or config.api.host, port=port or config.api.port, log_level=level.lower())


def main():
    cli()


if __name__ == '__main__':
    main()
