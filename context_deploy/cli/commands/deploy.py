"""Deploy command implementation"""

import sys
from pathlib import Path

import click
from rich.console import Console

from ..utils.output import format_deploy_result
from ...constants import EMOJI_ROCKET, MSG_LOCK_BUSY, ConflictStrategy, ErrorCode, Platform
from ...models import OperationStatus

console = Console()


@click.command()
@click.argument('bundle')
@click.option('--platform', 'platform', required=True,
              type=click.Choice([p.value for p in Platform]), help='Target assistant platform')
@click.option('--workspace', type=click.Path(file_okay=False, path_type=Path),
              help='Workspace (project) directory for workspace-scoped components')
@click.option('--platform-path', type=click.Path(file_okay=False, path_type=Path),
              help='Platform installation directory (detected when omitted)')
@click.option('--component', 'components', multiple=True, help='Only deploy this component (repeatable)')
@click.option('--exclude', 'excludes', multiple=True, help='Never deploy this component (repeatable)')
@click.option('--strategy', type=click.Choice([s.value for s in ConflictStrategy]),
              default=ConflictStrategy.MERGE.value, show_default=True,
              help='How to reconcile with existing files')
@click.option('--dry-run', is_flag=True, help='Show what would change without writing')
@click.option('--validate-only', is_flag=True, help='Only run validation and the security gate')
@click.option('--rollback/--no-rollback', default=True, help='Restore failed components from the backup')
@click.option('--fail-on-secrets', is_flag=True, help='Abort instead of sanitizing detected secrets')
@click.option('--wait', 'lock_wait', type=float, help='Seconds to wait for a busy lock')
@click.pass_context
def deploy(ctx, bundle, platform, workspace, platform_path, components, excludes,
           strategy, dry_run, validate_only, rollback, fail_on_secrets, lock_wait):
    """Deploy a context bundle

    BUNDLE is a JSON or YAML file mapping component names to their
    configuration, optionally wrapped in a ``content`` key.

    Examples:

        # Merge settings and MCP servers into Claude Code
        context-deploy deploy bundle.json --platform claude-code --workspace .

        # Preview the changes for Cursor
        context-deploy deploy bundle.yaml --platform cursor --workspace . --dry-run

        # Only deploy rules, waiting up to a minute for a concurrent deployment
        context-deploy deploy bundle.json --platform cursor --workspace . \\
            --component ai-config --wait 60
    """
    deployer = ctx.obj.deployer

    if not validate_only:
        console.print(f"{EMOJI_ROCKET} Deploying [bold]{bundle}[/bold] to [cyan]{platform}[/cyan]")

    result = deployer.deploy_bundle(
        bundle,
        platform=platform,
        workspace_path=workspace,
        platform_path=platform_path,
        components=list(components),
        exclude_components=list(excludes),
        conflict_strategy=strategy,
        dry_run=dry_run,
        validate_only=validate_only,
        rollback_on_failure=rollback,
        fail_on_secrets=fail_on_secrets,
        lock_wait=lock_wait,
    )

    lock_errors = [e for e in result.errors if e.code == ErrorCode.LOCK_CONTENTION]
    if lock_errors:
        resource = lock_errors[0].context.get("resource", platform)
        console.print(f"[yellow]{MSG_LOCK_BUSY.format(resource=resource)}[/yellow]")
        console.print("[dim]Retry later, pass --wait, or clear stale locks with 'context-deploy locks cleanup'[/dim]")

    format_deploy_result(result, show_diffs=dry_run)

    if result.errors or result.status == OperationStatus.FAILED:
        sys.exit(1)
