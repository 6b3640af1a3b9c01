"""Lock management commands"""

import click
from rich.prompt import Confirm

from ..utils.output import format_lock_list, print_info, print_success


@click.group()
def locks():
    """Inspect and clear deployment locks"""
    pass


@locks.command('list')
@click.pass_context
def list_locks(ctx):
    """Show locks currently held"""
    format_lock_list(ctx.obj.deployer.list_locks())


@locks.command('cleanup')
@click.pass_context
def cleanup(ctx):
    """Remove stale locks left by dead or expired deployments"""
    removed = ctx.obj.deployer.cleanup_locks()
    if removed:
        print_success(f"Removed {removed} stale lock(s)")
    else:
        print_info("No stale locks found")


@locks.command('release')
@click.argument('scope')
@click.option('-y', '--yes', is_flag=True, help='Skip confirmation prompt')
@click.pass_context
def release(ctx, scope, yes):
    """Force-release every lock whose resource contains SCOPE

    Only use this when the holder is known to be gone.
    """
    if not yes and not Confirm.ask(f"Force-release locks matching [cyan]{scope}[/cyan]?"):
        return

    removed = ctx.obj.deployer.release_locks(scope)
    print_success(f"Released {removed} lock(s)")
