"""Backup management commands"""

import sys

import click

from ..utils.output import format_backup_list, format_restore_result, print_success, print_warning


@click.group()
def backups():
    """Manage pre-deployment backups"""
    pass


@backups.command('list')
@click.pass_context
def list_backups(ctx):
    """List backups, newest first"""
    format_backup_list(ctx.obj.deployer.list_backups())


@backups.command('restore')
@click.argument('backup_id')
@click.option('--component', 'components', multiple=True, help='Only restore this component (repeatable)')
@click.option('--verify/--no-verify', default=True, help='Verify checksums before restoring')
@click.pass_context
def restore(ctx, backup_id, components, verify):
    """Restore files from a backup"""
    deployer = ctx.obj.deployer

    if verify:
        check = deployer.verify_backup(backup_id)
        for warning in check.warnings:
            print_warning(warning)
        for error in check.errors:
            print_warning(error)

    result = deployer.restore_backup(backup_id, list(components) or None)
    format_restore_result(result)

    if not result.success:
        sys.exit(1)


@backups.command('cleanup')
@click.option('--keep', type=int, help='Number of backups to keep (default from configuration)')
@click.pass_context
def cleanup(ctx, keep):
    """Delete old backups and expired deployment states"""
    deployer = ctx.obj.deployer
    result = deployer.cleanup_backups(keep)
    states = deployer.cleanup_states()

    for error in result.errors:
        print_warning(error)
    print_success(f"Removed {result.cleaned} backup(s) and {states} deployment state(s)")
