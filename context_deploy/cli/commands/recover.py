"""Recover command implementation"""

import click

from ..utils.output import format_interrupted_list, format_recovery_plan


@click.command()
@click.argument('deployment_id', required=False)
@click.pass_context
def recover(ctx, deployment_id):
    """Inspect interrupted deployments

    Without DEPLOYMENT_ID, lists deployments that crashed or stalled.
    With it, shows the recovery plan: which components to retry, which
    to complete and which half-written files to clean up.
    """
    deployer = ctx.obj.deployer

    if deployment_id:
        format_recovery_plan(deployer.recovery_plan(deployment_id))
    else:
        format_interrupted_list(deployer.find_interrupted())
