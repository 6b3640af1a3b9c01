"""Output formatting utilities"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.panel import Panel
from rich import box

from ...constants import EMOJI_ERROR, EMOJI_SUCCESS, EMOJI_WARNING, MSG_DEPLOY_SUCCESS
from ...models import (
    BackupInfo,
    DeployResult,
    DeploymentState,
    LockFileContent,
    OperationStatus,
    RecoveryPlan,
    RestoreResult,
)
from ...utils.file_utils import format_size

console = Console()


def _bullets(items: List[str], style: str, limit: int = 10) -> List[str]:
    lines = [f"  [{style}]• {escape(item)}[/{style}]" for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"  [dim]... and {len(items) - limit} more[/dim]")
    return lines


def format_deploy_result(result: DeployResult, show_diffs: bool = False) -> None:
    """Format and display deploy operation result"""
    if result.success:
        headline = "[green]" + escape(
            MSG_DEPLOY_SUCCESS.format(count=len(result.deployed_components), platform=result.platform)
        ) + "[/green]"
        if result.dry_run:
            headline = f"[green]{EMOJI_SUCCESS}[/green] {escape(result.message)}"
        border, title = "green", "Deploy Result"
    elif result.status == OperationStatus.SKIPPED:
        headline = f"[yellow]{EMOJI_WARNING}[/yellow] {escape(result.message or 'Nothing deployed')}"
        border, title = "yellow", "Deploy Result"
    else:
        headline = f"[red]{EMOJI_ERROR} Deploy failed:[/red] {escape(result.message)}"
        border, title = "red", "Deploy Error"

    lines = [headline, ""]
    if result.deployment_id:
        lines.append(f"[bold]Deployment:[/bold] {result.deployment_id}")
    lines.append(f"[bold]Status:[/bold] {result.status.value}")

    if result.deployed_components:
        lines.append(f"[bold]Deployed:[/bold] {', '.join(result.deployed_components)}")
    if result.skipped_components:
        lines.append(f"[bold]Skipped:[/bold] {', '.join(result.skipped_components)}")
    if result.failed_components:
        lines.append(f"[bold]Failed:[/bold] [red]{', '.join(result.failed_components)}[/red]")
    if result.conflicts_resolved:
        lines.append(f"[bold]Conflicts resolved:[/bold] {result.conflicts_resolved}")
    if result.secrets_sanitized:
        lines.append(f"[bold]Secrets sanitized:[/bold] {result.secrets_sanitized}")
    if result.backup_id:
        lines.append(f"[bold]Backup:[/bold] {result.backup_id}")
    if result.rolled_back:
        lines.append("[yellow]Failed components were rolled back[/yellow]")

    if result.errors:
        lines.append("")
        lines.append("[bold red]Errors:[/bold red]")
        lines.extend(_bullets([f"[{e.code}] {e.message}" for e in result.errors], "red"))

    if result.warnings:
        lines.append("")
        lines.append("[bold yellow]Warnings:[/bold yellow]")
        lines.extend(_bullets(result.warnings, "yellow"))

    console.print(Panel("\n".join(lines), title=title, border_style=border))

    if show_diffs:
        for component, diff_text in result.metadata.get("diffs", {}).items():
            console.print(Panel(escape(diff_text), title=f"{component} changes", border_style="blue"))


def format_interrupted_list(states: List[DeploymentState]) -> None:
    """Format and display interrupted deployments"""
    if not states:
        console.print("[green]No interrupted deployments[/green]")
        return

    table = Table(title="Interrupted Deployments", box=box.SIMPLE)
    table.add_column("Deployment", style="cyan")
    table.add_column("Started", style="dim")
    table.add_column("Last activity", style="dim")
    table.add_column("Done", style="green")
    table.add_column("Failed", style="red")
    table.add_column("In progress", style="yellow")

    for state in states:
        table.add_row(
            state.deployment_id,
            state.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            state.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(state.completed_components)),
            ", ".join(state.failed_components) or "-",
            ", ".join(state.in_progress_components) or "-",
        )

    console.print(table)


def format_recovery_plan(plan: RecoveryPlan) -> None:
    """Format and display a recovery plan"""
    lines = [
        f"[bold]Deployment:[/bold] {plan.deployment_id}",
        f"[bold]Completed:[/bold] {', '.join(plan.completed_components) or '-'}",
        f"[bold]Failed:[/bold] {', '.join(plan.failed_components) or '-'}",
        f"[bold]Remaining:[/bold] {', '.join(plan.remaining_components) or '-'}",
        f"[bold]Estimated time:[/bold] ~{plan.estimated_time_remaining}s",
    ]

    if plan.recovery_actions:
        lines.append("")
        lines.append("[bold]Actions:[/bold]")
        for action in plan.recovery_actions:
            lines.append(
                f"  • [cyan]{action.type.value}[/cyan] ({action.priority.value}): "
                f"{escape(action.description)}"
            )
    else:
        lines.append("")
        lines.append("[green]Nothing to recover[/green]")

    console.print(Panel("\n".join(lines), title="Recovery Plan", border_style="blue"))


def format_backup_list(backups: List[BackupInfo]) -> None:
    """Format and display backups"""
    if not backups:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title="Backups", box=box.SIMPLE)
    table.add_column("Backup", style="cyan")
    table.add_column("Deployment")
    table.add_column("Created", style="dim")
    table.add_column("Components", style="green")
    table.add_column("Files", justify="right")
    table.add_column("Size", style="dim", justify="right")

    for backup in backups:
        table.add_row(
            backup.backup_id,
            backup.deployment_id,
            backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            ", ".join(backup.components),
            str(backup.file_count),
            format_size(backup.size),
        )

    console.print(table)


def format_restore_result(result: RestoreResult) -> None:
    """Format and display a restore result"""
    if result.success and not result.partial:
        lines = [f"[green]{EMOJI_SUCCESS}[/green] Restored backup {result.backup_id}"]
        border = "green"
    elif result.success:
        lines = [f"[yellow]{EMOJI_WARNING}[/yellow] Partially restored backup {result.backup_id}"]
        border = "yellow"
    else:
        lines = [f"[red]{EMOJI_ERROR} Restore of {result.backup_id} failed[/red]"]
        border = "red"

    lines.append("")
    lines.append(f"[bold]Restored:[/bold] {len(result.restored_files)} file(s)")
    if result.removed_files:
        lines.append(f"[bold]Removed:[/bold] {len(result.removed_files)} file(s) created by the deployment")
    if result.failed_files:
        lines.append(f"[bold]Failed:[/bold] {len(result.failed_files)} file(s)")
        lines.extend(_bullets(result.errors, "red"))
    if result.warnings:
        lines.extend(_bullets(result.warnings, "yellow"))

    console.print(Panel("\n".join(lines), title="Restore Result", border_style=border))


def format_lock_list(locks: List[LockFileContent]) -> None:
    """Format and display held locks"""
    if not locks:
        console.print("[green]No locks held[/green]")
        return

    table = Table(title="Locks", box=box.SIMPLE)
    table.add_column("Resource", style="cyan")
    table.add_column("PID", justify="right")
    table.add_column("Acquired", style="dim")

    for lock in locks:
        table.add_row(lock.resource or "?", str(lock.process_id), lock.timestamp.strftime("%Y-%m-%d %H:%M:%S"))

    console.print(table)


def print_error(message: str, error: Optional[Exception] = None) -> None:
    """Print error message"""
    if error:
        console.print(f"[red]Error:[/red] {escape(message)}: {escape(str(error))}")
    else:
        console.print(f"[red]Error:[/red] {escape(message)}")


def print_warning(message: str) -> None:
    """Print warning message"""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def print_info(message: str) -> None:
    """Print info message"""
    console.print(f"[blue]Info:[/blue] {escape(message)}")


def print_success(message: str) -> None:
    """Print success message"""
    console.print(f"[green]Success:[/green] {escape(message)}")
