"""Main CLI entry point for context-deploy"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from ..constants import APP_NAME, LOG_FORMAT
from ..api import Deployer
from ..api.exceptions import ContextDeployError

# Import all commands
from .commands import (
    deploy,
    recover,
    backups,
    locks,
)

console = Console()


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Setup logging configuration

    Args:
        verbose: Enable verbose output (INFO level)
        debug: Enable debug output (DEBUG level)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            RichHandler(
                console=console,
                show_time=debug,
                show_path=debug,
                rich_tracebacks=True,
                tracebacks_suppress=[click]
            )
        ]
    )

    # Adjust third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiofiles").setLevel(logging.WARNING)


class Context:
    """CLI context object with a lazily built deployer

    Loading the engine configuration is deferred until a command needs
    it, so ``--help`` works even with a broken config file.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path
        self.verbose: bool = False
        self.debug: bool = False
        self._deployer: Optional[Deployer] = None

    @property
    def deployer(self) -> Deployer:
        """Get deployer instance (lazy loading)

        Raises:
            ValidationError: If the configuration file is invalid
        """
        if self._deployer is None:
            self._deployer = Deployer(config_path=self.config_path)
            if self.debug:
                console.print(f"[dim]Engine home: {self._deployer.config.home}[/dim]")
        return self._deployer


@click.group(name=APP_NAME)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('-d', '--debug', is_flag=True, help='Enable debug output')
@click.option('-q', '--quiet', is_flag=True, help='Suppress all output except errors')
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Engine configuration file')
@click.pass_context
def cli(ctx, verbose, debug, quiet, config_path):
    """Context Deploy - Safely deploy AI assistant context bundles

    Writes settings, rules, MCP servers and prompts for Claude Code,
    Cursor and other assistants. Every deployment is locked, scanned for
    secrets and dangerous commands, backed up and tracked so it can be
    rolled back or recovered after a crash.
    """
    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_logging(verbose=verbose, debug=debug)

    ctx.obj = Context(config_path)
    ctx.obj.verbose = verbose
    ctx.obj.debug = debug


# Register commands
cli.add_command(deploy.deploy)
cli.add_command(recover.recover)
cli.add_command(backups.backups)
cli.add_command(locks.locks)


def main():
    """Main entry point for the CLI application

    This function handles:
    - Keyboard interrupts
    - Engine errors with their error code
    - Unexpected exceptions with proper error display
    """
    try:
        cli(prog_name=APP_NAME)

    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(130)

    except ContextDeployError as e:
        console.print(f"[red]Error [{e.error_code}]: {e}[/red]")
        sys.exit(1)

    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if '--debug' in sys.argv or '-d' in sys.argv:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
