"""CLI commands"""

from . import deploy
from . import recover
from . import backups
from . import locks

__all__ = [
    "deploy",
    "recover",
    "backups",
    "locks",
]
