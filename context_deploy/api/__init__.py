"""API layer for context-deploy"""

from .exceptions import (
    ContextDeployError,
    ValidationError,
    SecurityViolation,
    LockContentionError,
    LockOwnershipError,
    DeployIOError,
    StateCorruptionError,
    RecoveryFailure,
    DeployError,
)
from .deployer import Deployer, deploy

__all__ = [
    # Main classes
    "Deployer",

    # Convenience functions
    "deploy",

    # Exceptions
    "ContextDeployError",
    "ValidationError",
    "SecurityViolation",
    "LockContentionError",
    "LockOwnershipError",
    "DeployIOError",
    "StateCorruptionError",
    "RecoveryFailure",
    "DeployError",
]
