"""Context Deploy - safe deployment of AI assistant context bundles.

Writes configuration components (settings, rules, MCP servers, prompts)
for a target platform with locking, conflict resolution, secret
sanitization, backups and crash recovery.
"""

from .__version__ import __version__, __version_info__, __author__, __email__, __license__

# Core API
from .api.deployer import Deployer, deploy

# Exceptions
from .api.exceptions import (
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

# Data models
from .constants import Platform, ConflictStrategy, DeploymentStatus
from .models import DeployOptions, DeployResult, EngineConfig, DeploymentState, RecoveryPlan

# Services
from .services import DeployService

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__author__",
    "__email__",
    "__license__",

    # Main classes
    "Deployer",
    "DeployService",

    # Core API functions
    "deploy",

    # Data models
    "Platform",
    "ConflictStrategy",
    "DeploymentStatus",
    "DeployOptions",
    "DeployResult",
    "EngineConfig",
    "DeploymentState",
    "RecoveryPlan",

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
