"""Business logic services for context-deploy"""

from .conflict_resolver import ConflictResolver
from .state_manager import DeploymentStateManager
from .backup_service import BackupService
from .security_scanner import SecurityScanner
from .component_writer import ComponentWriter, FileComponentWriter
from .bundle_loader import RemoteFetcher, LocalBundleFetcher
from .config_service import ConfigService
from .deploy_service import DeployService

__all__ = [
    "ConflictResolver",
    "DeploymentStateManager",
    "BackupService",
    "SecurityScanner",
    "ComponentWriter",
    "FileComponentWriter",
    "RemoteFetcher",
    "LocalBundleFetcher",
    "ConfigService",
    "DeployService",
]
