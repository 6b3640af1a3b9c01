"""Deployer API for deployment operations"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..models import (
    BackupInfo,
    CleanupResult,
    DeployOptions,
    DeployResult,
    DeploymentState,
    EngineConfig,
    LockFileContent,
    RecoveryPlan,
    RestoreResult,
    ValidationResult,
)
from ..services.component_writer import ComponentWriter
from ..services.bundle_loader import RemoteFetcher
from ..services.config_service import ConfigService
from ..services.deploy_service import DeployService
from ..utils.async_utils import run_async


class Deployer:
    """Synchronous facade over the deployment engine"""

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 config_path: Optional[Union[str, Path]] = None,
                 writer: Optional[ComponentWriter] = None,
                 fetcher: Optional[RemoteFetcher] = None):
        """
        Initialize deployer

        Args:
            config: Engine configuration; loaded from YAML when omitted
            config_path: Explicit configuration file
            writer: Component writer collaborator
            fetcher: Bundle fetch collaborator
        """
        self.config = config or ConfigService(config_path).config
        self.service = DeployService(self.config, writer=writer, fetcher=fetcher)

    def deploy(self, context: Dict[str, Any], **options) -> DeployResult:
        """
        Deploy an in-memory context

        Args:
            context: Mapping of component names to configuration
            **options: ``DeployOptions`` fields, ``platform`` is required

        Returns:
            DeployResult: Deployment result

        Raises:
            ValidationError: If the options are invalid
        """
        return run_async(self.service.deploy(context, DeployOptions.from_dict(options)))

    def deploy_bundle(self, config_id: str, **options) -> DeployResult:
        """
        Fetch a bundle and deploy it

        Args:
            config_id: Bundle identifier; a file path for the default fetcher
            **options: ``DeployOptions`` fields

        Returns:
            DeployResult: Deployment result
        """
        return run_async(self.service.deploy_from_source(config_id, DeployOptions.from_dict(options)))

    def find_interrupted(self) -> List[DeploymentState]:
        return run_async(self.service.find_interrupted())

    def recovery_plan(self, deployment_id: str) -> RecoveryPlan:
        """
        Build a recovery plan for an interrupted deployment

        Raises:
            RecoveryFailure: If the deployment state is missing or corrupt
        """
        return run_async(self.service.recovery_plan(deployment_id))

    def list_backups(self) -> List[BackupInfo]:
        return run_async(self.service.backup_service.list_backups())

    def restore_backup(self, backup_id: str, components: Optional[List[str]] = None) -> RestoreResult:
        """
        Restore files from a backup

        Args:
            backup_id: Backup to restore
            components: Restrict to these components, all when omitted

        Returns:
            RestoreResult: Restore result

        Raises:
            RecoveryFailure: If the backup manifest is missing or corrupt
        """
        return run_async(self.service.backup_service.restore_from_backup(backup_id, components))

    def verify_backup(self, backup_id: str) -> ValidationResult:
        return run_async(self.service.backup_service.verify_backup(backup_id))

    def cleanup_backups(self, keep_count: Optional[int] = None) -> CleanupResult:
        keep = self.config.backup_keep_count if keep_count is None else keep_count
        return run_async(self.service.backup_service.cleanup_backups(keep))

    def cleanup_states(self) -> int:
        return run_async(self.service.state_manager.cleanup_old_states(self.config.state_retention))

    def list_locks(self) -> List[LockFileContent]:
        return self.service.lock_manager.list_locks()

    def cleanup_locks(self) -> int:
        return self.service.lock_manager.cleanup_stale_locks()

    def release_locks(self, scope: str) -> int:
        """Force-release every lock whose resource contains ``scope``"""
        return self.service.lock_manager.release_all(scope)


def deploy(context: Optional[Dict[str, Any]] = None,
           bundle: Optional[str] = None,
           **options) -> DeployResult:
    """
    Deploy a context or a bundle

    This is a convenience function that creates a Deployer instance
    and performs the deployment.

    Args:
        context: In-memory context
        bundle: Bundle identifier to fetch
        **options: ``DeployOptions`` fields

    Returns:
        DeployResult: Deployment result

    Raises:
        ValueError: If neither or both of context and bundle are given
    """
    if context is None and bundle is None:
        raise ValueError("Must specify either context or bundle")

    if context is not None and bundle is not None:
        raise ValueError("Cannot specify both context and bundle")

    deployer = Deployer()

    if bundle is not None:
        return deployer.deploy_bundle(bundle, **options)
    return deployer.deploy(context, **options)
