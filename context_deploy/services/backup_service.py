"""Backup and rollback of component files"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

import aiofiles

from ..__version__ import MANIFEST_FORMAT_VERSION
from ..api.exceptions import ContextDeployError, RecoveryFailure
from ..constants import BACKUP_MANIFEST_FILE, COMPONENT_DEPENDENCIES
from ..core.platform_layout import ComponentLayout, layout_for_options
from ..models.backup import (
    BackedUpFile,
    BackupInfo,
    BackupManifest,
    BackupResult,
    CleanupResult,
    RestoreResult,
)
from ..models.config import DeployOptions
from ..models.result import ValidationResult, utcnow
from ..utils.file_utils import atomic_write_bytes, atomic_write_json, copy_file, read_json, remove_path, safe_filename
from ..utils.hash_utils import calculate_sha256_async
from ..utils.version_utils import is_compatible_format

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def dependency_closure(component: str, dependencies: Dict[str, List[str]] = COMPONENT_DEPENDENCIES) -> List[str]:
    """The component plus everything it is layered on, transitively

    >>> dependency_closure("debug-config")
    ['debug-config', 'project-settings']
    """
    ordered = [component]
    seen: Set[str] = {component}
    index = 0
    while index < len(ordered):
        for dependency in dependencies.get(ordered[index], []):
            if dependency not in seen:
                seen.add(dependency)
                ordered.append(dependency)
        index += 1
    return ordered


class BackupService:
    """Snapshots component files before a deployment and restores them on demand

    Layout: ``<backup_root>/<backup_id>/<component>/<file>`` plus a
    ``manifest.json`` with a sha256 checksum per original path.
    """

    def __init__(self,
                 backup_root: Path,
                 clock: Clock = utcnow,
                 layout_factory: Callable[[DeployOptions], ComponentLayout] = layout_for_options):
        """Initialize backup service

        Args:
            backup_root: Directory holding all backups
            clock: Source of the current time
            layout_factory: Builds the component file layout for a deployment
        """
        self.backup_root = Path(backup_root)
        self.clock = clock
        self.layout_factory = layout_factory

    def backup_dir(self, backup_id: str) -> Path:
        return self.backup_root / safe_filename(backup_id, 120)

    def _new_backup_id(self) -> str:
        return f"backup-{self.clock():%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:8]}"

    async def create_backup(self,
                            deployment_id: str,
                            options: DeployOptions,
                            components: List[str]) -> BackupResult:
        """Copy the current files of each component into a new backup

        Files that do not exist yet are recorded and reported as warnings.
        A failure on one component does not stop the others.

        Args:
            deployment_id: Deployment the backup belongs to
            options: Deployment options, used to resolve file locations
            components: Components to back up

        Returns:
            Backup result; ``success`` is True when no component failed
        """
        backup_id = self._new_backup_id()
        backup_dir = self.backup_dir(backup_id)
        manifest = BackupManifest(
            backup_id=backup_id,
            deployment_id=deployment_id,
            timestamp=self.clock(),
            components=list(components),
        )
        result = BackupResult(success=False, backup_id=backup_id, backup_path=backup_dir, manifest=manifest)

        try:
            layout = self.layout_factory(options)
        except ContextDeployError as e:
            result.errors.append(f"Cannot resolve component files: {e}")
            return result

        for component in components:
            try:
                await self._backup_component(layout, component, backup_dir, manifest, result)
            except (OSError, ContextDeployError) as e:
                logger.error("Backup of %s failed: %s", component, e)
                result.errors.append(f"{component}: {e}")

        try:
            await atomic_write_json(backup_dir / BACKUP_MANIFEST_FILE, manifest.to_dict())
        except OSError as e:
            result.errors.append(f"Failed to write backup manifest: {e}")

        result.success = not result.errors
        logger.info(
            "Backup %s: %d file(s), %d error(s), %d warning(s)",
            backup_id, len(manifest.files), len(result.errors), len(result.warnings)
        )
        return result

    async def _backup_component(self,
                                layout: ComponentLayout,
                                component: str,
                                backup_dir: Path,
                                manifest: BackupManifest,
                                result: BackupResult) -> None:
        for index, path in enumerate(layout.resolve(component)):
            if not path.is_file():
                manifest.missing_files.setdefault(component, []).append(str(path))
                result.warnings.append(f"{component}: {path} does not exist, nothing to back up")
                continue

            relative_path = f"{safe_filename(component)}/{index:02d}-{safe_filename(path.name)}"
            destination = backup_dir / relative_path
            size = await copy_file(path, destination)

            manifest.files.append(BackedUpFile(
                component=component,
                original_path=str(path),
                backup_path=str(destination),
                relative_path=relative_path,
                size=size,
                timestamp=self.clock(),
            ))
            manifest.checksums[str(path)] = await calculate_sha256_async(destination)

    async def load_manifest(self, backup_id: str) -> BackupManifest:
        """Read a backup manifest

        Raises:
            RecoveryFailure: If the manifest is missing or corrupt
        """
        path = self.backup_dir(backup_id) / BACKUP_MANIFEST_FILE
        if not path.is_file():
            raise RecoveryFailure(f"Backup manifest not found: {backup_id}")

        try:
            manifest = BackupManifest.from_dict(await read_json(path))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise RecoveryFailure(f"Backup manifest for {backup_id} is corrupt: {e}") from e

        if not is_compatible_format(manifest.version, MANIFEST_FORMAT_VERSION):
            raise RecoveryFailure(
                f"Backup {backup_id} uses unsupported manifest format {manifest.version}"
            )
        return manifest

    def _stored_path(self, backup_id: str, entry: BackedUpFile) -> Path:
        if entry.relative_path:
            return self.backup_dir(backup_id) / entry.relative_path
        return Path(entry.backup_path)

    async def restore_from_backup(self,
                                  backup_id: str,
                                  components: Optional[List[str]] = None) -> RestoreResult:
        """Restore backed-up files to their original locations

        Each file is verified against its manifest checksum first and
        restored independently. Files that did not exist when the backup was
        taken are removed again.

        Args:
            backup_id: Backup to restore
            components: Restrict the restore to these components

        Returns:
            Restore result; ``success`` is False only when files were listed
            and none could be restored

        Raises:
            RecoveryFailure: If the manifest is missing or corrupt
        """
        manifest = await self.load_manifest(backup_id)
        selected = list(components) if components is not None else list(manifest.components)
        entries = manifest.files_for(selected)
        result = RestoreResult(success=False, backup_id=backup_id, components=selected)

        for entry in entries:
            try:
                await self._restore_file(backup_id, entry, manifest.checksums.get(entry.original_path))
                result.restored_files.append(entry.original_path)
            except (OSError, RecoveryFailure) as e:
                logger.error("Failed to restore %s: %s", entry.original_path, e)
                result.failed_files.append(entry.original_path)
                result.errors.append(f"{entry.original_path}: {e}")

        for original in manifest.missing_for(selected):
            path = Path(original)
            if not path.exists():
                continue
            try:
                remove_path(path)
                result.removed_files.append(original)
            except OSError as e:
                result.warnings.append(f"Could not remove {original}: {e}")

        result.success = bool(result.restored_files) or not entries
        if result.partial:
            result.warnings.append(
                f"Partial restore: {len(result.restored_files)} restored, {len(result.failed_files)} failed"
            )

        logger.info(
            "Restore %s: %d restored, %d failed, %d removed",
            backup_id, len(result.restored_files), len(result.failed_files), len(result.removed_files)
        )
        return result

    async def _restore_file(self, backup_id: str, entry: BackedUpFile, expected: Optional[str]) -> None:
        stored = self._stored_path(backup_id, entry)
        if not stored.is_file():
            raise RecoveryFailure(f"Backup copy is missing: {stored}")

        if expected and await calculate_sha256_async(stored) != expected:
            raise RecoveryFailure(f"Checksum mismatch for backup copy {stored}")

        async with aiofiles.open(stored, 'rb') as f:
            content = await f.read()
        await atomic_write_bytes(Path(entry.original_path), content)

    async def rollback_with_dependencies(self,
                                         backup_id: str,
                                         failed_component: str,
                                         all_components: List[str]) -> RestoreResult:
        """Restore a failed component together with the components it is layered on

        Args:
            backup_id: Backup to restore from
            failed_component: Component whose deployment failed
            all_components: Components of the deployment; dependencies outside it are ignored

        Returns:
            Restore result for the affected components
        """
        deployed = set(all_components)
        affected = [
            c for c in dependency_closure(failed_component)
            if c == failed_component or c in deployed
        ]
        logger.info("Rolling back %s (affected: %s)", failed_component, ", ".join(affected))
        return await self.restore_from_backup(backup_id, affected)

    async def verify_backup(self, backup_id: str) -> ValidationResult:
        """Check every backed-up file against its manifest checksum"""
        result = ValidationResult()

        try:
            manifest = await self.load_manifest(backup_id)
        except RecoveryFailure as e:
            result.add_error(str(e))
            return result

        for entry in manifest.files:
            stored = self._stored_path(backup_id, entry)
            expected = manifest.checksums.get(entry.original_path)
            if not stored.is_file():
                result.add_error(f"Missing backup copy: {stored}")
            elif expected is None:
                result.add_warning(f"No checksum recorded for {entry.original_path}")
            elif await calculate_sha256_async(stored) != expected:
                result.add_error(f"Checksum mismatch: {stored}")
            else:
                result.add_info(f"Verified {entry.original_path}")

        return result

    async def list_backups(self) -> List[BackupInfo]:
        """Existing backups, newest first; unreadable manifests are skipped"""
        if not self.backup_root.exists():
            return []

        backups = []
        for directory in self.backup_root.iterdir():
            if not (directory / BACKUP_MANIFEST_FILE).is_file():
                continue
            try:
                manifest = await self.load_manifest(directory.name)
            except RecoveryFailure as e:
                logger.warning("Skipping backup %s: %s", directory.name, e)
                continue

            backups.append(BackupInfo(
                backup_id=manifest.backup_id,
                deployment_id=manifest.deployment_id,
                timestamp=manifest.timestamp,
                path=directory,
                components=manifest.components,
                file_count=len(manifest.files),
                size=manifest.total_size,
            ))

        backups.sort(key=lambda b: b.timestamp, reverse=True)
        return backups

    async def cleanup_backups(self, keep_count: int) -> CleanupResult:
        """Keep the ``keep_count`` most recent backups and delete the rest"""
        result = CleanupResult()

        for info in (await self.list_backups())[max(keep_count, 0):]:
            try:
                remove_path(info.path)
                result.cleaned += 1
                result.removed.append(info.backup_id)
            except OSError as e:
                result.errors.append(f"{info.backup_id}: {e}")

        if result.cleaned:
            logger.info("Removed %d old backup(s)", result.cleaned)
        return result
