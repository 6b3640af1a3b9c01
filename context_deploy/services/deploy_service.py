"""Deployment orchestration

Sequence per attempt: plan, security gate, lock, state, backup, per-component
conflict resolution and write, rollback on failure, final state, unlock.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..api.exceptions import (
    ContextDeployError,
    DeployError,
    LockContentionError,
    LockOwnershipError,
    RecoveryFailure,
    SecurityViolation,
    ValidationError,
)
from ..constants import SEQUENTIAL_COMPONENTS, ConflictStrategy, ErrorCode, ProgressEvent
from ..core.diff_engine import DiffEngine
from ..core.lock_manager import LockManager, StalenessPolicy
from ..core.path_guard import PathGuard
from ..core.platform_layout import ComponentLayout, PlatformDetector, layout_for_options
from ..models.config import DeployOptions, EngineConfig
from ..models.lock import LockHandle
from ..models.result import DeployResult, OperationStatus, utcnow
from ..models.security import SecurityBlocker
from ..models.state import DeploymentState, RecoveryPlan
from ..utils.async_utils import AsyncPool, retry_async
from .backup_service import BackupService
from .bundle_loader import LocalBundleFetcher, RemoteFetcher, parse_bundle
from .component_writer import ComponentWriter, FileComponentWriter
from .conflict_resolver import NO_EXISTING_CONFIG, ConflictResolver
from .security_scanner import SecurityScanner
from .state_manager import DeploymentStateManager

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass
class DeploymentPlan:
    """What a deployment attempt will touch"""

    options: DeployOptions
    layout: ComponentLayout
    context: Dict[str, Any]
    components: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def parallel_components(self) -> List[str]:
        return [c for c in self.components if c not in SEQUENTIAL_COMPONENTS]

    @property
    def sequential_components(self) -> List[str]:
        return [c for c in SEQUENTIAL_COMPONENTS if c in self.components]


class DeployService:
    """Orchestrates safe deployment of a context bundle"""

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 writer: Optional[ComponentWriter] = None,
                 fetcher: Optional[RemoteFetcher] = None,
                 detector: Optional[PlatformDetector] = None,
                 clock: Clock = utcnow):
        """Initialize deploy service

        Args:
            config: Engine configuration
            writer: Component writer collaborator
            fetcher: Bundle fetch collaborator
            detector: Platform installation detector
            clock: Source of the current time
        """
        self.config = config or EngineConfig()
        self.writer = writer or FileComponentWriter()
        self.fetcher = fetcher or LocalBundleFetcher()
        self.detector = detector
        self.clock = clock

        self.diff_engine = DiffEngine()
        self.path_guard = PathGuard()
        self.scanner = SecurityScanner(self.path_guard)
        self.lock_manager = LockManager(
            self.config.lock_dir,
            policy=StalenessPolicy(timeout=self.config.lock_timeout),
            poll_interval=self.config.lock_poll_interval,
            clock=clock,
        )
        self.state_manager = DeploymentStateManager(
            self.config.state_dir,
            clock=clock,
            inactivity_threshold=self.config.inactivity_threshold,
            stall_threshold=self.config.stall_threshold,
        )
        self.backup_service = BackupService(
            self.config.backup_dir,
            clock=clock,
            layout_factory=self._layout_for,
        )

    def _layout_for(self, options: DeployOptions) -> ComponentLayout:
        return layout_for_options(options, self.detector)

    def new_deployment_id(self) -> str:
        return f"deploy-{self.clock():%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:8]}"

    async def fetch_context(self, config_id: str) -> Dict[str, Any]:
        """Fetch and parse a bundle, retrying with exponential backoff

        Raises:
            DeployError: When every attempt failed
            ValidationError: When the bundle cannot be parsed
        """
        try:
            data = await retry_async(
                self.fetcher.fetch,
                config_id,
                max_attempts=self.config.fetch_retry_count,
                delay=self.config.fetch_retry_delay,
                backoff=self.config.fetch_backoff,
                exceptions=(OSError, ConnectionError, TimeoutError),
            )
        except (OSError, ConnectionError, TimeoutError) as e:
            raise DeployError(
                f"Failed to fetch {config_id} after {self.config.fetch_retry_count} attempt(s): {e}",
                ErrorCode.FETCH_EXHAUSTED,
            ) from e

        return parse_bundle(data)

    async def deploy_from_source(self, config_id: str, options: DeployOptions) -> DeployResult:
        """Fetch a bundle and deploy it"""
        try:
            context = await self.fetch_context(config_id)
        except (DeployError, ValidationError) as e:
            result = DeployResult(status=OperationStatus.IN_PROGRESS, platform=options.platform.value)
            result.add_error(e.error_code, str(e), source=config_id)
            result.finalize()
            return result
        return await self.deploy(context, options)

    def plan(self, context: Any, options: DeployOptions) -> DeploymentPlan:
        """Select the components of a context that will be deployed

        Raises:
            ValidationError: On a malformed context or unknown explicit components
        """
        if not isinstance(context, dict):
            raise ValidationError("Context must be a mapping of component names to configuration")

        layout = self._layout_for(options)
        options = dataclasses.replace(options, platform_path=layout.platform_path)
        plan = DeploymentPlan(options=options, layout=layout, context=context)

        unknown = [c for c in options.components if not layout.is_known(c)]
        if unknown:
            raise ValidationError(
                f"Unknown component(s) for {options.platform.value}: {', '.join(unknown)}"
            )

        for component in context:
            if not options.selects(component):
                continue
            if not layout.is_known(component):
                plan.warnings.append(f"Skipping {component}: not a {options.platform.value} component")
                continue
            if not layout.resolve(component):
                plan.warnings.append(f"Skipping {component}: requires a workspace path")
                continue
            plan.components.append(component)

        if not plan.components:
            raise ValidationError("No deployable components selected")

        return plan

    def check_paths(self, plan: DeploymentPlan) -> None:
        """Reject target files outside the platform and workspace directories

        Raises:
            SecurityViolation: If any target path is unsafe
        """
        roots = plan.layout.allowed_roots()
        blockers = []

        for component in plan.components:
            for path in plan.layout.resolve(component):
                if not self.path_guard.validate_path(path):
                    blockers.append(SecurityBlocker(
                        type="unsafe_path",
                        message=f"{component}: unsafe target path {path}",
                        path=str(path),
                    ))
                elif not self.path_guard.is_within_allowed_directory(path, roots):
                    blockers.append(SecurityBlocker(
                        type="path_escape",
                        message=f"{component}: {path} is outside the allowed directories",
                        path=str(path),
                    ))

        if blockers:
            raise SecurityViolation("; ".join(b.message for b in blockers), blockers=blockers)

    async def deploy(self, context: Dict[str, Any], options: DeployOptions) -> DeployResult:
        """Deploy a context

        Validation, security and lock failures abort before any file is
        touched. Component failures are collected and, when
        ``rollback_on_failure`` is set, rolled back from the pre-deployment
        backup.

        Args:
            context: Mapping of component names to configuration
            options: Deployment options

        Returns:
            Deployment result
        """
        deployment_id = self.new_deployment_id()
        result = DeployResult(
            status=OperationStatus.IN_PROGRESS,
            deployment_id=deployment_id,
            platform=options.platform.value,
            dry_run=options.dry_run,
        )

        try:
            plan = self.plan(context, options)
            self.check_paths(plan)
            scan = self.scanner.scan_context(
                {c: context[c] for c in plan.components},
                fail_on_secrets=options.fail_on_secrets,
            )
        except (ValidationError, SecurityViolation) as e:
            result.add_error(e.error_code, str(e))
            result.message = "Deployment rejected"
            result.finalize()
            return result

        result.warnings.extend(plan.warnings)
        result.warnings.extend(scan.warnings)
        result.secrets_sanitized = len(scan.secret_mapping)
        plan.context = scan.sanitized

        if options.validate_only:
            result.message = f"Validation passed for {len(plan.components)} component(s)"
            result.skipped_components = list(plan.components)
            result.complete(OperationStatus.SKIPPED)
            return result

        try:
            handle = await self._acquire(plan.options)
        except LockContentionError as e:
            result.add_error(e.error_code, str(e), resource=e.resource, holder_pid=e.holder_pid)
            result.message = "Another deployment is in progress"
            result.finalize()
            return result

        try:
            await self._execute(plan, result)
        finally:
            await self._release(handle, result)

        result.finalize()
        result.message = self._summary(result)
        return result

    async def _release(self, handle: LockHandle, result: DeployResult) -> None:
        try:
            await self.lock_manager.release_lock(handle)
        except LockOwnershipError as e:
            logger.warning("Lock for %s was not released: %s", handle.resource, e)
            result.add_warning(f"Lock for {handle.resource} was not released: {e}")

    async def _acquire(self, options: DeployOptions) -> LockHandle:
        resource = options.resource_scope
        if options.lock_wait is None:
            return await self.lock_manager.acquire_lock(resource)

        handle = await self.lock_manager.wait_for_lock(resource, options.lock_wait)
        if handle is None:
            raise LockContentionError(resource)
        return handle

    async def _execute(self, plan: DeploymentPlan, result: DeployResult) -> None:
        options = plan.options
        deployment_id = result.deployment_id
        track = not options.dry_run

        if track:
            await self.state_manager.create_deployment_state(
                deployment_id, plan.components, options.to_dict()
            )

            backup = await self.backup_service.create_backup(deployment_id, options, plan.components)
            result.backup_id = backup.backup_id
            result.warnings.extend(backup.warnings)
            if not backup.success:
                for error in backup.errors:
                    result.add_error(ErrorCode.BACKUP_FAILED, error)
                result.failed_components.extend(plan.components)
                await self._finish_state(deployment_id, success=False, result=result)
                return

        pool = AsyncPool(self.config.max_concurrency)
        parallel = plan.parallel_components
        for component in parallel:
            await pool.submit(self._deploy_component(plan, component, result))

        for component, outcome in zip(parallel, await pool.wait_all()):
            if isinstance(outcome, Exception):
                logger.exception("Unexpected failure deploying %s", component, exc_info=outcome)
                result.add_error(ErrorCode.DEPLOY_FAILED, f"{component}: {outcome}", component=component)
                if component not in result.failed_components:
                    result.failed_components.append(component)

        for component in plan.sequential_components:
            await self._deploy_component(plan, component, result)

        if track and result.failed_components and options.rollback_on_failure:
            await self._rollback(plan, result)

        if track:
            await self._finish_state(deployment_id, success=not result.failed_components, result=result)
            await self._sweep_retention(result)

    async def _deploy_component(self, plan: DeploymentPlan, component: str, result: DeployResult) -> None:
        options = plan.options
        track = not options.dry_run
        deployment_id = result.deployment_id

        if track:
            await self._track(deployment_id, component, ProgressEvent.STARTED, result)

        try:
            resolver = ConflictResolver(plan.layout, self.diff_engine)
            resolution = await resolver.resolve_configuration_conflicts(
                component, plan.context[component], options
            )
            result.warnings.extend(resolution.warnings)
            if resolution.has_conflicts:
                result.conflicts_resolved += 1
            if options.dry_run and resolution.diff is not None:
                result.metadata.setdefault("diffs", {})[component] = self.diff_engine.format_diff(resolution.diff)

            if (options.conflict_strategy == ConflictStrategy.SKIP
                    and resolution.resolution_strategy != NO_EXISTING_CONFIG):
                result.skipped_components.append(component)
                if track:
                    await self._track(deployment_id, component, ProgressEvent.COMPLETED, result)
                return

            for path in plan.layout.resolve(component):
                write = await self.writer.write(component, resolution.resolved_config, path, options)
                result.write_results.append(write)
                result.warnings.extend(write.warnings)
                if not write.success:
                    raise DeployError("; ".join(write.errors) or f"Failed to write {path}",
                                      ErrorCode.COMPONENT_WRITE_FAILED)

        except (ContextDeployError, OSError, TypeError) as e:
            code = getattr(e, "error_code", None) or ErrorCode.DEPLOY_FAILED
            logger.error("Component %s failed: %s", component, e)
            result.add_error(code, f"{component}: {e}", component=component)
            result.failed_components.append(component)
            if track:
                await self._track(deployment_id, component, ProgressEvent.FAILED, result, error=str(e))
            return

        result.deployed_components.append(component)
        if track:
            await self._track(deployment_id, component, ProgressEvent.COMPLETED, result)

    async def _track(self,
                     deployment_id: str,
                     component: str,
                     event: ProgressEvent,
                     result: DeployResult,
                     error: Optional[str] = None) -> None:
        written = await self.state_manager.update_deployment_progress(deployment_id, component, event, error)
        if not written:
            result.add_warning(f"State tracking failed for {component}: {written.error}")

    async def _rollback(self, plan: DeploymentPlan, result: DeployResult) -> None:
        for component in list(result.failed_components):
            try:
                restore = await self.backup_service.rollback_with_dependencies(
                    result.backup_id, component, plan.components
                )
            except RecoveryFailure as e:
                result.add_error(e.error_code, f"Rollback of {component} failed: {e}", component=component)
                continue

            result.rolled_back = True
            result.warnings.extend(restore.warnings)
            for error in restore.errors:
                result.add_error(ErrorCode.RECOVERY_FAILED, error, component=component)

            for reverted in restore.components:
                if reverted in result.deployed_components:
                    result.deployed_components.remove(reverted)
                    result.add_warning(f"{reverted} rolled back together with {component}")

    async def _finish_state(self, deployment_id: str, success: bool, result: DeployResult) -> None:
        written = await self.state_manager.mark_deployment_completed(deployment_id, success)
        if not written:
            result.add_warning(f"Could not record final deployment state: {written.error}")

    async def _sweep_retention(self, result: DeployResult) -> None:
        cleanup = await self.backup_service.cleanup_backups(self.config.backup_keep_count)
        result.warnings.extend(f"Backup cleanup: {e}" for e in cleanup.errors)
        await self.state_manager.cleanup_old_states(self.config.state_retention)

    @staticmethod
    def _summary(result: DeployResult) -> str:
        prefix = "Dry run: would deploy" if result.dry_run else "Deployed"
        summary = f"{prefix} {len(result.deployed_components)} component(s)"
        if result.failed_components:
            summary += f", {len(result.failed_components)} failed"
        if result.skipped_components:
            summary += f", {len(result.skipped_components)} skipped"
        return summary

    async def find_interrupted(self) -> List[DeploymentState]:
        return await self.state_manager.find_interrupted_deployments()

    async def recovery_plan(self, deployment_id: str) -> RecoveryPlan:
        return await self.state_manager.resume_deployment(deployment_id)
