"""Deployment state tracking and interrupted-deployment recovery"""

import asyncio
import copy
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..__version__ import STATE_FORMAT_VERSION
from ..api.exceptions import RecoveryFailure, StateCorruptionError
from ..constants import (
    INACTIVITY_THRESHOLD,
    RECOVERY_MIN_SECONDS,
    RECOVERY_SECONDS_CLEANUP,
    RECOVERY_SECONDS_REMAINING,
    RECOVERY_SECONDS_RETRY,
    STALL_THRESHOLD,
    STATE_FILE_SUFFIX,
    DeploymentStatus,
    Priority,
    ProgressEvent,
    RecoveryActionType,
)
from ..models.result import utcnow
from ..models.state import DeploymentState, RecoveryAction, RecoveryPlan, StateWriteResult
from ..utils.file_utils import atomic_write_json, read_json, safe_filename
from ..utils.version_utils import is_compatible_format

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_SECONDS_PER_ACTION = {
    RecoveryActionType.RETRY_FAILED: RECOVERY_SECONDS_RETRY,
    RecoveryActionType.COMPLETE_REMAINING: RECOVERY_SECONDS_REMAINING,
    RecoveryActionType.CLEANUP_PARTIAL: RECOVERY_SECONDS_CLEANUP,
}


def _add_unique(items: List[str], item: str) -> None:
    if item not in items:
        items.append(item)


def _discard(items: List[str], item: str) -> None:
    while item in items:
        items.remove(item)


class DeploymentStateManager:
    """Persists deployment progress and plans recovery of interrupted runs

    State writes are best-effort: failures are logged and reported through
    ``StateWriteResult`` and never abort the deployment.
    """

    def __init__(self,
                 state_dir: Path,
                 clock: Clock = utcnow,
                 inactivity_threshold: float = INACTIVITY_THRESHOLD,
                 stall_threshold: float = STALL_THRESHOLD):
        """Initialize state manager

        Args:
            state_dir: Directory holding one JSON file per deployment
            clock: Source of the current time
            inactivity_threshold: Idle seconds before an in-progress deployment is interrupted
            stall_threshold: Idle seconds before a deployment with components in flight is interrupted
        """
        self.state_dir = Path(state_dir)
        self.clock = clock
        self.inactivity_threshold = inactivity_threshold
        self.stall_threshold = stall_threshold
        # Serialises read-modify-write cycles on one state file
        self._update_locks: Dict[str, asyncio.Lock] = {}

    def state_path(self, deployment_id: str) -> Path:
        return self.state_dir / f"{safe_filename(deployment_id, 120)}{STATE_FILE_SUFFIX}"

    async def create_deployment_state(self,
                                      deployment_id: str,
                                      components: List[str],
                                      options: Optional[Dict[str, Any]] = None) -> DeploymentState:
        """Record the start of a deployment

        Args:
            deployment_id: Deployment identifier
            components: All components planned for this deployment
            options: Deployment options, stored for recovery

        Returns:
            The new state, already moved to ``in_progress``
        """
        now = self.clock()
        state = DeploymentState(
            deployment_id=deployment_id,
            status=DeploymentStatus.INITIALIZING,
            started_at=now,
            timestamp=now,
            components=list(components),
            options=dict(options or {}),
        )
        state.status = DeploymentStatus.IN_PROGRESS
        await self.save_deployment_state(state)
        return state

    async def save_deployment_state(self, state: DeploymentState) -> StateWriteResult:
        """Persist a state document

        Returns:
            Write outcome; failures are logged, not raised
        """
        path = self.state_path(state.deployment_id)
        try:
            await atomic_write_json(path, state.to_dict())
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to save deployment state %s: %s", state.deployment_id, e)
            return StateWriteResult(success=False, deployment_id=state.deployment_id, path=path, error=str(e))

        return StateWriteResult(success=True, deployment_id=state.deployment_id, path=path)

    async def load_deployment_state(self, deployment_id: str) -> Optional[DeploymentState]:
        """Read a state document

        Returns:
            The state, or None when no state exists

        Raises:
            StateCorruptionError: If the document cannot be read or parsed
        """
        path = self.state_path(deployment_id)
        if not path.exists():
            return None
        return await self._load_path(path, deployment_id)

    async def _load_path(self, path: Path, deployment_id: str) -> DeploymentState:
        try:
            data = await read_json(path)
            state = DeploymentState.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise StateCorruptionError(deployment_id, str(e)) from e

        if not is_compatible_format(state.version, STATE_FORMAT_VERSION):
            raise StateCorruptionError(
                deployment_id, f"unsupported state format {state.version} (expected {STATE_FORMAT_VERSION})"
            )
        return state

    async def update_deployment_progress(self,
                                         deployment_id: str,
                                         component: str,
                                         event: Union[ProgressEvent, str],
                                         error: Optional[str] = None) -> StateWriteResult:
        """Move a component between in-progress, completed and failed

        The overall status is recomputed after every event: once every planned
        component has completed or failed the deployment is ``completed`` (no
        failures) or ``failed``.

        Args:
            deployment_id: Deployment identifier
            component: Component name
            event: started, completed or failed
            error: Error message for failed events

        Returns:
            Write outcome
        """
        event = ProgressEvent(event)

        async with self._update_lock(deployment_id):
            return await self._apply_progress(deployment_id, component, event, error)

    def _update_lock(self, deployment_id: str) -> asyncio.Lock:
        if deployment_id not in self._update_locks:
            self._update_locks[deployment_id] = asyncio.Lock()
        return self._update_locks[deployment_id]

    async def _apply_progress(self,
                              deployment_id: str,
                              component: str,
                              event: ProgressEvent,
                              error: Optional[str]) -> StateWriteResult:
        try:
            state = await self.load_deployment_state(deployment_id)
        except StateCorruptionError as e:
            logger.error(str(e))
            return StateWriteResult(success=False, deployment_id=deployment_id, error=str(e))

        if state is None:
            message = f"No deployment state found for {deployment_id}"
            logger.warning(message)
            return StateWriteResult(success=False, deployment_id=deployment_id, error=message)

        _add_unique(state.components, component)

        if event == ProgressEvent.STARTED:
            _discard(state.failed_components, component)
            _discard(state.completed_components, component)
            _add_unique(state.in_progress_components, component)
        elif event == ProgressEvent.COMPLETED:
            _discard(state.in_progress_components, component)
            _discard(state.failed_components, component)
            _add_unique(state.completed_components, component)
            state.component_errors.pop(component, None)
        else:
            _discard(state.in_progress_components, component)
            _discard(state.completed_components, component)
            _add_unique(state.failed_components, component)
            state.component_errors[component] = error or "Unknown error"

        now = self.clock()
        self._recompute_status(state, now)
        state.timestamp = now

        logger.debug("%s: %s %s -> %s", deployment_id, component, event.value, state.status.value)
        return await self.save_deployment_state(state)

    @staticmethod
    def _recompute_status(state: DeploymentState, now: datetime) -> None:
        total = len(state.components)
        accounted = len(state.completed_components) + len(state.failed_components)

        if total and accounted >= total:
            state.status = DeploymentStatus.FAILED if state.failed_components else DeploymentStatus.COMPLETED
            state.completed_at = now
        else:
            state.status = DeploymentStatus.IN_PROGRESS
            state.completed_at = None

    async def mark_deployment_completed(self, deployment_id: str, success: bool) -> StateWriteResult:
        """Force a deployment into its terminal status"""
        try:
            state = await self.load_deployment_state(deployment_id)
        except StateCorruptionError as e:
            logger.error(str(e))
            return StateWriteResult(success=False, deployment_id=deployment_id, error=str(e))

        if state is None:
            message = f"No deployment state found for {deployment_id}"
            logger.warning(message)
            return StateWriteResult(success=False, deployment_id=deployment_id, error=message)

        self._update_locks.pop(deployment_id, None)
        now = self.clock()
        state.status = DeploymentStatus.COMPLETED if success else DeploymentStatus.FAILED
        state.completed_at = now
        state.timestamp = now
        return await self.save_deployment_state(state)

    async def list_deployment_states(self) -> List[DeploymentState]:
        """All readable states, newest first; corrupt files are skipped"""
        if not self.state_dir.exists():
            return []

        states = []
        for path in self.state_dir.glob(f"*{STATE_FILE_SUFFIX}"):
            try:
                states.append(await self._load_path(path, path.stem))
            except StateCorruptionError as e:
                logger.warning("Skipping %s: %s", path.name, e)

        states.sort(key=lambda s: s.started_at, reverse=True)
        return states

    def is_interrupted(self, state: DeploymentState, now: Optional[datetime] = None) -> bool:
        """Check whether an in-progress deployment has gone quiet"""
        if state.status != DeploymentStatus.IN_PROGRESS:
            return False

        idle = ((now or self.clock()) - state.timestamp).total_seconds()
        if idle > self.inactivity_threshold:
            return True
        return bool(state.in_progress_components) and idle > self.stall_threshold

    async def find_interrupted_deployments(self) -> List[DeploymentState]:
        """Find deployments that stopped making progress

        Returns:
            Copies of the matching states marked ``interrupted``, newest
            activity first. Persisted states are left untouched.
        """
        now = self.clock()
        interrupted = []

        for state in await self.list_deployment_states():
            if self.is_interrupted(state, now):
                flagged = copy.deepcopy(state)
                flagged.status = DeploymentStatus.INTERRUPTED
                interrupted.append(flagged)

        interrupted.sort(key=lambda s: s.timestamp, reverse=True)
        if interrupted:
            logger.info("Found %d interrupted deployment(s)", len(interrupted))
        return interrupted

    async def resume_deployment(self, deployment_id: str) -> RecoveryPlan:
        """Plan the recovery of a deployment

        Raises:
            RecoveryFailure: If no readable state exists
        """
        try:
            state = await self.load_deployment_state(deployment_id)
        except StateCorruptionError as e:
            raise RecoveryFailure(str(e)) from e

        if state is None:
            raise RecoveryFailure(f"Deployment state not found: {deployment_id}")

        plan = RecoveryPlan(
            deployment_id=deployment_id,
            remaining_components=state.remaining_components,
            completed_components=list(state.completed_components),
            failed_components=list(state.failed_components),
        )

        if state.failed_components:
            plan.recovery_actions.append(RecoveryAction(
                type=RecoveryActionType.RETRY_FAILED,
                description=f"Retry failed components: {', '.join(state.failed_components)}",
                components=list(state.failed_components),
                priority=Priority.HIGH,
            ))

        if plan.remaining_components:
            plan.recovery_actions.append(RecoveryAction(
                type=RecoveryActionType.COMPLETE_REMAINING,
                description=f"Complete remaining components: {', '.join(plan.remaining_components)}",
                components=list(plan.remaining_components),
                priority=Priority.MEDIUM,
            ))

        if state.in_progress_components:
            plan.recovery_actions.append(RecoveryAction(
                type=RecoveryActionType.CLEANUP_PARTIAL,
                description=f"Clean up partially deployed components: {', '.join(state.in_progress_components)}",
                components=list(state.in_progress_components),
                priority=Priority.HIGH,
            ))

        plan.estimated_time_remaining = self.estimate_recovery_time(plan)

        logger.info(
            "Recovery plan for %s: %d action(s), %d remaining component(s)",
            deployment_id, len(plan.recovery_actions), len(plan.remaining_components)
        )
        return plan

    @staticmethod
    def estimate_recovery_time(plan: RecoveryPlan) -> int:
        """Seconds needed to carry out a plan, never below the minimum"""
        seconds = sum(
            _SECONDS_PER_ACTION[action.type] * len(action.components)
            for action in plan.recovery_actions
        )
        return max(seconds, RECOVERY_MIN_SECONDS)

    async def cleanup_old_states(self, max_age: float) -> int:
        """Delete terminal states whose last activity is older than ``max_age`` seconds

        Returns:
            Number of state files removed
        """
        now = self.clock()
        removed = 0

        for state in await self.list_deployment_states():
            if not state.is_terminal:
                continue
            if (now - state.timestamp).total_seconds() <= max_age:
                continue
            try:
                self.state_path(state.deployment_id).unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning("Could not remove state %s: %s", state.deployment_id, e)

        if removed:
            logger.info("Removed %d old deployment state(s)", removed)
        return removed
