"""Deployment state and recovery models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..__version__ import STATE_FORMAT_VERSION
from ..constants import DeploymentStatus, Priority, RecoveryActionType


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class DeploymentState:
    """Persisted progress of a single deployment

    ``timestamp`` is the last-activity time; it is refreshed on every
    progress event and drives interrupted-deployment detection.
    """

    deployment_id: str
    status: DeploymentStatus
    started_at: datetime
    timestamp: datetime
    components: List[str] = field(default_factory=list)
    completed_components: List[str] = field(default_factory=list)
    failed_components: List[str] = field(default_factory=list)
    in_progress_components: List[str] = field(default_factory=list)
    component_errors: Dict[str, str] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    completed_at: Optional[datetime] = None
    version: str = STATE_FORMAT_VERSION

    @property
    def is_terminal(self) -> bool:
        return self.status in (DeploymentStatus.COMPLETED, DeploymentStatus.FAILED)

    @property
    def remaining_components(self) -> List[str]:
        """Planned components that neither completed nor failed"""
        done = set(self.completed_components) | set(self.failed_components)
        return [c for c in self.components if c not in done]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted camelCase layout"""
        return {
            "deploymentId": self.deployment_id,
            "status": self.status.value,
            "startedAt": _format_time(self.started_at),
            "timestamp": _format_time(self.timestamp),
            "completedAt": _format_time(self.completed_at),
            "components": list(self.components),
            "completedComponents": list(self.completed_components),
            "failedComponents": list(self.failed_components),
            "inProgressComponents": list(self.in_progress_components),
            "componentErrors": dict(self.component_errors),
            "options": dict(self.options),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeploymentState':
        """Create from persisted dictionary

        Raises:
            KeyError, ValueError, TypeError: On malformed content
        """
        started_at = _parse_time(data["startedAt"])
        if started_at is None:
            raise ValueError("startedAt is missing")
        return cls(
            deployment_id=data["deploymentId"],
            status=DeploymentStatus(data["status"]),
            started_at=started_at,
            timestamp=_parse_time(data.get("timestamp")) or started_at,
            completed_at=_parse_time(data.get("completedAt")),
            components=list(data.get("components", [])),
            completed_components=list(data.get("completedComponents", [])),
            failed_components=list(data.get("failedComponents", [])),
            in_progress_components=list(data.get("inProgressComponents", [])),
            component_errors=dict(data.get("componentErrors", {})),
            options=dict(data.get("options", {})),
            version=data.get("version", STATE_FORMAT_VERSION),
        )


@dataclass
class RecoveryAction:
    """One prioritised step of a recovery plan"""

    type: RecoveryActionType
    description: str
    components: List[str]
    priority: Priority

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "components": list(self.components),
            "priority": self.priority.value,
        }


@dataclass
class RecoveryPlan:
    """Derived plan for bringing an interrupted deployment to a terminal state"""

    deployment_id: str
    remaining_components: List[str] = field(default_factory=list)
    completed_components: List[str] = field(default_factory=list)
    failed_components: List[str] = field(default_factory=list)
    recovery_actions: List[RecoveryAction] = field(default_factory=list)
    estimated_time_remaining: int = 0

    def actions_of(self, action_type: RecoveryActionType) -> List[RecoveryAction]:
        return [a for a in self.recovery_actions if a.type == action_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployment_id": self.deployment_id,
            "remaining_components": self.remaining_components,
            "completed_components": self.completed_components,
            "failed_components": self.failed_components,
            "recovery_actions": [a.to_dict() for a in self.recovery_actions],
            "estimated_time_remaining": self.estimated_time_remaining,
        }


@dataclass
class StateWriteResult:
    """Outcome of a best-effort state write

    State persistence never aborts a deployment; callers inspect this
    instead of catching exceptions.
    """

    success: bool
    deployment_id: str
    path: Optional[Path] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success
