"""Configuration data models"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..api.exceptions import ValidationError
from ..constants import (
    BACKUP_DIR_NAME,
    DEFAULT_BACKUP_KEEP_COUNT,
    DEFAULT_HOME_DIR,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    ENV_HOME,
    INACTIVITY_THRESHOLD,
    LOCK_CHECK_INTERVAL,
    LOCK_DIR_NAME,
    LOCK_TIMEOUT,
    STALL_THRESHOLD,
    STATE_DIR_NAME,
    STATE_RETENTION,
    ConflictStrategy,
    Platform,
)


def default_home() -> Path:
    """Engine home directory, relocatable through CONTEXT_DEPLOY_HOME"""
    return Path(os.environ.get(ENV_HOME) or DEFAULT_HOME_DIR).expanduser()


@dataclass
class EngineConfig:
    """Engine configuration

    Directory fields left unset are derived from ``home``.
    """

    home: Path = field(default_factory=default_home)
    state_dir: Optional[Path] = None
    backup_dir: Optional[Path] = None
    lock_dir: Optional[Path] = None

    # Locking
    lock_timeout: float = LOCK_TIMEOUT
    lock_poll_interval: float = LOCK_CHECK_INTERVAL

    # State tracking
    inactivity_threshold: float = INACTIVITY_THRESHOLD
    stall_threshold: float = STALL_THRESHOLD
    state_retention: float = STATE_RETENTION

    # Backups and writes
    backup_keep_count: int = DEFAULT_BACKUP_KEEP_COUNT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    # Remote fetch
    fetch_retry_count: int = DEFAULT_RETRY_COUNT
    fetch_retry_delay: float = DEFAULT_RETRY_DELAY
    fetch_backoff: float = DEFAULT_RETRY_BACKOFF

    def __post_init__(self):
        self.home = Path(self.home).expanduser()
        self.state_dir = Path(self.state_dir).expanduser() if self.state_dir else self.home / STATE_DIR_NAME
        self.backup_dir = Path(self.backup_dir).expanduser() if self.backup_dir else self.home / BACKUP_DIR_NAME
        self.lock_dir = Path(self.lock_dir).expanduser() if self.lock_dir else self.home / LOCK_DIR_NAME

        if self.max_concurrency < 1:
            raise ValidationError("max_concurrency must be at least 1")
        if self.fetch_retry_count < 1:
            raise ValidationError("fetch_retry_count must be at least 1")
        if self.lock_timeout <= 0 or self.lock_poll_interval <= 0:
            raise ValidationError("lock_timeout and lock_poll_interval must be positive")

    @classmethod
    def for_home(cls, home: Union[str, Path], **overrides) -> 'EngineConfig':
        """Create a configuration rooted at ``home``"""
        return cls(home=Path(home), **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, Path) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create from dictionary

        Raises:
            ValidationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValidationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if v is not None})


def _coerce_enum(enum_cls, value, label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"Invalid {label}: {value} (expected one of: {choices})") from None


@dataclass
class DeployOptions:
    """Options for a single deployment attempt"""

    platform: Platform
    components: List[str] = field(default_factory=list)
    exclude_components: List[str] = field(default_factory=list)
    conflict_strategy: ConflictStrategy = ConflictStrategy.MERGE
    dry_run: bool = False
    validate_only: bool = False
    workspace_path: Optional[Path] = None
    platform_path: Optional[Path] = None
    rollback_on_failure: bool = True
    fail_on_secrets: bool = False
    lock_wait: Optional[float] = None

    def __post_init__(self):
        self.platform = _coerce_enum(Platform, self.platform, "platform")
        self.conflict_strategy = _coerce_enum(ConflictStrategy, self.conflict_strategy, "conflict strategy")
        self.components = list(self.components or [])
        self.exclude_components = list(self.exclude_components or [])
        if self.workspace_path is not None:
            self.workspace_path = Path(self.workspace_path).expanduser()
        if self.platform_path is not None:
            self.platform_path = Path(self.platform_path).expanduser()
        if self.lock_wait is not None and self.lock_wait < 0:
            raise ValidationError("lock_wait must not be negative")

    @property
    def resource_scope(self) -> str:
        """Lock scope: the target location plus the platform, e.g. ``/ws#cursor``"""
        location = self.workspace_path or self.platform_path
        anchor = str(location.resolve()) if location else "global"
        return f"{anchor}#{self.platform.value}"

    def selects(self, component: str) -> bool:
        """Check include/exclude filters for a component"""
        if self.components and component not in self.components:
            return False
        return component not in self.exclude_components

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "platform": self.platform.value,
            "components": self.components,
            "exclude_components": self.exclude_components,
            "conflict_strategy": self.conflict_strategy.value,
            "dry_run": self.dry_run,
            "validate_only": self.validate_only,
            "workspace_path": str(self.workspace_path) if self.workspace_path else None,
            "platform_path": str(self.platform_path) if self.platform_path else None,
            "rollback_on_failure": self.rollback_on_failure,
            "fail_on_secrets": self.fail_on_secrets,
            "lock_wait": self.lock_wait,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeployOptions':
        """Create from dictionary

        Raises:
            ValidationError: If no platform is given
        """
        if not data.get("platform"):
            raise ValidationError("A target platform is required")
        return cls(
            platform=data["platform"],
            components=data.get("components", []),
            exclude_components=data.get("exclude_components", []),
            conflict_strategy=data.get("conflict_strategy", ConflictStrategy.MERGE.value),
            dry_run=data.get("dry_run", False),
            validate_only=data.get("validate_only", False),
            workspace_path=data.get("workspace_path"),
            platform_path=data.get("platform_path"),
            rollback_on_failure=data.get("rollback_on_failure", True),
            fail_on_secrets=data.get("fail_on_secrets", False),
            lock_wait=data.get("lock_wait"),
        )
