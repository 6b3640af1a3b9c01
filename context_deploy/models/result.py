"""Operation result models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any
from enum import Enum
from pathlib import Path


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


class OperationStatus(Enum):
    """Operation status"""
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    IN_PROGRESS = "in_progress"


@dataclass
class ErrorDetail:
    """Detailed error information"""

    code: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class Result:
    """Base result class"""

    status: OperationStatus
    message: str = ""
    errors: List[ErrorDetail] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        """Get operation duration in seconds"""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    def add_error(self, code: str, message: str, **context) -> None:
        """Add an error"""
        self.errors.append(ErrorDetail(code=code, message=message, context=context))

    def add_warning(self, message: str) -> None:
        """Add a warning"""
        self.warnings.append(message)

    def complete(self, status: Optional[OperationStatus] = None) -> None:
        """Mark operation as complete"""
        self.end_time = utcnow()
        if status:
            self.status = status


@dataclass
class WriteResult:
    """Outcome of writing one component's files"""

    success: bool
    component: str
    file_paths: List[Path] = field(default_factory=list)
    bytes_written: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "component": self.component,
            "file_paths": [str(p) for p in self.file_paths],
            "bytes_written": self.bytes_written,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class DeployResult(Result):
    """Result of a context deployment"""

    deployment_id: Optional[str] = None
    platform: Optional[str] = None
    deployed_components: List[str] = field(default_factory=list)
    skipped_components: List[str] = field(default_factory=list)
    failed_components: List[str] = field(default_factory=list)
    conflicts_resolved: int = 0
    backup_id: Optional[str] = None
    rolled_back: bool = False
    dry_run: bool = False
    secrets_sanitized: int = 0
    write_results: List[WriteResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Zero blocking errors and at least one component deployed"""
        return not self.errors and bool(self.deployed_components)

    def finalize(self) -> None:
        """Derive the overall status from errors and deployed components"""
        if self.success:
            status = OperationStatus.SUCCESS
        elif self.errors and self.deployed_components:
            status = OperationStatus.PARTIAL
        elif not self.errors and not self.deployed_components:
            status = OperationStatus.SKIPPED
        else:
            status = OperationStatus.FAILED
        self.complete(status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "status": self.status.value,
            "success": self.success,
            "message": self.message,
            "deployment_id": self.deployment_id,
            "platform": self.platform,
            "deployed_components": self.deployed_components,
            "skipped_components": self.skipped_components,
            "failed_components": self.failed_components,
            "conflicts_resolved": self.conflicts_resolved,
            "backup_id": self.backup_id,
            "rolled_back": self.rolled_back,
            "dry_run": self.dry_run,
            "secrets_sanitized": self.secrets_sanitized,
            "write_results": [w.to_dict() for w in self.write_results],
            "errors": [e.to_dict() for e in self.errors],
            "warnings": self.warnings,
            "duration": self.duration
        }


@dataclass
class ValidationResult:
    """Validation result with detailed findings"""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add error message"""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add warning message"""
        self.warnings.append(message)

    def add_info(self, message: str) -> None:
        """Add info message"""
        self.info.append(message)

    def __bool__(self) -> bool:
        """Boolean evaluation returns is_valid"""
        return self.is_valid

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'is_valid': self.is_valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'info': self.info
        }
