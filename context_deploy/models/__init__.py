"""Data models for context-deploy"""

from .config_tree import ValueKind, kind_of, values_equal, get_at_path, set_at_path, delete_at_path
from .diff import DiffKind, ConflictKind, DiffEntry, DiffResult, Conflict
from .lock import LockHandle, LockFileContent
from .state import DeploymentState, RecoveryAction, RecoveryPlan, StateWriteResult
from .backup import BackedUpFile, BackupManifest, BackupResult, RestoreResult, BackupInfo, CleanupResult
from .security import DetectedSecret, SecretMapping, SanitizationResult, SecurityBlocker, SecurityScanResult
from .result import OperationStatus, ErrorDetail, Result, DeployResult, WriteResult, ValidationResult
from .config import EngineConfig, DeployOptions

__all__ = [
    # Config trees
    "ValueKind",
    "kind_of",
    "values_equal",
    "get_at_path",
    "set_at_path",
    "delete_at_path",

    # Diff models
    "DiffKind",
    "ConflictKind",
    "DiffEntry",
    "DiffResult",
    "Conflict",

    # Locking
    "LockHandle",
    "LockFileContent",

    # State tracking
    "DeploymentState",
    "RecoveryAction",
    "RecoveryPlan",
    "StateWriteResult",

    # Backups
    "BackedUpFile",
    "BackupManifest",
    "BackupResult",
    "RestoreResult",
    "BackupInfo",
    "CleanupResult",

    # Security
    "DetectedSecret",
    "SecretMapping",
    "SanitizationResult",
    "SecurityBlocker",
    "SecurityScanResult",

    # Results
    "OperationStatus",
    "ErrorDetail",
    "Result",
    "DeployResult",
    "WriteResult",
    "ValidationResult",

    # Config
    "EngineConfig",
    "DeployOptions",
]
