"""Security scanning models"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class DetectedSecret:
    """A value in a configuration tree that looks like a credential"""

    path: str
    value: str
    type: str
    confidence: float
    key: str = ""

    def to_dict(self, reveal: bool = False) -> Dict[str, Any]:
        return {
            "path": self.path,
            "value": self.value if reveal else "***",
            "type": self.type,
            "confidence": self.confidence,
            "key": self.key,
        }


@dataclass
class SecretMapping:
    """Link between a placeholder and the original secret value"""

    path: str
    placeholder: str
    secret_id: str
    value: Any


@dataclass
class SanitizationResult:
    sanitized: Any
    secret_mapping: List[SecretMapping] = field(default_factory=list)
    secrets: List[DetectedSecret] = field(default_factory=list)

    @property
    def secret_count(self) -> int:
        return len(self.secret_mapping)


@dataclass
class SecurityBlocker:
    """A non-recoverable finding that stops a deployment"""

    type: str
    message: str
    path: str = ""
    pattern: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "path": self.path,
            "pattern": self.pattern,
        }


@dataclass
class SecurityScanResult:
    """Combined outcome of the pre-deployment security gate"""

    passed: bool = True
    blockers: List[SecurityBlocker] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    secrets: List[DetectedSecret] = field(default_factory=list)
    sanitized: Any = None
    secret_mapping: List[SecretMapping] = field(default_factory=list)

    def add_blocker(self, blocker: SecurityBlocker) -> None:
        self.blockers.append(blocker)
        self.passed = False
