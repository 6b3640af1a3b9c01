"""Lock models"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict


@dataclass
class LockFileContent:
    """JSON document stored inside a lock file"""

    id: str
    process_id: int
    timestamp: datetime
    resource: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "processId": self.process_id,
            "timestamp": self.timestamp.isoformat(),
            "resource": self.resource,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LockFileContent':
        """Parse lock file JSON

        Raises:
            KeyError, ValueError, TypeError: On malformed content
        """
        return cls(
            id=str(data["id"]),
            process_id=int(data["processId"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            resource=data.get("resource", ""),
        )


@dataclass
class LockHandle:
    """Proof of ownership for an acquired lock"""

    id: str
    resource: str
    lock_path: Path
    process_id: int
    acquired_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "resource": self.resource,
            "lock_path": str(self.lock_path),
            "process_id": self.process_id,
            "acquired_at": self.acquired_at.isoformat(),
        }
