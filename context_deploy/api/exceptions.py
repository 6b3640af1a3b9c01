"""Exception definitions for context-deploy"""

from ..constants import ErrorCode


class ContextDeployError(Exception):
    """Base exception for context-deploy"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class ValidationError(ContextDeployError):
    """Bad deployment options or configuration shape"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.VALIDATION_FAILED)


class SecurityViolation(ContextDeployError):
    """Malicious content, path escape or unresolved secret"""

    def __init__(self, message: str, blockers: list = None):
        super().__init__(message, ErrorCode.SECURITY_VIOLATION)
        self.blockers = blockers or []


class LockContentionError(ContextDeployError):
    """Resource is locked by another deployment"""

    def __init__(self, resource: str, holder_pid: int = None):
        message = (
            f"Lock already held for {resource}. "
            "Another deployment may be in progress."
        )
        super().__init__(message, ErrorCode.LOCK_CONTENTION)
        self.resource = resource
        self.holder_pid = holder_pid


class LockOwnershipError(ContextDeployError):
    """Attempt to release a lock owned by someone else"""

    def __init__(self, resource: str):
        message = f"Lock ownership mismatch for {resource}. Cannot release a lock owned by another process."
        super().__init__(message, ErrorCode.LOCK_OWNERSHIP)
        self.resource = resource


class DeployIOError(ContextDeployError):
    """Filesystem failure during backup, write or restore"""

    def __init__(self, message: str, path: str = None):
        super().__init__(message, ErrorCode.IO_FAILURE)
        self.path = path


class StateCorruptionError(ContextDeployError):
    """Persisted deployment state is unreadable or invalid"""

    def __init__(self, deployment_id: str, reason: str):
        super().__init__(
            f"Deployment state for {deployment_id} is corrupt: {reason}",
            ErrorCode.STATE_CORRUPTION,
        )
        self.deployment_id = deployment_id


class RecoveryFailure(ContextDeployError):
    """Backup restore or recovery planning failed"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.RECOVERY_FAILED)


class DeployError(ContextDeployError):
    """Deployment operation error"""

    def __init__(self, message: str, error_code: str = ErrorCode.DEPLOY_FAILED):
        super().__init__(message, error_code)
