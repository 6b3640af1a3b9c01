"""Global constants for context-deploy"""

from enum import Enum
import re

APP_NAME = "context-deploy"
LOG_FORMAT = "%(message)s"

# Directory structure
DEFAULT_HOME_DIR = "~/.context-deploy"
DEFAULT_CONFIG_FILE = "config.yaml"
STATE_DIR_NAME = "deployment-states"
BACKUP_DIR_NAME = "backups"
LOCK_DIR_NAME = "locks"
BACKUP_MANIFEST_FILE = "manifest.json"
LOCK_FILE_SUFFIX = ".lock"
STATE_FILE_SUFFIX = ".json"

# Locking
LOCK_TIMEOUT = 60 * 60  # seconds
LOCK_CHECK_INTERVAL = 0.1  # seconds

# Deployment state tracking
INACTIVITY_THRESHOLD = 30 * 60  # seconds without activity before in_progress is interrupted
STALL_THRESHOLD = 10 * 60  # seconds without activity while components are in progress
STATE_RETENTION = 7 * 24 * 60 * 60  # seconds

# Recovery time estimates, seconds per component
RECOVERY_SECONDS_RETRY = 30
RECOVERY_SECONDS_REMAINING = 15
RECOVERY_SECONDS_CLEANUP = 10
RECOVERY_MIN_SECONDS = 10

# Backups and writes
DEFAULT_BACKUP_KEEP_COUNT = 10
DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_RETRY_BACKOFF = 2.0
BACKUP_MARKER_KEY = "backup_created"


class Platform(Enum):
    CURSOR = "cursor"
    CLAUDE_CODE = "claude-code"
    KIRO = "kiro"


class ConflictStrategy(Enum):
    SKIP = "skip"
    OVERWRITE = "overwrite"
    MERGE = "merge"
    BACKUP = "backup"


class DeploymentStatus(Enum):
    INITIALIZING = "initializing"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


class ProgressEvent(Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class RecoveryActionType(Enum):
    RETRY_FAILED = "retry_failed"
    COMPLETE_REMAINING = "complete_remaining"
    CLEANUP_PARTIAL = "cleanup_partial"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TERMINAL_STATUSES = (DeploymentStatus.COMPLETED, DeploymentStatus.FAILED)

# Component file layout per platform.
# "{platform}" is the detected installation directory, "{workspace}" the project root.
# Entries that reference {workspace} are skipped when no workspace is given.
PLATFORM_COMPONENT_FILES = {
    Platform.CURSOR: {
        "global-settings": ["{platform}/User/settings.json"],
        "project-settings": ["{workspace}/.vscode/settings.json"],
        "ai-config": ["{workspace}/.cursorrules"],
        "extensions-config": ["{platform}/User/extensions.json"],
        "debug-config": ["{workspace}/.vscode/launch.json"],
        "tasks-config": ["{workspace}/.vscode/tasks.json"],
        "snippets-config": ["{platform}/User/snippets/global.code-snippets"],
        "workspace-config": ["{workspace}/{workspace_name}.code-workspace"],
    },
    Platform.CLAUDE_CODE: {
        "settings": ["{platform}/settings.json"],
        "project-settings": ["{workspace}/.claude/settings.json"],
        "ai-config": ["{workspace}/CLAUDE.md"],
        "mcp-config": ["{workspace}/.mcp.json"],
        "agents": ["{platform}/agents/agents.json"],
        "commands": ["{platform}/commands/commands.json"],
    },
    Platform.KIRO: {
        "settings": ["{platform}/settings/settings.json"],
        "project-settings": ["{workspace}/.kiro/settings/settings.json"],
        "ai-config": ["{workspace}/.kiro/steering/rules.md"],
        "hooks": ["{workspace}/.kiro/hooks/hooks.json"],
        "specs": ["{workspace}/.kiro/specs/specs.json"],
    },
}

# Default installation directories, checked in order by the platform detector
PLATFORM_INSTALL_CANDIDATES = {
    Platform.CURSOR: {
        "darwin": ["~/Library/Application Support/Cursor"],
        "win32": ["~/AppData/Roaming/Cursor"],
        "linux": ["~/.config/Cursor", "~/.cursor"],
    },
    Platform.CLAUDE_CODE: {
        "darwin": ["~/.claude"],
        "win32": ["~/.claude"],
        "linux": ["~/.claude"],
    },
    Platform.KIRO: {
        "darwin": ["~/.kiro"],
        "win32": ["~/.kiro"],
        "linux": ["~/.kiro"],
    },
}

# Components that are written one at a time after the parallel tier
SEQUENTIAL_COMPONENTS = (
    "ai-config",
    "workspace-config",
    "debug-config",
    "tasks-config",
    "agents",
    "commands",
)

# Components a given component is layered on; rolled back together with it
COMPONENT_DEPENDENCIES = {
    "debug-config": ["project-settings"],
    "tasks-config": ["project-settings"],
    "workspace-config": ["project-settings"],
    "snippets-config": ["global-settings"],
    "extensions-config": ["global-settings"],
    "project-settings": [],
    "agents": ["settings"],
    "commands": ["settings"],
    "hooks": ["project-settings"],
}

# Security: command content that blocks a deployment outright
DANGEROUS_COMMAND_PATTERNS = [
    re.compile(r"rm\s+-rf\s+/", re.IGNORECASE),
    re.compile(r"rm\s+-rf\s+~", re.IGNORECASE),
    re.compile(r"rm\s+-rf\s+\*", re.IGNORECASE),
    re.compile(r"\beval\s*\(", re.IGNORECASE),
    re.compile(r"\bexec\s*\(", re.IGNORECASE),
    re.compile(r"require\s*\(\s*[\"']child_process[\"']\s*\)", re.IGNORECASE),
    re.compile(r"curl\s+[^|]*\|\s*(?:ba)?sh", re.IGNORECASE),
    re.compile(r"wget\s+[^|]*\|\s*(?:ba)?sh", re.IGNORECASE),
    re.compile(r"chmod\s+777", re.IGNORECASE),
    re.compile(r"\bsudo\s+", re.IGNORECASE),
    re.compile(r"\bmkfs(?:\.\w+)?\b", re.IGNORECASE),
    re.compile(r"\bdd\s+if=", re.IGNORECASE),
    re.compile(r"format\s+c:", re.IGNORECASE),
    re.compile(r":\(\)\s*\{\s*:\|:&\s*\};:"),
]

PATH_TRAVERSAL_PATTERNS = [
    re.compile(r"\.\./"),
    re.compile(r"\.\.\\"),
    re.compile(r"(?:^|[/\\])\.\.$"),
    re.compile(r"%2e%2e%2f", re.IGNORECASE),
    re.compile(r"%2e%2e/", re.IGNORECASE),
    re.compile(r"\.\.%2f", re.IGNORECASE),
    re.compile(r"%2e%2e%5c", re.IGNORECASE),
    re.compile(r"\.\.%252f", re.IGNORECASE),
]

BLOCKED_PATHS = [
    "/etc",
    "/System",
    "/Windows/System32",
    "~/.ssh",
    "~/.aws/credentials",
    "~/.config/gcloud",
    "~/.gnupg",
]

SECRET_KEY_PATTERN = re.compile(
    r"password|passwd|pwd|secret|token|auth(?!or)|credential|api[_-]?key|apikey"
    r"|access[_-]?key|private[_-]?key|jwt|bearer|(?:^|[_-])key$",
    re.IGNORECASE,
)

SECRET_PLACEHOLDER = "${{SECRET:{path}}}"

# Error codes
class ErrorCode:
    VALIDATION_FAILED = "CD001"
    SECURITY_VIOLATION = "CD002"
    LOCK_CONTENTION = "CD003"
    LOCK_OWNERSHIP = "CD004"
    IO_FAILURE = "CD005"
    STATE_CORRUPTION = "CD006"
    RECOVERY_FAILED = "CD007"
    DEPLOY_FAILED = "CD008"
    CONFLICT_RESOLUTION_FAILED = "CD009"
    COMPONENT_WRITE_FAILED = "CD010"
    BACKUP_FAILED = "CD011"
    FETCH_EXHAUSTED = "CD012"

# Environment variables
ENV_CONFIG_PATH = "CONTEXT_DEPLOY_CONFIG"
ENV_HOME = "CONTEXT_DEPLOY_HOME"
ENV_LOG_LEVEL = "CONTEXT_DEPLOY_LOG_LEVEL"

# Display constants
EMOJI_SUCCESS = "✓"
EMOJI_ERROR = "✗"
EMOJI_WARNING = "⚠"
EMOJI_LOCK = "🔒"
EMOJI_ROCKET = "🚀"

MSG_DEPLOY_SUCCESS = f"{EMOJI_SUCCESS} Deployed {{count}} component(s) to {{platform}}"
MSG_LOCK_BUSY = f"{EMOJI_LOCK} Another deployment holds {{resource}}"
