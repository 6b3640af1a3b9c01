"""Content half of the pre-deployment security gate

Detects credentials in configuration trees, replaces them with placeholders,
and blocks content carrying dangerous shell commands or path traversal.
"""

import copy
import logging
import re
import uuid
from typing import Any, List, NamedTuple, Optional, Pattern

from ..api.exceptions import SecurityViolation
from ..constants import DANGEROUS_COMMAND_PATTERNS, SECRET_KEY_PATTERN, SECRET_PLACEHOLDER
from ..core.path_guard import PathGuard
from ..models.config_tree import (
    get_at_path,
    is_array,
    is_object,
    iter_leaves,
    join_path,
    parse_path,
    set_at_path,
)
from ..models.security import (
    DetectedSecret,
    SanitizationResult,
    SecretMapping,
    SecurityBlocker,
    SecurityScanResult,
)

logger = logging.getLogger(__name__)


class SecretPattern(NamedTuple):
    name: str
    pattern: Pattern
    type: str
    confidence: float


# Checked in order; the first match classifies a value
SECRET_VALUE_PATTERNS = [
    SecretPattern(
        "Private Key",
        re.compile(r"-{5}BEGIN\s+(?:RSA\s+|EC\s+|OPENSSH\s+)?PRIVATE\s+KEY-{5}[\s\S]*?-{5}END\s+(?:RSA\s+|EC\s+|OPENSSH\s+)?PRIVATE\s+KEY-{5}"),
        "private_key",
        1.0,
    ),
    SecretPattern("GitHub Token", re.compile(r"gh[pousr]_\w{36,}"), "token", 0.99),
    SecretPattern("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}"), "api_key", 0.99),
    SecretPattern("JWT Token", re.compile(r"eyJ[\w-]*\.eyJ[\w-]*\.[\w-]*"), "token", 0.95),
    SecretPattern(
        "Bearer Token",
        re.compile(r"(?:bearer[\s_]?token|authorization)[\s\"':=]*(?:bearer\s+)?([\w.-]{20,})", re.IGNORECASE),
        "token",
        0.9,
    ),
    SecretPattern("Bearer Value", re.compile(r"^bearer\s+[\w.-]{20,}$", re.IGNORECASE), "token", 0.9),
    SecretPattern(
        "Connection String",
        re.compile(r"\b(?:postgres(?:ql)?|mysql|mongodb(?:\+srv)?|redis|amqp)://[^\s:@/]+:[^\s@/]+@[^\s]+", re.IGNORECASE),
        "connection_string",
        0.85,
    ),
    SecretPattern(
        "API Key",
        re.compile(r"(?:api[_-]?key|apikey)[\s\"':=]*([\w-]{20,})", re.IGNORECASE),
        "api_key",
        0.8,
    ),
    SecretPattern(
        "Secret Key",
        re.compile(r"(?:secret[\s_-]?key|secretkey)[\s\"':=]*([\w-]{20,})", re.IGNORECASE),
        "encryption_key",
        0.8,
    ),
    SecretPattern(
        "Password",
        re.compile(r"(?:password|passwd|pwd)[\s\"':=]+([^\s\"']{8,})", re.IGNORECASE),
        "password",
        0.7,
    ),
]

_PATH_KEY_PATTERN = re.compile(r"path|file|dir|cwd|location|root", re.IGNORECASE)


def is_secret_key(key: str) -> bool:
    return bool(SECRET_KEY_PATTERN.search(key))


def infer_secret_type(key: str) -> str:
    lower = key.lower()
    if "password" in lower or "passwd" in lower or lower == "pwd":
        return "password"
    if "token" in lower or "bearer" in lower or "jwt" in lower:
        return "token"
    if "private" in lower and "key" in lower:
        return "private_key"
    if "api" in lower and "key" in lower:
        return "api_key"
    if "conn" in lower:
        return "connection_string"
    if "cert" in lower:
        return "certificate"
    return "unknown"


def key_confidence(key: str, value: str) -> float:
    """0.5 base, +0.3 for a secret-like key, +0.1 each for long and mixed values"""
    confidence = 0.5
    if is_secret_key(key):
        confidence += 0.3
    if len(value) >= 20:
        confidence += 0.1
    if len(value) >= 40:
        confidence += 0.1
    if re.search(r"[A-Z]", value) and re.search(r"[a-z]", value) and re.search(r"\d", value):
        confidence += 0.1
    return round(min(confidence, 1.0), 2)


def is_placeholder(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("${SECRET:") and value.endswith("}")


def _last_key(path: str) -> str:
    keys = [part for part in parse_path(path) if isinstance(part, str)]
    return keys[-1] if keys else ""


class SecurityScanner:
    """Secret detection, sanitization and malicious content checks"""

    def __init__(self, path_guard: Optional[PathGuard] = None):
        self.path_guard = path_guard or PathGuard()

    def detect_secrets(self, tree: Any) -> List[DetectedSecret]:
        """Find credential-like values anywhere in a tree

        A string under a secret-like key is always reported. Other strings are
        matched against the value pattern table.

        Returns:
            One finding per path
        """
        secrets: List[DetectedSecret] = []
        self._walk_secrets(tree, "", secrets)
        return secrets

    def _walk_secrets(self, node: Any, path: str, secrets: List[DetectedSecret]) -> None:
        if is_object(node):
            for key, value in node.items():
                key_path = join_path(path, key)
                if is_secret_key(key) and isinstance(value, str) and value and not is_placeholder(value):
                    secrets.append(DetectedSecret(
                        path=key_path,
                        value=value,
                        type=infer_secret_type(key),
                        confidence=key_confidence(key, value),
                        key=key,
                    ))
                else:
                    self._walk_secrets(value, key_path, secrets)
        elif is_array(node):
            for index, value in enumerate(node):
                self._walk_secrets(value, join_path(path, index), secrets)
        elif isinstance(node, str) and not is_placeholder(node):
            match = self._match_value(node)
            if match:
                secrets.append(DetectedSecret(
                    path=path,
                    value=node,
                    type=match.type,
                    confidence=match.confidence,
                    key=_last_key(path),
                ))

    @staticmethod
    def _match_value(value: str) -> Optional[SecretPattern]:
        for secret_pattern in SECRET_VALUE_PATTERNS:
            if secret_pattern.pattern.search(value):
                return secret_pattern
        return None

    def sanitize_configuration(self, tree: Any) -> SanitizationResult:
        """Replace every detected secret with ``${SECRET:<path>}``

        Returns:
            Sanitized deep copy plus a mapping sufficient to restore the values
        """
        secrets = self.detect_secrets(tree)
        sanitized = copy.deepcopy(tree)
        mappings = []

        for secret in secrets:
            placeholder = SECRET_PLACEHOLDER.format(path=secret.path)
            original = get_at_path(tree, secret.path) if secret.path else tree
            if secret.path:
                set_at_path(sanitized, secret.path, placeholder)
            else:
                sanitized = placeholder
            mappings.append(SecretMapping(
                path=secret.path,
                placeholder=placeholder,
                secret_id=uuid.uuid4().hex,
                value=original,
            ))

        if mappings:
            logger.info("Sanitized %d secret(s)", len(mappings))
        return SanitizationResult(sanitized=sanitized, secret_mapping=mappings, secrets=secrets)

    @staticmethod
    def restore_configuration(sanitized: Any, mapping: List[SecretMapping]) -> Any:
        """Put original secret values back in place of their placeholders"""
        restored = copy.deepcopy(sanitized)
        for entry in mapping:
            if not entry.path:
                if restored == entry.placeholder:
                    restored = entry.value
                continue
            if get_at_path(restored, entry.path) == entry.placeholder:
                set_at_path(restored, entry.path, entry.value)
        return restored

    @staticmethod
    def scan_for_malicious_commands(content: str, path: str = "") -> SecurityScanResult:
        """Match free text against the dangerous command table

        Every match is a blocking finding.
        """
        result = SecurityScanResult()
        for pattern in DANGEROUS_COMMAND_PATTERNS:
            if pattern.search(content):
                result.add_blocker(SecurityBlocker(
                    type="malicious_command",
                    message=f"Dangerous command pattern detected{f' at {path}' if path else ''}",
                    path=path,
                    pattern=pattern.pattern,
                ))
        return result

    def _looks_like_path(self, path: str, value: str) -> bool:
        if _PATH_KEY_PATTERN.search(_last_key(path)):
            return True
        return not re.search(r"\s", value) and ("/" in value or "\\" in value)

    def scan_context(self, context: Any, fail_on_secrets: bool = False) -> SecurityScanResult:
        """Run the full security gate over a context

        Malicious commands and traversal in path-like values are fatal.
        Secrets are sanitized with a warning, or fatal with ``fail_on_secrets``.

        Returns:
            Passing scan result carrying the sanitized context

        Raises:
            SecurityViolation: If any fatal finding exists
        """
        result = SecurityScanResult(sanitized=context)

        for path, value in iter_leaves(context):
            if not isinstance(value, str):
                continue

            command_scan = self.scan_for_malicious_commands(value, path)
            for blocker in command_scan.blockers:
                result.add_blocker(blocker)

            if self._looks_like_path(path, value) and self.path_guard.contains_traversal(value):
                result.add_blocker(SecurityBlocker(
                    type="path_traversal",
                    message=f"Path traversal sequence at {path or 'root'}",
                    path=path,
                ))

        secrets = self.detect_secrets(context)
        result.secrets = secrets
        if secrets:
            if fail_on_secrets:
                for secret in secrets:
                    result.add_blocker(SecurityBlocker(
                        type="unresolved_secret",
                        message=f"Unresolved {secret.type} at {secret.path or 'root'}",
                        path=secret.path,
                    ))
            else:
                sanitization = self.sanitize_configuration(context)
                result.sanitized = sanitization.sanitized
                result.secret_mapping = sanitization.secret_mapping
                result.warnings.append(
                    f"{len(secrets)} secret(s) replaced with placeholders: "
                    + ", ".join(s.path or "root" for s in secrets)
                )

        if not result.passed:
            logger.error("Security gate blocked deployment: %d finding(s)", len(result.blockers))
            raise SecurityViolation(
                "; ".join(b.message for b in result.blockers),
                blockers=result.blockers,
            )

        return result
