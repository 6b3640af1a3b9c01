"""Conflict resolution service"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from ..constants import ConflictStrategy
from ..core.diff_engine import DiffEngine
from ..core.platform_layout import ComponentLayout, file_format
from ..models.config import DeployOptions
from ..models.diff import Conflict, DiffResult
from .component_writer import render_text

logger = logging.getLogger(__name__)

NO_EXISTING_CONFIG = "no_existing_config"
PREAMBLE_KEY = "_preamble"

_HEADING_PATTERN = re.compile(r"^#{1,6}(\s|$)")
_FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")


def text_to_tree(text: str) -> Dict[str, Any]:
    """Represent a rule-list file such as ``.cursorrules`` as ``{"rules": [lines]}``"""
    return {"rules": [line for line in text.splitlines() if line.strip()]}


def markdown_to_tree(text: str) -> Dict[str, Any]:
    """Represent a markdown file as ``{"sections": {heading: block}}``

    Each block runs from its heading line up to the next heading and keeps
    its blank lines and code fences. Text before the first heading is stored
    under ``PREAMBLE_KEY``. Lines inside fenced code are never headings.
    """
    sections: Dict[str, str] = {}
    key, lines, fenced = PREAMBLE_KEY, [], False

    def close():
        block = "\n".join(lines).strip("\n")
        if block.strip():
            sections[key] = block

    for line in text.splitlines():
        if _FENCE_PATTERN.match(line):
            fenced = not fenced
        elif not fenced and _HEADING_PATTERN.match(line):
            close()
            key, lines = line.strip(), []
            counter = 2
            while key in sections:
                key = f"{line.strip()} ({counter})"
                counter += 1
        lines.append(line)
    close()
    return {"sections": sections}


def normalize_config(config: Any, target_format: str) -> Any:
    """Bring text content into tree form before merging"""
    if target_format == "markdown":
        if isinstance(config, dict) and isinstance(config.get("sections"), dict):
            return config
        try:
            return markdown_to_tree(render_text(config))
        except ValueError:
            return config
    if target_format == "text" and isinstance(config, str):
        return text_to_tree(config)
    return config


@dataclass
class ConflictResolutionResult:
    """Outcome of reconciling one component with what is already on disk"""

    has_conflicts: bool
    resolved_config: Any
    resolution_strategy: str
    conflicts: List[Conflict] = field(default_factory=list)
    diff: Optional[DiffResult] = None
    existing_path: Optional[Path] = None
    backup_required: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class ConflictResolver:
    """Apply the configured strategy to new-vs-existing component configuration"""

    def __init__(self, layout: ComponentLayout, diff_engine: Optional[DiffEngine] = None):
        """Initialize resolver

        Args:
            layout: File layout of the target platform
            diff_engine: Diff/merge engine
        """
        self.layout = layout
        self.diff_engine = diff_engine or DiffEngine()

    async def load_existing(self, path: Path) -> Any:
        """Read an existing component file

        Raises:
            OSError: If the file cannot be read
            ValueError: If a JSON file cannot be parsed
        """
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            content = await f.read()

        if file_format(path) == "json":
            return json.loads(content) if content.strip() else {}
        if file_format(path) == "markdown":
            return markdown_to_tree(content)
        return text_to_tree(content)

    async def resolve_configuration_conflicts(self,
                                              component_type: str,
                                              new_config: Any,
                                              options: DeployOptions) -> ConflictResolutionResult:
        """Reconcile a component's new configuration with the file on disk

        Args:
            component_type: Component name, e.g. ``settings``
            new_config: Incoming configuration
            options: Deployment options carrying the conflict strategy

        Returns:
            Resolution result; ``no_existing_config`` when nothing is on disk
        """
        existing_path = self.layout.primary_path(component_type)

        if existing_path is None or not existing_path.is_file():
            logger.debug("No existing configuration for %s", component_type)
            return ConflictResolutionResult(
                has_conflicts=False,
                resolved_config=new_config,
                resolution_strategy=NO_EXISTING_CONFIG,
                existing_path=existing_path,
            )

        try:
            existing = await self.load_existing(existing_path)
        except (OSError, ValueError) as e:
            warning = f"Existing {component_type} file {existing_path} could not be parsed ({e}); it will be replaced"
            logger.warning(warning)
            return ConflictResolutionResult(
                has_conflicts=False,
                resolved_config=new_config,
                resolution_strategy=NO_EXISTING_CONFIG,
                existing_path=existing_path,
                warnings=[warning],
            )

        strategy = options.conflict_strategy or ConflictStrategy.MERGE
        source = normalize_config(new_config, file_format(existing_path))

        merged = self.diff_engine.merge_configurations(source, existing, strategy)
        diff = self.diff_engine.generate_diff(source, existing)
        conflicts = self.diff_engine.get_conflicts(source, existing)

        backup_required = strategy == ConflictStrategy.BACKUP
        if backup_required:
            merged = self.diff_engine.strip_backup_marker(merged)

        if diff.has_changes:
            logger.info(
                "%s: %d change(s) against %s, resolved with %s",
                component_type, diff.total_changes, existing_path, strategy.value
            )

        return ConflictResolutionResult(
            has_conflicts=diff.has_changes,
            resolved_config=merged,
            resolution_strategy=strategy.value,
            conflicts=conflicts,
            diff=diff,
            existing_path=existing_path,
            backup_required=backup_required,
        )
