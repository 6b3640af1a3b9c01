"""On-disk file layout of deployable components per platform"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union

from ..api.exceptions import ValidationError
from ..constants import PLATFORM_COMPONENT_FILES, PLATFORM_INSTALL_CANDIDATES, Platform

logger = logging.getLogger(__name__)

JSON_SUFFIXES = (".json", ".code-workspace", ".code-snippets")


def file_format(path: Path) -> str:
    """``json`` for JSON-backed component files, ``markdown`` for ``.md``, ``text`` otherwise"""
    if path.name.endswith(JSON_SUFFIXES):
        return "json"
    return "markdown" if path.suffix.lower() == ".md" else "text"


def _system_key(system: str) -> str:
    if system.startswith("win"):
        return "win32"
    if system == "darwin":
        return "darwin"
    return "linux"


class PlatformDetector(Protocol):
    """Locates a platform's installation directory"""

    def detect(self, platform: Platform) -> Optional[Path]:
        ...


class FilesystemPlatformDetector:
    """Finds a platform's installation directory on the local filesystem"""

    def __init__(self, system: str = sys.platform):
        self.system = _system_key(system)

    def candidates(self, platform: Platform) -> List[Path]:
        entries = PLATFORM_INSTALL_CANDIDATES.get(platform, {}).get(self.system, [])
        return [Path(entry).expanduser() for entry in entries]

    def detect(self, platform: Platform) -> Optional[Path]:
        """Return the first existing installation directory, if any"""
        for candidate in self.candidates(platform):
            if candidate.is_dir():
                logger.debug("Detected %s at %s", platform.value, candidate)
                return candidate
        return None

    def default_path(self, platform: Platform) -> Path:
        """Preferred installation directory when none exists yet"""
        candidates = self.candidates(platform)
        if not candidates:
            raise ValidationError(f"No installation directory known for {platform.value} on {self.system}")
        return candidates[0]


class ComponentLayout:
    """Maps component names to the files they occupy for one platform"""

    def __init__(self,
                 platform: Union[Platform, str],
                 platform_path: Path,
                 workspace_path: Optional[Path] = None):
        """Initialize layout

        Args:
            platform: Target platform
            platform_path: Platform installation directory
            workspace_path: Project root, if deploying project-level components
        """
        self.platform = Platform(platform)
        self.platform_path = Path(platform_path)
        self.workspace_path = Path(workspace_path) if workspace_path else None
        self._templates: Dict[str, List[str]] = PLATFORM_COMPONENT_FILES[self.platform]

    @property
    def components(self) -> List[str]:
        return list(self._templates)

    def is_known(self, component: str) -> bool:
        return component in self._templates

    def needs_workspace(self, component: str) -> bool:
        return any("{workspace" in t for t in self._templates.get(component, []))

    def resolve(self, component: str) -> List[Path]:
        """Files a component writes

        Workspace files are omitted when no workspace is set.

        Raises:
            ValidationError: If the component is unknown for this platform
        """
        if component not in self._templates:
            raise ValidationError(f"Unknown component '{component}' for platform {self.platform.value}")

        paths = []
        for template in self._templates[component]:
            if "{workspace" in template and self.workspace_path is None:
                continue
            paths.append(Path(template.format(
                platform=self.platform_path,
                workspace=self.workspace_path or "",
                workspace_name=self.workspace_path.name if self.workspace_path else "",
            )))
        return paths

    def primary_path(self, component: str) -> Optional[Path]:
        """First file of a component, used for conflict detection"""
        paths = self.resolve(component)
        return paths[0] if paths else None

    def allowed_roots(self) -> List[Path]:
        roots = [self.platform_path]
        if self.workspace_path:
            roots.append(self.workspace_path)
        return roots


def layout_for_options(options, detector: Optional[PlatformDetector] = None) -> ComponentLayout:
    """Build the layout for a deployment

    Uses ``options.platform_path`` when set, otherwise the detected or default
    installation directory.
    """
    platform_path = options.platform_path
    if platform_path is None:
        fallback = FilesystemPlatformDetector()
        platform_path = (detector or fallback).detect(options.platform) or fallback.default_path(options.platform)
    return ComponentLayout(options.platform, platform_path, options.workspace_path)
