"""Default writer collaborator: renders component configuration to files"""

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from ..core.platform_layout import file_format
from ..models.config import DeployOptions
from ..models.result import WriteResult
from ..utils.file_utils import atomic_write_text

logger = logging.getLogger(__name__)


class ComponentWriter(Protocol):
    """Writes one component's configuration to a target file"""

    async def write(self,
                    component: str,
                    config: Any,
                    target_path: Path,
                    options: DeployOptions) -> WriteResult:
        ...


def render_text(config: Any) -> str:
    """Render a text component

    Accepts a string, a list of lines, ``{"content": str}``,
    ``{"sections": {heading: block}}`` or
    ``{"rules": [lines]}``.

    Raises:
        ValueError: For any other shape
    """
    if isinstance(config, str):
        text = config
    elif isinstance(config, (list, tuple)) and all(isinstance(line, str) for line in config):
        text = "\n".join(config)
    elif isinstance(config, dict) and isinstance(config.get("content"), str):
        text = config["content"]
    elif isinstance(config, dict) and isinstance(config.get("sections"), dict):
        text = "\n\n".join(str(block) for block in config["sections"].values())
    elif isinstance(config, dict) and isinstance(config.get("rules"), list):
        text = "\n".join(str(rule) for rule in config["rules"])
    else:
        raise ValueError(f"Cannot render {type(config).__name__} as text")
    return text if text.endswith("\n") else text + "\n"


def render_json(config: Any) -> str:
    return json.dumps(config, indent=2, ensure_ascii=False) + "\n"


class FileComponentWriter:
    """Writes JSON or text files atomically"""

    async def write(self,
                    component: str,
                    config: Any,
                    target_path: Path,
                    options: DeployOptions) -> WriteResult:
        """Render and write one component file

        Args:
            component: Component name
            config: Resolved configuration
            target_path: Destination file
            options: Deployment options

        Returns:
            Write result; failures are reported, not raised
        """
        result = WriteResult(success=False, component=component, file_paths=[target_path])

        try:
            if file_format(target_path) == "json":
                content = render_json(config)
            else:
                content = render_text(config)
        except (TypeError, ValueError) as e:
            result.errors.append(f"Cannot render {component}: {e}")
            return result

        if options.dry_run:
            result.warnings.append(f"Dry run: {target_path} not written")
            result.success = True
            return result

        try:
            result.bytes_written = await atomic_write_text(target_path, content)
        except OSError as e:
            logger.error("Failed to write %s: %s", target_path, e)
            result.errors.append(f"Failed to write {target_path}: {e}")
            return result

        logger.debug("Wrote %s (%d bytes)", target_path, result.bytes_written)
        result.success = True
        return result
