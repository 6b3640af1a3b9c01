"""Context bundle fetching and parsing"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Protocol

import aiofiles
import yaml

from ..api.exceptions import ValidationError

logger = logging.getLogger(__name__)


class RemoteFetcher(Protocol):
    """Fetches a context bundle by identifier"""

    async def fetch(self, config_id: str) -> bytes:
        ...


class LocalBundleFetcher:
    """Treats the identifier as a path to a JSON or YAML bundle"""

    async def fetch(self, config_id: str) -> bytes:
        path = Path(config_id).expanduser()
        async with aiofiles.open(path, 'rb') as f:
            data = await f.read()
        logger.debug("Read bundle %s (%d bytes)", path, len(data))
        return data


def parse_bundle(data: bytes) -> Dict[str, Any]:
    """Parse a bundle into ``{component: config}``

    JSON is tried first, then YAML. A top-level ``content`` mapping is
    unwrapped.

    Raises:
        ValidationError: If the bundle is not a mapping of components
    """
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ValidationError(f"Bundle is not UTF-8 text: {e}") from e

    try:
        bundle = json.loads(text)
    except ValueError:
        try:
            bundle = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationError(f"Bundle is neither JSON nor YAML: {e}") from e

    if isinstance(bundle, dict) and isinstance(bundle.get("content"), dict):
        bundle = bundle["content"]

    if not isinstance(bundle, dict) or not all(isinstance(k, str) for k in bundle):
        raise ValidationError("Bundle must be a mapping of component names to configuration")

    return bundle
