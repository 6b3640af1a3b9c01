"""Format version checks for persisted documents"""

from typing import Optional

from packaging.version import parse, Version, InvalidVersion


def parse_version(version_str: str) -> Optional[Version]:
    """
    Parse version string

    Args:
        version_str: Version string

    Returns:
        Version object or None if invalid
    """
    try:
        return parse(str(version_str))
    except InvalidVersion:
        return None


def is_compatible_format(found: str, supported: str) -> bool:
    """
    Check whether a persisted document can be read by this release

    Documents written by the same major format version are readable,
    older or newer minor versions included.

    Args:
        found: Version recorded in the document
        supported: Format version this release writes

    Returns:
        True if the document can be read
    """
    found_version = parse_version(found)
    supported_version = parse_version(supported)
    if found_version is None or supported_version is None:
        return False
    return found_version.major == supported_version.major
