"""Version information for context-deploy"""

__version__ = "0.4.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))
__author__ = "vistart"
__email__ = "i@vistart.me"
__license__ = "MIT"

# Persisted document formats (lock files, state files, backup manifests)
STATE_FORMAT_VERSION = "1.0.0"
MANIFEST_FORMAT_VERSION = "1.0.0"
