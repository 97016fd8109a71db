"""Configuration paths and environment overrides."""

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError

DEFAULT_CONFIG_SUBDIR = Path(".config") / "pocket"
DEFAULT_API_URL = "https://getpocket.com"
DEVELOPER_APPS_URL = "https://getpocket.com/developer/apps/"

CONSUMER_KEY_FILE = "consumer_key"
AUTH_FILE = "auth.json"

# NOTE: Spotlight skips hidden directories, so this must stay visible
DEFAULT_INDEX_SUBDIR = Path("Library") / "Caches" / "Metadata" / "pocket-cli"

REQUEST_TIMEOUT = 30


def get_config_dir(override: Optional[str] = None) -> Path:
    """Return the configuration root.

    Precedence is explicit override, then ``POCKET_CONFIG_DIR``, then
    ``~/.config/pocket``.
    """
    if override:
        return Path(override).expanduser()
    env_dir = os.getenv("POCKET_CONFIG_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    return Path(os.path.expanduser("~")) / DEFAULT_CONFIG_SUBDIR


def get_api_url() -> str:
    """Return the Pocket API base URL without a trailing slash."""
    return (os.getenv("POCKET_API_URL") or DEFAULT_API_URL).rstrip("/")


def default_index_dir() -> Path:
    """Return the default Spotlight export directory under ``$HOME``."""
    home = os.getenv("HOME")
    if not home:
        raise ConfigError("$HOME not set")
    return Path(home) / DEFAULT_INDEX_SUBDIR
