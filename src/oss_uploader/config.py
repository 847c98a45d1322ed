"""
Centralized defaults for the uploader.

Edit these constants to set project defaults. CLI flags, environment
variables and the project config module override these values at runtime.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

VERSION: str = "1.1.0"

# Directory objects are saved under when neither a flag nor a prompt answer sets one.
DEFAULT_SAVE_DIR: str = "nomi"

# Manifest of uploaded objects, written to the current working directory.
MANIFEST_FILENAME: str = "uploaded_list.json"

# Optional project-local config module, looked up in the current working directory.
PROJECT_CONFIG_FILENAME: str = "oss_uploader_config.py"

# Directory names never descended into when walking a local directory.
# Hidden (dot) files and directories are skipped as well.
IGNORED_DIRS: Tuple[str, ...] = ("node_modules", "__pycache__", ".venv")

# Lifetime assumed for temporary credentials whose endpoint omits an expiration.
DEFAULT_CREDENTIAL_TTL_MS: int = 30 * 60 * 1000

# Safety margin subtracted from the expiration when computing the refresh interval.
REFRESH_MARGIN_MS: int = 10

# Timeout (seconds) for credential and remote content requests.
HTTP_TIMEOUT: float = 60.0

# Set to any of 1/true/yes/on to enable debug output without passing --debug.
DEBUG_ENV_VAR: str = "OSS_UPLOADER_DEBUG"


def env_debug() -> bool:
    return (os.getenv(DEBUG_ENV_VAR) or "").strip().lower() in ("1", "true", "yes", "on")


def env_api() -> Optional[str]:
    return os.getenv("OSS_UPLOADER_API") or None


@dataclass
class RunConfig:
    """Merged view of CLI flags, project config and prompt answers."""

    api: Optional[str] = None
    file: Optional[str] = None
    save_dir: Optional[str] = None
    config_file: Optional[str] = None
    url: Optional[str] = None
    random: Optional[bool] = None
    debug: bool = False
    source_type: Optional[str] = None
    remote_type: Optional[str] = None
    oss_config: Optional[Dict[str, Any]] = None
    transform: Optional[Callable[[Any], Any]] = field(default=None, repr=False)
