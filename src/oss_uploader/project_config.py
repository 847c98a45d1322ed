"""
Project-local config module.

A file named ``oss_uploader_config.py`` in the working directory may define
``config``: either a dict or a zero-argument function returning one::

    def config():
        return {
            "oss_api_config": {
                "url": "https://example.com/api/oss/sts",
                "transfer_response": lambda payload: payload["result"],
            },
            "oss_config": None,
            "save_dir": "static/images",
            "random": True,
            "debug": False,
        }

A missing file is not an error.
"""

import importlib.util
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from . import config as cfg

logger = logging.getLogger(__name__)

KNOWN_KEYS = ("oss_api_config", "oss_config", "save_dir", "random", "debug")


class ProjectConfigError(Exception):
    """Raised when the project config module exists but is malformed."""


def load_project_config(cwd: Optional[Path] = None) -> Dict[str, Any]:
    path = (Path(cwd) if cwd is not None else Path.cwd()) / cfg.PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return {}

    spec = importlib.util.spec_from_file_location("_oss_uploader_project_config", path)
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
        value = getattr(module, "config", None)
        if callable(value):
            value = value()
    except Exception as exc:
        raise ProjectConfigError(f"{path.name}: {exc.__class__.__name__}: {exc}") from exc
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProjectConfigError(f"{path.name}: `config` must be a dict or a function returning one")

    unknown = sorted(set(value) - set(KNOWN_KEYS))
    if unknown:
        logger.warning("ignoring unknown keys in %s: %s", path.name, ", ".join(unknown))
    logger.debug("loaded project config from %s", path)
    return {k: value[k] for k in KNOWN_KEYS if k in value}
