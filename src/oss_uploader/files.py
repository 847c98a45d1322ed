import json
import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import urlsplit

from . import config as cfg
from .errors import InvalidPathError
from .utils import get_absolute_path, get_random_string, now_ms

logger = logging.getLogger(__name__)

_SCHEME_AND_HOST = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://[^/?#]*")


def get_files(file: Union[str, Path], cwd: Optional[Path] = None) -> List[Path]:
    """Expand a file or directory path into the absolute paths of every file under it.

    Directories listed in ``config.IGNORED_DIRS`` and hidden entries are
    skipped at any depth.
    Raises InvalidPathError when the path does not exist.
    """
    path = get_absolute_path(file, cwd)
    if not path.exists():
        raise InvalidPathError(f"File or directory not found: {file}")
    if not path.is_dir():
        return [path]

    files: List[Path] = []
    for root, dirs, names in os.walk(path):
        dirs[:] = [d for d in dirs if d not in cfg.IGNORED_DIRS and not d.startswith(".")]
        for name in names:
            if name.startswith("."):
                continue
            candidate = Path(root) / name
            if candidate.is_file():
                files.append(candidate)
    logger.debug("found %d files under %s", len(files), path)
    return files


def generate_name(file_path: Union[str, Path], directory: str, randomize: bool) -> str:
    file_path = str(file_path)
    if randomize:
        _, ext = os.path.splitext(file_path)
        name = f"{get_random_string()}_{now_ms()}{ext}"
    else:
        name = os.path.basename(file_path)
    return f"{directory}/{name}"


def generate_remote_name(url: str, save_dir: Optional[str], randomize: bool) -> str:
    # Without a save directory the URL path is mirrored: http://host/a/b.png -> /a/b.png
    if save_dir:
        return generate_name(urlsplit(url).path, save_dir, randomize)
    return _SCHEME_AND_HOST.sub("", url, count=1)


def read_url_list(config_file: Union[str, Path], cwd: Optional[Path] = None) -> List[str]:
    """Load the JSON array of remote URLs from a URL-list file."""
    path = get_absolute_path(config_file, cwd)
    if not path.is_file():
        raise InvalidPathError(f"URL list file not found: {config_file}")
    if path.suffix.lower() != ".json":
        raise InvalidPathError(f"URL list file must be a .json file: {config_file}")
    try:
        urls = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise InvalidPathError(f"URL list file is not valid JSON: {config_file}", cause=exc) from exc
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise InvalidPathError(f"URL list file must contain a JSON array of URLs: {config_file}")
    return urls
