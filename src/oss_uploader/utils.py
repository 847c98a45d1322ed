import ipaddress
import os
import random
import re
import time
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlsplit

# Visually ambiguous characters (0/O, 1/l, g/q, ...) are left out.
RANDOM_ALPHABET = "ABCDEFGHJKMNPQRSTWXYZabcdefhijkmnprstwxyz2345678"

LINK_SCHEMES = ("http", "https", "ftp", "rtsp", "mms")

_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9_-]{0,61}[a-z0-9])?$")


def get_absolute_path(file_path: Union[str, Path], cwd: Optional[Path] = None) -> Path:
    base = Path(cwd) if cwd is not None else Path.cwd()
    return (base / Path(os.path.expanduser(str(file_path)))).resolve()


def _valid_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    labels = host.split(".")
    if len(labels) < 2 or not labels[-1].isalpha():
        return False
    return all(_LABEL.match(label) for label in labels)


def is_link(url: Optional[str]) -> bool:
    """Return True when ``url`` is syntactically an absolute link with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
        parts.port  # raises on a malformed port
    except ValueError:
        return False
    if parts.scheme.lower() not in LINK_SCHEMES or not host:
        return False
    return _valid_host(host)


def get_random_string(length: int = 10) -> str:
    return "".join(random.choice(RANDOM_ALPHABET) for _ in range(length))


def now_ms() -> int:
    return int(time.time() * 1000)
