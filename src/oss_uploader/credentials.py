"""
Temporary storage credentials.

Credentials come from an HTTP endpoint (STS-style, short lived) or from a
static mapping in the project config. The endpoint and its optional response
transform are kept together as a ``CredentialSource`` so the storage client
can re-fetch them when botocore notices they have expired.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from . import config as cfg
from .errors import NetworkError
from .utils import now_ms

logger = logging.getLogger(__name__)

Transform = Callable[[Any], Mapping[str, Any]]

# Credentials field -> accepted payload keys, first present wins.
_FIELDS: Dict[str, tuple] = {
    "access_key_id": ("accessKeyId",),
    "access_key_secret": ("accessKeySecret",),
    "bucket_name": ("bucketName", "bucket"),
    "region": ("region",),
    "endpoint": ("endpoint",),
    "security_token": ("securityToken", "stsToken"),
}


@dataclass(frozen=True)
class CredentialSource:
    endpoint: str
    transform: Optional[Transform] = field(default=None, compare=False)


@dataclass
class Credentials:
    region: str = ""
    bucket_name: str = ""
    access_key_id: str = ""
    access_key_secret: str = ""
    endpoint: str = ""
    security_token: str = ""
    expiration_ms: Optional[int] = None
    refresh_interval_ms: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default_expiration_ms: Optional[int] = None) -> "Credentials":
        values = {}
        for name, keys in _FIELDS.items():
            value = next((data[k] for k in keys if data.get(k) not in (None, "")), "")
            values[name] = str(value)
        expiration = parse_expiration(data.get("expiration"))
        if expiration is None:
            expiration = default_expiration_ms
        refresh_interval = None
        if expiration is not None:
            refresh_interval = expiration - now_ms() - cfg.REFRESH_MARGIN_MS
        return cls(expiration_ms=expiration, refresh_interval_ms=refresh_interval, **values)

    def to_refresh_metadata(self) -> dict:
        """Shape expected by botocore's RefreshableCredentials."""
        expiration = self.expiration_ms if self.expiration_ms is not None else now_ms() + cfg.DEFAULT_CREDENTIAL_TTL_MS
        return {
            "access_key": self.access_key_id,
            "secret_key": self.access_key_secret,
            "token": self.security_token or None,
            "expiry_time": datetime.fromtimestamp(expiration / 1000, tz=timezone.utc).isoformat(),
        }


def parse_expiration(value: Union[None, int, float, str]) -> Optional[int]:
    """Normalize an expiration given as epoch milliseconds or an ISO-8601 string."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _unwrap(payload: Any) -> Mapping[str, Any]:
    if isinstance(payload, Mapping):
        data = payload.get("data")
        if isinstance(data, Mapping) and data:
            return data
        return payload
    return {}


def fetch_credentials(source: CredentialSource, client: Optional[httpx.Client] = None) -> Credentials:
    if client is None:
        with httpx.Client(timeout=cfg.HTTP_TIMEOUT, follow_redirects=True) as own:
            return fetch_credentials(source, own)

    logger.debug("requesting credentials from %s", source.endpoint)
    try:
        response = client.get(source.endpoint)
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise NetworkError(f"failed to fetch storage credentials: {exc}", cause=exc) from exc
    except ValueError as exc:
        raise NetworkError("credential endpoint did not return JSON", cause=exc) from exc

    data = source.transform(payload) if source.transform is not None else _unwrap(payload)
    return Credentials.from_mapping(data or {}, default_expiration_ms=now_ms() + cfg.DEFAULT_CREDENTIAL_TTL_MS)


def get_credentials(
    source: Optional[CredentialSource] = None,
    static: Optional[Mapping[str, Any]] = None,
    client: Optional[httpx.Client] = None,
) -> Credentials:
    # Priority: credential endpoint > static config > empty (client construction fails later)
    if source is not None and source.endpoint:
        return fetch_credentials(source, client)
    if static:
        return Credentials.from_mapping(static)
    logger.warning("no credential endpoint or static storage config supplied")
    return Credentials()


def refresh_credentials(source: CredentialSource) -> dict:
    """Re-fetch credentials; used as botocore's lazy refresh callable."""
    logger.debug("refreshing credentials from %s", source.endpoint)
    return fetch_credentials(source).to_refresh_metadata()
