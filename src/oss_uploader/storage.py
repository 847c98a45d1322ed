import asyncio
import io
import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence, Union
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config as BotoConfig
from botocore.credentials import RefreshableCredentials
from botocore.session import get_session

from . import config as cfg
from .credentials import Credentials, CredentialSource, refresh_credentials
from .errors import UploadError
from .progress import UploadProgress

logger = logging.getLogger(__name__)


class IntervalRefreshableCredentials(RefreshableCredentials):
    """Refreshes only when less than REFRESH_MARGIN_MS of lifetime is left,
    i.e. once ``Credentials.refresh_interval_ms`` has elapsed.
    """

    _advisory_refresh_timeout = cfg.REFRESH_MARGIN_MS / 1000
    _mandatory_refresh_timeout = cfg.REFRESH_MARGIN_MS / 1000


def install_credentials(botocore_session, credentials) -> None:
    # botocore has no public setter for session credentials; the common
    # RefreshableCredentials-on-a-session recipe assigns _credentials directly.
    botocore_session._credentials = credentials


@dataclass
class UploadTarget:
    name: str
    source: Union[Path, bytes]

    @property
    def size_bytes(self) -> int:
        if isinstance(self.source, (bytes, bytearray)):
            return len(self.source)
        return self.source.stat().st_size


@dataclass
class UploadResult:
    name: str
    url: str

    def to_dict(self) -> dict:
        return {"name": self.name, "url": self.url}


def resolve_endpoint_url(credentials: Credentials) -> Optional[str]:
    # Priority: explicit endpoint > OSS region (oss-cn-hangzhou -> oss-cn-hangzhou.aliyuncs.com) > SDK default
    endpoint = credentials.endpoint.strip()
    if endpoint:
        return endpoint if "://" in endpoint else f"https://{endpoint}"
    if credentials.region.startswith("oss-"):
        return f"https://{credentials.region}.aliyuncs.com"
    return None


class OssClient:
    """A bucket-bound S3 client that returns public object URLs for each put."""

    def __init__(self, s3, bucket: str) -> None:
        self.s3 = s3
        self.bucket = bucket

    def object_url(self, key: str) -> str:
        base = urlsplit(self.s3.meta.endpoint_url)
        return f"{base.scheme}://{self.bucket}.{base.netloc}/{quote(key)}"

    def put(self, name: str, source: Union[Path, bytes], callback=None) -> str:
        key = name.lstrip("/")
        if isinstance(source, (bytes, bytearray)):
            self.s3.upload_fileobj(io.BytesIO(source), self.bucket, key, Callback=callback)
        else:
            self.s3.upload_file(str(source), self.bucket, key, Callback=callback)
        return self.object_url(key)


def make_oss_client(credentials: Credentials, source: Optional[CredentialSource] = None) -> OssClient:
    """Build the S3 client for ``credentials``.

    When ``source`` is given and the credentials expire, botocore refreshes
    them lazily through ``refresh_credentials(source)``.
    """
    refreshable = (
        source is not None
        and credentials.expiration_ms is not None
        and bool(credentials.access_key_id)
    )
    if refreshable:
        botocore_session = get_session()
        install_credentials(
            botocore_session,
            IntervalRefreshableCredentials.create_from_metadata(
                metadata=credentials.to_refresh_metadata(),
                refresh_using=partial(refresh_credentials, source),
                method="oss-credential-endpoint",
            ),
        )
        session = boto3.session.Session(botocore_session=botocore_session)
        creds = {}
    else:
        session = boto3.session.Session()
        creds = {
            "aws_access_key_id": credentials.access_key_id,
            "aws_secret_access_key": credentials.access_key_secret,
            "aws_session_token": credentials.security_token,
        }

    boto_cfg = BotoConfig(s3={"addressing_style": "virtual"}, signature_version="s3v4")
    client_kwargs = {
        "region_name": credentials.region,
        "config": boto_cfg,
        "endpoint_url": resolve_endpoint_url(credentials),
        **creds,
    }
    s3 = session.client("s3", **{k: v for k, v in client_kwargs.items() if v})
    logger.debug("created s3 client bucket=%s endpoint=%s", credentials.bucket_name, s3.meta.endpoint_url)
    return OssClient(s3, credentials.bucket_name)


def upload_one(client: OssClient, target: UploadTarget, progress: Optional[UploadProgress] = None) -> UploadResult:
    callback = progress.add_bytes if progress is not None else None
    url = client.put(target.name, target.source, callback=callback)
    if progress is not None:
        progress.file_done()
    logger.debug("uploaded %s -> %s", target.name, url)
    return UploadResult(name=target.name, url=url)


async def upload_all(
    client: OssClient,
    targets: Sequence[UploadTarget],
    progress: Optional[UploadProgress] = None,
) -> List[UploadResult]:
    """Start every put at once; results follow the order of ``targets``.

    Any failed put fails the whole batch with UploadError.
    """
    try:
        results = await asyncio.gather(
            *(asyncio.to_thread(upload_one, client, target, progress) for target in targets)
        )
    except Exception as exc:
        raise UploadError(f"upload failed: {exc}", cause=exc) from exc
    return list(results)
