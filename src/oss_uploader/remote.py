import asyncio
import logging
from typing import List, Optional, Sequence

import httpx

from . import config as cfg
from .errors import NetworkError

logger = logging.getLogger(__name__)


async def fetch_url(url: str, client: Optional[httpx.AsyncClient] = None) -> bytes:
    """GET ``url`` and return the response body. Raises NetworkError on any failure."""
    if client is None:
        async with httpx.AsyncClient(timeout=cfg.HTTP_TIMEOUT, follow_redirects=True) as own:
            return await fetch_url(url, own)

    try:
        response = await client.get(url)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise NetworkError(f"failed to fetch {url}: {exc}", cause=exc) from exc
    logger.debug("fetched %s (%d bytes)", url, len(response.content))
    return response.content


async def fetch_all(urls: Sequence[str], client: Optional[httpx.AsyncClient] = None) -> List[bytes]:
    """Fetch every URL concurrently; results keep the input order, any failure fails all."""
    if client is None:
        async with httpx.AsyncClient(timeout=cfg.HTTP_TIMEOUT, follow_redirects=True) as own:
            return await fetch_all(urls, own)
    return list(await asyncio.gather(*(fetch_url(url, client) for url in urls)))
