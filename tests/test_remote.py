from __future__ import annotations

import asyncio

import httpx
import pytest

from oss_uploader.errors import NetworkError
from oss_uploader.remote import fetch_all, fetch_url


def _client(bodies: dict[str, bytes]) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = bodies.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_fetch_url_returns_bytes() -> None:
    async def go() -> bytes:
        async with _client({"https://cdn.example.com/a.png": b"\x89PNG"}) as client:
            return await fetch_url("https://cdn.example.com/a.png", client)

    assert asyncio.run(go()) == b"\x89PNG"


def test_fetch_all_keeps_input_order() -> None:
    bodies = {f"https://cdn.example.com/{i}.bin": bytes([i]) for i in range(5)}
    urls = list(reversed(list(bodies)))

    async def go() -> list[bytes]:
        async with _client(bodies) as client:
            return await fetch_all(urls, client)

    assert asyncio.run(go()) == [bodies[u] for u in urls]


def test_fetch_all_fails_whole_batch() -> None:
    async def go() -> list[bytes]:
        async with _client({"https://cdn.example.com/a.png": b"a"}) as client:
            return await fetch_all(["https://cdn.example.com/a.png", "https://cdn.example.com/missing.png"], client)

    with pytest.raises(NetworkError):
        asyncio.run(go())
