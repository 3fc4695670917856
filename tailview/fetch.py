"""Plain HTTP access to whole log sources.

The streaming connection only ever carries filtered lines; the server
also serves the raw file under ``fetch/<source>`` for download.
"""

from urllib.parse import quote

import httpx

from tailview.text import format_bytes


class LogFetcher:
    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def __aenter__(self) -> "LogFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def download_url(self, source: str) -> str:
        return f"{self.base_url}/fetch/{quote(source, safe='/')}"

    async def download(self, source: str) -> bytes:
        resp = await self._client.get(self.download_url(source))
        resp.raise_for_status()
        return resp.content

    async def size(self, source: str) -> int | None:
        """Return the source's size in bytes, or None if the server doesn't say."""
        resp = await self._client.head(self.download_url(source))
        resp.raise_for_status()
        length = resp.headers.get("content-length")
        return int(length) if length and length.isdigit() else None

    async def describe(self, source: str) -> str:
        size = await self.size(source)
        if size is None:
            return source
        return f"{source} ({format_bytes(size)})"
