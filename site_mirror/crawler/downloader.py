"""
Asset fetcher for downloading and saving website resources.

Uses one aiohttp session per crawl.
"""

import asyncio
from typing import Optional

import aiohttp
from aiohttp import ClientTimeout, ClientError

from ..utils.constants import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from ..utils.errors import FetchError
from ..utils.log import get_logger
from ..utils.paths import ensure_parent_dir


class AssetFetcher:
    """
    Downloads raw asset bytes over HTTP.

    Use as an async context manager; the session is opened on entry and
    closed on exit.
    """

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        """
        Initialize the asset fetcher.

        Args:
            timeout: Request timeout in seconds
            user_agent: User agent string for requests
        """
        self.timeout = ClientTimeout(total=timeout)
        self.user_agent = user_agent
        self.logger = get_logger("downloader")

        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent}
            )

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> bytes:
        """
        Download a single asset.

        Args:
            url: Absolute asset URL

        Returns:
            Response body

        Raises:
            FetchError: On any HTTP, network or timeout failure
        """
        if self._session is None:
            await self.start()

        try:
            async with self._session.get(url, allow_redirects=True) as response:
                if response.status != 200:
                    raise FetchError(url, f"HTTP {response.status}")
                content = await response.read()
        except ClientError as e:
            raise FetchError(url, f"client error: {e}") from e
        except asyncio.TimeoutError as e:
            raise FetchError(url, "timeout") from e

        self.logger.debug(f"Fetched {len(content)} bytes: {url}")
        return content

    def save(self, content: bytes, file_path: str) -> None:
        """
        Write downloaded bytes to disk, creating parent directories.

        Raises:
            OSError: If the file cannot be written
        """
        ensure_parent_dir(file_path)
        with open(file_path, 'wb') as f:
            f.write(content)

    def write_page(self, html_content: str, file_path: str) -> None:
        """
        Save HTML content to a local file.

        Raises:
            OSError: If the file cannot be written
        """
        ensure_parent_dir(file_path)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(html_content)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
