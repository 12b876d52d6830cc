"""
Bounded-time artifact downloads.

Pure downloads are retried with linear backoff (1s, 2s, ...). Each attempt is
capped by a request timeout; exhausting the attempts on timeouts raises
NetworkTimeout, on anything else DownloadFailed.
"""

import asyncio
import logging
from pathlib import Path
from typing import Union

import aiohttp

from core.errors import DownloadFailed, NetworkTimeout


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_RETRIES = 3
BACKOFF_SECONDS = 1.0


async def fetch_bytes(url: str, timeout: float = DEFAULT_TIMEOUT) -> bytes:
    """Single GET with a total timeout. Raises DownloadFailed on non-200."""
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        async with session.get(url) as response:
            if response.status != 200:
                raise DownloadFailed(f"HTTP {response.status}", details={"url": url, "status": response.status})
            return await response.read()


async def download_file(
    url: str,
    dest: Union[str, Path],
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff: float = BACKOFF_SECONDS
) -> Path:
    """
    Download a URL to a local file.

    Args:
        url: Remote artifact URL
        dest: Local destination (parent directory must exist)
        timeout: Per-attempt timeout in seconds
        retries: Maximum attempts
        backoff: Base delay; attempt n waits backoff * n before retrying

    Returns:
        Path to the written file
    """
    dest = Path(dest)
    last_error: Exception = DownloadFailed("no attempt made")
    timed_out = False

    for attempt in range(1, max(1, retries) + 1):
        try:
            data = await fetch_bytes(url, timeout=timeout)
            await asyncio.to_thread(dest.write_bytes, data)
            return dest
        except asyncio.TimeoutError as e:
            timed_out = True
            last_error = e
        except (aiohttp.ClientError, DownloadFailed) as e:
            timed_out = False
            last_error = e

        logger.warning("Download attempt %d/%d failed for %s: %s", attempt, retries, dest.name, last_error)
        if attempt < retries:
            await asyncio.sleep(backoff * attempt)

    if timed_out:
        raise NetworkTimeout(
            f"Download timed out after {retries} attempts: {dest.name}",
            details={"url": url, "timeout": timeout}
        )
    raise DownloadFailed(
        f"Download failed: {dest.name} ({last_error or 'unknown error'})",
        details={"url": url}
    )
