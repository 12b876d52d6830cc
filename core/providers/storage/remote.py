"""
HTTP object-storage upload

The upload endpoint takes the raw bytes as application/octet-stream, with the
file name and the real content type in headers, and answers {"url": ...}.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import aiohttp

from core.errors import NetworkTimeout, UploadFailed
from ..base import StorageProvider, StorageProviderConfig, StorageResult


logger = logging.getLogger(__name__)


class HttpStorageProvider(StorageProvider):
    """Uploads final videos to an HTTP object-storage endpoint"""

    def __init__(self, config: Optional[StorageProviderConfig] = None):
        config = config or StorageProviderConfig()
        if not config.upload_url:
            raise ValueError("Upload URL required. Set UPLOAD_URL.")
        super().__init__(config)

    @property
    def name(self) -> str:
        return "http"

    async def upload_file(
        self,
        local_path: str,
        remote_name: str,
        content_type: str = "video/mp4",
        **kwargs
    ) -> StorageResult:
        """
        Upload a file.

        Raises:
            NetworkTimeout: The upload exceeded the configured timeout
            UploadFailed: Non-200 response or no URL in the response
        """
        data = await asyncio.to_thread(Path(local_path).read_bytes)
        headers = {
            "Content-Type": "application/octet-stream",
            "X-File-Name": quote(remote_name),
            "X-Content-Type": content_type,
        }

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.config.upload_url, data=data, headers=headers) as response:
                    if response.status != 200:
                        text = await response.text()
                        raise UploadFailed(
                            f"Upload failed ({response.status})",
                            details={"status": response.status, "body": text[:500]}
                        )
                    body = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise NetworkTimeout(f"Upload timed out after {self.config.timeout}s", details={"file": remote_name})
        except aiohttp.ClientError as e:
            raise UploadFailed(f"Upload request failed: {e}", details={"file": remote_name})

        url = (body or {}).get("url")
        if not url:
            raise UploadFailed("Upload response did not contain a URL", details={"file": remote_name})

        logger.info("Uploaded %s (%d bytes)", remote_name, len(data))
        return StorageResult(
            success=True,
            file_url=url,
            file_path=local_path,
            size_bytes=len(data),
            content_type=content_type
        )
