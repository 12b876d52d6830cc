"""
Local Filesystem Storage Provider

Copies the final video into a directory on disk. Used when no upload
endpoint is configured, and for tests.
"""

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from ..base import StorageProvider, StorageProviderConfig, StorageResult


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider"""

    def __init__(self, config: Optional[StorageProviderConfig] = None):
        """
        Initialize local storage provider.

        Args:
            config: Storage configuration with base_path
        """
        super().__init__(config or StorageProviderConfig())
        self.base_path = Path(self.config.base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    async def upload_file(
        self,
        local_path: str,
        remote_name: str,
        content_type: str = "video/mp4",
        **kwargs
    ) -> StorageResult:
        """Copy the file under base_path and return a file:// URL"""
        source = Path(local_path)
        if not source.exists():
            return StorageResult(success=False, error_message=f"File not found: {local_path}")

        target = self.base_path / Path(remote_name).name
        await asyncio.to_thread(shutil.copyfile, source, target)
        return StorageResult(
            success=True,
            file_url=f"file://{target.absolute()}",
            file_path=str(target),
            size_bytes=target.stat().st_size,
            content_type=content_type
        )
