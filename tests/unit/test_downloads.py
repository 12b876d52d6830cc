"""Unit tests for bounded-time downloads"""

import asyncio
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from core.downloads import download_file
from core.errors import DownloadFailed, NetworkTimeout


class TestDownloadFile:
    """Retry with linear backoff"""

    @pytest.mark.asyncio
    async def test_success(self, tmp_path):
        with patch("core.downloads.fetch_bytes", AsyncMock(return_value=b"image")):
            path = await download_file("https://cdn.example.com/a.jpg", tmp_path / "image_0.jpg")
        assert path.read_bytes() == b"image"

    @pytest.mark.asyncio
    async def test_write_runs_off_the_event_loop(self, tmp_path):
        dest = tmp_path / "image_0.jpg"

        async def run_inline(func, *args):
            return func(*args)

        with patch("core.downloads.fetch_bytes", AsyncMock(return_value=b"image")), \
                patch("core.downloads.asyncio.to_thread", AsyncMock(side_effect=run_inline)) as to_thread:
            await download_file("https://cdn.example.com/a.jpg", dest)

        to_thread.assert_awaited_once_with(dest.write_bytes, b"image")
        assert dest.read_bytes() == b"image"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, tmp_path):
        fetch = AsyncMock(side_effect=[aiohttp.ClientError("reset"), b"audio"])
        with patch("core.downloads.fetch_bytes", fetch), \
                patch("core.downloads.asyncio.sleep", AsyncMock()) as sleep:
            await download_file("https://cdn.example.com/a.mp3", tmp_path / "audio_0.mp3")
        assert fetch.await_count == 2
        sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_timeouts_exhausted(self, tmp_path):
        fetch = AsyncMock(side_effect=asyncio.TimeoutError())
        with patch("core.downloads.fetch_bytes", fetch), \
                patch("core.downloads.asyncio.sleep", AsyncMock()) as sleep:
            with pytest.raises(NetworkTimeout):
                await download_file("https://cdn.example.com/a.mp3", tmp_path / "a.mp3", retries=3)
        assert fetch.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_http_errors_exhausted(self, tmp_path):
        fetch = AsyncMock(side_effect=DownloadFailed("HTTP 404"))
        with patch("core.downloads.fetch_bytes", fetch), \
                patch("core.downloads.asyncio.sleep", AsyncMock()):
            with pytest.raises(DownloadFailed):
                await download_file("https://cdn.example.com/a.mp3", tmp_path / "a.mp3", retries=2)
        assert not (tmp_path / "a.mp3").exists()
