"""Unit tests for generator adapters, storage and the provider factory"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from core.claude_client import ClaudeClient
from core.errors import ProviderError, UploadFailed
from core.provider_config import ProviderFactory
from core.providers import (
    PROVIDER_REGISTRY,
    GeneratorConfig,
    HttpStorageProvider,
    LocalStorageProvider,
    MockAudioProvider,
    MockTextGenerator,
    MockVideoProvider,
    RemoteAudioProvider,
    RemoteImageProvider,
    RemoteVideoProvider,
    StorageProviderConfig,
    get_provider_info,
)
from core.providers.base import ProviderType


@pytest.fixture
def gateway_config():
    return GeneratorConfig(provider_type=ProviderType.REMOTE, api_key="sk-test-1234567890", base_url="https://gw.example.com/")


class TestRemoteVideoProvider:
    """Gateway video adapter"""

    @pytest.mark.asyncio
    async def test_success(self, gateway_config):
        provider = RemoteVideoProvider(gateway_config)
        post = AsyncMock(return_value={"status": 200, "body": {"videoUrl": "https://cdn/v.mp4"}})
        with patch.object(provider, "_post", post):
            result = await provider.generate_video("A sentence.", 6.0, aspect_ratio="16:9", resolution="720p")

        assert result.success
        assert result.video_url == "https://cdn/v.mp4"
        path, payload = post.await_args.args
        assert path == "video/generations"
        assert payload["duration"] == 6
        assert payload["content"] == [{"type": "text", "text": "A sentence."}]

    @pytest.mark.asyncio
    async def test_rate_limit_fields(self, gateway_config):
        provider = RemoteVideoProvider(gateway_config)
        body = {"error": {"code": "ErrTooManyRequests", "message": "slow down"}}
        with patch.object(provider, "_post", AsyncMock(return_value={"status": 403, "body": body})):
            result = await provider.generate_video("A sentence.", 5.0)

        assert not result.success
        assert result.status_code == 403
        assert result.error_code == "ErrTooManyRequests"
        with pytest.raises(ProviderError) as exc_info:
            result.raise_for_error()
        assert exc_info.value.error_code == "ErrTooManyRequests"

    @pytest.mark.asyncio
    async def test_timeout(self, gateway_config):
        provider = RemoteVideoProvider(gateway_config)
        with patch.object(provider, "_post", AsyncMock(side_effect=asyncio.TimeoutError())):
            result = await provider.generate_video("A sentence.", 5.0)
        assert not result.success
        assert result.status_code is None

    @pytest.mark.asyncio
    async def test_missing_video_url(self, gateway_config):
        provider = RemoteVideoProvider(gateway_config)
        with patch.object(provider, "_post", AsyncMock(return_value={"status": 200, "body": {}})):
            result = await provider.generate_video("A sentence.", 5.0)
        assert not result.success

    def test_base_url_required(self):
        with pytest.raises(ValueError):
            RemoteVideoProvider(GeneratorConfig())

    def test_api_key_masked(self, gateway_config):
        assert "sk-test-1234567890" not in repr(gateway_config)
        assert RemoteVideoProvider(gateway_config)._headers()["Authorization"] == "Bearer sk-test-1234567890"


class TestRemoteImageAndAudio:

    @pytest.mark.asyncio
    async def test_image_url(self, gateway_config):
        provider = RemoteImageProvider(gateway_config)
        body = {"data": [{"url": "https://cdn/i.jpg"}]}
        with patch.object(provider, "_post", AsyncMock(return_value={"status": 200, "body": body})):
            result = await provider.generate_image("prompt")
        assert result.image_url == "https://cdn/i.jpg"

    @pytest.mark.asyncio
    async def test_image_error_string(self, gateway_config):
        provider = RemoteImageProvider(gateway_config)
        with patch.object(provider, "_post", AsyncMock(return_value={"status": 500, "body": {"error": "boom"}})):
            result = await provider.generate_image("prompt")
        assert result.status_code == 500
        assert "boom" in result.error_message

    @pytest.mark.asyncio
    async def test_audio_reports_size(self, gateway_config):
        provider = RemoteAudioProvider(gateway_config)
        body = {"audioUri": "https://cdn/a.mp3", "audioSize": 64000}
        post = AsyncMock(return_value={"status": 200, "body": body})
        with patch.object(provider, "_post", post):
            result = await provider.generate_speech("Hello.", voice_id="narrator", uid="segment_0_1")

        assert result.audio_size == 64000
        payload = post.await_args.args[1]
        assert payload["speaker"] == "narrator"
        assert payload["uid"] == "segment_0_1"
        assert payload["sampleRate"] == 24000
        assert payload["audioFormat"] == "mp3"

    @pytest.mark.asyncio
    async def test_audio_client_error(self, gateway_config):
        provider = RemoteAudioProvider(gateway_config)
        with patch.object(provider, "_post", AsyncMock(side_effect=aiohttp.ClientError("reset"))):
            result = await provider.generate_speech("Hello.")
        assert not result.success


class TestMockProviders:

    @pytest.mark.asyncio
    async def test_scripted_failures(self):
        provider = MockVideoProvider(failures=[ProviderError("boom", status_code=500), None])
        with pytest.raises(ProviderError):
            await provider.generate_video("a", 5)
        result = await provider.generate_video("b", 5)
        assert result.success
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_audio_size_proportional_to_text(self):
        result = await MockAudioProvider().generate_speech("x" * 45)
        assert result.audio_size == 160000

    @pytest.mark.asyncio
    async def test_text_generator_streams_book_name(self):
        generator = MockTextGenerator(chunk_size=1000)
        chunks = [c async for c in generator.stream('Write the script for "Dune".')]
        assert "Dune" in "".join(chunks)


class TestStorage:

    @pytest.mark.asyncio
    async def test_local_copy(self, tmp_path):
        source = tmp_path / "final.mp4"
        source.write_bytes(b"video")
        storage = LocalStorageProvider(StorageProviderConfig(base_path=str(tmp_path / "published")))

        result = await storage.upload_file(str(source), "dune-explainer-1.mp4")

        assert result.success
        assert result.file_url.startswith("file://")
        assert (tmp_path / "published" / "dune-explainer-1.mp4").read_bytes() == b"video"

    @pytest.mark.asyncio
    async def test_local_missing_source(self, tmp_path):
        storage = LocalStorageProvider(StorageProviderConfig(base_path=str(tmp_path)))
        result = await storage.upload_file(str(tmp_path / "nope.mp4"), "x.mp4")
        assert not result.success

    def test_http_requires_url(self):
        with pytest.raises(ValueError):
            HttpStorageProvider(StorageProviderConfig())

    @pytest.mark.asyncio
    async def test_http_non_200(self, tmp_path):
        source = tmp_path / "final.mp4"
        source.write_bytes(b"video")

        response = MagicMock(status=500)
        response.text = AsyncMock(return_value="internal error")
        post_ctx = MagicMock()
        post_ctx.__aenter__ = AsyncMock(return_value=response)
        post_ctx.__aexit__ = AsyncMock(return_value=False)
        session = MagicMock()
        session.post = MagicMock(return_value=post_ctx)
        session_ctx = MagicMock()
        session_ctx.__aenter__ = AsyncMock(return_value=session)
        session_ctx.__aexit__ = AsyncMock(return_value=False)

        storage = HttpStorageProvider(StorageProviderConfig(upload_url="https://upload.example.com"))
        with patch("core.providers.storage.remote.aiohttp.ClientSession", return_value=session_ctx):
            with pytest.raises(UploadFailed) as exc_info:
                await storage.upload_file(str(source), "dune explainer.mp4")

        assert exc_info.value.details["status"] == 500
        headers = session.post.call_args.kwargs["headers"]
        assert headers["X-File-Name"] == "dune%20explainer.mp4"
        assert headers["X-Content-Type"] == "video/mp4"


class TestProviderFactory:

    def test_defaults_to_mock(self, monkeypatch):
        monkeypatch.delenv("GENERATOR_PROVIDER", raising=False)
        generators = ProviderFactory.create_generators()
        assert isinstance(generators.video, MockVideoProvider)

    def test_remote_without_base_url_falls_back(self, monkeypatch):
        monkeypatch.delenv("GENERATOR_BASE_URL", raising=False)
        generators = ProviderFactory.create_generators("remote")
        assert generators.audio.name == "mock"

    def test_remote(self):
        generators = ProviderFactory.create_generators("remote", api_key="k", base_url="https://gw.example.com")
        assert isinstance(generators.video, RemoteVideoProvider)
        assert generators.image.config.base_url == "https://gw.example.com"

    def test_unknown_type(self):
        assert ProviderFactory.resolve_type("unknown") == ProviderType.MOCK

    def test_storage_selection(self, tmp_path):
        assert isinstance(ProviderFactory.create_storage(upload_url="https://u"), HttpStorageProvider)
        assert isinstance(ProviderFactory.create_storage(base_path=str(tmp_path)), LocalStorageProvider)
        assert ProviderFactory.create_storage() is None

    def test_text_generator(self):
        assert isinstance(ProviderFactory.create_text_generator(mock=True), MockTextGenerator)
        assert isinstance(ProviderFactory.create_text_generator(api_key="k"), ClaudeClient)

    def test_registry(self):
        assert get_provider_info("video")["remote"] == "RemoteVideoProvider"
        assert set(PROVIDER_REGISTRY) == {"video", "image", "audio", "storage"}
        assert get_provider_info("music") == {}
