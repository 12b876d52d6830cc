"""API tests using FastAPI's TestClient"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from core.errors import EncoderUnavailable, ProviderError
from core.models.render import RenderResult
from core.providers.mock import MOCK_AUDIO_BYTES, MockAudioProvider
from core.provider_config import ProviderFactory
from core.renderer import FFmpegRenderer
from server.config import Settings, get_settings
from server.dependencies import get_generators, get_renderer, get_storage
from server.main import app
from server.routes import voices
from tests.mocks.fixtures import write_media_pair


def parse_sse(text: str):
    """Decode a text/event-stream body into event dicts"""
    events = []
    for frame in text.split("\n\n"):
        frame = frame.strip()
        if frame.startswith("data: "):
            events.append(json.loads(frame[len("data: "):]))
    return events


@pytest.fixture
def settings(sandbox):
    return Settings(sandbox_root=str(sandbox), segment_delay=0, provider_mode="mock", upload_url="")


@pytest.fixture
def renderer():
    renderer = MagicMock(spec=FFmpegRenderer)
    renderer.is_available = AsyncMock(return_value=False)
    renderer.require_encoder = AsyncMock(return_value=None)
    renderer.concat_videos = AsyncMock()
    renderer.render_image_audio = AsyncMock()
    return renderer


@pytest.fixture
def generators():
    return ProviderFactory.create_generators("mock")


@pytest.fixture
def client(settings, renderer, generators, monkeypatch):
    monkeypatch.setattr(voices, "preview_cache", voices.PreviewCache())
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_generators] = lambda: generators
    app.dependency_overrides[get_storage] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRoot:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "installed" in data["encoder"]

    def test_root_lists_endpoints(self, client):
        data = client.get("/").json()
        assert "POST /api/generate-video (SSE)" in data["endpoints"].values()

    def test_pipeline_error_is_json(self, client):
        def broken():
            raise EncoderUnavailable("ffmpeg not found", step="voice_preview")

        app.dependency_overrides[get_generators] = broken
        response = client.post("/api/voice-preview", json={"text": "Hello", "voiceId": "nova"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "ENCODER_UNAVAILABLE"
        assert body["message"] == "ffmpeg not found"
        assert body["path"] == "/api/voice-preview"


class TestGenerateVideo:
    """SSE generation endpoint in mock mode"""

    def test_stream(self, client, sandbox):
        response = client.post("/api/generate-video", json={"bookName": "Dune", "generateMode": "video"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

        events = parse_sse(response.text)
        types = [e["type"] for e in events]
        assert types[0] == "progress"
        assert "outline" in types
        assert "video_final" in types
        assert types[-1] == "complete"
        assert sum(t in ("complete", "error") for t in types) == 1

        workspace = events[-1]["data"]["workspacePath"]
        assert workspace.startswith(str(sandbox))

    def test_image_mode(self, client):
        response = client.post("/api/generate-video", json={"bookName": "Dune", "generateMode": "image"})
        events = parse_sse(response.text)
        types = [e["type"] for e in events]
        assert "image" in types
        assert "video_segment" not in types
        final = next(e for e in events if e["type"] == "video_final")
        assert final["data"]["fallbackMode"] is True

    def test_missing_book_name(self, client):
        events = parse_sse(client.post("/api/generate-video", json={"bookName": ""}).text)
        assert [e["type"] for e in events] == ["error"]
        assert events[0]["data"]["error"] == "MISSING_BOOK_NAME"

    def test_unknown_mode(self, client):
        response = client.post("/api/generate-video", json={"bookName": "Dune", "generateMode": "hologram"})
        assert response.status_code == 400


class TestConcatEndpoints:

    def test_concat_image_audio(self, client, renderer, sandbox):
        workspace = sandbox / "video-gen-kept"
        workspace.mkdir()
        image, audio = write_media_pair(workspace, 0)
        output = workspace / "final.mp4"

        async def render(segments, ws, output_path=None, on_clip=None):
            output.write_bytes(b"final")
            return RenderResult(success=True, output_path=str(output), segment_count=len(segments))
        renderer.render_image_audio.side_effect = render

        body = {
            "bookName": "Dune",
            "workspacePath": str(workspace),
            "segments": [{"index": 0, "sentence": "One.", "duration": 5, "imagePath": str(image), "audioPath": str(audio)}],
        }
        events = parse_sse(client.post("/api/concat-image-audio", json=body).text)

        assert events[-1]["type"] == "complete"
        assert events[-1]["data"]["videoUrl"].startswith("/api/temp-file?path=")

    def test_concat_video_missing_workspace(self, client, sandbox):
        body = {"workspacePath": str(sandbox / "video-gen-gone"), "segments": [{"index": 0}, {"index": 1}]}
        events = parse_sse(client.post("/api/concat-video", json=body).text)
        assert events[-1]["type"] == "error"
        assert events[-1]["data"]["error"] == "WORKSPACE_INVALID"


class TestFiles:
    """Scan and artifact retrieval are confined to the sandbox"""

    def test_scan(self, client, sandbox):
        workspace = sandbox / "video-gen-1"
        workspace.mkdir()
        write_media_pair(workspace, 0)

        response = client.get("/api/scan-directory", params={"path": str(workspace)})

        assert response.status_code == 200
        data = response.json()
        assert data["imageCount"] == 1
        assert data["canConcat"] is True
        assert data["matches"][0]["imageApiUrl"].startswith("/api/temp-file?path=")

    @pytest.mark.parametrize("path,status", [
        ("", 400),
        ("/etc", 403),
    ])
    def test_scan_rejections(self, client, path, status):
        assert client.get("/api/scan-directory", params={"path": path}).status_code == status

    def test_scan_missing(self, client, sandbox):
        response = client.get("/api/scan-directory", params={"path": str(sandbox / "nope")})
        assert response.status_code == 404

    def test_scan_not_directory(self, client, sandbox):
        (sandbox / "file.txt").write_text("x")
        response = client.get("/api/scan-directory", params={"path": str(sandbox / "file.txt")})
        assert response.status_code == 400

    def test_temp_file(self, client, sandbox):
        image, audio = write_media_pair(sandbox, 0)

        response = client.get("/api/temp-file", params={"path": str(audio)})

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.headers["cache-control"] == "public, max-age=3600"
        assert response.content == audio.read_bytes()
        assert client.get("/api/temp-file", params={"path": str(image)}).headers["content-type"] == "image/jpeg"

    def test_temp_file_traversal(self, client, sandbox):
        response = client.get("/api/temp-file", params={"path": f"{sandbox}/../../etc/passwd"})
        assert response.status_code == 403

    def test_temp_file_missing(self, client, sandbox):
        assert client.get("/api/temp-file", params={"path": str(sandbox / "x.mp4")}).status_code == 404


class TestVoicePreview:

    def test_miss_then_hit(self, client, generators):
        body = {"voiceId": "narrator", "text": "Hello there."}

        first = client.post("/api/voice-preview", json=body)
        second = client.post("/api/voice-preview", json=body)

        assert first.status_code == 200
        assert first.headers["content-type"] == "audio/mpeg"
        assert first.headers["x-cache"] == "MISS"
        assert first.content == MOCK_AUDIO_BYTES
        assert second.headers["x-cache"] == "HIT"
        assert generators.audio.call_count == 1

    def test_text_too_long(self, client):
        response = client.post("/api/voice-preview", json={"voiceId": "narrator", "text": "x" * 201})
        assert response.status_code == 422

    def test_synthesis_failure(self, client, generators):
        generators.audio = MockAudioProvider(fail_always=ProviderError("voice service down"))
        response = client.post("/api/voice-preview", json={"voiceId": "narrator", "text": "Hi."})
        assert response.status_code == 502
        assert response.json()["detail"] == "voice service down"


class TestPreviewCache:

    def test_evicts_least_recently_used(self):
        cache = voices.PreviewCache(max_entries=2)
        cache.put("a", "t", b"1")
        cache.put("b", "t", b"2")
        assert cache.get("a", "t") == b"1"
        cache.put("c", "t", b"3")
        assert cache.get("b", "t") is None
        assert cache.get("a", "t") == b"1"
        assert len(cache) == 2
