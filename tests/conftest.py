"""Shared pytest fixtures"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.context import PipelineConfig, RunContext
from core.events import ProgressChannel
from core.providers.mock import MockAudioProvider, MockImageProvider, MockVideoProvider
from core.renderer import FFmpegRenderer
from core.workspace import RunWorkspace
from tests.mocks.claude_client import MockClaudeClient


# ============================================================
# Sandbox and workspaces
# ============================================================

@pytest.fixture
def sandbox(tmp_path):
    """Sandbox root for workspaces and artifacts"""
    root = tmp_path / "sandbox"
    root.mkdir()
    return root


@pytest.fixture
def workspace(sandbox):
    """Fresh run workspace under the sandbox"""
    ws = RunWorkspace.create(sandbox_root=sandbox)
    yield ws
    ws.cleanup(force=True)


@pytest.fixture
def channel():
    return ProgressChannel(run_id=uuid.uuid4().hex[:8])


# ============================================================
# Generators and encoder
# ============================================================

@pytest.fixture
def mock_claude_client():
    """Fresh mock Claude client for each test"""
    client = MockClaudeClient()
    yield client
    client.reset()


@pytest.fixture
def video_provider():
    return MockVideoProvider()


@pytest.fixture
def image_provider():
    return MockImageProvider()


@pytest.fixture
def audio_provider():
    return MockAudioProvider()


@pytest.fixture
def fake_renderer():
    """Renderer whose encoder work is mocked out"""
    renderer = MagicMock(spec=FFmpegRenderer)
    renderer.is_available = AsyncMock(return_value=True)
    renderer.require_encoder = AsyncMock(return_value=None)
    renderer.concat_videos = AsyncMock()
    renderer.render_image_audio = AsyncMock()
    return renderer


@pytest.fixture
def pipeline_config(sandbox):
    """Fast config: no inter-segment delay"""
    return PipelineConfig(segment_delay=0, sandbox_root=str(sandbox))


@pytest.fixture
def make_context(channel, workspace, fake_renderer, pipeline_config, video_provider, image_provider, audio_provider):
    """Factory for RunContext with per-test overrides"""
    def _make(**overrides) -> RunContext:
        values = dict(
            channel=channel,
            workspace=workspace,
            renderer=fake_renderer,
            config=pipeline_config,
            video_provider=video_provider,
            image_provider=image_provider,
            audio_provider=audio_provider,
            storage=None,
        )
        values.update(overrides)
        return RunContext(**values)
    return _make


# ============================================================
# Markers Configuration
# ============================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks integration tests"
    )
    config.addinivalue_line(
        "markers", "requires_ffmpeg: needs a working ffmpeg binary on PATH"
    )
