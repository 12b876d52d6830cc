"""Integration tests against a real ffmpeg binary

Inputs are synthesised with lavfi sources, so no fixtures are needed on disk.
Skipped when ffmpeg is not on PATH.
"""

import shutil
import subprocess

import pytest

from core.models.render import RenderConfig
from core.renderer import FFmpegRenderer
from tests.mocks.fixtures import make_image_audio_segment


FFMPEG = shutil.which("ffmpeg")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.requires_ffmpeg,
    pytest.mark.slow,
    pytest.mark.skipif(FFMPEG is None, reason="ffmpeg not installed"),
]


def _lavfi(*args):
    subprocess.run([FFMPEG, "-y", "-loglevel", "error", *args], check=True)


def make_image(path, color="blue"):
    _lavfi("-f", "lavfi", "-i", f"color=c={color}:s=320x240", "-frames:v", "1", str(path))
    return path


def make_audio(path, seconds=2):
    _lavfi("-f", "lavfi", "-i", f"sine=frequency=440:duration={seconds}", "-c:a", "libmp3lame", str(path))
    return path


def make_clip(path, seconds=2):
    _lavfi(
        "-f", "lavfi", "-i", f"testsrc=duration={seconds}:size=320x180:rate=10",
        "-f", "lavfi", "-i", f"sine=frequency=440:duration={seconds}",
        "-c:v", "libx264", "-pix_fmt", "yuv420p", "-c:a", "aac", "-shortest", str(path)
    )
    return path


@pytest.fixture
def renderer():
    config = RenderConfig(output_width=320, output_height=180, output_fps=10, preset="ultrafast")
    return FFmpegRenderer(config=config, ffmpeg_path=FFMPEG)


class TestRealEncoder:

    @pytest.mark.asyncio
    async def test_encoder_detected(self, renderer):
        assert await renderer.is_available()

    @pytest.mark.asyncio
    async def test_ken_burns_with_transitions(self, renderer, workspace):
        segments = []
        for i, color in enumerate(("blue", "red", "green")):
            image = make_image(workspace.image_path(i), color)
            audio = make_audio(workspace.audio_path(i))
            segments.append(make_image_audio_segment(i, str(image), str(audio), duration=2.0))

        result = await renderer.render_image_audio(segments, workspace)

        assert result.used_transitions
        assert result.segment_count == 3
        assert result.file_size and result.file_size > 0

    @pytest.mark.asyncio
    async def test_single_clip_copy(self, renderer, workspace):
        image = make_image(workspace.image_path(0))
        audio = make_audio(workspace.audio_path(0))
        result = await renderer.render_image_audio(
            [make_image_audio_segment(0, str(image), str(audio), duration=2.0)], workspace
        )
        assert not result.used_transitions
        assert workspace.final_assembly_path.exists()

    @pytest.mark.asyncio
    async def test_concat_stream_copy(self, renderer, workspace):
        clips = [make_clip(workspace.segment_path(i)) for i in range(2)]
        result = await renderer.concat_videos(clips, workspace.final_video_path, workspace.manifest_path)
        assert workspace.final_video_path.stat().st_size > 0
        assert result.segment_count == 2
