"""Integration tests: generation then assembly, mock generators end to end

Only the encoder is mocked. Every other component (script writer, segmenter,
orchestrator, workspace, reconciler, progress channel) runs for real.
"""

import pytest

from core.context import PipelineConfig, RunContext
from core.events import ProgressChannel
from core.models.events import EventType
from core.models.segment import GenerationStrategy, Segment
from core.models.render import RenderResult
from core.pipeline import GenerationPipeline, ImageAudioAssembly
from core.providers.mock import MockTextGenerator
from core.reconciler import scan_directory
from core.script_writer import ScriptWriter


pytestmark = pytest.mark.integration


@pytest.fixture
def image_config(sandbox):
    return PipelineConfig(strategy=GenerationStrategy.IMAGE_AUDIO, segment_delay=0, sandbox_root=str(sandbox))


class TestGenerateThenAssemble:
    """A kept workspace feeds both the reconciler and the assembly run"""

    @pytest.mark.asyncio
    async def test_workspace_round_trip(self, make_context, image_config, channel, workspace, sandbox, fake_renderer):
        payload = await GenerationPipeline(
            make_context(config=image_config), ScriptWriter(MockTextGenerator()), "Dune"
        ).run()
        assert channel.terminal_event.type == EventType.COMPLETE
        assert workspace.exists

        scanned = scan_directory(payload["workspacePath"], sandbox_root=sandbox)
        assert len(scanned.full_matches) == len(payload["segments"])

        async def render(segments, ws, output_path=None, on_clip=None):
            ws.final_assembly_path.write_bytes(b"final")
            return RenderResult(success=True, output_path=str(ws.final_assembly_path), segment_count=len(segments))
        fake_renderer.render_image_audio.side_effect = render

        assembly_channel = ProgressChannel("assembly")
        context = RunContext(
            channel=assembly_channel,
            workspace=None,
            renderer=fake_renderer,
            config=image_config,
        )
        segments = [Segment.from_dict(s) for s in payload["segments"]]
        result = await ImageAudioAssembly(
            context, segments, book_name="Dune", workspace_path=payload["workspacePath"]
        ).run()

        assert assembly_channel.terminal_event.type == EventType.COMPLETE
        assert result["segmentCount"] == len(segments)

    @pytest.mark.asyncio
    async def test_reconciled_segments_assemble(self, make_context, image_config, workspace, sandbox, fake_renderer):
        await GenerationPipeline(make_context(config=image_config), ScriptWriter(MockTextGenerator()), "Dune").run()
        scanned = scan_directory(workspace.path, sandbox_root=sandbox)

        async def render(segments, ws, output_path=None, on_clip=None):
            ws.final_assembly_path.write_bytes(b"final")
            return RenderResult(success=True, output_path=str(ws.final_assembly_path), segment_count=len(segments))
        fake_renderer.render_image_audio.side_effect = render

        channel = ProgressChannel("reconciled")
        context = RunContext(channel=channel, workspace=None, renderer=fake_renderer, config=image_config)
        await ImageAudioAssembly(context, scanned.to_segments(), workspace_path=str(workspace.path)).run()

        staged = fake_renderer.render_image_audio.await_args.args[0]
        assert [s.index for s in staged] == [m.index for m in scanned.full_matches]
        assert channel.terminal_event.type == EventType.COMPLETE
