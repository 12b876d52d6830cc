"""Generate command - Book explainer from title to segments"""

import asyncio
import json
import os
import sys
import tempfile
import uuid
from typing import Optional

import click

from cli.display import console, follow_channel, print_final, print_script
from cli.theme import get_theme
from core.context import DEFAULT_VOICE, PipelineConfig, RunContext
from core.events import ProgressChannel
from core.models.events import EventType
from core.models.segment import GenerationStrategy
from core.pipeline import GenerationPipeline
from core.provider_config import ProviderFactory
from core.renderer import FFmpegRenderer
from core.script_writer import ScriptWriter
from core.workspace import RunWorkspace


def build_context(
    mode: str,
    voice: str,
    mock: bool,
    keep: bool,
    sandbox: str,
    delay: Optional[float] = None
) -> RunContext:
    """Per-run context for a terminal run"""
    config = PipelineConfig(
        strategy=GenerationStrategy.from_mode(mode),
        voice_id=voice,
        keep_workspace=keep,
        sandbox_root=sandbox,
        # Mock media are placeholders, not decodable clips
        assemble_videos=not mock,
    )
    if delay is not None:
        config.segment_delay = delay
    elif mock:
        config.segment_delay = 0

    generators = ProviderFactory.create_generators("mock" if mock else "remote")
    storage = None if mock else ProviderFactory.create_storage(upload_url=os.getenv("UPLOAD_URL"))

    return RunContext(
        channel=ProgressChannel(uuid.uuid4().hex[:12]),
        workspace=RunWorkspace.create(sandbox_root=sandbox),
        renderer=FFmpegRenderer(ffmpeg_path=os.getenv("FFMPEG_PATH")),
        config=config,
        video_provider=generators.video,
        image_provider=generators.image,
        audio_provider=generators.audio,
        storage=storage,
    )


async def run_generate(context: RunContext, script_writer: ScriptWriter, book: str):
    pipeline = GenerationPipeline(context, script_writer, book)
    task = asyncio.ensure_future(pipeline.run())
    try:
        terminal = await follow_channel(context.channel, description=f"Explaining {book}")
    finally:
        if not task.done():
            context.channel.cancel()
        await task
    return terminal


@click.command()
@click.argument("book")
@click.option("--mode", type=click.Choice(["video", "image"]), default="video", show_default=True,
              help="video: generated clip per segment with image+audio fallback; image: image+audio only")
@click.option("--voice", default=DEFAULT_VOICE, show_default=True, help="Narration voice id")
@click.option("--mock/--live", default=True, help="Use mock generators (default) or the live ones")
@click.option("--keep/--no-keep", default=True, help="Keep the workspace for later assembly")
@click.option("--delay", type=float, default=None, help="Seconds between segments (default 3, 0 with --mock)")
@click.option("--sandbox", default=tempfile.gettempdir(), show_default=True, help="Root for run workspaces")
@click.option("--json", "as_json", is_flag=True, help="Print the final payload as JSON")
def generate_cmd(book: str, mode: str, voice: str, mock: bool, keep: bool, delay: Optional[float],
                 sandbox: str, as_json: bool):
    """Generate an explainer for BOOK: outline, script, segments

    \b
    Examples:
      explainer generate "Sapiens" --mock
      explainer generate "Sapiens" --live --mode image
    """
    t = get_theme()
    mode_label = f"[{t.dimmed}]MOCK[/{t.dimmed}]" if mock else f"[{t.success}]LIVE[/{t.success}]"
    console.print(f"[{t.header}]Book explainer[/{t.header}] \"{book}\" ({mode} mode, {mode_label})")

    if not mock and not os.getenv("ANTHROPIC_API_KEY"):
        console.print(f"[{t.error}]ANTHROPIC_API_KEY not set. For runs without API keys, use --mock[/{t.error}]")
        sys.exit(1)
    script_writer = ScriptWriter(ProviderFactory.create_text_generator(mock=mock))

    context = build_context(mode, voice, mock, keep, sandbox, delay)
    terminal = asyncio.run(run_generate(context, script_writer, book))

    final = next((e for e in context.channel.history if e.type == EventType.VIDEO_FINAL), None)
    if as_json:
        click.echo(json.dumps(final.data if final else {}, ensure_ascii=False, indent=2))
    elif final is not None:
        print_script(final.data.get("script", ""))
        print_final(final.data)

    if terminal is None or terminal.type != EventType.COMPLETE:
        message = terminal.message if terminal else "Run cancelled"
        console.print(f"[{t.error}]Generation failed:[/{t.error}] {message}")
        sys.exit(1)

    console.print(f"[{t.success}]Done[/{t.success}]")
