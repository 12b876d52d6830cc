"""Assemble command - image+audio slideshow from a workspace directory"""

import asyncio
import os
import sys
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import click

from cli.display import console, follow_channel
from cli.theme import get_theme
from core.client_assembler import ClientAssembler
from core.errors import PipelineError
from core.events import ProgressChannel
from core.reconciler import scan_directory
from core.renderer import FFmpegRenderer
from core.workspace import RunWorkspace


async def assemble_with_server_encoder(renderer: FFmpegRenderer, segments, directory: str, sandbox: str,
                                       output: Path) -> str:
    workspace = RunWorkspace.open(directory, sandbox_root=sandbox, keep=True)
    result = await renderer.render_image_audio(segments, workspace, output_path=output)
    return result.output_path


async def assemble_embedded(segments, sandbox: str, output: Path) -> str:
    channel = ProgressChannel(uuid.uuid4().hex[:12])
    assembler = ClientAssembler(sandbox_root=sandbox)

    async def _run():
        try:
            result = await assembler.assemble(segments, output, channel=channel)
            channel.complete("Video assembled", {"outputPath": result.output_path})
            return result
        except PipelineError as e:
            channel.fail(e)
            raise
        except Exception as e:
            channel.error(f"Assembly failed: {e}", data={"error": "INTERNAL_ERROR"})
            raise

    task = asyncio.ensure_future(_run())
    await follow_channel(channel, description="Assembling (embedded encoder)")
    result = await task
    return result.output_path


@click.command()
@click.argument("directory")
@click.option("--embedded", is_flag=True, help="Use the bundled encoder (imageio-ffmpeg) instead of the system ffmpeg")
@click.option("-o", "--output", "output", default=None, help="Output file (default: DIRECTORY/final.mp4)")
@click.option("--sandbox", default=tempfile.gettempdir(), show_default=True, help="Directories must live under this root")
def assemble_cmd(directory: str, embedded: bool, output: Optional[str], sandbox: str):
    """Reconcile DIRECTORY and assemble its image+audio pairs into one video

    Falls back to the embedded encoder when no system ffmpeg is found.
    """
    t = get_theme()
    try:
        result = scan_directory(directory, sandbox_root=sandbox)
    except PipelineError as e:
        console.print(f"[{t.error}]{e.message}[/{t.error}]")
        sys.exit(1)

    segments = [m.to_segment() for m in result.full_matches]
    if not segments:
        console.print(f"[{t.error}]No complete image+audio pairs in {result.dir_path}[/{t.error}]")
        sys.exit(1)

    output_path = Path(output) if output else Path(result.dir_path) / "final.mp4"
    renderer = FFmpegRenderer(ffmpeg_path=os.getenv("FFMPEG_PATH"))

    if not embedded and not asyncio.run(renderer.is_available()):
        console.print(f"[{t.warning}]System ffmpeg not found, using the embedded encoder[/{t.warning}]")
        embedded = True

    console.print(f"Assembling {len(segments)} segments from {result.dir_path}")
    try:
        if embedded:
            written = asyncio.run(assemble_embedded(segments, sandbox, output_path))
        else:
            written = asyncio.run(
                assemble_with_server_encoder(renderer, segments, result.dir_path, sandbox, output_path)
            )
    except PipelineError as e:
        console.print(f"[{t.error}]Assembly failed:[/{t.error}] {e.message}")
        sys.exit(1)

    console.print(f"[{t.success}]Video written:[/{t.success}] {written}")
