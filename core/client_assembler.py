"""
Client-side fallback assembler.

Runs the same assembly as the server engine (same Ken Burns filter, same
transition graph, same single-clip fast path) with the encoder bundled by
imageio-ffmpeg, for callers whose server has no usable ffmpeg. Every input is
first staged into a private scratch directory, and the result is a local file
rather than an uploaded URL.
"""

import asyncio
import logging
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

import imageio_ffmpeg

from core.downloads import download_file
from core.errors import EncoderUnavailable, NoUsableSegments, WorkspaceInvalid
from core.events import ProgressChannel
from core.models.render import RenderConfig
from core.models.segment import ImageAudioRef, Segment
from core.renderer import FFmpegRenderer
from core.workspace import (
    DEFAULT_SANDBOX_ROOT,
    RunWorkspace,
    is_remote_url,
    path_from_artifact_url,
    resolve_in_sandbox,
)


logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "client-assembly-"


@dataclass
class ClientAssemblyResult:
    """A downloadable assembly result"""
    output_path: str
    segment_count: int
    skipped_indices: List[int] = field(default_factory=list)
    file_size: Optional[int] = None
    render_time: Optional[float] = None


def embedded_encoder_path() -> str:
    """
    Path of the ffmpeg binary shipped with imageio-ffmpeg.

    Raises:
        EncoderUnavailable: No bundled binary for this platform
    """
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as e:
        raise EncoderUnavailable(f"Embedded encoder unavailable: {e}", step="Load encoder")


class ClientAssembler:
    """Assembles image+audio segments without a server-managed encoder."""

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT,
        ffmpeg_path: Optional[str] = None,
        download_timeout: float = 30,
        download_retries: int = 3
    ):
        self.config = config or RenderConfig()
        self.sandbox_root = sandbox_root
        self._ffmpeg_path = ffmpeg_path
        self.download_timeout = download_timeout
        self.download_retries = download_retries

    def _renderer(self) -> FFmpegRenderer:
        # imageio-ffmpeg ships no ffprobe, so fades use the requested durations
        return FFmpegRenderer(
            config=self.config,
            ffmpeg_path=self._ffmpeg_path or embedded_encoder_path(),
            probe_durations=False
        )

    async def _stage(self, path: Optional[str], url: Optional[str], dest: Path) -> Path:
        """Copy or download one artifact into the scratch directory"""
        source = path or path_from_artifact_url(url)
        if source:
            local = resolve_in_sandbox(source, self.sandbox_root)
            if not local.is_file():
                raise WorkspaceInvalid("Artifact is missing", details={"path": str(local)})
            await asyncio.to_thread(shutil.copyfile, local, dest)
            return dest

        if is_remote_url(url):
            return await download_file(
                url, dest,
                timeout=self.download_timeout,
                retries=self.download_retries
            )

        raise WorkspaceInvalid("Artifact has neither a local path nor a URL", details={"url": url})

    async def assemble(
        self,
        segments: Sequence[Segment],
        output_path: Union[str, Path],
        channel: Optional[ProgressChannel] = None
    ) -> ClientAssemblyResult:
        """
        Stage, render and join image+audio segments into `output_path`.

        Progress (when a channel is given): 10-40 staging, 40 rendering,
        90 joined, 100 done.

        Raises:
            EncoderUnavailable: No bundled encoder
            NoUsableSegments: No segment has both an image and narration
            NetworkTimeout / DownloadFailed: Remote artifact could not be fetched
            EncoderProcessFailure: An encoder run failed
        """
        start = time.time()
        renderer = self._renderer()

        valid = [
            s for s in sorted(segments, key=lambda s: s.index)
            if s.image_audio is not None and s.image_audio.is_complete
        ]
        skipped = sorted({s.index for s in segments} - {s.index for s in valid})
        if not valid:
            raise NoUsableSegments("No segment has both an image and narration", step="Prepare")

        def report(step: str, message: str, progress: float):
            if channel is not None:
                channel.progress(step, message, progress)

        scratch = RunWorkspace(
            tempfile.mkdtemp(prefix=SCRATCH_PREFIX),
            sandbox_root=tempfile.gettempdir()
        )
        try:
            staged: List[Segment] = []
            for n, segment in enumerate(valid):
                report("Download", f"Downloading segment {n + 1}/{len(valid)}", 10 + (n * 30) // len(valid))
                media = segment.image_audio
                suffix = Path(media.image_path or "").suffix.lower().lstrip(".")
                if suffix not in ("jpg", "jpeg", "png"):
                    suffix = "jpg"
                image = await self._stage(media.image_path, media.image_url, scratch.image_path(segment.index, suffix))
                audio = await self._stage(media.audio_path, media.audio_url, scratch.audio_path(segment.index))
                staged.append(Segment(
                    index=segment.index,
                    sentence=segment.sentence,
                    duration=segment.duration,
                    media=ImageAudioRef(image_path=str(image), audio_path=str(audio)),
                    status=segment.status,
                    strategy=segment.strategy
                ))

            report("Render", "Rendering clips", 40)
            result = await renderer.render_image_audio(staged, scratch)
            report("Render", "Clips joined", 90)

            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.move, result.output_path, output_path)
        finally:
            scratch.cleanup(force=True)

        report("Done", f"Video saved to {output_path}", 100)
        logger.info("Client-side assembly wrote %s", output_path)
        return ClientAssemblyResult(
            output_path=str(output_path),
            segment_count=result.segment_count,
            skipped_indices=sorted(set(skipped) | set(result.skipped_indices)),
            file_size=output_path.stat().st_size,
            render_time=time.time() - start
        )
