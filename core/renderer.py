"""
FFmpeg-based assembly engine.

Turns a resolved, ordered segment list into exactly one output video:

- image+audio segments become Ken Burns clips (slow centred zoom over the
  still image, narration muxed in, cut to the shorter stream)
- one clip is stream-copied to the output, no filter graph involved
- two or more clips are chained with cross-fades and closed with a concat node
- already encoded clips (video strategy) are joined with the concat demuxer
  and stream copy
"""

import asyncio
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from core.errors import EncoderProcessFailure, EncoderUnavailable, NoUsableSegments
from core.models.render import (
    FilterGraph,
    FilterNode,
    FilterNodeKind,
    RenderConfig,
    RenderResult,
)
from core.models.segment import Segment
from core.workspace import CONCAT_MANIFEST, RunWorkspace


logger = logging.getLogger(__name__)

ENCODER_CHECK_TIMEOUT = 5.0
STDERR_TAIL = 2000

PathLike = Union[str, Path]


def _fmt(value: float) -> str:
    """Render a number for a filter expression without float noise"""
    return f"{round(value, 3):g}"


def build_transition_graph(
    durations: Sequence[float],
    transition_duration: float = 1.0,
    transition: str = "fade"
) -> FilterGraph:
    """
    Build the cross-fade chain for N >= 2 clips.

    Clip 0 seeds the chain with its input pads. Every middle clip extends it
    with an xfade + acrossfade node; the last clip closes it with a straight
    concat node. N clips therefore give N-2 transition nodes and one concat.

    Each fade starts where the chain built so far ends, minus the fade length:
    for the first fade that is `durations[0] - transition_duration`.

    Args:
        durations: Clip durations in seconds, in clip order
        transition_duration: Length of every cross-fade
        transition: xfade transition name

    Returns:
        FilterGraph whose outputs are [outv] and [outa]
    """
    if len(durations) < 2:
        raise ValueError("A transition graph needs at least two clips")

    graph = FilterGraph()
    video, audio = "0:v", "0:a"
    chain_length = float(durations[0])
    last = len(durations) - 1

    for i in range(1, last):
        offset = max(0.0, chain_length - transition_duration)
        v_out, a_out = f"v{i}", f"a{i}"
        expression = (
            f"[{video}][{i}:v]xfade=transition={transition}:duration={_fmt(transition_duration)}"
            f":offset={_fmt(offset)}[{v_out}];"
            f"[{audio}][{i}:a]acrossfade=d={_fmt(transition_duration)}[{a_out}]"
        )
        graph.nodes.append(FilterNode(
            kind=FilterNodeKind.TRANSITION,
            inputs=[video, f"{i}:v", audio, f"{i}:a"],
            outputs=[v_out, a_out],
            expression=expression,
            offset=offset
        ))
        video, audio = v_out, a_out
        chain_length += float(durations[i]) - transition_duration

    graph.nodes.append(FilterNode(
        kind=FilterNodeKind.CONCAT,
        inputs=[video, audio, f"{last}:v", f"{last}:a"],
        outputs=[graph.video_out, graph.audio_out],
        expression=(
            f"[{video}][{audio}][{last}:v][{last}:a]"
            f"concat=n=2:v=1:a=1[{graph.video_out}][{graph.audio_out}]"
        )
    ))
    return graph


class FFmpegRenderer:
    """
    FFmpeg-based assembly engine.

    Handles:
    - Encoder availability checks
    - Ken Burns clip synthesis for image+audio segments
    - Cross-fade joining and single-clip fast path
    - Stream-copy concatenation of generated clips
    """

    def __init__(
        self,
        config: Optional[RenderConfig] = None,
        ffmpeg_path: Optional[str] = None,
        probe_durations: bool = True
    ):
        """
        Initialize the renderer.

        Args:
            config: Render configuration (uses defaults if not provided)
            ffmpeg_path: Encoder binary; looked up on PATH when omitted
            probe_durations: Measure rendered clips with ffprobe for fade offsets
        """
        self.config = config or RenderConfig()
        self._ffmpeg_path = ffmpeg_path or self._find_ffmpeg()
        self.probe_durations = probe_durations

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg_path

    def _find_ffmpeg(self) -> str:
        """Find FFmpeg executable."""
        env_path = os.environ.get("FFMPEG_PATH")
        if env_path:
            return env_path
        return shutil.which("ffmpeg") or "ffmpeg"

    async def check_ffmpeg_installed(self, timeout: float = ENCODER_CHECK_TIMEOUT) -> Dict[str, Any]:
        """
        Check if FFmpeg is properly installed.

        Runs `ffmpeg -version`, bounded by `timeout` seconds.

        Returns:
            Dict with installation status and version info
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self._ffmpeg_path, "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            try:
                stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()
                return {
                    "installed": False,
                    "path": self._ffmpeg_path,
                    "version": None,
                    "error": f"FFmpeg version check timed out after {timeout}s"
                }

            if process.returncode == 0:
                version_line = stdout.decode(errors="replace").split('\n')[0]
                return {
                    "installed": True,
                    "path": self._ffmpeg_path,
                    "version": version_line
                }
        except (FileNotFoundError, PermissionError):
            pass

        return {
            "installed": False,
            "path": None,
            "version": None,
            "error": "FFmpeg not found. Please install FFmpeg and add it to your PATH."
        }

    async def is_available(self) -> bool:
        return (await self.check_ffmpeg_installed())["installed"]

    async def require_encoder(self, step: Optional[str] = None) -> None:
        """
        Raises:
            EncoderUnavailable: The version check failed
        """
        status = await self.check_ffmpeg_installed()
        if not status["installed"]:
            raise EncoderUnavailable(
                status.get("error") or "FFmpeg is not available",
                step=step,
                details={"path": self._ffmpeg_path}
            )

    # ------------------------------------------------------------------
    # Command builders

    def build_ken_burns_filter(self, duration: float) -> str:
        """
        Zoom from 1.0 to the configured factor over the whole clip, centred.

        The source is first scaled and cropped to twice the output size so
        every image, whatever its shape, fills the 16:9 frame.
        """
        cfg = self.config
        frames = max(1, round(duration * cfg.output_fps))
        step = (cfg.zoom_factor - 1.0) / frames
        work_w, work_h = cfg.output_width * 2, cfg.output_height * 2
        return (
            f"scale={work_w}:{work_h}:force_original_aspect_ratio=increase,"
            f"crop={work_w}:{work_h},"
            f"zoompan=z='min(zoom+{step:.6f},{cfg.zoom_factor})'"
            f":d={frames}"
            f":x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
            f":s={cfg.resolution}:fps={cfg.output_fps}"
        )

    def _encode_args(self) -> List[str]:
        cfg = self.config
        return [
            "-c:v", cfg.video_codec,
            "-preset", cfg.preset,
            "-crf", str(cfg.crf),
            "-pix_fmt", cfg.pixel_format,
            "-c:a", cfg.audio_codec,
            "-b:a", cfg.audio_bitrate,
        ]

    def build_ken_burns_command(
        self,
        image_path: PathLike,
        audio_path: PathLike,
        duration: float,
        output_path: PathLike
    ) -> List[str]:
        """Still image + narration -> fixed-rate clip, cut to the shorter stream"""
        return [
            self._ffmpeg_path,
            "-y",
            "-i", str(image_path),
            "-i", str(audio_path),
            "-vf", self.build_ken_burns_filter(duration),
            "-map", "0:v",
            "-map", "1:a",
            "-t", _fmt(duration),
            *self._encode_args(),
            "-ar", "44100",
            "-ac", "2",
            "-shortest",
            str(output_path)
        ]

    def build_copy_command(self, clip_path: PathLike, output_path: PathLike) -> List[str]:
        """Single clip fast path: no filter graph, no re-encode"""
        return [self._ffmpeg_path, "-y", "-i", str(clip_path), "-c", "copy", str(output_path)]

    def build_concat_command(self, manifest_path: PathLike, output_path: PathLike) -> List[str]:
        return [
            self._ffmpeg_path,
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(manifest_path),
            "-c", "copy",  # Stream copy (fast, no re-encoding)
            str(output_path)
        ]

    def build_transition_command(
        self,
        clip_paths: Sequence[PathLike],
        durations: Sequence[float],
        output_path: PathLike
    ) -> List[str]:
        graph = build_transition_graph(
            durations,
            transition_duration=self.config.transition_duration,
            transition=self.config.transition.value
        )
        inputs: List[str] = []
        for path in clip_paths:
            inputs.extend(["-i", str(path)])

        return [
            self._ffmpeg_path,
            "-y",
            *inputs,
            "-filter_complex", graph.to_string(),
            "-map", f"[{graph.video_out}]",
            "-map", f"[{graph.audio_out}]",
            *self._encode_args(),
            str(output_path)
        ]

    def _generate_concat_file(self, video_paths: Sequence[PathLike], manifest_path: PathLike) -> Path:
        """
        Write an FFmpeg concat demuxer manifest.

        Args:
            video_paths: Clip paths, in order
            manifest_path: Where to write the manifest

        Returns:
            Path to the manifest
        """
        manifest_path = Path(manifest_path)
        with open(manifest_path, "w", encoding="utf-8") as f:
            for path in video_paths:
                # Absolute paths avoid working directory issues
                abs_path = os.path.abspath(str(path))
                escaped_path = abs_path.replace("'", "'\\''")
                f.write(f"file '{escaped_path}'\n")
        return manifest_path

    # ------------------------------------------------------------------
    # Execution

    async def run_ffmpeg(self, cmd: List[str], output_path: PathLike, step: Optional[str] = None) -> Path:
        """
        Run one encoder invocation.

        Any stale output is removed first; a failed run leaves no output.

        Raises:
            EncoderUnavailable: Binary missing
            EncoderProcessFailure: Non-zero exit (carries stderr)
        """
        output_path = Path(output_path)
        if output_path.exists():
            output_path.unlink()

        logger.debug("Running encoder: %s", " ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError:
            raise EncoderUnavailable(f"FFmpeg not found at {cmd[0]}", step=step, details={"path": cmd[0]})

        _, stderr = await process.communicate()

        if process.returncode != 0:
            stderr_text = stderr.decode(errors="replace")
            logger.error("FFmpeg exited with %s: %s", process.returncode, stderr_text[-STDERR_TAIL:])
            if output_path.exists():
                output_path.unlink()
            raise EncoderProcessFailure(
                f"FFmpeg failed with exit code {process.returncode}",
                returncode=process.returncode,
                stderr=stderr_text,
                command=cmd,
                step=step
            )
        return output_path

    async def _get_duration(self, video_path: PathLike) -> Optional[float]:
        """Get duration of a media file using FFprobe."""
        if not os.path.exists(video_path):
            return None

        ffprobe = shutil.which("ffprobe")
        if not ffprobe:
            # Try to find it next to ffmpeg
            candidate = os.path.join(os.path.dirname(self._ffmpeg_path), "ffprobe")
            if not os.path.exists(candidate):
                return None
            ffprobe = candidate

        cmd = [
            ffprobe,
            "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            str(video_path)
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            stdout, _ = await process.communicate()
            if process.returncode == 0:
                return float(stdout.decode().strip())
        except (OSError, ValueError):
            pass

        return None

    async def render_clip(
        self,
        image_path: PathLike,
        audio_path: PathLike,
        duration: float,
        output_path: PathLike
    ) -> Path:
        """Synthesise one Ken Burns clip"""
        cmd = self.build_ken_burns_command(image_path, audio_path, duration, output_path)
        return await self.run_ffmpeg(cmd, output_path, step="Render clip")

    async def join_clips(
        self,
        clip_paths: Sequence[PathLike],
        durations: Sequence[float],
        output_path: PathLike
    ) -> bool:
        """
        Join clips into the output.

        Returns:
            True when the cross-fade graph was used, False for the copy fast path
        """
        if not clip_paths:
            raise NoUsableSegments("No clips to join")

        if len(clip_paths) == 1:
            await self.run_ffmpeg(self.build_copy_command(clip_paths[0], output_path), output_path, step="Finalize")
            return False

        cmd = self.build_transition_command(clip_paths, durations, output_path)
        await self.run_ffmpeg(cmd, output_path, step="Join clips")
        return True

    def usable_segments(self, segments: Sequence[Segment]) -> List[Segment]:
        """Segments whose image and narration are both present on disk, by index"""
        usable = []
        for segment in sorted(segments, key=lambda s: s.index):
            media = segment.image_audio
            if (
                media is not None
                and media.image_path and os.path.exists(media.image_path)
                and media.audio_path and os.path.exists(media.audio_path)
            ):
                usable.append(segment)
            else:
                logger.warning("Segment %d has no complete image+audio on disk, skipping", segment.index)
        return usable

    async def render_image_audio(
        self,
        segments: Sequence[Segment],
        workspace: RunWorkspace,
        output_path: Optional[PathLike] = None,
        on_clip: Optional[Callable[[int, int], None]] = None
    ) -> RenderResult:
        """
        Assemble image+audio segments into one video.

        Args:
            segments: Resolved segments with local image/audio paths
            workspace: Workspace receiving the per-segment clips
            output_path: Final output (defaults to the workspace's final.mp4)
            on_clip: Called with (position, total) before each clip is rendered

        Returns:
            RenderResult describing the output

        Raises:
            NoUsableSegments: No segment has both image and audio
            EncoderProcessFailure: Any encoder invocation failed
        """
        start = time.time()
        output_path = Path(output_path or workspace.final_assembly_path)

        usable = self.usable_segments(segments)
        skipped = sorted({s.index for s in segments} - {s.index for s in usable})
        if not usable:
            raise NoUsableSegments("No segment has both an image and narration", step="Render clip")

        clip_paths: List[Path] = []
        durations: List[float] = []
        for segment in usable:
            if on_clip is not None:
                on_clip(len(clip_paths), len(usable))
            media = segment.image_audio
            clip = workspace.clip_path(segment.index)
            await self.render_clip(media.image_path, media.audio_path, segment.duration, clip)
            clip_paths.append(clip)

            measured = await self._get_duration(clip) if self.probe_durations else None
            durations.append(measured or segment.duration)
            logger.info("Rendered clip %d/%d (%.1fs)", len(clip_paths), len(usable), durations[-1])

        used_transitions = await self.join_clips(clip_paths, durations, output_path)

        return RenderResult(
            success=True,
            output_path=str(output_path),
            clip_paths=[str(p) for p in clip_paths],
            segment_count=len(clip_paths),
            skipped_indices=skipped,
            render_time=time.time() - start,
            used_transitions=used_transitions,
            file_size=output_path.stat().st_size if output_path.exists() else None
        )

    async def concat_videos(
        self,
        video_paths: Sequence[PathLike],
        output_path: PathLike,
        manifest_path: Optional[PathLike] = None
    ) -> RenderResult:
        """
        Join already encoded clips with the concat demuxer (stream copy).

        Args:
            video_paths: Clip paths, in order
            output_path: Output file
            manifest_path: Manifest location (defaults next to the output)
        """
        start = time.time()
        output_path = Path(output_path)
        if not video_paths:
            raise NoUsableSegments("No clips to concatenate")

        if len(video_paths) == 1:
            await self.run_ffmpeg(self.build_copy_command(video_paths[0], output_path), output_path, step="Finalize")
        else:
            manifest = self._generate_concat_file(
                video_paths,
                manifest_path or output_path.with_name(CONCAT_MANIFEST)
            )
            await self.run_ffmpeg(self.build_concat_command(manifest, output_path), output_path, step="Concat")

        return RenderResult(
            success=True,
            output_path=str(output_path),
            clip_paths=[str(p) for p in video_paths],
            segment_count=len(video_paths),
            render_time=time.time() - start,
            file_size=output_path.stat().st_size if output_path.exists() else None
        )
