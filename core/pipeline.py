"""
Pipeline runs.

Three entry points, each reporting through the run's ProgressChannel and
ending with exactly one terminal event:

- GenerationPipeline: outline -> script -> segments -> generation -> finalisation
- ImageAudioAssembly: image+audio segments -> Ken Burns clips -> one video -> upload
- VideoConcatAssembly: generated clips in a kept workspace -> one video
"""

import asyncio
import base64
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.context import RunContext
from core.downloads import download_file
from core.errors import NoUsableSegments, PipelineError, UploadFailed, WorkspaceInvalid
from core.events import RunCancelled
from core.models.events import EventType
from core.models.segment import ImageAudioRef, Segment
from core.orchestrator import SegmentOrchestrator
from core.script_writer import ScriptWriter
from core.segmenter import split_script
from core.workspace import (
    RunWorkspace,
    artifact_url,
    is_remote_url,
    path_from_artifact_url,
    resolve_in_sandbox,
)


logger = logging.getLogger(__name__)

SCRIPT_PROGRESS_CAP = 30


class _ChannelRun:
    """Terminal-event and cleanup discipline shared by every run"""

    def __init__(self, context: RunContext):
        self.context = context
        self.channel = context.channel

    async def _execute(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def _cleanup(self, succeeded: bool) -> None:
        pass

    async def run(self) -> Optional[Dict[str, Any]]:
        """
        Execute the run. Never raises for pipeline failures: they become the
        terminal error event.
        """
        succeeded = False
        try:
            result = await self._execute()
            succeeded = True
            return result
        except RunCancelled:
            logger.info("Run cancelled, skipping remaining work")
        except PipelineError as e:
            logger.warning("Run failed: [%s] %s", e.code, e.message)
            self.channel.fail(e)
        except Exception as e:
            logger.exception("Unexpected pipeline failure")
            self.channel.error(f"Generation failed: {e}", data={"error": "INTERNAL_ERROR"})
        finally:
            self._cleanup(succeeded)
        return None


class GenerationPipeline(_ChannelRun):
    """
    One explainer generation run.

    Args:
        context: Per-run context (providers, channel, workspace, config)
        script_writer: Produces the outline and narration
        book_name: Book to explain
    """

    def __init__(self, context: RunContext, script_writer: ScriptWriter, book_name: str):
        super().__init__(context)
        self.script_writer = script_writer
        self.book_name = (book_name or "").strip()

    async def _write_script(self) -> Tuple[str, str]:
        channel = self.channel
        channel.progress("Outline", "Generating the book outline...", 5)
        outline = await self.script_writer.write_outline(self.book_name)
        channel.emit(EventType.OUTLINE, "Outline", "Outline ready", 10, {"content": outline})

        channel.progress("Script", "Writing the narration script from the outline...", 15)
        script = ""
        progress = 15
        async for chunk in self.script_writer.stream_script(self.book_name, outline):
            channel.raise_if_cancelled()
            script += chunk
            progress = min(SCRIPT_PROGRESS_CAP, progress + 1)
            channel.emit(EventType.SCRIPT, "Script", "Writing the script...", progress, {"content": script})

        script = script.strip()
        logger.info("Script written, %d chars", len(script))

        if self.script_writer.needs_expansion(script):
            channel.progress("Script", "Script is short, expanding...", 32)
            script = await self.script_writer.expand_script(script)

        channel.emit(
            EventType.SCRIPT, "Script", f"Script ready, {len(script)} characters", 35,
            {"content": script, "completed": True}
        )
        return outline, script

    async def _finalise(self, segments: List[Segment], outline: str, script: str) -> Dict[str, Any]:
        channel = self.channel
        config = self.context.config
        renderer = self.context.renderer
        workspace = self.context.workspace

        channel.progress("Collect", "Collecting generated content...", 92)

        video_segments = [s for s in segments if s.video is not None]
        has_video = bool(video_segments)
        has_fallback = any(s.image_audio is not None and s.image_audio.has_image for s in segments)
        fallback_mode = has_fallback and not has_video

        encoder_available = await renderer.is_available()
        final_url: Optional[str] = None

        if len(video_segments) == 1:
            final_url = video_segments[0].video.url
        elif len(video_segments) > 1:
            if encoder_available and config.assemble_videos:
                channel.progress("Concat", f"Joining {len(video_segments)} video clips...", 93)
                result = await renderer.concat_videos(
                    [s.video.path for s in video_segments],
                    workspace.final_video_path,
                    manifest_path=workspace.manifest_path
                )
                final_url = artifact_url(result.output_path)
            else:
                channel.progress(
                    "Concat",
                    f"{len(video_segments)} video clips ready, they can be joined manually",
                    95
                )

        if fallback_mode:
            channel.progress("Collect", "Images and narration ready, slideshow mode", 95)

        if fallback_mode:
            message = "Content generated (slideshow mode)"
        elif has_video:
            message = f"All {len(segments)} segments generated"
        else:
            message = "Content generated"

        payload: Dict[str, Any] = {
            "script": script,
            "outline": outline,
            "segments": [s.to_dict() for s in segments],
            "fallbackMode": fallback_mode,
            "hasVideoSegments": has_video,
            "hasFallbackSegments": has_fallback,
            "workspacePath": str(workspace.path),
            "canConcat": has_video and len(segments) > 1,
            "encoderAvailable": encoder_available,
        }
        if not fallback_mode and final_url:
            payload["videoUrl"] = final_url

        channel.emit(EventType.VIDEO_FINAL, "Done", message, 100, payload)
        return payload

    async def _execute(self) -> Dict[str, Any]:
        if not self.book_name:
            raise PipelineError("Please provide a book name", step="Request", details={"error": "MISSING_BOOK_NAME"})

        outline, script = await self._write_script()

        sentences = split_script(script, max_chars=self.context.config.max_segment_chars)
        if not sentences:
            raise PipelineError("The script produced no segments", step="Segment")
        logger.info("Split script into %d segments", len(sentences))

        segments = await SegmentOrchestrator(self.context).run(sentences)
        payload = await self._finalise(segments, outline, script)
        self.channel.complete("Explainer content generated", {"workspacePath": payload["workspacePath"]})
        return payload

    def _cleanup(self, succeeded: bool) -> None:
        config = self.context.config
        self.context.workspace.keep = config.keep_workspace if succeeded else config.keep_failed_workspace
        self.context.workspace.cleanup()


class ImageAudioAssembly(_ChannelRun):
    """
    Assemble image+audio segments into one uploaded video.

    With `workspace_path` the artifacts are read from that kept workspace,
    which is reclaimed only once the assembly succeeds. Without it a fresh
    scratch workspace receives downloaded artifacts and intermediate clips.
    """

    def __init__(
        self,
        context: RunContext,
        segments: Sequence[Segment],
        book_name: str = "",
        workspace_path: Optional[str] = None
    ):
        super().__init__(context)
        self.segments = sorted(segments, key=lambda s: s.index)
        self.book_name = book_name or "explainer"
        self.workspace_path = workspace_path
        self._owns_workspace = False

    def _local(self, path: Optional[str], url: Optional[str]) -> Optional[Path]:
        source = path or path_from_artifact_url(url)
        if not source:
            return None
        local = resolve_in_sandbox(source, self.context.config.sandbox_root)
        return local if local.is_file() else None

    async def _fetch(self, path: Optional[str], url: Optional[str], dest: Path) -> Optional[Path]:
        local = self._local(path, url)
        if local is not None or not is_remote_url(url):
            return local
        config = self.context.config
        return await download_file(url, dest, timeout=config.request_timeout, retries=config.download_retries)

    async def _stage(self, segment: Segment, workspace: RunWorkspace) -> Optional[Segment]:
        """Local copy of one segment's image and narration, or None to skip it"""
        media = segment.image_audio
        if media is None or not media.is_complete:
            return None

        image = await self._fetch(media.image_path, media.image_url, workspace.image_path(segment.index))
        audio = await self._fetch(media.audio_path, media.audio_url, workspace.audio_path(segment.index))
        if image is None or audio is None:
            return None

        return Segment(
            index=segment.index,
            sentence=segment.sentence,
            duration=segment.duration,
            media=ImageAudioRef(
                image_url=media.image_url,
                image_path=str(image),
                audio_url=media.audio_url,
                audio_path=str(audio)
            ),
            status=segment.status,
            strategy=segment.strategy
        )

    def _open_workspace(self) -> RunWorkspace:
        sandbox_root = self.context.config.sandbox_root
        if self.workspace_path:
            workspace = RunWorkspace.open(self.workspace_path, sandbox_root=sandbox_root)
        else:
            workspace = RunWorkspace.create(sandbox_root=sandbox_root)
            self._owns_workspace = True
        self.context.workspace = workspace
        return workspace

    async def _execute(self) -> Dict[str, Any]:
        channel = self.channel
        renderer = self.context.renderer

        if not self.segments:
            raise NoUsableSegments("No segments to assemble", step="Request")

        channel.progress("Assemble", "Starting image+audio assembly", 5)
        await renderer.require_encoder(step="Check encoder")
        workspace = self._open_workspace()
        channel.progress("Assemble", "Preparing files...", 10)

        total = len(self.segments)
        staged: List[Segment] = []
        for n, segment in enumerate(self.segments):
            channel.raise_if_cancelled()
            channel.progress("Assemble", f"Preparing segment {n + 1}/{total}", 10 + (n * 25) // total)
            prepared = await self._stage(segment, workspace)
            if prepared is None:
                logger.warning("Segment %d lacks an image or narration, skipping", segment.index)
                continue
            staged.append(prepared)

        if not staged:
            raise NoUsableSegments("No segment has both an image and narration", step="Assemble")

        def on_clip(position: int, count: int) -> None:
            channel.raise_if_cancelled()
            channel.progress(
                "Render",
                f"Rendering segment {position + 1}/{count} (Ken Burns)...",
                35 + (position * 25) // count
            )

        result = await renderer.render_image_audio(staged, workspace, on_clip=on_clip)
        channel.progress("Join", f"Joined {result.segment_count} clips", 60)

        channel.progress("Upload", "Uploading final video...", 90)
        video_url = await self._publish(result.output_path, workspace)

        channel.complete("Video assembled", {"videoUrl": video_url})
        return {"videoUrl": video_url, "segmentCount": result.segment_count, "skipped": result.skipped_indices}

    async def _publish(self, output_path: str, workspace: RunWorkspace) -> str:
        storage = self.context.storage
        if storage is None:
            # Served straight from the workspace, which must outlive the run
            workspace.keep = True
            return artifact_url(output_path)

        remote_name = f"{self.book_name}-explainer-{int(time.time() * 1000)}.mp4"
        result = await storage.upload_file(output_path, remote_name, content_type="video/mp4")
        if not result.success:
            raise UploadFailed(result.error_message or "Upload failed", step="Upload")
        return result.file_url

    def _cleanup(self, succeeded: bool) -> None:
        workspace = self.context.workspace
        if workspace is None:
            return
        if self._owns_workspace or succeeded:
            workspace.cleanup()
        else:
            # The caller still holds assembly rights, e.g. for the embedded fallback
            logger.info("Assembly failed, leaving workspace %s in place", workspace.path)


class VideoConcatAssembly(_ChannelRun):
    """
    Join the generated clips of a kept workspace into final_video.mp4.

    The workspace is reclaimed after a successful join and left untouched
    when the join fails.
    """

    def __init__(self, context: RunContext, workspace_path: str, segments: Sequence[Segment]):
        super().__init__(context)
        self.workspace_path = workspace_path
        self.segments = sorted(segments, key=lambda s: s.index)

    async def _execute(self) -> Dict[str, Any]:
        channel = self.channel
        renderer = self.context.renderer

        if not self.workspace_path:
            raise WorkspaceInvalid("Workspace path is required", step="Check workspace")
        workspace = RunWorkspace.open(self.workspace_path, sandbox_root=self.context.config.sandbox_root)
        self.context.workspace = workspace

        await renderer.require_encoder(step="Check encoder")
        channel.progress("Concat", "Checking video clips...", 10)

        clips = [workspace.segment_path(s.index) for s in self.segments]
        if len(clips) < 2:
            raise NoUsableSegments("At least two video clips are needed to concatenate", step="Concat")
        missing = [p.name for p in clips if not p.exists()]
        if missing:
            raise WorkspaceInvalid(
                f"{len(missing)} video clips are missing, generate the content again",
                step="Concat",
                details={"missing": missing}
            )

        channel.progress("Concat", f"Joining {len(clips)} clips...", 30)
        result = await renderer.concat_videos(clips, workspace.final_video_path, workspace.manifest_path)
        channel.progress("Concat", "Video joined", 90)

        video_url = await self._publish(result.output_path)
        channel.complete("Video concatenated", {"videoUrl": video_url, "fileSize": result.file_size})
        return {"videoUrl": video_url}

    async def _publish(self, output_path: str) -> str:
        """Upload when storage is configured, otherwise inline the video as a data URL"""
        storage = self.context.storage
        if storage is not None:
            remote_name = f"final-video-{int(time.time() * 1000)}.mp4"
            result = await storage.upload_file(output_path, remote_name, content_type="video/mp4")
            if not result.success:
                raise UploadFailed(result.error_message or "Upload failed", step="Upload")
            return result.file_url

        data = await asyncio.to_thread(Path(output_path).read_bytes)
        return "data:video/mp4;base64," + base64.b64encode(data).decode("ascii")

    def _cleanup(self, succeeded: bool) -> None:
        workspace = self.context.workspace
        if workspace is None:
            return
        if succeeded:
            workspace.cleanup(force=True)
        else:
            logger.info("Concat failed, leaving workspace %s in place", workspace.path)
