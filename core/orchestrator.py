"""
Segment Orchestrator - Per-segment generation with fallback
Video clip first, image + narration when that fails, strictly in index order
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional

from core.context import RunContext
from core.downloads import download_file
from core.errors import (
    DownloadFailed,
    GeneratorTransientFailure,
    NetworkTimeout,
    classify_provider_error,
)
from core.models.events import EventType
from core.models.segment import (
    GenerationStrategy,
    ImageAudioRef,
    Segment,
    SegmentStatus,
    VideoRef,
    duration_from_audio_size,
    estimate_duration_from_text,
)
from core.workspace import artifact_url, is_remote_url


logger = logging.getLogger(__name__)

SEGMENT_PROGRESS_START = 35
SEGMENT_PROGRESS_SPAN = 55
SEGMENT_PROGRESS_CAP = 90
IMAGE_PROMPT_CHARS = 50
IMAGE_PROMPT_STYLE = "... illustration style suitable for a book explainer"


def segment_progress(index: int, total: int) -> int:
    """Progress reported when segment `index` of `total` starts"""
    return min(SEGMENT_PROGRESS_CAP, SEGMENT_PROGRESS_START + (index + 1) * SEGMENT_PROGRESS_SPAN // total)


def image_prompt(sentence: str) -> str:
    return f"{sentence[:IMAGE_PROMPT_CHARS]}{IMAGE_PROMPT_STYLE}"


class SegmentOrchestrator:
    """
    Drives every segment of a run through its generation state machine.

        pending -> generating -> succeeded
                              -> failed_fallback -> succeeded | failed_terminal

    With the image+audio strategy the video attempt is skipped. A rate-limit
    or permission error from any generator call aborts the whole run: it is
    raised out of `run` and no further segment is attempted.
    """

    def __init__(self, context: RunContext):
        self.context = context
        self.config = context.config
        self.channel = context.channel
        self.workspace = context.workspace

    def build_segments(self, sentences: List[str]) -> List[Segment]:
        return [
            Segment(index=i, sentence=sentence, duration=estimate_duration_from_text(sentence))
            for i, sentence in enumerate(sentences)
        ]

    async def run(self, sentences: List[str]) -> List[Segment]:
        """
        Generate every segment in order.

        Raises:
            RateLimitExceeded / PermissionDenied: Run aborted
            RunCancelled: Caller went away
        """
        segments = self.build_segments(sentences)
        total = len(segments)

        for segment in segments:
            self.channel.raise_if_cancelled()
            if segment.index > 0 and self.config.segment_delay > 0:
                await asyncio.sleep(self.config.segment_delay)
                self.channel.raise_if_cancelled()
            await self.process_segment(segment, total)

        return segments

    async def process_segment(self, segment: Segment, total: int) -> Segment:
        i = segment.index
        progress = segment_progress(i, total)
        segment.status = SegmentStatus.GENERATING
        logger.debug("Segment %d/%d -> generating (%s)", i + 1, total, self.config.strategy.value)

        if self.config.strategy == GenerationStrategy.VIDEO:
            self.channel.progress(
                "Generate video",
                f"Generating video for segment {i + 1}/{total} ({segment.duration:g}s)...",
                progress
            )
            if await self._try_video(segment):
                self.channel.emit(
                    EventType.VIDEO_SEGMENT,
                    "Generate video",
                    f"Video segment {i + 1}/{total} done ({segment.duration:g}s)",
                    progress + 2,
                    {**segment.to_dict(), "total": total}
                )
                return segment

            segment.status = SegmentStatus.FAILED_FALLBACK
            logger.warning("Segment %d: video generation failed, falling back to image+audio", i)
            self.channel.progress(
                "Generate image+audio",
                f"Video generation failed, generating image and narration for segment {i + 1}/{total}...",
                progress
            )
        else:
            self.channel.progress(
                "Generate image+audio",
                f"Generating image and narration for segment {i + 1}/{total}...",
                progress
            )

        await self._try_image_audio(segment)

        if segment.image_audio.is_empty:
            segment.status = SegmentStatus.FAILED_TERMINAL
            logger.warning("Segment %d: neither image nor narration could be generated", i)
        else:
            segment.status = SegmentStatus.SUCCEEDED

        self.channel.emit(
            EventType.IMAGE,
            "Generate image+audio",
            f"Segment {i + 1}/{total} content done",
            progress + 2,
            {**segment.to_dict(), "total": total}
        )
        return segment

    def _absorb(self, exc: Exception, step: str, segment: Segment) -> GeneratorTransientFailure:
        """
        Classify a generator failure. Transient failures are returned for the
        caller to fall back on; anything else aborts the run.
        """
        error = classify_provider_error(exc, step=step, segment_index=segment.index)
        if not isinstance(error, GeneratorTransientFailure):
            logger.warning("Segment %d: %s, aborting run", segment.index, error.code)
            raise error
        logger.warning("Segment %d: %s failed: %s", segment.index, step, error.message)
        segment.error = error.message
        return error

    async def _persist(self, data: Optional[bytes], url: Optional[str], dest: Path) -> Path:
        """Write a generated artifact into the workspace"""
        if data:
            await asyncio.to_thread(dest.write_bytes, data)
            return dest
        if is_remote_url(url):
            return await download_file(
                url, dest,
                timeout=self.config.request_timeout,
                retries=self.config.download_retries
            )
        raise DownloadFailed("Generator returned no artifact", details={"url": url})

    async def _try_video(self, segment: Segment) -> bool:
        provider = self.context.video_provider
        if provider is None:
            segment.error = "No video generator configured"
            return False

        self.channel.raise_if_cancelled()
        try:
            result = await provider.generate_video(
                segment.sentence,
                segment.duration,
                aspect_ratio=self.config.aspect_ratio,
                resolution=self.config.resolution,
                generate_audio=True
            )
            result.raise_for_error()
        except Exception as e:
            self._absorb(e, "Generate video", segment)
            return False

        path = self.workspace.segment_path(segment.index)
        try:
            await self._persist(result.video_data, result.video_url, path)
        except (DownloadFailed, NetworkTimeout) as e:
            logger.warning("Segment %d: could not save video clip: %s", segment.index, e.message)
            segment.error = e.message
            return False

        segment.media = VideoRef(url=result.video_url or artifact_url(path), path=str(path))
        segment.strategy = GenerationStrategy.VIDEO
        segment.status = SegmentStatus.SUCCEEDED
        return True

    async def _try_image_audio(self, segment: Segment) -> None:
        """Image and narration are attempted independently; either may fail."""
        segment.strategy = GenerationStrategy.IMAGE_AUDIO
        media = ImageAudioRef()
        segment.media = media

        image_path = await self._generate_image(segment)
        if image_path is not None:
            media.image_path = str(image_path)
            media.image_url = artifact_url(image_path)

        audio = await self._generate_audio(segment)
        if audio is not None:
            audio_path, audio_size = audio
            media.audio_path = str(audio_path)
            media.audio_url = artifact_url(audio_path)
            estimated = segment.duration
            segment.duration = duration_from_audio_size(audio_size, estimated)
            if audio_size:
                logger.info(
                    "Segment %d: %d chars, estimated %.1fs, audio %d bytes, actual %.2fs",
                    segment.index, len(segment.sentence), estimated, audio_size, segment.duration
                )

    async def _generate_image(self, segment: Segment) -> Optional[Path]:
        provider = self.context.image_provider
        if provider is None:
            return None

        self.channel.raise_if_cancelled()
        try:
            result = await provider.generate_image(image_prompt(segment.sentence), size=self.config.image_size)
            result.raise_for_error()
        except Exception as e:
            self._absorb(e, "Generate image", segment)
            return None

        try:
            return await self._persist(result.image_data, result.image_url, self.workspace.image_path(segment.index))
        except (DownloadFailed, NetworkTimeout) as e:
            logger.warning("Segment %d: could not save image: %s", segment.index, e.message)
            return None

    async def _generate_audio(self, segment: Segment):
        """Returns (path, reported size) or None"""
        provider = self.context.audio_provider
        if provider is None:
            return None

        self.channel.raise_if_cancelled()
        try:
            result = await provider.generate_speech(
                segment.sentence,
                voice_id=self.config.voice_id,
                uid=f"segment_{segment.index}_{int(time.time() * 1000)}"
            )
            result.raise_for_error()
        except Exception as e:
            self._absorb(e, "Generate narration", segment)
            return None

        try:
            path = await self._persist(result.audio_data, result.audio_url, self.workspace.audio_path(segment.index))
        except (DownloadFailed, NetworkTimeout) as e:
            logger.warning("Segment %d: could not save narration: %s", segment.index, e.message)
            return None
        return path, result.audio_size
