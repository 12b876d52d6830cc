"""
Segment models for the media assembly pipeline

A Segment is one spoken unit of the script together with the media that was
generated for it. Its media is a tagged variant: either a single video clip
(VideoRef) or a still image plus narration (ImageAudioRef), never both.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


# Narration speed used for the pre-generation estimate
CHARS_PER_SECOND = 4.5
TEXT_DURATION_MIN = 4.0
TEXT_DURATION_MAX = 8.0

# MP3 at 24kHz / 128kbps is ~16000 bytes per second
AUDIO_BYTES_PER_SECOND = 16000
AUDIO_DURATION_MIN = 2.0
AUDIO_DURATION_MAX = 15.0

DEFAULT_SEGMENT_DURATION = 5.0


class GenerationStrategy(Enum):
    """How a segment's visual + audio content is produced"""
    VIDEO = "video"
    IMAGE_AUDIO = "image"

    @classmethod
    def from_mode(cls, mode: Optional[str]) -> "GenerationStrategy":
        """Resolve the request's generateMode once per run."""
        if mode in (None, "", "video"):
            return cls.VIDEO
        if mode in ("image", "image_audio", "image+audio"):
            return cls.IMAGE_AUDIO
        raise ValueError(f"Unknown generate mode: {mode!r}")


class SegmentStatus(Enum):
    """Segment lifecycle"""
    PENDING = "pending"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FAILED_FALLBACK = "failed_fallback"
    FAILED_TERMINAL = "failed_terminal"


@dataclass
class VideoRef:
    """A generated video clip"""
    url: str
    path: Optional[str] = None


@dataclass
class ImageAudioRef:
    """A still image plus narration. Either side may be missing."""
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    audio_url: Optional[str] = None
    audio_path: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_url or self.image_path)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_url or self.audio_path)

    @property
    def is_complete(self) -> bool:
        return self.has_image and self.has_audio

    @property
    def is_empty(self) -> bool:
        return not (self.has_image or self.has_audio)


MediaRef = Union[VideoRef, ImageAudioRef]


@dataclass
class Segment:
    """
    One unit of work and output.

    Attributes:
        index: Zero-based position; decides ordering everywhere
        sentence: Source text for the clip
        duration: Seconds. Commanded for video, estimated then refined for image+audio
        media: The active media representation (None until generated)
        status: Lifecycle tag
        strategy: Strategy that produced (or is producing) the active media
    """
    index: int
    sentence: str
    duration: float = DEFAULT_SEGMENT_DURATION
    media: Optional[MediaRef] = None
    status: SegmentStatus = SegmentStatus.PENDING
    strategy: Optional[GenerationStrategy] = None
    error: Optional[str] = None

    @property
    def video(self) -> Optional[VideoRef]:
        return self.media if isinstance(self.media, VideoRef) else None

    @property
    def image_audio(self) -> Optional[ImageAudioRef]:
        return self.media if isinstance(self.media, ImageAudioRef) else None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase, as sent in progress events)"""
        data: Dict[str, Any] = {
            "index": self.index,
            "sentence": self.sentence,
            "duration": self.duration,
        }
        if self.video:
            data["videoUrl"] = self.video.url
        elif self.image_audio:
            data["imageUrl"] = self.image_audio.image_url or ""
            data["audioUrl"] = self.image_audio.audio_url or ""
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        """Build a resolved segment from its wire representation."""
        media: Optional[MediaRef] = None
        if data.get("videoUrl"):
            media = VideoRef(url=data["videoUrl"], path=data.get("videoPath"))
        elif data.get("imageUrl") or data.get("audioUrl") or data.get("imagePath") or data.get("audioPath"):
            media = ImageAudioRef(
                image_url=data.get("imageUrl") or None,
                image_path=data.get("imagePath") or None,
                audio_url=data.get("audioUrl") or None,
                audio_path=data.get("audioPath") or None,
            )

        duration = data.get("duration") or DEFAULT_SEGMENT_DURATION
        return cls(
            index=int(data.get("index", 0)),
            sentence=data.get("sentence", ""),
            duration=float(duration),
            media=media,
            status=SegmentStatus.SUCCEEDED if media else SegmentStatus.PENDING,
        )


@dataclass
class ReconciledMatch:
    """
    Image/audio pair rebuilt from a directory listing.

    Unmatched files become partial matches with one side empty.
    """
    index: int
    image_path: str = ""
    audio_path: str = ""
    duration: float = DEFAULT_SEGMENT_DURATION
    image_api_url: str = ""
    audio_api_url: str = ""

    @property
    def is_full(self) -> bool:
        return bool(self.image_path and self.audio_path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "imagePath": self.image_path,
            "imageApiUrl": self.image_api_url,
            "audioPath": self.audio_path,
            "audioApiUrl": self.audio_api_url,
            "duration": self.duration,
        }

    def to_segment(self) -> Segment:
        """Feed a match to the assembly engine as if the orchestrator produced it."""
        return Segment(
            index=self.index,
            sentence=f"Segment {self.index + 1}",
            duration=self.duration,
            media=ImageAudioRef(
                image_url=self.image_api_url or None,
                image_path=self.image_path or None,
                audio_url=self.audio_api_url or None,
                audio_path=self.audio_path or None,
            ),
            status=SegmentStatus.SUCCEEDED,
            strategy=GenerationStrategy.IMAGE_AUDIO,
        )


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def estimate_duration_from_text(text: str) -> float:
    """Pre-generation estimate: ceil(chars / 4.5) clamped to [4, 8] seconds."""
    calculated = math.ceil(len(text) / CHARS_PER_SECOND)
    return float(_clamp(calculated, TEXT_DURATION_MIN, TEXT_DURATION_MAX))


def duration_from_audio_size(audio_size: Optional[int], fallback: float) -> float:
    """
    Narration duration from its byte size, clamped to [2, 15] seconds.

    Returns the fallback when no size was reported.
    """
    if not audio_size or audio_size <= 0:
        return fallback
    return float(_clamp(audio_size / AUDIO_BYTES_PER_SECOND, AUDIO_DURATION_MIN, AUDIO_DURATION_MAX))
