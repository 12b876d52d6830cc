"""Test data factories for consistent test setup"""

from pathlib import Path
from typing import List, Optional

from core.models.segment import (
    GenerationStrategy,
    ImageAudioRef,
    Segment,
    SegmentStatus,
    VideoRef,
)
from core.workspace import artifact_url


def make_image_audio_segment(
    index: int = 0,
    image_path: Optional[str] = None,
    audio_path: Optional[str] = None,
    duration: float = 5.0,
    sentence: str = "",
) -> Segment:
    """Factory for resolved image+audio segments"""
    return Segment(
        index=index,
        sentence=sentence or f"Sentence {index + 1}.",
        duration=duration,
        media=ImageAudioRef(
            image_url=artifact_url(image_path) if image_path else None,
            image_path=image_path,
            audio_url=artifact_url(audio_path) if audio_path else None,
            audio_path=audio_path,
        ),
        status=SegmentStatus.SUCCEEDED,
        strategy=GenerationStrategy.IMAGE_AUDIO,
    )


def make_video_segment(index: int = 0, path: Optional[str] = None, duration: float = 5.0) -> Segment:
    """Factory for resolved video segments"""
    return Segment(
        index=index,
        sentence=f"Sentence {index + 1}.",
        duration=duration,
        media=VideoRef(url=f"https://cdn.example.com/clip_{index}.mp4", path=path),
        status=SegmentStatus.SUCCEEDED,
        strategy=GenerationStrategy.VIDEO,
    )


def write_media_pair(directory: Path, index: int, audio_bytes: int = 80000, image_ext: str = "jpg"):
    """Write placeholder image_{i} / audio_{i} files; returns their paths"""
    image = directory / f"image_{index}.{image_ext}"
    audio = directory / f"audio_{index}.mp3"
    image.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
    audio.write_bytes(b"\x00" * audio_bytes)
    return image, audio


def make_media_segments(directory: Path, count: int = 3) -> List[Segment]:
    """Image+audio segments backed by placeholder files in `directory`"""
    segments = []
    for i in range(count):
        image, audio = write_media_pair(directory, i)
        segments.append(make_image_audio_segment(i, str(image), str(audio)))
    return segments
