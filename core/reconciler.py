"""
Local directory reconciliation.

Rebuilds a segment list from the files of an existing workspace, so it can be
assembled without replaying generation. Files are paired purely by the index
encoded in their names (image_{i}.jpg|jpeg|png, audio_{i}.mp3).
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from core.errors import WorkspaceInvalid
from core.models.segment import (
    DEFAULT_SEGMENT_DURATION,
    ReconciledMatch,
    Segment,
    duration_from_audio_size,
)
from core.workspace import DEFAULT_SANDBOX_ROOT, artifact_url, resolve_in_sandbox


logger = logging.getLogger(__name__)

IMAGE_PATTERN = re.compile(r"^image_(\d+)$")
AUDIO_PATTERN = re.compile(r"^audio_(\d+)$")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")
AUDIO_EXTENSIONS = (".mp3",)


@dataclass
class ReconciliationResult:
    """Scan outcome for one directory"""
    dir_path: str
    total_files: int = 0
    image_count: int = 0
    audio_count: int = 0
    matches: List[ReconciledMatch] = field(default_factory=list)

    @property
    def can_concat(self) -> bool:
        return len(self.matches) > 0

    @property
    def full_matches(self) -> List[ReconciledMatch]:
        return [m for m in self.matches if m.is_full]

    def to_segments(self) -> List[Segment]:
        return [m.to_segment() for m in self.matches]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dirPath": self.dir_path,
            "totalFiles": self.total_files,
            "imageCount": self.image_count,
            "audioCount": self.audio_count,
            "matches": [m.to_dict() for m in self.matches],
            "canConcat": self.can_concat,
        }


def classify_filename(name: str) -> Tuple[str, int]:
    """
    Classify a workspace file name.

    Returns:
        ("image" | "audio", index), or ("", -1) for anything else
    """
    base, ext = os.path.splitext(name)
    ext = ext.lower()

    match = IMAGE_PATTERN.match(base)
    if match and ext in IMAGE_EXTENSIONS:
        return "image", int(match.group(1))

    match = AUDIO_PATTERN.match(base)
    if match and ext in AUDIO_EXTENSIONS:
        return "audio", int(match.group(1))

    return "", -1


def _match_duration(audio_path: str) -> float:
    try:
        size = os.path.getsize(audio_path)
    except OSError:
        return DEFAULT_SEGMENT_DURATION
    return duration_from_audio_size(size, DEFAULT_SEGMENT_DURATION)


def scan_directory(
    path: Union[str, Path],
    sandbox_root: Union[str, Path] = DEFAULT_SANDBOX_ROOT
) -> ReconciliationResult:
    """
    Pair image and audio files of a directory by index.

    Full matches come first, then image-only and audio-only partial matches;
    the result is sorted by index (stable, so a full match precedes a partial
    one with the same index).

    Raises:
        SandboxViolation: Path outside the sandbox root (checked before any I/O)
        WorkspaceInvalid: Path missing or not a directory
    """
    dir_path = resolve_in_sandbox(path, sandbox_root)

    if not dir_path.exists():
        raise WorkspaceInvalid("Directory does not exist", details={"path": str(dir_path), "reason": "missing"})
    if not dir_path.is_dir():
        raise WorkspaceInvalid("Path is not a directory", details={"path": str(dir_path), "reason": "not_directory"})

    files = sorted(os.listdir(dir_path))
    images: List[Tuple[int, str]] = []
    audios: List[Tuple[int, str]] = []

    for name in files:
        kind, index = classify_filename(name)
        if kind == "image":
            images.append((index, str(dir_path / name)))
        elif kind == "audio":
            audios.append((index, str(dir_path / name)))

    images.sort(key=lambda item: item[0])
    audios.sort(key=lambda item: item[0])

    matches: List[ReconciledMatch] = []
    matched_images = set()
    matched_audio = set()
    audio_by_index: Dict[int, str] = {}
    for index, audio_path in audios:
        audio_by_index.setdefault(index, audio_path)

    for index, image_path in images:
        audio_path = audio_by_index.get(index)
        if audio_path and index not in matched_audio:
            matches.append(ReconciledMatch(
                index=index,
                image_path=image_path,
                image_api_url=artifact_url(image_path),
                audio_path=audio_path,
                audio_api_url=artifact_url(audio_path),
                duration=_match_duration(audio_path)
            ))
            matched_images.add(image_path)
            matched_audio.add(index)

    for index, image_path in images:
        if image_path not in matched_images:
            matches.append(ReconciledMatch(
                index=index,
                image_path=image_path,
                image_api_url=artifact_url(image_path)
            ))

    for index, audio_path in audios:
        if index not in matched_audio:
            matches.append(ReconciledMatch(
                index=index,
                audio_path=audio_path,
                audio_api_url=artifact_url(audio_path),
                duration=_match_duration(audio_path)
            ))
            matched_audio.add(index)

    matches.sort(key=lambda m: m.index)

    logger.info(
        "Scanned %s: %d images, %d audio, %d matches",
        dir_path, len(images), len(audios), len(matches)
    )
    return ReconciliationResult(
        dir_path=str(dir_path),
        total_files=len(files),
        image_count=len(images),
        audio_count=len(audios),
        matches=matches
    )
