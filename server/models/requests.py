"""Pydantic models for API requests/responses"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.models.segment import Segment


class _CamelModel(BaseModel):
    """Accepts the wire's camelCase keys as well as field names"""
    model_config = ConfigDict(populate_by_name=True)


class GenerateVideoRequest(_CamelModel):
    """Start one explainer generation run"""
    book_name: str = Field("", alias="bookName", examples=["Sapiens"])
    generate_mode: str = Field(
        "video",
        alias="generateMode",
        description="'video' tries a generated clip per segment first; 'image' goes straight to image+narration"
    )
    selected_voice: Optional[str] = Field(None, alias="selectedVoice")


class _SegmentsRequest(_CamelModel):
    segments: List[Dict[str, Any]] = Field(default_factory=list, description="Segments as returned by a generation run")

    def to_segments(self) -> List[Segment]:
        return [Segment.from_dict(s) for s in self.segments]


class ConcatImageAudioRequest(_SegmentsRequest):
    """Assemble image+narration segments into one video"""
    book_name: str = Field("", alias="bookName")
    workspace_path: Optional[str] = Field(
        None,
        alias="workspacePath",
        description="Kept workspace holding the artifacts; omitted for remote artifacts"
    )


class ConcatVideoRequest(_SegmentsRequest):
    """Join the generated clips of a kept workspace"""
    workspace_path: str = Field("", alias="workspacePath")


class VoicePreviewRequest(_CamelModel):
    """Synthesize a short sample with one voice"""
    voice_id: str = Field(..., alias="voiceId")
    text: str = Field(..., min_length=1, max_length=200)


class ScanDirectoryResponse(_CamelModel):
    """Result of reconciling a workspace-like directory"""
    dir_path: str = Field(..., alias="dirPath")
    total_files: int = Field(..., alias="totalFiles")
    image_count: int = Field(..., alias="imageCount")
    audio_count: int = Field(..., alias="audioCount")
    matches: List[Dict[str, Any]]
    can_concat: bool = Field(..., alias="canConcat")
