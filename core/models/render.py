"""
Render models for FFmpeg video assembly

These models represent the encoder configuration, the filter graph used to
join clips with transitions, and the results of an assembly run.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum


class TransitionType(Enum):
    """Cross-fade styles, named as ffmpeg xfade transitions"""
    FADE = "fade"
    DISSOLVE = "dissolve"


class FilterNodeKind(Enum):
    """Node kinds in the clip-joining filter graph"""
    TRANSITION = "xfade"
    CONCAT = "concat"


@dataclass
class RenderConfig:
    """
    Configuration for rendering.

    Output size and frame rate are fixed so that clips from differently sized
    source images line up when joined.

    Attributes:
        output_width: Output video width in pixels
        output_height: Output video height in pixels
        output_fps: Output frame rate
        video_codec: Video codec (h264, h265, etc.)
        audio_codec: Audio codec (aac, mp3, etc.)
        pixel_format: Pixel format (yuv420p for compatibility)
        zoom_factor: Final zoom of the Ken Burns effect (> 1)
        transition_duration: Cross-fade length between adjacent clips
        transition: Cross-fade style passed to xfade
    """
    output_width: int = 1280
    output_height: int = 720
    output_fps: int = 30
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    pixel_format: str = "yuv420p"

    # Quality preset (ultrafast, fast, medium, slow, veryslow)
    preset: str = "fast"

    # CRF for quality-based encoding (0-51, lower = better, 23 is default)
    crf: int = 23

    zoom_factor: float = 1.2
    transition_duration: float = 1.0
    transition: TransitionType = TransitionType.FADE

    @property
    def resolution(self) -> str:
        return f"{self.output_width}x{self.output_height}"


@dataclass
class FilterNode:
    """
    One node of a filter_complex graph.

    Attributes:
        kind: Transition (xfade + acrossfade pair) or final concat
        inputs: Input pad labels, e.g. ["0:v", "1:v"]
        outputs: Output pad labels, e.g. ["v1", "a1"]
        expression: Rendered filter text for this node
    """
    kind: FilterNodeKind
    inputs: List[str]
    outputs: List[str]
    expression: str
    offset: Optional[float] = None


@dataclass
class FilterGraph:
    """Ordered filter graph for joining clips"""
    nodes: List[FilterNode] = field(default_factory=list)
    video_out: str = "outv"
    audio_out: str = "outa"

    @property
    def transition_count(self) -> int:
        return sum(1 for n in self.nodes if n.kind == FilterNodeKind.TRANSITION)

    @property
    def concat_count(self) -> int:
        return sum(1 for n in self.nodes if n.kind == FilterNodeKind.CONCAT)

    def to_string(self) -> str:
        return ";".join(n.expression for n in self.nodes)


@dataclass
class RenderResult:
    """
    Result from an assembly operation.

    Attributes:
        success: Whether the render completed successfully
        output_path: Path to the rendered video file
        clip_paths: Intermediate per-segment clips, in order
        segment_count: Number of segments that made it into the output
        skipped_indices: Segments dropped because their media was incomplete
        render_time: Time taken to render in seconds
        used_transitions: Whether the cross-fade graph was used
    """
    success: bool
    output_path: Optional[str] = None
    clip_paths: List[str] = field(default_factory=list)
    segment_count: int = 0
    skipped_indices: List[int] = field(default_factory=list)
    render_time: Optional[float] = None
    used_transitions: bool = False
    error_message: Optional[str] = None
    file_size: Optional[int] = None
