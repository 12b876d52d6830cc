"""Data models for the explainer video pipeline"""

from .segment import (
    GenerationStrategy,
    SegmentStatus,
    VideoRef,
    ImageAudioRef,
    Segment,
    ReconciledMatch,
    estimate_duration_from_text,
    duration_from_audio_size,
)
from .events import (
    EventType,
    ProgressEvent,
)
from .render import (
    TransitionType,
    FilterNodeKind,
    RenderConfig,
    FilterNode,
    FilterGraph,
    RenderResult,
)

__all__ = [
    # Segments
    "GenerationStrategy",
    "SegmentStatus",
    "VideoRef",
    "ImageAudioRef",
    "Segment",
    "ReconciledMatch",
    "estimate_duration_from_text",
    "duration_from_audio_size",
    # Events
    "EventType",
    "ProgressEvent",
    # Render
    "TransitionType",
    "FilterNodeKind",
    "RenderConfig",
    "FilterNode",
    "FilterGraph",
    "RenderResult",
]
