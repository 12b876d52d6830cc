"""
Per-run context.

Pipeline components never read global settings; everything a run needs is
handed to it in a RunContext.
"""

from dataclasses import dataclass, field
from typing import Optional

from core.events import ProgressChannel
from core.models.render import RenderConfig
from core.models.segment import GenerationStrategy
from core.providers.base import AudioProvider, ImageProvider, StorageProvider, VideoProvider
from core.renderer import FFmpegRenderer
from core.segmenter import MAX_SEGMENT_CHARS
from core.workspace import DEFAULT_SANDBOX_ROOT, RunWorkspace


DEFAULT_VOICE = "zh_female_xiaohe_uranus_bigtts"


@dataclass
class PipelineConfig:
    """
    Tunables for one run.

    Attributes:
        strategy: Generation strategy, resolved once from the request's mode
        voice_id: Narration voice
        segment_delay: Pause between segments (rate limiting), seconds
        image_size: Size requested from the image generator
        aspect_ratio: Aspect ratio requested from the video generator
        resolution: Resolution requested from the video generator
        max_segment_chars: Segmenter bound
        request_timeout: Per-download timeout, seconds
        download_retries: Attempts per download
        keep_workspace: Keep the workspace after a successful run for later assembly
        keep_failed_workspace: Keep the workspace after a failed or cancelled run
        assemble_videos: Join generated clips at the end of a run when possible
        sandbox_root: Root every workspace and artifact path must live under
    """
    strategy: GenerationStrategy = GenerationStrategy.VIDEO
    voice_id: str = DEFAULT_VOICE
    segment_delay: float = 3.0
    image_size: str = "1024x1024"
    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    max_segment_chars: int = MAX_SEGMENT_CHARS
    request_timeout: float = 30
    download_retries: int = 3
    keep_workspace: bool = True
    keep_failed_workspace: bool = False
    assemble_videos: bool = True
    sandbox_root: str = DEFAULT_SANDBOX_ROOT
    render: RenderConfig = field(default_factory=RenderConfig)


@dataclass
class RunContext:
    """Everything one run owns: generators, channel, workspace, config"""
    channel: ProgressChannel
    workspace: Optional[RunWorkspace]
    renderer: FFmpegRenderer
    config: PipelineConfig = field(default_factory=PipelineConfig)
    video_provider: Optional[VideoProvider] = None
    image_provider: Optional[ImageProvider] = None
    audio_provider: Optional[AudioProvider] = None
    storage: Optional[StorageProvider] = None
