"""Core components - segmentation, generation, assembly and infrastructure"""

from .claude_client import ClaudeClient
from .errors import PipelineError
from .events import ProgressChannel, RunCancelled
from .segmenter import split_script

# Note: the pipeline runs are NOT imported here to avoid circular imports
# Import them directly: from core.pipeline import GenerationPipeline

__all__ = [
    "ClaudeClient",
    "PipelineError",
    "ProgressChannel",
    "RunCancelled",
    "split_script",
]
