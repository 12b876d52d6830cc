"""Pydantic models for API requests and responses"""

from .requests import (
    GenerateVideoRequest,
    ConcatImageAudioRequest,
    ConcatVideoRequest,
    VoicePreviewRequest,
    ScanDirectoryResponse,
)

__all__ = [
    "GenerateVideoRequest",
    "ConcatImageAudioRequest",
    "ConcatVideoRequest",
    "VoicePreviewRequest",
    "ScanDirectoryResponse",
]
