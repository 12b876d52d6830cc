"""Provider interfaces for external services (video, image, narration, storage)"""

from .base import (
    ProviderType,
    GeneratorConfig,
    GenerationResult,
    ImageGenerationResult,
    AudioGenerationResult,
    VideoProvider,
    ImageProvider,
    AudioProvider,
    StorageProvider,
    StorageProviderConfig,
    StorageResult,
)
from .mock import (
    MockVideoProvider,
    MockImageProvider,
    MockAudioProvider,
    MockTextGenerator,
)
from .remote import (
    RemoteVideoProvider,
    RemoteImageProvider,
    RemoteAudioProvider,
)
from .storage import (
    LocalStorageProvider,
    HttpStorageProvider,
)

__all__ = [
    # Base interfaces
    "ProviderType",
    "GeneratorConfig",
    "GenerationResult",
    "ImageGenerationResult",
    "AudioGenerationResult",
    "VideoProvider",
    "ImageProvider",
    "AudioProvider",
    "StorageProvider",
    "StorageProviderConfig",
    "StorageResult",
    # Mock providers
    "MockVideoProvider",
    "MockImageProvider",
    "MockAudioProvider",
    "MockTextGenerator",
    # Remote providers
    "RemoteVideoProvider",
    "RemoteImageProvider",
    "RemoteAudioProvider",
    # Storage providers
    "LocalStorageProvider",
    "HttpStorageProvider",
    # Registry
    "PROVIDER_REGISTRY",
    "get_provider_info",
]


# Provider Registry for CLI introspection
PROVIDER_REGISTRY = {
    "video": {
        "mock": "MockVideoProvider",
        "remote": "RemoteVideoProvider",
        "features": ["text-to-video", "16:9", "720p", "generated audio track"],
    },
    "image": {
        "mock": "MockImageProvider",
        "remote": "RemoteImageProvider",
        "features": ["text-to-image", "1024x1024"],
    },
    "audio": {
        "mock": "MockAudioProvider",
        "remote": "RemoteAudioProvider",
        "features": ["text-to-speech", "mp3 24kHz", "reported audio size"],
    },
    "storage": {
        "local": "LocalStorageProvider",
        "http": "HttpStorageProvider",
        "features": ["final video upload"],
    },
}


def get_provider_info(category: str) -> dict:
    """Registry entry for one category ("video", "image", "audio", "storage")"""
    return PROVIDER_REGISTRY.get(category, {})
