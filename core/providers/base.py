"""Abstract base classes for generator and storage interfaces"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum

from core.errors import ProviderError


class ProviderType(Enum):
    """Available generator backends"""
    MOCK = "mock"
    REMOTE = "remote"


def _mask_secret(value: Optional[str]) -> str:
    """Mask a secret value for safe display in logs/repr."""
    if value is None:
        return "None"
    if len(value) <= 8:
        return "'***'"
    return f"'{value[:4]}...{value[-4:]}'"


@dataclass
class GeneratorConfig:
    """Connection settings shared by the remote generators"""
    provider_type: ProviderType = ProviderType.MOCK
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: int = 300  # seconds
    extra_params: Dict[str, Any] = None

    def __post_init__(self):
        if self.extra_params is None:
            self.extra_params = {}

    def __repr__(self) -> str:
        """Safe repr that masks API key to prevent accidental exposure in logs."""
        return (
            f"GeneratorConfig(provider_type={self.provider_type}, "
            f"api_key={_mask_secret(self.api_key)}, "
            f"base_url={self.base_url!r}, timeout={self.timeout})"
        )


@dataclass
class _GeneratorResult:
    """Fields every generator result carries"""
    success: bool
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    provider_metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.provider_metadata is None:
            self.provider_metadata = {}

    def raise_for_error(self) -> None:
        """Turn an unsuccessful result into a ProviderError."""
        if not self.success:
            raise ProviderError(
                self.error_message or "generation failed",
                status_code=self.status_code,
                error_code=self.error_code
            )


@dataclass
class GenerationResult(_GeneratorResult):
    """Result from video generation"""
    video_url: Optional[str] = None
    video_data: Optional[bytes] = None
    duration: Optional[float] = None


@dataclass
class ImageGenerationResult(_GeneratorResult):
    """Result from image generation"""
    image_url: Optional[str] = None
    image_data: Optional[bytes] = None
    width: int = 1024
    height: int = 1024


@dataclass
class AudioGenerationResult(_GeneratorResult):
    """
    Result from narration synthesis.

    Attributes:
        audio_url: Where the narration can be fetched
        audio_data: Raw bytes when the generator returns them inline
        audio_size: Size in bytes as reported by the generator (drives duration)
    """
    audio_url: Optional[str] = None
    audio_data: Optional[bytes] = None
    audio_size: Optional[int] = None
    format: str = "mp3"
    sample_rate: int = 24000


class VideoProvider(ABC):
    """
    Abstract base class for text-to-video generators.

    Implementations either return a successful result or raise ProviderError;
    a result with success=False is converted with raise_for_error().
    """

    def __init__(self, config: GeneratorConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier"""
        pass

    @abstractmethod
    async def generate_video(
        self,
        prompt: str,
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> GenerationResult:
        """
        Generate a video clip from a text prompt.

        Args:
            prompt: Text the clip should illustrate
            duration: Commanded duration in seconds
            aspect_ratio: Video aspect ratio (e.g., "16:9")
            **kwargs: Provider-specific parameters (resolution, generate_audio)

        Returns:
            GenerationResult with the clip URL
        """
        pass


class ImageProvider(ABC):
    """Abstract base class for text-to-image generators."""

    def __init__(self, config: GeneratorConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        size: str = "1024x1024",
        **kwargs
    ) -> ImageGenerationResult:
        """
        Generate an image from a text prompt.

        Args:
            prompt: Text description of image
            size: Image size (e.g., "1024x1024")

        Returns:
            ImageGenerationResult with the image URL
        """
        pass


class AudioProvider(ABC):
    """Abstract base class for narration (text-to-speech) generators."""

    def __init__(self, config: GeneratorConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        speed: float = 1.0,
        **kwargs
    ) -> AudioGenerationResult:
        """
        Generate narration from text.

        Args:
            text: Text to speak
            voice_id: Generator voice identifier
            speed: Speech rate adjustment

        Returns:
            AudioGenerationResult with URL and/or inline bytes and reported size
        """
        pass


@dataclass
class StorageProviderConfig:
    """Configuration for storage provider"""
    upload_url: Optional[str] = None
    base_path: str = "./artifacts"
    timeout: int = 30
    extra_params: Dict[str, Any] = None

    def __post_init__(self):
        if self.extra_params is None:
            self.extra_params = {}


@dataclass
class StorageResult:
    """Result from storage operation"""
    success: bool
    file_url: Optional[str] = None
    file_path: Optional[str] = None
    size_bytes: Optional[int] = None
    content_type: Optional[str] = None
    error_message: Optional[str] = None


class StorageProvider(ABC):
    """Abstract base class for final-video storage."""

    def __init__(self, config: StorageProviderConfig):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def upload_file(
        self,
        local_path: str,
        remote_name: str,
        content_type: str = "video/mp4",
        **kwargs
    ) -> StorageResult:
        """
        Upload a file and return where it can be fetched.

        Args:
            local_path: Path to local file
            remote_name: Destination file name
            content_type: MIME type of the payload

        Returns:
            StorageResult with the public URL
        """
        pass
