"""Provider configuration and factory"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .claude_client import ClaudeClient
from .providers import (
    AudioProvider,
    GeneratorConfig,
    HttpStorageProvider,
    ImageProvider,
    LocalStorageProvider,
    MockAudioProvider,
    MockImageProvider,
    MockTextGenerator,
    MockVideoProvider,
    ProviderType,
    RemoteAudioProvider,
    RemoteImageProvider,
    RemoteVideoProvider,
    StorageProvider,
    StorageProviderConfig,
    VideoProvider,
)
from .script_writer import TextGenerator


logger = logging.getLogger(__name__)


@dataclass
class GeneratorSet:
    """The three media generators one run talks to"""
    video: VideoProvider
    image: ImageProvider
    audio: AudioProvider


class ProviderFactory:
    """Factory for creating generators and storage from configuration"""

    @staticmethod
    def resolve_type(provider_type: Optional[str] = None) -> ProviderType:
        """
        Provider type from the argument or the GENERATOR_PROVIDER env var.

        Unknown values fall back to mock with a warning.
        """
        provider_str = provider_type or os.getenv("GENERATOR_PROVIDER", "mock")
        try:
            return ProviderType(provider_str.lower())
        except ValueError:
            logger.warning("Invalid provider type '%s', falling back to mock", provider_str)
            return ProviderType.MOCK

    @staticmethod
    def create_generators(
        provider_type: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 300
    ) -> GeneratorSet:
        """
        Create the video, image and narration generators.

        Environment variables (used when the arguments are omitted):
        - GENERATOR_PROVIDER: "mock" or "remote" (defaults to "mock")
        - GENERATOR_API_KEY: gateway API key
        - GENERATOR_BASE_URL: gateway base URL

        Returns:
            GeneratorSet; mock generators when the remote gateway is not configured
        """
        provider_enum = ProviderFactory.resolve_type(provider_type)

        if provider_enum == ProviderType.REMOTE:
            base_url = base_url or os.getenv("GENERATOR_BASE_URL")
            if not base_url:
                logger.warning("GENERATOR_BASE_URL not set, falling back to mock generators")
            else:
                config = GeneratorConfig(
                    provider_type=ProviderType.REMOTE,
                    api_key=api_key or os.getenv("GENERATOR_API_KEY"),
                    base_url=base_url,
                    timeout=timeout
                )
                return GeneratorSet(
                    video=RemoteVideoProvider(config),
                    image=RemoteImageProvider(config),
                    audio=RemoteAudioProvider(config)
                )

        return GeneratorSet(
            video=MockVideoProvider(),
            image=MockImageProvider(),
            audio=MockAudioProvider()
        )

    @staticmethod
    def create_storage(
        upload_url: Optional[str] = None,
        base_path: Optional[str] = None,
        timeout: int = 30
    ) -> Optional[StorageProvider]:
        """
        Storage for final videos: HTTP upload when an endpoint is set, local
        copy when only a directory is set, otherwise None (artifact URLs).
        """
        if upload_url:
            return HttpStorageProvider(StorageProviderConfig(upload_url=upload_url, timeout=timeout))
        if base_path:
            return LocalStorageProvider(StorageProviderConfig(base_path=base_path))
        return None

    @staticmethod
    def create_text_generator(
        mock: bool = False,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        debug: bool = False
    ) -> TextGenerator:
        """Claude for the outline and script, or the scripted mock"""
        if mock:
            return MockTextGenerator()
        kwargs = {"debug": debug, "api_key": api_key}
        if model:
            kwargs["model"] = model
        return ClaudeClient(**kwargs)
