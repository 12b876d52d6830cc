"""Request-scoped dependencies: generators, storage, renderer and script writer"""

from typing import Optional

from fastapi import Depends

from core.provider_config import GeneratorSet, ProviderFactory
from core.providers import StorageProvider
from core.renderer import FFmpegRenderer
from core.script_writer import ScriptWriter
from server.config import Settings, get_settings


def get_generators(settings: Settings = Depends(get_settings)) -> GeneratorSet:
    """Remote generators in live mode, scripted mocks otherwise"""
    if not settings.is_live:
        return ProviderFactory.create_generators("mock")
    return ProviderFactory.create_generators(
        "remote",
        api_key=settings.generator_api_key or None,
        base_url=settings.generator_base_url or None,
    )


def get_storage(settings: Settings = Depends(get_settings)) -> Optional[StorageProvider]:
    return ProviderFactory.create_storage(upload_url=settings.upload_url or None, timeout=int(settings.request_timeout))


def get_renderer(settings: Settings = Depends(get_settings)) -> FFmpegRenderer:
    return FFmpegRenderer(ffmpeg_path=settings.ffmpeg_path)


def get_script_writer(settings: Settings = Depends(get_settings)) -> ScriptWriter:
    client = ProviderFactory.create_text_generator(
        mock=not settings.is_live,
        api_key=settings.anthropic_api_key or None,
        model=settings.claude_model or None,
        debug=settings.debug,
    )
    return ScriptWriter(client)
