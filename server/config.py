"""Server configuration using pydantic-settings"""

import tempfile
from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings

from core.context import DEFAULT_VOICE, PipelineConfig
from core.models.segment import GenerationStrategy
from core.workspace import WORKSPACE_PREFIX


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    env: Literal["development", "production"] = "development"
    debug: bool = True

    # Provider mode
    provider_mode: Literal["mock", "live"] = "mock"

    # Workspaces
    sandbox_root: str = tempfile.gettempdir()
    workspace_prefix: str = WORKSPACE_PREFIX
    keep_workspace: bool = True

    # Encoder
    ffmpeg_path: Optional[str] = None

    # Pipeline pacing and network
    segment_delay: float = 3.0
    request_timeout: float = 30.0
    download_retries: int = 3

    # External services (loaded from .env or environment)
    upload_url: str = ""
    generator_base_url: str = ""
    generator_api_key: str = ""
    anthropic_api_key: str = ""
    claude_model: str = ""

    # Narration
    default_voice: str = DEFAULT_VOICE
    voice_preview_cache_size: int = 32

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def is_live(self) -> bool:
        return self.provider_mode == "live"

    def pipeline_config(self, strategy: GenerationStrategy = GenerationStrategy.VIDEO, voice_id: str = "") -> PipelineConfig:
        """Per-run config derived from the server settings"""
        return PipelineConfig(
            strategy=strategy,
            voice_id=voice_id or self.default_voice,
            segment_delay=self.segment_delay,
            request_timeout=self.request_timeout,
            download_retries=self.download_retries,
            keep_workspace=self.keep_workspace,
            # Mock media are placeholders, not decodable clips
            assemble_videos=self.is_live,
            sandbox_root=self.sandbox_root,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Global settings instance
settings = get_settings()
