"""
HTTP generator adapters

All three generators live behind one JSON gateway:

    POST {base_url}/video/generations   -> {"videoUrl": ...}
    POST {base_url}/images/generations  -> {"data": [{"url": ...}]}
    POST {base_url}/tts/synthesize      -> {"audioUri": ..., "audioSize": ...}

Error bodies look like {"error": {"code": "...", "message": "..."}}; the HTTP
status and the error code are carried on the failed result so the pipeline
can tell a rate limit apart from other failures.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from .base import (
    AudioGenerationResult,
    AudioProvider,
    GenerationResult,
    GeneratorConfig,
    ImageGenerationResult,
    ImageProvider,
    ProviderType,
    VideoProvider,
)


DEFAULT_VIDEO_MODEL = "doubao-seedance-1-5-pro-251215"


class _GatewayClient:
    """POST helper shared by the remote adapters"""

    config: GeneratorConfig

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload.

        Returns:
            {"status": int, "body": dict}; body is {} when the response is not JSON
        """
        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, headers=self._headers(), json=payload) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = {}
                return {"status": response.status, "body": body or {}}

    @staticmethod
    def _error_fields(status: int, body: Dict[str, Any]) -> Dict[str, Any]:
        error = body.get("error") or {}
        if isinstance(error, str):
            error = {"message": error}
        return {
            "status_code": status,
            "error_code": error.get("code"),
            "error_message": f"Generator error ({status}): {error.get('message') or 'no details'}",
        }


def _require_base_url(config: Optional[GeneratorConfig]) -> GeneratorConfig:
    if config is None or not config.base_url:
        raise ValueError("Generator base URL required. Set GENERATOR_BASE_URL.")
    if config.provider_type != ProviderType.REMOTE:
        config.provider_type = ProviderType.REMOTE
    return config


class RemoteVideoProvider(_GatewayClient, VideoProvider):
    """Text-to-video over the generator gateway"""

    def __init__(self, config: Optional[GeneratorConfig] = None, model: str = DEFAULT_VIDEO_MODEL):
        super().__init__(_require_base_url(config))
        self.model = model

    @property
    def name(self) -> str:
        return "remote"

    async def generate_video(
        self,
        prompt: str,
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> GenerationResult:
        payload = {
            "model": self.model,
            "content": [{"type": "text", "text": prompt}],
            "duration": int(duration),
            "ratio": aspect_ratio,
            "resolution": kwargs.get("resolution", "720p"),
            "generateAudio": kwargs.get("generate_audio", True),
        }
        try:
            response = await self._post("video/generations", payload)
        except aiohttp.ClientError as e:
            return GenerationResult(success=False, error_message=f"Video request failed: {e}")
        except asyncio.TimeoutError:
            return GenerationResult(
                success=False,
                error_message=f"Video request timed out after {self.config.timeout}s"
            )

        status, body = response["status"], response["body"]
        if status != 200:
            return GenerationResult(success=False, **self._error_fields(status, body))
        if not body.get("videoUrl"):
            return GenerationResult(success=False, status_code=status, error_message="No videoUrl in response")

        return GenerationResult(
            success=True,
            video_url=body["videoUrl"],
            duration=duration,
            provider_metadata={"model": self.model}
        )


class RemoteImageProvider(_GatewayClient, ImageProvider):
    """Text-to-image over the generator gateway"""

    def __init__(self, config: Optional[GeneratorConfig] = None):
        super().__init__(_require_base_url(config))

    @property
    def name(self) -> str:
        return "remote"

    async def generate_image(self, prompt: str, size: str = "1024x1024", **kwargs) -> ImageGenerationResult:
        try:
            response = await self._post("images/generations", {"prompt": prompt, "size": size})
        except aiohttp.ClientError as e:
            return ImageGenerationResult(success=False, error_message=f"Image request failed: {e}")
        except asyncio.TimeoutError:
            return ImageGenerationResult(
                success=False,
                error_message=f"Image request timed out after {self.config.timeout}s"
            )

        status, body = response["status"], response["body"]
        if status != 200:
            return ImageGenerationResult(success=False, **self._error_fields(status, body))

        data = body.get("data") or []
        url = data[0].get("url") if data else None
        if not url:
            return ImageGenerationResult(success=False, status_code=status, error_message="No image URL in response")
        return ImageGenerationResult(success=True, image_url=url)


class RemoteAudioProvider(_GatewayClient, AudioProvider):
    """
    Narration synthesis over the generator gateway.

    Requests 24kHz mp3 with a slightly raised speech rate and loudness.
    """

    SAMPLE_RATE = 24000
    SPEECH_RATE = 10
    LOUDNESS_RATE = 5

    def __init__(self, config: Optional[GeneratorConfig] = None):
        super().__init__(_require_base_url(config))

    @property
    def name(self) -> str:
        return "remote"

    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        speed: float = 1.0,
        **kwargs
    ) -> AudioGenerationResult:
        payload = {
            "uid": kwargs.get("uid") or f"narration_{int(time.time() * 1000)}",
            "text": text,
            "speaker": voice_id,
            "audioFormat": "mp3",
            "sampleRate": self.SAMPLE_RATE,
            "speechRate": kwargs.get("speech_rate", self.SPEECH_RATE),
            "loudnessRate": kwargs.get("loudness_rate", self.LOUDNESS_RATE),
        }
        try:
            response = await self._post("tts/synthesize", payload)
        except aiohttp.ClientError as e:
            return AudioGenerationResult(success=False, error_message=f"Speech request failed: {e}")
        except asyncio.TimeoutError:
            return AudioGenerationResult(
                success=False,
                error_message=f"Speech request timed out after {self.config.timeout}s"
            )

        status, body = response["status"], response["body"]
        if status != 200:
            return AudioGenerationResult(success=False, **self._error_fields(status, body))
        if not body.get("audioUri"):
            return AudioGenerationResult(success=False, status_code=status, error_message="No audioUri in response")

        return AudioGenerationResult(
            success=True,
            audio_url=body["audioUri"],
            audio_size=body.get("audioSize"),
            sample_rate=self.SAMPLE_RATE,
            provider_metadata={"voice_id": voice_id}
        )
