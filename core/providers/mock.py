"""Mock generators for testing without API keys"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

from .base import (
    AudioGenerationResult,
    AudioProvider,
    GenerationResult,
    GeneratorConfig,
    ImageGenerationResult,
    ImageProvider,
    VideoProvider,
)
from core.models.segment import AUDIO_BYTES_PER_SECOND, CHARS_PER_SECOND


# Placeholder payloads written to the workspace in place of real media
MOCK_VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42mock-video"
MOCK_IMAGE_BYTES = b"\xff\xd8\xff\xe0mock-image"
MOCK_AUDIO_BYTES = b"ID3mock-audio"


class _ScriptedMock:
    """
    Shared call bookkeeping for the mock generators.

    `failures` is consumed one entry per call: an exception instance is raised
    for that call, None lets the call succeed. Once exhausted, `fail_always`
    (if set) is raised for every further call.
    """

    def _init_script(
        self,
        failures: Optional[Sequence[Optional[Exception]]] = None,
        fail_always: Optional[Exception] = None,
        delay: float = 0.0
    ):
        self.failures: List[Optional[Exception]] = list(failures or [])
        self.fail_always = fail_always
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def _begin_call(self, **call) -> int:
        self.calls.append(call)
        if self.delay:
            await asyncio.sleep(self.delay)

        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        elif self.fail_always is not None:
            raise self.fail_always
        return len(self.calls)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def reset(self):
        """Reset mock state (useful for testing)"""
        self.calls.clear()
        self.failures.clear()
        self.fail_always = None


class MockVideoProvider(_ScriptedMock, VideoProvider):
    """
    Mock video generator that simulates clip generation without hitting real APIs.

    Used for:
    - Testing orchestration and fallback without API keys
    - Development dry runs of the pipeline
    """

    def __init__(self, config: Optional[GeneratorConfig] = None, **script):
        super().__init__(config or GeneratorConfig())
        self._init_script(**script)

    @property
    def name(self) -> str:
        return "mock"

    async def generate_video(
        self,
        prompt: str,
        duration: float,
        aspect_ratio: str = "16:9",
        **kwargs
    ) -> GenerationResult:
        number = await self._begin_call(prompt=prompt, duration=duration, aspect_ratio=aspect_ratio, **kwargs)
        return GenerationResult(
            success=True,
            video_url=f"https://mock-cdn.example.com/videos/mock_job_{number}.mp4",
            video_data=MOCK_VIDEO_BYTES,
            duration=duration,
            provider_metadata={"job_id": f"mock_job_{number}", "provider": "mock"}
        )


class MockImageProvider(_ScriptedMock, ImageProvider):
    """Mock image generator"""

    def __init__(self, config: Optional[GeneratorConfig] = None, **script):
        super().__init__(config or GeneratorConfig())
        self._init_script(**script)

    @property
    def name(self) -> str:
        return "mock"

    async def generate_image(self, prompt: str, size: str = "1024x1024", **kwargs) -> ImageGenerationResult:
        number = await self._begin_call(prompt=prompt, size=size, **kwargs)
        width, height = (int(v) for v in size.split("x"))
        return ImageGenerationResult(
            success=True,
            image_url=f"https://mock-cdn.example.com/images/mock_image_{number}.jpg",
            image_data=MOCK_IMAGE_BYTES,
            width=width,
            height=height
        )


class MockAudioProvider(_ScriptedMock, AudioProvider):
    """
    Mock narration generator.

    Reports an audio size proportional to the text length unless a fixed
    `audio_size` is given (None disables size reporting altogether).
    """

    _UNSET = object()

    def __init__(self, config: Optional[GeneratorConfig] = None, audio_size: Any = _UNSET, **script):
        super().__init__(config or GeneratorConfig())
        self._init_script(**script)
        self.audio_size = audio_size

    @property
    def name(self) -> str:
        return "mock"

    def _reported_size(self, text: str) -> Optional[int]:
        if self.audio_size is self._UNSET:
            return int(len(text) / CHARS_PER_SECOND * AUDIO_BYTES_PER_SECOND)
        return self.audio_size

    async def generate_speech(
        self,
        text: str,
        voice_id: Optional[str] = None,
        speed: float = 1.0,
        **kwargs
    ) -> AudioGenerationResult:
        number = await self._begin_call(text=text, voice_id=voice_id, speed=speed, **kwargs)
        return AudioGenerationResult(
            success=True,
            audio_url=f"https://mock-cdn.example.com/audio/mock_audio_{number}.mp3",
            audio_data=MOCK_AUDIO_BYTES,
            audio_size=self._reported_size(text),
            provider_metadata={"voice_id": voice_id}
        )


class MockTextGenerator:
    """
    Canned outline and script in place of the language model.

    `script` overrides the narration; `expanded` is what an expansion request
    returns. Calls are recorded for assertions.
    """

    DEFAULT_SCRIPT = (
        "Have you ever wondered why some books stay with us for a lifetime? "
        "Today we open {book} together. The author wrote it in a time of great change, "
        "and every page still feels fresh. The first idea is simple: small habits, "
        "repeated every day, quietly reshape who we are. The second idea goes further, "
        "because our surroundings decide more than our willpower. The third idea is the "
        "one I keep coming back to. Change is not a single leap, it is a long walk. "
        "When I closed the book, I wanted to start right away! What would you change first? "
        "Tell me in the comments."
    )

    def __init__(self, script: Optional[str] = None, expanded: Optional[str] = None, chunk_size: int = 40):
        self.script = script
        self.expanded = expanded
        self.chunk_size = chunk_size
        self.calls: List[Dict[str, Any]] = []

    def _script_for(self, prompt: str) -> str:
        if self.script is not None:
            return self.script
        book = prompt.split('"')[1] if prompt.count('"') >= 2 else "this book"
        return self.DEFAULT_SCRIPT.format(book=book)

    async def query(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.7) -> str:
        self.calls.append({"method": "query", "prompt": prompt, "system_prompt": system_prompt})
        if "expand" in prompt.lower():
            return self.expanded if self.expanded is not None else prompt.split("Script: ", 1)[-1] * 2
        return "[Background] ...\n[Core theme] ...\n[Key ideas] ...\n[Value] ..."

    async def stream(self, prompt: str, system_prompt: Optional[str] = None, temperature: float = 0.8):
        self.calls.append({"method": "stream", "prompt": prompt, "system_prompt": system_prompt})
        script = self._script_for(prompt)
        for start in range(0, len(script), self.chunk_size):
            await asyncio.sleep(0)
            yield script[start:start + self.chunk_size]
