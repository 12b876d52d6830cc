"""Voice preview endpoint"""

import asyncio
import logging
from collections import OrderedDict
from typing import Optional, Tuple

import aiohttp
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from core.downloads import fetch_bytes
from core.errors import PipelineError, ProviderError
from core.provider_config import GeneratorSet
from core.workspace import is_remote_url
from server.config import Settings, get_settings
from server.dependencies import get_generators
from server.models import VoicePreviewRequest


logger = logging.getLogger(__name__)

router = APIRouter()


class PreviewCache:
    """Bounded LRU of synthesized previews keyed by (voice, text)"""

    def __init__(self, max_entries: int = 32):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Tuple[str, str], bytes]" = OrderedDict()

    def get(self, voice_id: str, text: str) -> Optional[bytes]:
        key = (voice_id, text)
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, voice_id: str, text: str, audio: bytes) -> None:
        self._entries[(voice_id, text)] = audio
        self._entries.move_to_end((voice_id, text))
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


preview_cache = PreviewCache()


@router.post("/voice-preview")
async def voice_preview(
    body: VoicePreviewRequest,
    settings: Settings = Depends(get_settings),
    generators: GeneratorSet = Depends(get_generators),
):
    """Synthesize (or replay) a short sample of a narration voice as audio/mpeg"""
    preview_cache.max_entries = settings.voice_preview_cache_size
    cached = preview_cache.get(body.voice_id, body.text)
    if cached is not None:
        return Response(content=cached, media_type="audio/mpeg", headers={"X-Cache": "HIT"})

    try:
        result = await generators.audio.generate_speech(body.text, voice_id=body.voice_id, uid="voice_preview")
        result.raise_for_error()
    except ProviderError as e:
        logger.warning("Voice preview failed for %s: %s", body.voice_id, e.message)
        raise HTTPException(status_code=502, detail=e.message)

    audio = result.audio_data
    if not audio and is_remote_url(result.audio_url):
        try:
            audio = await fetch_bytes(result.audio_url, timeout=settings.request_timeout)
        except PipelineError as e:
            raise HTTPException(status_code=502, detail=e.message)
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            raise HTTPException(status_code=504, detail=f"Could not fetch synthesized audio: {e}")
    if not audio:
        raise HTTPException(status_code=502, detail="Speech synthesis returned no audio")

    preview_cache.put(body.voice_id, body.text, audio)
    return Response(content=audio, media_type="audio/mpeg", headers={"X-Cache": "MISS"})
