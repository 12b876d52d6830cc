"""Assembly endpoints (SSE): image+narration slideshow and video clip concat"""

import logging
import uuid

from fastapi import APIRouter, Depends, Request

from core.context import RunContext
from core.events import ProgressChannel
from core.pipeline import ImageAudioAssembly, VideoConcatAssembly
from core.renderer import FFmpegRenderer
from server.config import Settings, get_settings
from server.dependencies import get_renderer, get_storage
from server.models import ConcatImageAudioRequest, ConcatVideoRequest
from server.streaming import sse_response


logger = logging.getLogger(__name__)

router = APIRouter()


def _context(settings: Settings, renderer: FFmpegRenderer, storage) -> RunContext:
    return RunContext(
        channel=ProgressChannel(uuid.uuid4().hex[:12]),
        workspace=None,
        renderer=renderer,
        config=settings.pipeline_config(),
        storage=storage,
    )


@router.post("/concat-image-audio")
async def concat_image_audio(
    body: ConcatImageAudioRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    renderer: FFmpegRenderer = Depends(get_renderer),
    storage=Depends(get_storage),
):
    """Ken Burns clip per segment, cross-fades, upload; streams progress"""
    context = _context(settings, renderer, storage)
    segments = body.to_segments()
    logger.info("Run %s: image+audio assembly of %d segments", context.channel.run_id, len(segments))
    assembly = ImageAudioAssembly(context, segments, book_name=body.book_name, workspace_path=body.workspace_path)
    return sse_response(request, context.channel, assembly.run())


@router.post("/concat-video")
async def concat_video(
    body: ConcatVideoRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    renderer: FFmpegRenderer = Depends(get_renderer),
    storage=Depends(get_storage),
):
    """Join segment_{i}.mp4 clips of a kept workspace; streams progress"""
    context = _context(settings, renderer, storage)
    assembly = VideoConcatAssembly(context, body.workspace_path, body.to_segments())
    return sse_response(request, context.channel, assembly.run())
