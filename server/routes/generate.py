"""Explainer generation endpoint (SSE)"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request

from core.context import RunContext
from core.events import ProgressChannel
from core.models.segment import GenerationStrategy
from core.pipeline import GenerationPipeline
from core.provider_config import GeneratorSet
from core.renderer import FFmpegRenderer
from core.script_writer import ScriptWriter
from core.workspace import RunWorkspace
from server.config import Settings, get_settings
from server.dependencies import get_generators, get_renderer, get_script_writer, get_storage
from server.models import GenerateVideoRequest
from server.streaming import sse_response


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-video")
async def generate_video(
    body: GenerateVideoRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    generators: GeneratorSet = Depends(get_generators),
    renderer: FFmpegRenderer = Depends(get_renderer),
    script_writer: ScriptWriter = Depends(get_script_writer),
    storage=Depends(get_storage),
):
    """
    Run the whole pipeline for one book and stream its progress.

    Events: progress, outline, script, video_segment | image, video_final,
    then exactly one complete or error.
    """
    run_id = uuid.uuid4().hex[:12]
    try:
        strategy = GenerationStrategy.from_mode(body.generate_mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    config = settings.pipeline_config(strategy, body.selected_voice or "")

    workspace = RunWorkspace.create(sandbox_root=settings.sandbox_root, prefix=settings.workspace_prefix)
    logger.info("Run %s: book=%r mode=%s workspace=%s", run_id, body.book_name, strategy.value, workspace.path)

    context = RunContext(
        channel=ProgressChannel(run_id),
        workspace=workspace,
        renderer=renderer,
        config=config,
        video_provider=generators.video,
        image_provider=generators.image,
        audio_provider=generators.audio,
        storage=storage,
    )
    pipeline = GenerationPipeline(context, script_writer, body.book_name)
    return sse_response(request, context.channel, pipeline.run())
