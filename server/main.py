"""
FastAPI server for the explainer video pipeline

Generation and assembly progress is streamed as Server-Sent Events; workspace
artifacts are served back out of the sandbox.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import PipelineError
from core.renderer import FFmpegRenderer
from server.config import Settings, get_settings, settings
from server.routes import assembly, files, generate, voices


logger = logging.getLogger(__name__)

VERSION = "0.1.0"

ENDPOINTS = {
    "generate": "POST /api/generate-video (SSE)",
    "concat_image_audio": "POST /api/concat-image-audio (SSE)",
    "concat_video": "POST /api/concat-video (SSE)",
    "scan_directory": "GET /api/scan-directory?path=",
    "temp_file": "GET /api/temp-file?path=",
    "voice_preview": "POST /api/voice-preview",
}


async def encoder_status(config: Settings) -> dict:
    return await FFmpegRenderer(ffmpeg_path=config.ffmpeg_path).check_ffmpeg_installed()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Explainer server starting (env=%s, providers=%s)", settings.env, settings.provider_mode)
    Path(settings.sandbox_root).mkdir(parents=True, exist_ok=True)
    logger.info("Workspaces under %s/%s*", settings.sandbox_root, settings.workspace_prefix)

    if settings.is_live and not settings.generator_base_url:
        logger.warning("GENERATOR_BASE_URL is not set, generators fall back to mock")

    encoder = await encoder_status(settings)
    if not encoder["installed"]:
        logger.warning("FFmpeg not available (%s); assembly requests will fail", encoder.get("error"))

    yield

    logger.info("Explainer server stopped")


app = FastAPI(
    title="Explainer Video Pipeline",
    description="Book explainer generation and media assembly API",
    version=VERSION,
    lifespan=lifespan,
)

# Browser clients fetch /api/temp-file URLs cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate.router, prefix="/api", tags=["Generation"])
app.include_router(assembly.router, prefix="/api", tags=["Assembly"])
app.include_router(files.router, prefix="/api", tags=["Files"])
app.include_router(voices.router, prefix="/api", tags=["Voices"])


@app.get("/health")
async def health(config: Settings = Depends(get_settings)):
    """Liveness plus encoder availability"""
    return {
        "status": "healthy",
        "service": "explainer-video",
        "version": VERSION,
        "mode": config.provider_mode,
        "encoder": await encoder_status(config),
    }


@app.get("/")
async def root():
    return {"name": app.title, "version": VERSION, "docs": "/docs", "endpoints": ENDPOINTS}


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    # Only non-streaming routes get here; streams report errors as events
    logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={**exc.to_event_data(), "message": exc.message, "path": request.url.path},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server.main:app", host="0.0.0.0", port=8000, log_level="info")
