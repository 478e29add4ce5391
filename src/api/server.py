#!/usr/bin/env python
"""FastAPI server for the clipper API."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Add src directory to Python path for imports
src_dir = Path(__file__).parent.parent
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.middleware import RequestContextMiddleware
from api.routers import analysis, clips, core
from services.ai_service import AIService
from services.clip_extractor import ClipExtractor
from services.clip_streamer import ClipStreamer
from services.storage_service import SupabaseStorage
from services.trim_service import TrimService
from services.video_downloader import SourceMaterializer
from utils.config import load_config, validate_config
from utils.errors import ClipperError
from utils.logging import setup_logging

logger = logging.getLogger(__name__)


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        message = error.get("msg", "Invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request body."


def create_app(
    config: dict | None = None,
    storage: SupabaseStorage | None = None,
    ai_service: AIService | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the application and its services.

    Args:
        config: Configuration dict (load_config() if omitted)
        storage: Storage adapter override (tests)
        ai_service: AI service override (tests)
        http_client: HTTP client override (tests)

    Returns:
        Configured FastAPI app
    """
    config = config or load_config()

    for problem in validate_config(config):
        logger.warning(f"Config: {problem}")

    storage = storage or SupabaseStorage(
        url=config.get("supabase_url"),
        key=config.get("supabase_key"),
        raw_bucket=config["raw_videos_bucket"],
        clips_bucket=config["processed_clips_bucket"],
        raw_bucket_public=config["raw_bucket_public"],
    )
    ai_service = ai_service or AIService(
        api_key=config.get("gemini_api_key"),
        model_name=config["gemini_model"],
    )
    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(config["download_timeout_seconds"], connect=30.0)
    )

    materializer = SourceMaterializer(
        temp_dir=config["temp_dir"],
        host_downloads_dir=config["host_downloads_dir"],
        http_client=http_client,
        storage=storage,
        ytdlp_binary=config["ytdlp_binary"],
        ytdlp_format=config["ytdlp_format"],
        signed_url_ttl=config["clip_signed_url_ttl"],
    )
    extractor = ClipExtractor(
        ffmpeg_binary=config["ffmpeg_binary"],
        chunk_size=config["stream_chunk_size"],
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Clipper API ready (temp dir: {config['temp_dir']})")
        yield
        if owns_http_client:
            await http_client.aclose()

    app = FastAPI(title="Clipper API", version="1.0.0", lifespan=lifespan)

    app.state.config = config
    app.state.storage = storage
    app.state.ai_service = ai_service
    app.state.http_client = http_client
    app.state.materializer = materializer
    app.state.clip_streamer = ClipStreamer(materializer, extractor)
    app.state.trim_service = TrimService(materializer, extractor, storage)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config["cors_allowed_origins"],
        allow_credentials="*" not in config["cors_allowed_origins"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Clip-Filename", "Content-Disposition"],
    )

    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(ClipperError)
    async def clipper_error_handler(request: Request, exc: ClipperError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _format_validation_error(exc)
        logger.warning(f"{request.method} {request.url.path} rejected: {message}")
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    app.include_router(core.router)
    app.include_router(clips.router)
    app.include_router(analysis.router)

    return app


def build_app() -> FastAPI:
    """Configure logging from the environment and build the app."""
    config = load_config()
    setup_logging(config["log_level"], json_output=config["log_json"])
    return create_app(config)


app = build_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=load_config()["port"])
