"""Service dependencies for the clipper API.

Services are built once in create_app() and kept on app.state; route
handlers receive them through these getters.
"""

from fastapi import Request

from services.ai_service import AIService
from services.clip_streamer import ClipStreamer
from services.storage_service import SupabaseStorage
from services.trim_service import TrimService
from services.video_downloader import SourceMaterializer


def get_config(request: Request) -> dict:
    """Get the loaded configuration dict."""
    return request.app.state.config


def get_storage(request: Request) -> SupabaseStorage:
    """Get the storage adapter."""
    return request.app.state.storage


def get_materializer(request: Request) -> SourceMaterializer:
    """Get the source materializer."""
    return request.app.state.materializer


def get_clip_streamer(request: Request) -> ClipStreamer:
    """Get the clip streamer."""
    return request.app.state.clip_streamer


def get_ai_service(request: Request) -> AIService:
    """Get the AI service."""
    return request.app.state.ai_service


def get_trim_service(request: Request) -> TrimService:
    """Get the trim service."""
    return request.app.state.trim_service
