"""Streaming responses backed by a media subprocess."""

import logging
from typing import AsyncIterable, Awaitable, Callable, Mapping, Optional

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from services.clip_streamer import ClipStream

logger = logging.getLogger(__name__)


class ProcessStreamResponse(StreamingResponse):
    """StreamingResponse that runs a cleanup callback when the ASGI call ends.

    The callback runs after a completed body, after an error raised by the
    body iterator, and after the client disconnects mid-stream.
    """

    def __init__(
        self,
        content: AsyncIterable[bytes],
        on_close: Callable[[], Awaitable[None]],
        media_type: str = "video/mp4",
        headers: Optional[Mapping[str, str]] = None,
        status_code: int = 200,
    ):
        super().__init__(content, status_code=status_code, headers=headers, media_type=media_type)
        self.on_close = on_close

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            try:
                await self.on_close()
            except Exception as e:
                logger.warning(f"Stream cleanup failed: {e}")

    @classmethod
    def for_clip(cls, clip: ClipStream) -> "ProcessStreamResponse":
        """Response for a primed clip stream (sets X-Clip-Filename)."""
        return cls(
            clip.iter_bytes(),
            on_close=clip.aclose,
            media_type="video/mp4",
            headers={"X-Clip-Filename": clip.filename},
        )
