"""Async wrapper around the external media tools (ffmpeg, yt-dlp).

One MediaProcess owns one subprocess: its stdout is either streamed to the
caller chunk by chunk or drained into the log, and stderr is always drained
in a background task so the child can never block on a full pipe.
"""

import asyncio
import logging
import re
from collections import deque
from typing import AsyncIterator, List, Optional, Sequence

from utils.errors import ExtractionStartFailedError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
STDERR_TAIL_LINES = 20
DRAIN_CHUNK_SIZE = 8 * 1024
MAX_PENDING_LINE = 64 * 1024
LINE_BREAK = re.compile(rb"[\r\n]+")


class MediaProcess:
    """A running media subprocess."""

    TERMINATE_GRACE_SECONDS = 5.0

    def __init__(
        self,
        label: str,
        process: asyncio.subprocess.Process,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        stream_stdout: bool = True,
    ):
        self.label = label
        self.process = process
        self.chunk_size = chunk_size
        self.stream_stdout = stream_stdout
        self._stderr_tail: deque = deque(maxlen=STDERR_TAIL_LINES)
        self._drain_tasks: List[asyncio.Task] = []

        if process.stderr is not None:
            self._drain_tasks.append(
                asyncio.create_task(self._drain(process.stderr, "stderr", keep_tail=True))
            )
        if not stream_stdout and process.stdout is not None:
            self._drain_tasks.append(asyncio.create_task(self._drain(process.stdout, "stdout")))

    @classmethod
    async def spawn(
        cls,
        args: Sequence[str],
        label: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        stream_stdout: bool = True,
    ) -> "MediaProcess":
        """Start a subprocess.

        Args:
            args: Program and arguments
            label: Name used in log lines (defaults to the program name)
            chunk_size: Read size for streamed stdout
            stream_stdout: If False, stdout is logged instead of returned

        Raises:
            ExtractionStartFailedError: if the program cannot be started
        """
        label = label or args[0]
        logger.info(f"Spawning {label}: {' '.join(str(a) for a in args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *[str(a) for a in args],
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to spawn {label}: {e}")
            raise ExtractionStartFailedError(f"Failed to start {label} process: {e}") from e
        return cls(label, process, chunk_size=chunk_size, stream_stdout=stream_stdout)

    async def _drain(self, stream: asyncio.StreamReader, name: str, keep_tail: bool = False) -> None:
        # Progress output is often "\r"-terminated with no newline, so read
        # fixed-size chunks instead of readline() and split on either.
        pending = b""
        while True:
            chunk = await stream.read(DRAIN_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *lines, pending = LINE_BREAK.split(pending)
            for line in lines:
                self._log_line(line, name, keep_tail)
            if len(pending) > MAX_PENDING_LINE:
                self._log_line(pending, name, keep_tail)
                pending = b""
        self._log_line(pending, name, keep_tail)

    def _log_line(self, line: bytes, name: str, keep_tail: bool) -> None:
        text = line.decode("utf-8", errors="replace").strip()
        if not text:
            return
        if keep_tail:
            self._stderr_tail.append(text)
        logger.debug(f"[{self.label}] {name}: {text}")

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    @property
    def stderr_tail(self) -> str:
        """Last lines the process wrote to stderr."""
        return "\n".join(self._stderr_tail)

    async def read_chunk(self) -> bytes:
        """Read up to chunk_size bytes of stdout; b"" means EOF."""
        if not self.stream_stdout or self.process.stdout is None:
            return b""
        return await self.process.stdout.read(self.chunk_size)

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield stdout until EOF."""
        while True:
            chunk = await self.read_chunk()
            if not chunk:
                return
            yield chunk

    async def wait(self) -> int:
        """Wait for exit and for the log drains to finish."""
        returncode = await self.process.wait()
        if self._drain_tasks:
            await asyncio.gather(*self._drain_tasks, return_exceptions=True)
        logger.info(f"{self.label} process finished with code {returncode}")
        return returncode

    async def terminate(self) -> Optional[int]:
        """Stop the process if it is still running, then reap it."""
        if self.running:
            logger.info(f"Terminating {self.label} (pid {self.pid})")
            try:
                self.process.terminate()
            except ProcessLookupError:
                pass
            try:
                await asyncio.wait_for(self.process.wait(), self.TERMINATE_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.warning(f"{self.label} did not exit after SIGTERM, killing")
                try:
                    self.process.kill()
                except ProcessLookupError:
                    pass
        return await self.wait()
