"""Supervision of one transcoder process.

The supervisor owns a single spawned process and turns its low-level events into
one termination signal for the stream:
- a stderr line containing a fatal marker
- the process exiting, whatever the exit code

The signal is delivered once through `on_terminated(stream_id, error)`. The
supervisor only knows the stream id, never the session object.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from app.utils.app_errors import AppError, ProcessRuntimeError, ProcessSpawnError

from .stdin_writer import StdinWriter

# Substrings of ffmpeg diagnostics that mean the stream cannot recover
FATAL_STDERR_MARKERS: tuple[str, ...] = (
    "Connection refused",
    "Failed to connect",
    "Invalid data found",
    "Connection timed out",
)

# asyncio's default 64 KiB line limit is too small for some ffmpeg dumps
STDERR_LINE_LIMIT = 1024 * 1024

Spawner = Callable[..., Awaitable[Any]]
TerminationCallback = Callable[[str, AppError], None]


async def spawn_subprocess(*argv: str) -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
        limit=STDERR_LINE_LIMIT,
    )


def match_fatal_marker(line: str) -> str | None:
    for marker in FATAL_STDERR_MARKERS:
        if marker in line:
            return marker
    return None


class ProcessSupervisor:
    def __init__(
        self,
        stream_id: str,
        on_terminated: TerminationCallback,
        spawner: Spawner = spawn_subprocess,
    ):
        self.stream_id = stream_id
        self._on_terminated = on_terminated
        self._spawner = spawner
        self._process: Any = None
        self._writer: StdinWriter | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._notified = False
        self._terminated = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def writer(self) -> StdinWriter | None:
        return self._writer

    async def spawn(self, argv: list[str]) -> None:
        """Start the transcoder.

        Args:
            argv: Full command line, executable first

        Raises:
            ProcessSpawnError: If the process cannot be started
        """
        if self._process is not None:
            raise RuntimeError(f"Transcoder for stream {self.stream_id} already spawned")

        logger.debug(f"Spawning transcoder for stream {self.stream_id}: {' '.join(argv)}")
        try:
            process = await self._spawner(*argv)
        except (OSError, ValueError) as e:
            raise ProcessSpawnError(
                f"Failed to start transcoder for stream {self.stream_id}: {e}"
            ) from e

        self._process = process
        self._writer = StdinWriter(self.stream_id, process.stdin)
        self._watch_task = asyncio.get_running_loop().create_task(
            self._watch(), name=f"transcoder-watch-{self.stream_id}"
        )
        logger.info(f"Transcoder started for stream {self.stream_id} (pid={process.pid})")

        if self._terminated:
            logger.info(f"Stream {self.stream_id} torn down while spawning, stopping transcoder")
            self._stop_process()

    def write(self, frame: bytes) -> bool:
        """Forward one frame to the transcoder's stdin without blocking.

        Returns:
            False if the pipe is saturated and a drain notification is armed

        Raises:
            BrokenPipeError, ConnectionResetError: If stdin is gone
        """
        if self._writer is None or self._terminated:
            raise BrokenPipeError(f"Transcoder for stream {self.stream_id} is not accepting input")
        return self._writer.write(frame)

    async def _watch(self) -> None:
        try:
            await self._read_diagnostics()
            returncode = await self._process.wait()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Transcoder monitor failed for stream {self.stream_id}")
            self._notify(ProcessRuntimeError(f"Transcoder monitor failed: {e}"))
            return

        logger.info(f"Transcoder exited for stream {self.stream_id} with code {returncode}")
        self._notify(
            ProcessRuntimeError(f"Transcoder for stream {self.stream_id} exited with code {returncode}")
        )

    async def _read_diagnostics(self) -> None:
        stderr = self._process.stderr
        if stderr is None:
            return

        while True:
            try:
                line = await stderr.readline()
            except ValueError as e:
                logger.warning(f"ffmpeg [{self.stream_id}]: oversized diagnostic line dropped: {e}")
                continue
            if not line:
                return

            text = line.decode(errors="replace").rstrip()
            if not text:
                continue

            marker = match_fatal_marker(text)
            if marker is None:
                logger.debug(f"ffmpeg [{self.stream_id}]: {text}")
                continue

            logger.error(f"Critical transcoder error for stream {self.stream_id}: {text}")
            self._notify(
                ProcessRuntimeError(f"Transcoder for stream {self.stream_id} reported '{marker}'")
            )

    def _notify(self, error: AppError) -> None:
        if self._notified:
            return
        self._notified = True
        try:
            self._on_terminated(self.stream_id, error)
        except Exception:
            logger.exception(f"Termination handler failed for stream {self.stream_id}")

    def terminate(self) -> None:
        """Close stdin, then signal the process. Idempotent, never raises."""
        if self._terminated:
            return
        self._terminated = True
        # Teardown is already underway, later process events need no callback
        self._notified = True
        self._stop_process()

    def _stop_process(self) -> None:
        if self._writer is not None:
            try:
                self._writer.close()
            except Exception as e:
                logger.warning(f"Failed to close stdin of stream {self.stream_id}: {e}")

        if self.is_running:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass
            except Exception as e:
                logger.warning(f"Failed to terminate transcoder of stream {self.stream_id}: {e}")

    async def wait_closed(self, timeout: float) -> int | None:
        """Wait for the process to exit, killing it once the timeout elapses."""
        if self._process is None:
            return None

        try:
            return await asyncio.wait_for(asyncio.shield(self._process.wait()), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Transcoder for stream {self.stream_id} still running after {timeout}s, killing"
            )

        try:
            self._process.kill()
        except ProcessLookupError:
            pass
        return await self._process.wait()
