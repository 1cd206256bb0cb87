"""Non-blocking writes into a transcoder's stdin pipe.

`write()` never waits. When the pipe transport's buffer is above its high-water
mark the frame is still accepted (the transport buffers it) and a single drain
waiter is armed, which only logs when the pipe has caught up. Nothing pauses
the producer, so a transcoder that stays slower than its input lets the
transport buffer grow without bound.
"""

import asyncio
from typing import Any

from loguru import logger


class StdinWriter:
    def __init__(self, stream_id: str, stdin: Any):
        self.stream_id = stream_id
        self._stdin = stdin
        self._drain_task: asyncio.Task[None] | None = None
        self.frames_written = 0
        self.bytes_written = 0

    @property
    def drain_armed(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def is_saturated(self) -> bool:
        transport = getattr(self._stdin, "transport", None)
        if transport is None:
            return False
        _, high = transport.get_write_buffer_limits()
        return transport.get_write_buffer_size() > high

    def write(self, frame: bytes) -> bool:
        """Write one frame.

        Returns:
            True if the pipe accepted the frame without backing up, False if the
            frame was buffered behind a saturated pipe

        Raises:
            BrokenPipeError, ConnectionResetError: If the pipe is already gone
        """
        if self._stdin.is_closing():
            raise BrokenPipeError(f"stdin of stream {self.stream_id} is closed")

        self._stdin.write(frame)
        self.frames_written += 1
        self.bytes_written += len(frame)

        if not self.is_saturated():
            return True

        if not self.drain_armed:
            logger.debug(f"stdin of stream {self.stream_id} saturated, waiting for drain")
            self._drain_task = asyncio.get_running_loop().create_task(self._wait_drain())
        return False

    async def _wait_drain(self) -> None:
        try:
            await self._stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"stdin of stream {self.stream_id} lost while draining: {e}")
            return
        logger.debug(f"stdin of stream {self.stream_id} drained")

    def close(self) -> None:
        """Cancel any pending drain and close the pipe so the transcoder sees EOF."""
        if self.drain_armed:
            self._drain_task.cancel()  # type: ignore[union-attr]
        self._drain_task = None
        if not self._stdin.is_closing():
            self._stdin.close()
