"""Stream session manager.

Owns the process-wide table of live stream sessions. Every mutation runs on the
event loop thread: `ingest()` and `remove_session()` are synchronous, so a
teardown always completes before the next operation on the same stream id is
processed. Every trigger (client disconnect, fatal transcoder diagnostic,
transcoder exit, spawn failure) ends in `_teardown()`, which acts on the session
object it was given, so a stale trigger never reaches a newer session that
reused the same id.
"""

import asyncio
import shutil
from functools import partial

from loguru import logger

from app.app_config import AppEnvironConfig, get_app_environ_config
from app.schemas import StreamState
from app.utils.app_errors import (
    AppError,
    ConflictError,
    MalformedMessageError,
    ProcessSpawnError,
    ResourceError,
    UnknownSessionError,
)

from ...utils.idgen import is_valid_stream_id, new_stream_id
from .ffmpeg_args import build_ffmpeg_args
from .output_layout import OutputLayout
from .process_supervisor import ProcessSupervisor, Spawner, spawn_subprocess
from .stream_models import EncodingParams, StreamSession
from .stream_state_machine import StreamStateMachine


class StreamSessionManager:
    """Maps stream ids to sessions, each owning exactly one transcoder process."""

    def __init__(
        self,
        cfg: AppEnvironConfig | None = None,
        spawner: Spawner = spawn_subprocess,
    ):
        self.cfg = cfg or get_app_environ_config()
        self.layout = OutputLayout(self.cfg)
        self.params = EncodingParams.from_config(self.cfg)
        self._spawner = spawner
        self._streams: dict[str, StreamSession] = {}
        # Supervisors torn down but possibly not yet exited, awaited at shutdown
        self._retired: set[ProcessSupervisor] = set()

    def __len__(self) -> int:
        return len(self._streams)

    def __contains__(self, stream_id: str) -> bool:
        return stream_id in self._streams

    def initialize(self) -> None:
        """Prepare output roots and check the transcoder binary is available.

        Raises:
            ResourceError: If the service cannot produce any output
        """
        self.layout.ensure_roots()
        self.layout.relay_url(new_stream_id())
        if self._spawner is spawn_subprocess and shutil.which(self.cfg.FFMPEG_PATH) is None:
            raise ResourceError(f"Transcoder binary not found: {self.cfg.FFMPEG_PATH}")
        logger.info(
            f"Stream manager ready (hls_root={self.layout.hls_root}, "
            f"recordings_root={self.layout.recordings_root}, ffmpeg={self.cfg.FFMPEG_PATH})"
        )

    def _allocate_stream_id(self, requested_id: str | None) -> str:
        if requested_id is None:
            stream_id = new_stream_id()
            while stream_id in self._streams:
                stream_id = new_stream_id()
            return stream_id

        if not is_valid_stream_id(requested_id):
            raise MalformedMessageError(f"Invalid stream id: {requested_id!r}")
        if requested_id in self._streams:
            raise ConflictError(f"Stream already exists: {requested_id}")
        return requested_id

    async def create_session(
        self,
        client_id: str,
        recording_enabled: bool,
        requested_id: str | None = None,
    ) -> StreamSession:
        """Create a stream session and start its transcoder.

        Args:
            client_id: Identifier of the owning connection, for logs only
            recording_enabled: Whether an archival recording is produced
            requested_id: Client-supplied stream id, generated when omitted

        Returns:
            The ACTIVE session, with its resolved outputs

        Raises:
            ConflictError: If requested_id is already registered
            MalformedMessageError: If requested_id is not a valid stream id
            ResourceError: If the output directories cannot be created
            ProcessSpawnError: If the transcoder fails to start
        """
        stream_id = self._allocate_stream_id(requested_id)
        outputs = self.layout.resolve(stream_id, recording_enabled)
        self.layout.prepare(outputs)

        session = StreamSession(
            id=stream_id,
            client_id=client_id,
            recording_enabled=recording_enabled,
            outputs=outputs,
        )
        supervisor = ProcessSupervisor(
            stream_id, partial(self._on_process_terminated, session), self._spawner
        )
        session.attach_supervisor(supervisor)

        # Reserve the id before awaiting the spawn so concurrent creators collide
        self._streams[stream_id] = session
        logger.info(
            f"Creating stream {stream_id} for client {client_id} (recording={recording_enabled})"
        )

        argv = build_ffmpeg_args(self.cfg.FFMPEG_PATH, outputs, self.params)
        try:
            await supervisor.spawn(argv)
        except ProcessSpawnError as e:
            logger.error(f"{e.errcode} {e.erresid} {e.errmesg}")
            self._teardown(session)
            raise

        if session.state != StreamState.CREATED:
            # Torn down while the spawn was in flight, the supervisor stopped the process
            if supervisor.is_running:
                self._retired.add(supervisor)
            raise ProcessSpawnError(f"Stream {stream_id} was removed while starting")

        self._transition(session, StreamState.ACTIVE)
        return session

    def ingest(self, stream_id: str, frame: bytes) -> None:
        """Forward one audio frame to the stream's transcoder.

        Frames for unknown or closing streams are dropped silently. Never blocks.
        """
        session = self._streams.get(stream_id)
        if session is None or not StreamStateMachine.is_accepting(session.state):
            logger.debug(f"Dropping {len(frame)} bytes for inactive stream {stream_id}")
            return

        try:
            session.supervisor.write(frame)  # type: ignore[union-attr]
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.error(f"Error writing to stream {stream_id}: {e}")
            self._teardown(session)

    def remove_session(self, stream_id: str) -> None:
        """Tear a stream down. Idempotent and safe from any trigger."""
        session = self._streams.get(stream_id)
        if session is None:
            logger.debug(f"Stream {stream_id} already removed")
            return
        self._teardown(session)

    def _teardown(self, session: StreamSession) -> None:
        if StreamStateMachine.is_tearing_down(session.state):
            logger.debug(f"Stream {session.id} already removed")
            return

        self._transition(session, StreamState.TERMINATING)
        supervisor = session.supervisor
        try:
            if supervisor is not None:
                supervisor.terminate()
                self._retired = {s for s in self._retired if s.is_running}
                if supervisor.is_running:
                    self._retired.add(supervisor)
        finally:
            if self._streams.get(session.id) is session:
                del self._streams[session.id]
            self._transition(session, StreamState.CLOSED)

        logger.info(f"Stream {session.id} removed (client {session.client_id})")

    def get_session(self, stream_id: str) -> StreamSession | None:
        return self._streams.get(stream_id)

    def require_session(self, stream_id: str) -> StreamSession:
        """Get a registered session.

        Raises:
            UnknownSessionError: If no stream is registered under stream_id
        """
        session = self._streams.get(stream_id)
        if session is None:
            raise UnknownSessionError(f"Stream not found: {stream_id}")
        return session

    def list_sessions(self) -> list[StreamSession]:
        return list(self._streams.values())

    async def shutdown(self, timeout: float | None = None) -> None:
        """Remove every stream and wait for all transcoders to exit."""
        if timeout is None:
            timeout = self.cfg.STREAM_SHUTDOWN_TIMEOUT_SECONDS

        stream_ids = list(self._streams)
        logger.info(f"Shutting down stream manager ({len(stream_ids)} active streams)")
        for stream_id in stream_ids:
            self.remove_session(stream_id)

        retired = list(self._retired)
        self._retired.clear()
        if retired:
            await asyncio.gather(
                *(supervisor.wait_closed(timeout) for supervisor in retired),
                return_exceptions=True,
            )
        logger.info("Stream manager shut down")

    def _on_process_terminated(
        self, session: StreamSession, stream_id: str, error: AppError
    ) -> None:
        if StreamStateMachine.is_tearing_down(session.state):
            return
        logger.warning(f"{error.errcode} {error.erresid} {error.errmesg}")
        self._teardown(session)

    def _transition(self, session: StreamSession, new_state: StreamState) -> None:
        if not StreamStateMachine.can_transition(session.state, new_state):
            valid = StreamStateMachine.get_valid_transitions(session.state)
            allowed = sorted(s.value for s in valid)
            raise RuntimeError(
                f"Invalid stream state transition for {session.id}: "
                f"{session.state} -> {new_state} (allowed: {allowed})"
            )
        logger.debug(f"Stream {session.id} state {session.state} -> {new_state}")
        session.state = new_state


_stream_manager: StreamSessionManager | None = None


def init_stream_manager(
    cfg: AppEnvironConfig | None = None,
    spawner: Spawner = spawn_subprocess,
) -> StreamSessionManager:
    """Create and initialize the process-wide stream manager.

    Raises:
        ResourceError: If the manager cannot initialize
    """
    global _stream_manager
    if _stream_manager is not None:
        raise RuntimeError("Stream manager already initialized")

    manager = StreamSessionManager(cfg, spawner)
    manager.initialize()
    _stream_manager = manager
    return manager


def get_stream_manager() -> StreamSessionManager:
    if _stream_manager is None:
        raise RuntimeError("Stream manager not initialized")
    return _stream_manager


async def close_stream_manager() -> None:
    global _stream_manager
    if _stream_manager is None:
        return
    manager, _stream_manager = _stream_manager, None
    await manager.shutdown()
