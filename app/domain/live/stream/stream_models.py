"""Stream domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from app.app_config import AppEnvironConfig
from app.schemas import StreamState

if TYPE_CHECKING:
    from .process_supervisor import ProcessSupervisor


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EncodingParams(BaseModel):
    """Transcoder parameters shared by every stream."""

    model_config = ConfigDict(frozen=True)

    audio_codec: str = "aac"
    audio_bitrate: str = "128k"
    sample_rate: int = 48000
    channels: int = 1

    # Sliding window playlist: segment length and number of segments kept
    hls_segment_seconds: int = 1
    hls_list_size: int = 2

    recording_codec: str = "libopus"
    recording_format: str = "webm"

    @classmethod
    def from_config(cls, cfg: AppEnvironConfig) -> EncodingParams:
        return cls(
            audio_codec=cfg.AUDIO_CODEC,
            audio_bitrate=cfg.AUDIO_BITRATE,
            sample_rate=cfg.AUDIO_SAMPLE_RATE,
            channels=cfg.AUDIO_CHANNELS,
            hls_segment_seconds=cfg.HLS_SEGMENT_SECONDS,
            hls_list_size=cfg.HLS_LIST_SIZE,
            recording_codec=cfg.RECORDING_CODEC,
            recording_format=cfg.RECORDING_FORMAT,
        )


class StreamOutputs(BaseModel):
    """Output destinations of one stream, fixed at creation."""

    model_config = ConfigDict(frozen=True)

    hls_dir: Path
    playlist_path: Path
    segment_pattern: Path
    recording_path: Path | None = None
    relay_url: str | None = None


@dataclass
class StreamSession:
    """One client's live audio feed and the transcoder bound to it."""

    id: str
    client_id: str
    recording_enabled: bool
    outputs: StreamOutputs
    start_time: datetime = field(default_factory=utc_now)
    state: StreamState = StreamState.CREATED
    supervisor: ProcessSupervisor | None = field(default=None, repr=False)

    def attach_supervisor(self, supervisor: ProcessSupervisor) -> None:
        if self.supervisor is not None:
            raise RuntimeError(f"Stream {self.id} already owns a transcoder process")
        self.supervisor = supervisor

    @property
    def pid(self) -> int | None:
        return self.supervisor.pid if self.supervisor else None

    @property
    def frames_received(self) -> int:
        writer = self.supervisor.writer if self.supervisor else None
        return writer.frames_written if writer else 0

    @property
    def bytes_received(self) -> int:
        writer = self.supervisor.writer if self.supervisor else None
        return writer.bytes_written if writer else 0


class StreamSessionResponse(BaseModel):
    """Read-only view of a stream session for diagnostics."""

    stream_id: str
    client_id: str
    state: StreamState
    recording_enabled: bool
    start_time: datetime
    hls_dir: str
    recording_path: str | None = None
    relay_url: str | None = None
    pid: int | None = None
    frames_received: int = 0
    bytes_received: int = 0

    @classmethod
    def from_session(cls, session: StreamSession) -> StreamSessionResponse:
        outputs = session.outputs
        return cls(
            stream_id=session.id,
            client_id=session.client_id,
            state=session.state,
            recording_enabled=session.recording_enabled,
            start_time=session.start_time,
            hls_dir=str(outputs.hls_dir),
            recording_path=str(outputs.recording_path) if outputs.recording_path else None,
            relay_url=outputs.relay_url,
            pid=session.pid,
            frames_received=session.frames_received,
            bytes_received=session.bytes_received,
        )
