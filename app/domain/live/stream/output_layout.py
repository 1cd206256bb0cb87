"""File-system layout and public URLs of stream outputs.

Layout:
- {hls_root}/{stream_id}/audio.m3u8          rolling playlist
- {hls_root}/{stream_id}/segment_00001.ts    sliding window of segments
- {recordings_root}/{stream_id}.{format}     archival recording (optional)
"""

from pathlib import Path

from loguru import logger

from app.app_config import AppEnvironConfig
from app.utils.app_errors import ResourceError

from .stream_models import StreamOutputs

PLAYLIST_NAME = "audio.m3u8"
SEGMENT_PATTERN = "segment_%05d.ts"
SEGMENT_GLOB = "segment_*.ts"

HLS_ROUTE = "/hls"
RECORDINGS_ROUTE = "/recordings"
PLAYER_ROUTE = "/player"


class OutputLayout:
    """Resolves, creates and publishes per-stream output locations."""

    def __init__(self, cfg: AppEnvironConfig):
        self.hls_root = Path(cfg.HLS_ROOT).resolve()
        self.recordings_root = Path(cfg.RECORDINGS_ROOT).resolve()
        self.recording_format = cfg.RECORDING_FORMAT
        self.relay_url_template = cfg.RTMP_RELAY_URL
        self.public_base_url = cfg.PUBLIC_BASE_URL
        self.player_base_url = cfg.PLAYER_BASE_URL

    def ensure_roots(self) -> None:
        """Create the output roots.

        Raises:
            ResourceError: If a root cannot be created
        """
        for root in (self.hls_root, self.recordings_root):
            try:
                root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ResourceError(f"Cannot create output root {root}: {e}") from e

    def resolve(self, stream_id: str, recording_enabled: bool) -> StreamOutputs:
        hls_dir = self.hls_root / stream_id
        recording_path = (
            self.recordings_root / f"{stream_id}.{self.recording_format}"
            if recording_enabled
            else None
        )
        return StreamOutputs(
            hls_dir=hls_dir,
            playlist_path=hls_dir / PLAYLIST_NAME,
            segment_pattern=hls_dir / SEGMENT_PATTERN,
            recording_path=recording_path,
            relay_url=self.relay_url(stream_id),
        )

    def relay_url(self, stream_id: str) -> str | None:
        """Format the relay template for a stream.

        Raises:
            ResourceError: If the template has placeholders other than {stream_id}
        """
        if not self.relay_url_template:
            return None
        try:
            return self.relay_url_template.format(stream_id=stream_id)
        except (KeyError, IndexError, ValueError) as e:
            raise ResourceError(
                f"Invalid RTMP_RELAY_URL template {self.relay_url_template!r}: {e!r}"
            ) from e

    def prepare(self, outputs: StreamOutputs) -> None:
        """Create the directories the transcoder writes into.

        A playlist or segments left behind by an earlier session with the same id
        are deleted, so the new playlist starts empty. The recording file itself
        is created by the transcoder, only its parent directory is prepared here.

        Raises:
            ResourceError: If a directory cannot be created
        """
        directories = [outputs.hls_dir]
        if outputs.recording_path is not None:
            directories.append(outputs.recording_path.parent)

        for directory in directories:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ResourceError(f"Cannot create output directory {directory}: {e}") from e

        stale = [outputs.playlist_path, *outputs.hls_dir.glob(SEGMENT_GLOB)]
        for path in stale:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise ResourceError(f"Cannot remove stale HLS output {path}: {e}") from e

        logger.debug(f"Prepared outputs in {outputs.hls_dir} (recording={outputs.recording_path})")

    def hls_url(self, stream_id: str) -> str:
        return f"{self.public_base_url}{HLS_ROUTE}/{stream_id}/{PLAYLIST_NAME}"

    def recording_url(self, stream_id: str) -> str:
        return f"{self.public_base_url}{RECORDINGS_ROUTE}/{stream_id}.{self.recording_format}"

    def player_url(self, stream_id: str) -> str:
        return f"{self.player_base_url}{PLAYER_ROUTE}/{stream_id}"

    def recording_player_url(self, stream_id: str) -> str:
        return f"{self.player_url(stream_id)}?type=recording"
