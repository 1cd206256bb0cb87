from pydantic import BaseModel

from app.core.config import config


class AppEnvironConfig(BaseModel):
    DEBUG: bool = config.get_bool("DEBUG")

    # HTTP / WebSocket server
    API_HOST: str = config.get_str("API_HOST", "0.0.0.0")  # type: ignore
    API_PORT: int = config.get_int("API_PORT", 8083)
    # The stream table lives in process memory, more than one worker splits it
    API_WORKERS: int = config.get_int("API_WORKERS", 1)

    # Public URLs handed back to the client in the stream-created event
    PUBLIC_BASE_URL: str = config.get_str("PUBLIC_BASE_URL", "http://localhost:8083").rstrip("/")  # type: ignore
    PLAYER_BASE_URL: str = config.get_str("PLAYER_BASE_URL", "http://localhost:3000").rstrip("/")  # type: ignore

    # Output locations
    HLS_ROOT: str = config.get_str("HLS_ROOT", "hls")  # type: ignore
    RECORDINGS_ROOT: str = config.get_str("RECORDINGS_ROOT", "recordings")  # type: ignore

    # Transcoder
    FFMPEG_PATH: str = config.get_str("FFMPEG_PATH", "ffmpeg")  # type: ignore
    AUDIO_CODEC: str = config.get_str("AUDIO_CODEC", "aac")  # type: ignore
    AUDIO_BITRATE: str = config.get_str("AUDIO_BITRATE", "128k")  # type: ignore
    AUDIO_SAMPLE_RATE: int = config.get_int("AUDIO_SAMPLE_RATE", 48000)
    AUDIO_CHANNELS: int = config.get_int("AUDIO_CHANNELS", 1)
    HLS_SEGMENT_SECONDS: int = config.get_int("HLS_SEGMENT_SECONDS", 1)
    HLS_LIST_SIZE: int = config.get_int("HLS_LIST_SIZE", 2)
    RECORDING_CODEC: str = config.get_str("RECORDING_CODEC", "libopus")  # type: ignore
    RECORDING_FORMAT: str = config.get_str("RECORDING_FORMAT", "webm")  # type: ignore

    # Optional RTMP push, formatted with the stream id, e.g. rtmp://host:1935/live/{stream_id}
    RTMP_RELAY_URL: str | None = config.get_str("RTMP_RELAY_URL")

    # Seconds to wait for transcoders to exit at shutdown before killing them
    STREAM_SHUTDOWN_TIMEOUT_SECONDS: int = config.get_int("STREAM_SHUTDOWN_TIMEOUT_SECONDS", 5)

    # Observability
    LOGFIRE_ENABLE: bool = config.get_bool("LOGFIRE_ENABLE")
    LOGFIRE_TOKEN: str | None = config.get_str("LOGFIRE_TOKEN")


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
