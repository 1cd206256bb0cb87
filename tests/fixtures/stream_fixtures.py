"""Stream manager fixtures backed by a fake transcoder."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from app.app_config import AppEnvironConfig
from app.domain.live.stream.stream_manager import StreamSessionManager

from .fake_process import FakeSpawner


@pytest.fixture
def stream_config(tmp_path: Path) -> AppEnvironConfig:
    return AppEnvironConfig(
        HLS_ROOT=str(tmp_path / "hls"),
        RECORDINGS_ROOT=str(tmp_path / "recordings"),
        PUBLIC_BASE_URL="http://media.test",
        PLAYER_BASE_URL="http://player.test",
        FFMPEG_PATH="ffmpeg",
        RTMP_RELAY_URL=None,
        STREAM_SHUTDOWN_TIMEOUT_SECONDS=1,
    )


@pytest.fixture
def fake_spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture
async def stream_manager(
    stream_config: AppEnvironConfig,
    fake_spawner: FakeSpawner,
) -> AsyncGenerator[StreamSessionManager, None]:
    manager = StreamSessionManager(stream_config, spawner=fake_spawner)
    manager.initialize()
    yield manager
    await manager.shutdown(timeout=0.1)
