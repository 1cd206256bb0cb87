"""Tests for the ingestion WebSocket endpoint."""

from unittest.mock import ANY, AsyncMock, MagicMock

import orjson
import pytest
from fastapi import FastAPI, WebSocketDisconnect, status
from fastapi.testclient import TestClient

from app.api.ws.ingest import router
from app.app_config import AppEnvironConfig
from app.domain.live.stream.output_layout import OutputLayout
from app.domain.live.stream.stream_manager import StreamSessionManager, get_stream_manager
from app.domain.live.stream.stream_models import StreamSession
from app.schemas import StreamState
from app.utils.app_errors import ConflictError, ProcessSpawnError, ResourceError
from tests.fixtures.fake_process import FakeSpawner

PREFERENCE = orjson.dumps({"type": "recording-preference", "shouldRecord": False}).decode()


def make_session(layout: OutputLayout, stream_id: str, recording_enabled: bool) -> StreamSession:
    return StreamSession(
        id=stream_id,
        client_id="client-1",
        recording_enabled=recording_enabled,
        outputs=layout.resolve(stream_id, recording_enabled),
        state=StreamState.ACTIVE,
    )


@pytest.fixture
def mock_manager(stream_config: AppEnvironConfig) -> MagicMock:
    """StreamSessionManager mock returning a live session on creation."""
    manager = MagicMock(spec=StreamSessionManager)
    manager.layout = OutputLayout(stream_config)
    manager.create_session = AsyncMock(
        return_value=make_session(manager.layout, "stream-abc", recording_enabled=False)
    )
    return manager


@pytest.fixture
def client(mock_manager: MagicMock) -> TestClient:
    app = FastAPI()
    app.dependency_overrides[get_stream_manager] = lambda: mock_manager
    app.include_router(router)
    return TestClient(app)


class TestStreamCreation:
    def test_preference_creates_stream(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_text(PREFERENCE)
            event = orjson.loads(websocket.receive_text())

        assert event["type"] == "stream-created"
        assert event["streamId"] == "stream-abc"
        assert event["hlsUrl"] == "http://media.test/hls/stream-abc/audio.m3u8"
        assert event["recordingUrl"] is None
        assert event["playerUrl"] == "http://player.test/player/stream-abc"
        assert event["recordingPlayerUrl"] is None
        mock_manager.create_session.assert_awaited_once_with(
            client_id=ANY, recording_enabled=False, requested_id=None
        )

    def test_recording_urls_when_recording(self, client: TestClient, mock_manager: MagicMock):
        mock_manager.create_session.return_value = make_session(
            mock_manager.layout, "stream-rec", recording_enabled=True
        )

        with client.websocket_connect("/ws") as websocket:
            websocket.send_text(
                orjson.dumps(
                    {"type": "recording-preference", "shouldRecord": True, "streamId": "stream-rec"}
                ).decode()
            )
            event = orjson.loads(websocket.receive_text())

        assert event["recordingUrl"] == "http://media.test/recordings/stream-rec.webm"
        assert event["recordingPlayerUrl"] == "http://player.test/player/stream-rec?type=recording"
        mock_manager.create_session.assert_awaited_once_with(
            client_id=ANY, recording_enabled=True, requested_id="stream-rec"
        )

    def test_malformed_message_is_skipped(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_text("not json")
            websocket.send_text('{"type": "unknown"}')
            websocket.send_text(PREFERENCE)
            event = orjson.loads(websocket.receive_text())

        assert event["streamId"] == "stream-abc"
        mock_manager.create_session.assert_awaited_once()

    def test_second_preference_is_ignored(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_text(PREFERENCE)
            websocket.receive_text()
            websocket.send_text(PREFERENCE)

        mock_manager.create_session.assert_awaited_once()

    @pytest.mark.parametrize(
        "error",
        [
            ProcessSpawnError("ffmpeg missing"),
            ConflictError("Stream already exists: stream-abc"),
            ResourceError("Invalid RTMP_RELAY_URL template"),
        ],
    )
    def test_creation_failure_closes_with_internal_error(
        self, client: TestClient, mock_manager: MagicMock, error: Exception
    ):
        mock_manager.create_session.side_effect = error

        with client.websocket_connect("/") as websocket:
            websocket.send_text(PREFERENCE)
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_text()

        assert exc_info.value.code == status.WS_1011_INTERNAL_ERROR
        mock_manager.remove_session.assert_not_called()


class TestAudioFrames:
    def test_frames_forwarded_after_creation(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_text(PREFERENCE)
            websocket.receive_text()
            websocket.send_bytes(b"frame-1")
            websocket.send_bytes(b"frame-2")

        assert [c.args for c in mock_manager.ingest.call_args_list] == [
            ("stream-abc", b"frame-1"),
            ("stream-abc", b"frame-2"),
        ]

    def test_frames_before_preference_are_dropped(
        self, client: TestClient, mock_manager: MagicMock
    ):
        with client.websocket_connect("/") as websocket:
            websocket.send_bytes(b"too-early")
            websocket.send_text(PREFERENCE)
            websocket.receive_text()

        mock_manager.ingest.assert_not_called()


class TestDisconnect:
    def test_disconnect_removes_stream(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_text(PREFERENCE)
            websocket.receive_text()

        mock_manager.remove_session.assert_called_once_with("stream-abc")

    def test_disconnect_before_setup(self, client: TestClient, mock_manager: MagicMock):
        with client.websocket_connect("/") as websocket:
            websocket.send_bytes(b"frame")

        mock_manager.create_session.assert_not_called()
        mock_manager.remove_session.assert_not_called()


class TestWithStreamManager:
    """End to end through a real manager and a fake transcoder."""

    def test_frames_reach_transcoder_and_disconnect_stops_it(
        self, stream_config: AppEnvironConfig, fake_spawner: FakeSpawner
    ):
        manager = StreamSessionManager(stream_config, spawner=fake_spawner)
        manager.initialize()
        app = FastAPI()
        app.dependency_overrides[get_stream_manager] = lambda: manager
        app.include_router(router)

        with TestClient(app) as client:
            with client.websocket_connect("/") as websocket:
                websocket.send_text(
                    '{"type": "recording-preference", "shouldRecord": true, "streamId": "stream-e2e"}'
                )
                event = orjson.loads(websocket.receive_text())
                websocket.send_bytes(b"chunk-1")
                websocket.send_bytes(b"chunk-2")

        assert event["streamId"] == "stream-e2e"
        process = fake_spawner.last
        assert process.stdin.frames == [b"chunk-1", b"chunk-2"]
        assert process.stdin.closed is True
        assert process.signals == ["SIGTERM"]
        assert len(manager) == 0
