"""Tests for HLS and recording file serving."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.outputs import mount_hls, recording_media_type, router
from app.app_config import AppEnvironConfig
from app.domain.live.stream.output_layout import OutputLayout
from app.domain.live.stream.stream_manager import StreamSessionManager, get_stream_manager


@pytest.fixture
def layout(stream_config: AppEnvironConfig) -> OutputLayout:
    layout = OutputLayout(stream_config)
    layout.ensure_roots()
    return layout


@pytest.fixture
def client(layout: OutputLayout) -> TestClient:
    manager = MagicMock(spec=StreamSessionManager)
    manager.layout = layout
    app = FastAPI()
    app.dependency_overrides[get_stream_manager] = lambda: manager
    app.include_router(router)
    mount_hls(app, layout.hls_root)
    return TestClient(app)


class TestHls:
    def test_serves_playlist_and_segments(self, client: TestClient, layout: OutputLayout):
        stream_dir = layout.hls_root / "stream-abc"
        stream_dir.mkdir()
        (stream_dir / "audio.m3u8").write_text("#EXTM3U\n")
        (stream_dir / "segment_00001.ts").write_bytes(b"\x47" * 188)

        playlist = client.get("/hls/stream-abc/audio.m3u8")
        segment = client.get("/hls/stream-abc/segment_00001.ts")

        assert playlist.status_code == 200
        assert playlist.text == "#EXTM3U\n"
        assert segment.status_code == 200
        assert segment.content == b"\x47" * 188

    def test_missing_playlist(self, client: TestClient):
        assert client.get("/hls/stream-missing/audio.m3u8").status_code == 404


class TestRecordings:
    def test_serves_recording_as_audio(self, client: TestClient, layout: OutputLayout):
        (layout.recordings_root / "stream-abc.webm").write_bytes(b"\x1a\x45\xdf\xa3")

        response = client.get("/recordings/stream-abc.webm")

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/webm"
        assert response.content == b"\x1a\x45\xdf\xa3"

    def test_missing_recording(self, client: TestClient):
        assert client.get("/recordings/stream-missing.webm").status_code == 404

    def test_wrong_extension(self, client: TestClient, layout: OutputLayout):
        (layout.recordings_root / "stream-abc.mp4").write_bytes(b"data")

        assert client.get("/recordings/stream-abc.mp4").status_code == 404

    def test_invalid_stream_id(self, client: TestClient, layout: OutputLayout):
        (layout.recordings_root / "notes.webm").write_bytes(b"data")

        assert client.get("/recordings/notes.webm").status_code == 404


@pytest.mark.parametrize(
    "recording_format,media_type",
    [("webm", "audio/webm"), ("mp3", "audio/mpeg"), ("flac", "audio/flac")],
)
def test_recording_media_type(recording_format: str, media_type: str):
    assert recording_media_type(recording_format) == media_type
