"""HTTP access to stream outputs.

HLS playlists and segments are served as static files. Recordings go through a
dedicated route that always answers with an audio media type, whatever the
file extension would suggest.
"""

from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from app.domain.live.stream.output_layout import HLS_ROUTE, RECORDINGS_ROUTE
from app.domain.live.stream.stream_manager import StreamSessionManager, get_stream_manager
from app.domain.utils.idgen import is_valid_stream_id

RECORDING_MEDIA_TYPES = {
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
}

router = APIRouter()


def recording_media_type(recording_format: str) -> str:
    return RECORDING_MEDIA_TYPES.get(recording_format, f"audio/{recording_format}")


def mount_hls(app: FastAPI, hls_root: Path) -> None:
    app.mount(HLS_ROUTE, StaticFiles(directory=hls_root, check_dir=False), name="hls")


@router.get(RECORDINGS_ROUTE + "/{filename}")
async def get_recording(
    filename: str,
    manager: StreamSessionManager = Depends(get_stream_manager),
):
    layout = manager.layout
    stream_id, _, extension = filename.rpartition(".")
    if extension != layout.recording_format or not is_valid_stream_id(stream_id):
        raise HTTPException(status_code=404, detail="Recording not found")

    path = layout.recordings_root / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Recording not found")

    return FileResponse(path, media_type=recording_media_type(layout.recording_format))
