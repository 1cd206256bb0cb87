"""Browser audio ingestion over WebSocket.

Protocol:
- first text frame: {"type": "recording-preference", "shouldRecord": bool, "streamId"?: str}
- then binary frames: encoded audio, forwarded verbatim to the transcoder
- server replies once with a "stream-created" event
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from loguru import logger

from app.domain.live.stream.stream_manager import StreamSessionManager, get_stream_manager
from app.domain.live.stream.stream_models import StreamSession
from app.domain.utils.idgen import new_client_id
from app.utils.app_errors import AppError, MalformedMessageError

from .schemas.control import RecordingPreference, StreamCreatedEvent, parse_control_message

router = APIRouter()


def build_stream_created_event(
    manager: StreamSessionManager,
    session: StreamSession,
) -> StreamCreatedEvent:
    layout = manager.layout
    return StreamCreatedEvent(
        stream_id=session.id,
        hls_url=layout.hls_url(session.id),
        recording_url=layout.recording_url(session.id) if session.recording_enabled else None,
        player_url=layout.player_url(session.id),
        recording_player_url=(
            layout.recording_player_url(session.id) if session.recording_enabled else None
        ),
    )


@router.websocket("/")
@router.websocket("/ws")
async def ingest_stream(
    websocket: WebSocket,
    manager: StreamSessionManager = Depends(get_stream_manager),
):
    await websocket.accept()
    client_id = new_client_id()
    session: StreamSession | None = None
    logger.info(f"Client connected: {client_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            frame = message.get("bytes")
            if frame is not None:
                if session is None:
                    logger.debug(f"Dropping {len(frame)} bytes from {client_id} before stream setup")
                    continue
                manager.ingest(session.id, frame)
                continue

            text = message.get("text")
            if text is None:
                continue

            try:
                control = parse_control_message(text)
            except MalformedMessageError as e:
                logger.warning(f"{e.errcode} {e.erresid} from {client_id}: {e.errmesg}")
                continue

            if not isinstance(control, RecordingPreference):
                continue

            if session is not None:
                logger.warning(f"Client {client_id} already streaming to {session.id}, ignoring preference")
                continue

            try:
                session = await manager.create_session(
                    client_id=client_id,
                    recording_enabled=control.should_record,
                    requested_id=control.stream_id,
                )
            except AppError as e:
                logger.error(
                    f"Failed to create stream for {client_id}: {e.errcode} {e.erresid} {e.errmesg}"
                )
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
                return

            event = build_stream_created_event(manager, session)
            await websocket.send_text(event.to_json())
            logger.info(f"Stream {session.id} created for {client_id}")

    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception(f"WebSocket error for client {client_id}")
    finally:
        logger.info(f"Client disconnected: {client_id}")
        if session is not None:
            manager.remove_session(session.id)
