from fastapi import APIRouter, Depends, Query

from app.api.v1.schemas.base import ApiOut
from app.api.v1.schemas.stream import ListStreamsOut
from app.domain.live.stream.stream_manager import StreamSessionManager, get_stream_manager
from app.domain.live.stream.stream_models import StreamSessionResponse

router = APIRouter(prefix="/stream")


@router.get("/list_streams")
async def list_streams(
    manager: StreamSessionManager = Depends(get_stream_manager),
) -> ApiOut[ListStreamsOut]:
    """List the streams currently registered."""
    streams = [StreamSessionResponse.from_session(s) for s in manager.list_sessions()]
    return ApiOut[ListStreamsOut](results=ListStreamsOut(streams=streams, total=len(streams)))


@router.get("/get_stream")
async def get_stream(
    stream_id: str = Query(..., description="Stream ID to retrieve"),
    manager: StreamSessionManager = Depends(get_stream_manager),
) -> ApiOut[StreamSessionResponse]:
    """Get a registered stream by id."""
    session = manager.require_session(stream_id)
    return ApiOut[StreamSessionResponse](results=StreamSessionResponse.from_session(session))
