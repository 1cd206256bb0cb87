from pydantic import BaseModel

from app.domain.live.stream.stream_models import StreamSessionResponse


class ListStreamsOut(BaseModel):
    streams: list[StreamSessionResponse]
    total: int
