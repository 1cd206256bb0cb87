"""Control messages exchanged over the ingestion WebSocket.

Inbound messages form a closed set of variants keyed by their `type` field.
Anything that is not valid JSON, not an object, carries an unknown `type`, or
fails validation is rejected with `MalformedMessageError`.
"""

from typing import Literal

import orjson
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator

from app.domain.utils.idgen import is_valid_stream_id
from app.utils.app_errors import MalformedMessageError


class ControlMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class RecordingPreference(ControlMessage):
    """First message of a streaming connection; triggers session creation."""

    type: Literal["recording-preference"] = "recording-preference"
    should_record: StrictBool = Field(alias="shouldRecord")
    stream_id: str | None = Field(default=None, alias="streamId")

    @field_validator("stream_id")
    @classmethod
    def check_stream_id(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_stream_id(value):
            raise ValueError("streamId must look like 'stream-<token>'")
        return value


CONTROL_MESSAGE_TYPES: dict[str, type[ControlMessage]] = {
    "recording-preference": RecordingPreference,
}


def parse_control_message(raw: str | bytes) -> ControlMessage:
    """Parse and validate an inbound control message.

    Raises:
        MalformedMessageError: If the payload is not a known, valid control message
    """
    try:
        payload = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MalformedMessageError(f"Control message is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedMessageError("Control message must be a JSON object")

    message_type = payload.get("type")
    model = CONTROL_MESSAGE_TYPES.get(message_type) if isinstance(message_type, str) else None
    if model is None:
        raise MalformedMessageError(f"Unrecognized control message type: {message_type!r}")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid {message_type} message: {e}") from e


class StreamCreatedEvent(BaseModel):
    """Sent to the client once its stream session is running."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["stream-created"] = "stream-created"
    stream_id: str = Field(alias="streamId")
    hls_url: str = Field(alias="hlsUrl")
    recording_url: str | None = Field(default=None, alias="recordingUrl")
    player_url: str = Field(alias="playerUrl")
    recording_player_url: str | None = Field(default=None, alias="recordingPlayerUrl")

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump(by_alias=True)).decode()
