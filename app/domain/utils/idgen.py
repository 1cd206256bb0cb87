import re

from ulid import ULID

STREAM_ID_PREFIX = "stream-"
STREAM_ID_PATTERN = re.compile(r"stream-[A-Za-z0-9_-]{1,64}")


def new_ulid(prefix: str | None = None) -> str:
    value = str(ULID()).lower()
    return f"{prefix}{value}" if prefix else value


def new_stream_id() -> str:
    return new_ulid(STREAM_ID_PREFIX)


def new_client_id() -> str:
    return new_ulid("client-")


def is_valid_stream_id(stream_id: str) -> bool:
    return bool(STREAM_ID_PATTERN.fullmatch(stream_id))
