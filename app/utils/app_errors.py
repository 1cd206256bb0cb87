"""Application error types.

Every error raised by the stream domain is an `AppError`. Each carries an error
code, a message, an HTTP-ish status code, a short random `erresid` used to
correlate log lines, and the call site it was raised from.
"""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_STREAM_EXISTS = "E_STREAM_EXISTS"
    E_STREAM_NOT_FOUND = "E_STREAM_NOT_FOUND"
    E_RESOURCE = "E_RESOURCE"
    E_PROCESS_SPAWN = "E_PROCESS_SPAWN"
    E_PROCESS_RUNTIME = "E_PROCESS_RUNTIME"
    E_MALFORMED_MESSAGE = "E_MALFORMED_MESSAGE"

    def __str__(self) -> str:
        return self.value


class HttpStatusCode(IntEnum):
    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500


class AppError(Exception):
    errcode_default: AppErrorCode = AppErrorCode.E_INTERNAL_ERROR
    status_code_default: HttpStatusCode = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        errmesg: str,
        *,
        errcode: AppErrorCode | str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(errmesg)
        self.errcode = str(errcode or self.errcode_default)
        self.errmesg = errmesg
        self.status_code = int(status_code or self.status_code_default)
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        self.caller_info = f"{caller_frame.filename}:{caller_frame.function}:{caller_frame.lineno}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(errcode={self.errcode!r}, errmesg={self.errmesg!r})"


class ConflictError(AppError):
    """A stream id is already registered."""

    errcode_default = AppErrorCode.E_STREAM_EXISTS
    status_code_default = HttpStatusCode.CONFLICT


class ResourceError(AppError):
    """Output directories or files could not be prepared."""

    errcode_default = AppErrorCode.E_RESOURCE


class ProcessSpawnError(AppError):
    """The transcoding process failed to start."""

    errcode_default = AppErrorCode.E_PROCESS_SPAWN


class ProcessRuntimeError(AppError):
    """The transcoding process reported a fatal condition or exited."""

    errcode_default = AppErrorCode.E_PROCESS_RUNTIME


class MalformedMessageError(AppError):
    """An inbound control message could not be parsed or has an unknown type."""

    errcode_default = AppErrorCode.E_MALFORMED_MESSAGE
    status_code_default = HttpStatusCode.BAD_REQUEST


class UnknownSessionError(AppError):
    """No stream is registered under the given id."""

    errcode_default = AppErrorCode.E_STREAM_NOT_FOUND
    status_code_default = HttpStatusCode.NOT_FOUND
