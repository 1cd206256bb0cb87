"""Tests for application error types."""

import pytest

from app.utils.app_errors import (
    AppError,
    AppErrorCode,
    ConflictError,
    HttpStatusCode,
    MalformedMessageError,
    ProcessRuntimeError,
    ProcessSpawnError,
    ResourceError,
    UnknownSessionError,
)


class TestAppError:
    def test_defaults(self):
        error = AppError("something broke")

        assert error.errcode == AppErrorCode.E_INTERNAL_ERROR.value
        assert error.errmesg == "something broke"
        assert error.status_code == HttpStatusCode.INTERNAL_SERVER_ERROR
        assert len(error.erresid) == 10
        assert "test_defaults" in error.caller_info

    def test_overrides(self):
        error = AppError("bad", errcode=AppErrorCode.E_INVALID_REQUEST, status_code=400)

        assert error.errcode == "E_INVALID_REQUEST"
        assert error.status_code == 400

    def test_unique_erresid(self):
        assert AppError("a").erresid != AppError("a").erresid

    @pytest.mark.parametrize(
        "error_type,errcode,status_code",
        [
            (ConflictError, AppErrorCode.E_STREAM_EXISTS, 409),
            (ResourceError, AppErrorCode.E_RESOURCE, 500),
            (ProcessSpawnError, AppErrorCode.E_PROCESS_SPAWN, 500),
            (ProcessRuntimeError, AppErrorCode.E_PROCESS_RUNTIME, 500),
            (MalformedMessageError, AppErrorCode.E_MALFORMED_MESSAGE, 400),
            (UnknownSessionError, AppErrorCode.E_STREAM_NOT_FOUND, 404),
        ],
    )
    def test_subclass_defaults(
        self, error_type: type[AppError], errcode: AppErrorCode, status_code: int
    ):
        error = error_type("message")

        assert isinstance(error, AppError)
        assert error.errcode == errcode.value
        assert error.status_code == status_code
