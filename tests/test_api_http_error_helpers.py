import pytest
from fastapi import HTTPException

from vibetorrent.api.http.error_helpers import raise_service_http_error, unknown_error_detail
from vibetorrent.services.errors import ServiceError


def test_unknown_error_detail_with_exception():
    assert unknown_error_detail(ValueError("x")) == "x"


def test_unknown_error_detail_with_none():
    assert unknown_error_detail(None) == "Unknown error"


@pytest.mark.parametrize(
    "code,status",
    [("INVALID_REQUEST", 400), ("NOT_FOUND", 404), ("CONNECTION_FAILED", 502), ("SAVE_FAILED", 500)],
)
def test_raise_service_http_error_status(code, status):
    with pytest.raises(HTTPException) as exc:
        raise_service_http_error(ServiceError(code=code, message="boom"))
    assert exc.value.status_code == status
    assert exc.value.detail == {"error": code, "message": "boom"}
