"""Unit tests for errors.py — transport error translation."""

import pytest

from sharepoint_admin.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RemoteOperationError,
    SharePointAdminError,
    translate_api_error,
    translated_errors,
)
from sharepoint_admin.rest.client import SharePointApiError, SharePointAuthError, SharePointConnectionError


class TestTranslateApiError:
    @pytest.mark.parametrize(
        ("status", "message", "expected"),
        [
            (404, "List does not exist.", NotFoundError),
            (401, "Unauthorized", PermissionDeniedError),
            (403, "Access denied.", PermissionDeniedError),
            (409, "Save conflict.", ConflictError),
            (500, "A list with the specified title already exists.", ConflictError),
            (400, "The specified alias is already in use.", ConflictError),
            (500, "Internal server error", RemoteOperationError),
        ],
    )
    def test_maps_status_and_message(self, status: int, message: str, expected: type) -> None:
        error = translate_api_error(SharePointApiError(status, message), ref="Tasks")

        assert type(error) is expected
        assert error.message == message
        assert error.ref == "Tasks"

    def test_remote_error_keeps_status(self) -> None:
        error = translate_api_error(SharePointApiError(502, "Bad gateway"))
        assert isinstance(error, RemoteOperationError)
        assert error.status_code == 502


class TestTranslatedErrors:
    def test_api_error_is_reraised_typed(self) -> None:
        with pytest.raises(NotFoundError) as exc_info, translated_errors("Tasks"):
            raise SharePointApiError(404, "missing")

        assert isinstance(exc_info.value.__cause__, SharePointApiError)

    def test_auth_error_becomes_authentication_error(self) -> None:
        with pytest.raises(AuthenticationError), translated_errors():
            raise SharePointAuthError("Token acquisition failed")

    def test_connection_error_becomes_remote_operation_error(self) -> None:
        with pytest.raises(RemoteOperationError, match="Could not reach") as exc_info, translated_errors("Tasks"):
            raise SharePointConnectionError("Could not reach https://contoso.sharepoint.com: timed out")

        assert exc_info.value.ref == "Tasks"
        assert exc_info.value.status_code is None

    def test_other_errors_pass_through(self) -> None:
        with pytest.raises(KeyError), translated_errors():
            raise KeyError("x")

    def test_all_failures_share_a_base(self) -> None:
        assert issubclass(PermissionDeniedError, SharePointAdminError)
        assert not issubclass(PermissionDeniedError, PermissionError)
