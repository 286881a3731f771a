"""Smoke tests for the HTTP blueprint — routes, status mapping and payloads."""

import json
from unittest.mock import MagicMock, patch

import azure.functions as func
import pytest

from sharepoint_admin.errors import (
    AuthenticationError,
    NotFoundError,
    OperationCancelledError,
    PermissionDeniedError,
)
from sharepoint_admin.functions.http_trigger import (
    group_member_check,
    groups_report,
    health_check,
    list_access,
    recycle_bin_list,
    recycle_bin_restore,
    site_access,
)
from sharepoint_admin.rest.models import PermissionReportEntry, RecycleBinEntry, RestoreResult

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(
    method: str = "GET",
    params: dict | None = None,
    route_params: dict | None = None,
    body: bytes = b"",
) -> func.HttpRequest:
    return func.HttpRequest(
        method=method,
        url="http://localhost/api/test",
        headers={},
        params=params or {},
        route_params=route_params or {},
        body=body,
    )


def _body(response: func.HttpResponse) -> dict:
    return json.loads(response.get_body())


def _patch_admin(admin: MagicMock):
    return patch("sharepoint_admin.functions.http_trigger._admin", return_value=admin)


# ---------------------------------------------------------------------------
# health_check
# ---------------------------------------------------------------------------


def test_health_check_returns_status() -> None:
    """Health endpoint returns ok status with version from the package."""
    response = health_check(MagicMock(spec=func.HttpRequest))

    assert response.status_code == 200
    body = _body(response)
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"


# ---------------------------------------------------------------------------
# Permission routes
# ---------------------------------------------------------------------------


class TestGroupsReport:
    def test_returns_rows(self) -> None:
        admin = MagicMock()
        admin.permissions.list_groups_with_members.return_value = [
            PermissionReportEntry(principal="alice", group="HR Owners", roles=frozenset({"Read", "Edit"}))
        ]

        with _patch_admin(admin):
            response = groups_report(_request())

        assert response.status_code == 200
        body = _body(response)
        assert body["count"] == 1
        assert body["results"][0] == {"principal": "alice", "group": "HR Owners", "roles": ["Edit", "Read"]}

    def test_authentication_failure_is_401(self) -> None:
        with patch(
            "sharepoint_admin.functions.http_trigger._admin",
            side_effect=AuthenticationError("Credentials rejected"),
        ):
            response = groups_report(_request())

        assert response.status_code == 401
        assert _body(response)["error"] == "AuthenticationError"

    def test_permission_denied_is_403(self) -> None:
        admin = MagicMock()
        admin.permissions.list_groups_with_members.side_effect = PermissionDeniedError("Access denied")

        with _patch_admin(admin):
            response = groups_report(_request())

        assert response.status_code == 403

    def test_unexpected_error_is_500(self) -> None:
        admin = MagicMock()
        admin.permissions.list_groups_with_members.side_effect = RuntimeError("boom")

        with _patch_admin(admin):
            response = groups_report(_request())

        assert response.status_code == 500
        assert _body(response)["message"] == "Internal server error"


class TestAccessRoutes:
    def test_site_access(self) -> None:
        admin = MagicMock()
        admin.permissions.user_has_site_access.return_value = True

        with _patch_admin(admin):
            response = site_access(_request(params={"login": "alice@contoso.com"}))

        assert _body(response)["has_access"] is True
        admin.permissions.user_has_site_access.assert_called_once_with("alice@contoso.com")

    def test_site_access_requires_login(self) -> None:
        with _patch_admin(MagicMock()):
            response = site_access(_request())

        assert response.status_code == 400

    def test_list_access(self) -> None:
        admin = MagicMock()
        admin.permissions.user_has_list_access.return_value = False

        with _patch_admin(admin):
            response = list_access(_request(params={"list": "Tasks", "login": "bob@contoso.com"}))

        assert response.status_code == 200
        assert _body(response)["has_access"] is False
        admin.permissions.user_has_list_access.assert_called_once_with("Tasks", "bob@contoso.com")

    def test_group_member_check_uses_route_param(self) -> None:
        admin = MagicMock()
        admin.permissions.is_group_member.return_value = True

        with _patch_admin(admin):
            response = group_member_check(
                _request(params={"login": "alice@contoso.com"}, route_params={"group": "HR Members"})
            )

        assert _body(response)["is_member"] is True
        admin.permissions.is_group_member.assert_called_once_with("HR Members", "alice@contoso.com")


# ---------------------------------------------------------------------------
# Recycle bin routes
# ---------------------------------------------------------------------------


class TestRecycleBinRoutes:
    def test_list_by_name_and_location(self) -> None:
        admin = MagicMock()
        admin.recycle_bin.find_by_name.return_value = [
            RecycleBinEntry(id="a1", leaf_name="Budget.xlsx", original_path="sites/hr/Docs")
        ]

        with _patch_admin(admin):
            response = recycle_bin_list(_request(params={"name": "Budget.xlsx", "location": "hr"}))

        body = _body(response)
        assert body["count"] == 1
        assert body["results"][0]["leaf_name"] == "Budget.xlsx"
        admin.recycle_bin.find_by_name.assert_called_once_with("Budget.xlsx", "hr", None)

    def test_list_by_name_passes_row_limit(self) -> None:
        admin = MagicMock()
        admin.recycle_bin.find_by_name.return_value = []

        with _patch_admin(admin):
            recycle_bin_list(_request(params={"name": "Budget.xlsx", "row_limit": "20000"}))

        admin.recycle_bin.find_by_name.assert_called_once_with("Budget.xlsx", None, 20000)

    def test_list_with_row_limit(self) -> None:
        admin = MagicMock()
        admin.recycle_bin.list_all.return_value = []

        with _patch_admin(admin):
            recycle_bin_list(_request(params={"row_limit": "25"}))

        admin.recycle_bin.list_all.assert_called_once_with(25)

    def test_non_integer_row_limit_is_400(self) -> None:
        with _patch_admin(MagicMock()):
            response = recycle_bin_list(_request(params={"row_limit": "many"}))

        assert response.status_code == 400

    def test_restore_by_ids(self) -> None:
        admin = MagicMock()
        admin.recycle_bin.restore.return_value = RestoreResult(
            restored_count=1, failures=[("a2", NotFoundError("gone"))]
        )
        body = json.dumps({"ids": ["a1", "a2"], "force": True}).encode()

        with _patch_admin(admin):
            response = recycle_bin_restore(_request(method="POST", body=body))

        assert response.status_code == 200
        payload = _body(response)
        assert payload["restored_count"] == 1
        assert payload["failures"] == [{"id": "a2", "error": "gone"}]
        admin.recycle_bin.restore.assert_called_once_with(ids=["a1", "a2"], row_limit=None, force=True)

    def test_restore_without_force_is_cancelled(self) -> None:
        admin = MagicMock()
        admin.recycle_bin.restore.side_effect = OperationCancelledError("Cancelled")

        with _patch_admin(admin):
            response = recycle_bin_restore(_request(method="POST", body=b'{"row_limit": 5}'))

        assert response.status_code == 409
        assert _body(response)["error"] == "OperationCancelledError"

    def test_restore_requires_json_body(self) -> None:
        with _patch_admin(MagicMock()):
            response = recycle_bin_restore(_request(method="POST", body=b"not json"))

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [
            {"ids": "abc"},
            {"ids": [1, 2]},
            {"row_limit": "5"},
            {"row_limit": True},
        ],
    )
    def test_mistyped_selection_is_400_without_restoring(self, body: dict) -> None:
        admin = MagicMock()

        with _patch_admin(admin):
            response = recycle_bin_restore(_request(method="POST", body=json.dumps(body).encode()))

        assert response.status_code == 400
        assert _body(response)["error"] == "ValidationError"
        admin.recycle_bin.restore.assert_not_called()
