"""Unit tests for facade/recycle_bin.py — listing, search and restore."""

from unittest.mock import patch

import pytest

from sharepoint_admin.errors import (
    OperationCancelledError,
    PermissionDeniedError,
    RemoteOperationError,
    ValidationError,
)
from sharepoint_admin.facade.recycle_bin import RECYCLE_BIN, RecycleBinManager
from sharepoint_admin.rest.client import SharePointApiError, SharePointConnectionError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_manager(session, confirm=lambda message: True, row_limit=5000, page_size=100) -> RecycleBinManager:
    return RecycleBinManager(session, confirm=confirm, row_limit=row_limit, page_size=page_size)


def _entry(entry_id: str, leaf_name: str, dir_name: str) -> dict:
    return {
        "Id": entry_id,
        "LeafName": leaf_name,
        "DirName": dir_name,
        "DeletedByEmail": "alice@contoso.com",
        "ItemType": 1,
    }


def _with_entries(client, entries: list[dict]) -> None:
    client.get_routes[RECYCLE_BIN] = {"value": entries}


def _restore_path(entry_id: str) -> str:
    return f"{RECYCLE_BIN}('{entry_id}')/restore()"


# ---------------------------------------------------------------------------
# list_all / find_by_name tests
# ---------------------------------------------------------------------------


class TestListAll:
    def test_parses_entries(self, session, client) -> None:
        _with_entries(client, [_entry("a1", "Budget.xlsx", "sites/hr/Shared Documents")])

        entries = _make_manager(session).list_all()

        assert len(entries) == 1
        entry = entries[0]
        assert entry.id == "a1"
        assert entry.leaf_name == "Budget.xlsx"
        assert entry.original_path == "sites/hr/Shared Documents"
        assert entry.metadata == {"DeletedByEmail": "alice@contoso.com", "ItemType": 1}

    def test_row_limit_caps_the_read(self, session, client) -> None:
        _with_entries(client, [_entry(f"e{i}", f"f{i}.txt", "sites/hr/Docs") for i in range(10)])

        entries = _make_manager(session).list_all(row_limit=3)

        assert [e.id for e in entries] == ["e0", "e1", "e2"]
        assert client.calls[0][2] == {"$top": 3}

    def test_default_row_limit_comes_from_manager(self, session, client) -> None:
        _with_entries(client, [_entry(f"e{i}", "f.txt", "d") for i in range(5)])

        entries = _make_manager(session, row_limit=2).list_all()

        assert len(entries) == 2

    def test_non_positive_row_limit_is_rejected(self, session, client) -> None:
        with pytest.raises(ValidationError):
            _make_manager(session).list_all(row_limit=0)
        assert client.calls == []

    def test_access_denied_is_typed(self, session, client) -> None:
        client.get_routes[RECYCLE_BIN] = SharePointApiError(403, "Access denied")

        with pytest.raises(PermissionDeniedError):
            _make_manager(session).list_all()


class TestFindByName:
    def test_exact_leaf_name_only(self, session, client) -> None:
        _with_entries(
            client,
            [
                _entry("a1", "Budget.xlsx", "sites/hr/Shared Documents"),
                _entry("a2", "Budget.xlsx.bak", "sites/hr/Shared Documents"),
                _entry("a3", "budget.xlsx", "sites/hr/Shared Documents"),
            ],
        )

        entries = _make_manager(session).find_by_name("Budget.xlsx")

        assert [e.id for e in entries] == ["a1"]

    def test_location_filters_by_path_substring(self, session, client) -> None:
        _with_entries(
            client,
            [
                _entry("a1", "Budget.xlsx", "sites/hr/Shared Documents/2023"),
                _entry("a2", "Budget.xlsx", "sites/hr/Shared Documents/2024"),
            ],
        )

        entries = _make_manager(session).find_by_name("Budget.xlsx", location="2024")

        assert [e.id for e in entries] == ["a2"]

    def test_no_match_returns_empty(self, session, client) -> None:
        _with_entries(client, [_entry("a1", "Budget.xlsx", "d")])

        assert _make_manager(session).find_by_name("Missing.docx") == []

    def test_row_limit_bounds_the_search(self, session, client) -> None:
        _with_entries(client, [_entry(f"e{i}", "Budget.xlsx", "d") for i in range(10)])

        entries = _make_manager(session, row_limit=3).find_by_name("Budget.xlsx", row_limit=8)

        assert len(entries) == 8
        assert client.calls[0][2] == {"$top": 8}

    def test_truncated_search_is_logged(self, session, client) -> None:
        _with_entries(client, [_entry(f"e{i}", f"f{i}.txt", "d") for i in range(5)])

        with patch("sharepoint_admin.facade.recycle_bin.logger") as mock_logger:
            entries = _make_manager(session, row_limit=5).find_by_name("Budget.xlsx")

        assert entries == []
        mock_logger.warning.assert_called_once()
        assert "row limit reached" in mock_logger.warning.call_args.args[0]

    def test_complete_read_is_not_flagged(self, session, client) -> None:
        _with_entries(client, [_entry("a1", "Budget.xlsx", "d")])

        with patch("sharepoint_admin.facade.recycle_bin.logger") as mock_logger:
            _make_manager(session, row_limit=5).find_by_name("Budget.xlsx")

        mock_logger.warning.assert_not_called()


# ---------------------------------------------------------------------------
# restore tests
# ---------------------------------------------------------------------------


class TestRestoreSelection:
    def test_neither_selection_is_rejected_without_calls(self, session, client) -> None:
        with pytest.raises(ValidationError):
            _make_manager(session).restore()
        assert client.calls == []

    def test_both_selections_are_rejected_without_calls(self, session, client) -> None:
        with pytest.raises(ValidationError):
            _make_manager(session).restore(ids=["a1"], row_limit=5)
        assert client.calls == []

    def test_empty_ids_are_rejected(self, session, client) -> None:
        with pytest.raises(ValidationError):
            _make_manager(session).restore(ids=[])

    def test_non_positive_row_limit_is_rejected(self, session, client) -> None:
        with pytest.raises(ValidationError):
            _make_manager(session).restore(row_limit=0)


class TestRestore:
    def test_restores_each_id_once(self, session, client) -> None:
        result = _make_manager(session).restore(ids=["a1", "a2", "a1"])

        assert result.restored_count == 2
        assert result.failures == []
        assert client.paths("POST") == [_restore_path("a1"), _restore_path("a2")]

    def test_row_limit_restores_first_entries(self, session, client) -> None:
        _with_entries(client, [_entry(f"e{i}", "f.txt", "d") for i in range(5)])

        result = _make_manager(session).restore(row_limit=2)

        assert result.restored_count == 2
        assert client.paths("POST") == [_restore_path("e0"), _restore_path("e1")]

    def test_failures_are_collected(self, session, client) -> None:
        client.post_routes[_restore_path("a2")] = SharePointApiError(
            400, "A file with this name already exists"
        )

        result = _make_manager(session).restore(ids=["a1", "a2", "a3"])

        assert result.restored_count == 2
        assert [entry_id for entry_id, _ in result.failures] == ["a2"]
        assert client.paths("POST") == [_restore_path("a1"), _restore_path("a2"), _restore_path("a3")]

    def test_dropped_connection_on_one_entry_does_not_stop_the_rest(self, session, client) -> None:
        client.post_routes[_restore_path("a")] = SharePointConnectionError("Connection reset by peer")

        result = _make_manager(session).restore(ids=["a", "b"])

        assert result.restored_count == 1
        assert result.failures[0][0] == "a"
        assert isinstance(result.failures[0][1], RemoteOperationError)
        assert client.paths("POST") == [_restore_path("a"), _restore_path("b")]

    def test_declined_confirmation_restores_nothing(self, session, client) -> None:
        _with_entries(client, [_entry("e0", "f.txt", "d")])
        manager = _make_manager(session, confirm=lambda message: False)

        with pytest.raises(OperationCancelledError):
            manager.restore(row_limit=10)

        assert client.calls == []

    def test_force_skips_confirmation(self, session, client) -> None:
        def _refuse(message: str) -> bool:
            raise AssertionError("confirmation should not be requested")

        result = _make_manager(session, confirm=_refuse).restore(ids=["a1"], force=True)

        assert result.restored_count == 1
