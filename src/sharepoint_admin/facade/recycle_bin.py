"""Recycle bin listing and restore."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from sharepoint_admin.errors import SharePointAdminError, ValidationError, translated_errors
from sharepoint_admin.facade.confirmation import Confirmer, prompt_confirmation, require_confirmation
from sharepoint_admin.rest.models import (
    FIELD_DIR_NAME,
    FIELD_ID,
    FIELD_LEAF_NAME,
    RecycleBinEntry,
    RestoreResult,
)
from sharepoint_admin.rest.paging import DEFAULT_PAGE_SIZE, iter_records

if TYPE_CHECKING:
    from sharepoint_admin.session import Session

logger = logging.getLogger(__name__)

RECYCLE_BIN = "/_api/site/RecycleBin"
DEFAULT_ROW_LIMIT = 5000


class RecycleBinManager:
    """Lists and restores entries of the site collection recycle bin."""

    def __init__(
        self,
        session: Session,
        confirm: Confirmer = prompt_confirmation,
        row_limit: int = DEFAULT_ROW_LIMIT,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialise the manager.

        Args:
            session: Active session every request is issued through.
            confirm: Confirmer consulted before restoring.
            row_limit: Default maximum number of entries read by list_all().
            page_size: Entries requested per page.
        """
        self._session = session
        self._confirm = confirm
        self._row_limit = row_limit
        self._page_size = page_size

    def list_all(self, row_limit: int | None = None) -> list[RecycleBinEntry]:
        """Return recycle bin entries, at most row_limit of them."""
        limit = row_limit if row_limit is not None else self._row_limit
        if limit < 1:
            raise ValidationError("row_limit must be positive", limit)
        client = self._session.require_client()
        with translated_errors(RECYCLE_BIN):
            records = list(
                iter_records(client, RECYCLE_BIN, page_size=min(self._page_size, limit), max_rows=limit)
            )
        logger.info("[list_all] recycle bin read; entries:%d;row_limit:%d", len(records), limit)
        if len(records) == limit:
            logger.warning("[list_all] row limit reached, later entries were not read; row_limit:%d", limit)
        return [_parse_entry(raw) for raw in records]

    def find_by_name(
        self, leaf_name: str, location: str | None = None, row_limit: int | None = None
    ) -> list[RecycleBinEntry]:
        """Entries whose leaf name equals leaf_name.

        Only the first row_limit entries of the bin are searched, so a match
        beyond the limit is not found; list_all logs when the limit is hit.

        Args:
            leaf_name: Exact file or item name.
            location: Optional substring the original path must contain.
            row_limit: Entries to search. Defaults to the manager's row limit.
        """
        return [
            entry
            for entry in self.list_all(row_limit)
            if entry.leaf_name == leaf_name and (not location or location in entry.original_path)
        ]

    def restore(
        self,
        ids: Iterable[str] | None = None,
        row_limit: int | None = None,
        force: bool = False,
    ) -> RestoreResult:
        """Restore entries, either by id or the first row_limit entries.

        Exactly one of ids and row_limit must be given. Each entry is
        restored on its own; failures are collected, not raised.

        Raises:
            ValidationError: If both or neither selection is supplied (no request is sent).
            OperationCancelledError: If the confirmation is declined.
        """
        if (ids is None) == (row_limit is None):
            raise ValidationError("Pass exactly one of ids or row_limit")
        if row_limit is not None and row_limit < 1:
            raise ValidationError("row_limit must be positive", row_limit)

        if ids is not None:
            selected = list(dict.fromkeys(str(i) for i in ids))
            if not selected:
                raise ValidationError("ids must not be empty")
            prompt = f"Restore {len(selected)} recycle bin entr{'y' if len(selected) == 1 else 'ies'}?"
            require_confirmation(self._confirm, prompt, force, selected)
        else:
            prompt = f"Restore up to {row_limit} recycle bin entries?"
            require_confirmation(self._confirm, prompt, force, row_limit)
            selected = [entry.id for entry in self.list_all(row_limit)]

        result = RestoreResult()
        client = self._session.require_client()
        for entry_id in selected:
            try:
                with translated_errors(entry_id):
                    client.post(f"{RECYCLE_BIN}('{entry_id}')/restore()")
            except SharePointAdminError as exc:
                logger.warning("[restore] restore failed; id:%s;error:%s", entry_id, exc)
                result.failures.append((entry_id, exc))
            else:
                result.restored_count += 1
        logger.info(
            "[restore] complete; restored:%d;failed:%d", result.restored_count, len(result.failures)
        )
        return result


def _parse_entry(raw: dict[str, Any]) -> RecycleBinEntry:
    """Map a raw RecycleBinItem record to a RecycleBinEntry."""
    metadata = {
        k: v for k, v in raw.items() if k not in (FIELD_ID, FIELD_LEAF_NAME, FIELD_DIR_NAME)
    }
    return RecycleBinEntry(
        id=str(raw.get(FIELD_ID, "")),
        leaf_name=str(raw.get(FIELD_LEAF_NAME, "")),
        original_path=str(raw.get(FIELD_DIR_NAME, "")),
        metadata=metadata,
    )
