"""Transparent paging over SharePoint REST collection endpoints."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from sharepoint_admin.errors import StaleReadWarning
from sharepoint_admin.rest.models import FIELD_ID, ODATA_NEXT_LINK, ODATA_VALUE

if TYPE_CHECKING:
    from sharepoint_admin.rest.client import SharePointClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

SEARCH_QUERY = "/_api/search/query"


def _default_key(raw: dict[str, Any]) -> Any:
    key = raw.get(FIELD_ID)
    if isinstance(key, dict):
        # Content type ids are nested objects.
        return tuple(sorted(key.items()))
    return key


def iter_records(
    client: SharePointClient,
    path: str,
    params: dict[str, Any] | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_rows: int | None = None,
    key: Callable[[dict[str, Any]], Any] = _default_key,
) -> Iterator[dict[str, Any]]:
    """Yield every record of a collection, following odata.nextLink.

    The first request carries ``$top=page_size`` plus any caller params;
    later requests use the continuation link verbatim. A record whose key
    was already yielded is skipped and a StaleReadWarning is emitted, since
    this means the collection shifted between pages.

    Args:
        client: Client for the site that owns the collection.
        path: Collection path relative to the site URL.
        params: Extra query parameters ($select, $filter, ...).
        page_size: Records requested per page.
        max_rows: Stop after this many records. None reads everything.
        key: Identity function used for duplicate detection.

    Yields:
        Raw record dicts in store order.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    first_params = {**(params or {}), "$top": page_size}
    if max_rows is not None:
        first_params["$top"] = min(page_size, max_rows)

    seen: set[Any] = set()
    yielded = 0
    pages = 0
    next_path: str | None = path
    next_params: dict[str, Any] | None = first_params
    while next_path is not None:
        response = client.get(next_path, params=next_params)
        pages += 1

        for raw in response.get(ODATA_VALUE, []):
            record_key = key(raw)
            if record_key is not None and record_key in seen:
                logger.warning(
                    "[iter_records] duplicate record across pages; path:%s;key:%s", path, record_key
                )
                warnings.warn(
                    f"Collection {path} changed during paging; skipped duplicate {record_key!r}",
                    StaleReadWarning,
                    stacklevel=2,
                )
                continue
            if record_key is not None:
                seen.add(record_key)
            yield raw
            yielded += 1
            if max_rows is not None and yielded >= max_rows:
                logger.info("[iter_records] row limit reached; path:%s;rows:%d", path, yielded)
                return

        next_path = response.get(ODATA_NEXT_LINK)
        next_params = None

    logger.info("[iter_records] collection read complete; path:%s;pages:%d;rows:%d", path, pages, yielded)


def iter_search_rows(
    client: SharePointClient,
    querytext: str,
    select: list[str],
    page_size: int = DEFAULT_PAGE_SIZE,
    max_rows: int | None = None,
    key: Callable[[dict[str, Any]], Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """Yield search result rows as {property: value} dicts, paging with startrow.

    The search endpoint does not return odata.nextLink; pages are requested
    until one comes back short or TotalRows is reached. Duplicates are
    handled as in iter_records.

    Args:
        client: Client for any site in the tenant.
        querytext: KQL query, unquoted.
        select: Managed properties to return.
        page_size: Rows requested per page.
        max_rows: Stop after this many rows. None reads everything.
        key: Identity function used for duplicate detection.
    """
    if page_size < 1:
        raise ValueError("page_size must be positive")

    seen: set[Any] = set()
    yielded = 0
    start = 0
    while True:
        rowlimit = page_size if max_rows is None else min(page_size, max_rows - yielded)
        response = client.get(
            SEARCH_QUERY,
            params={
                "querytext": _quote_literal(querytext),
                "selectproperties": _quote_literal(",".join(select)),
                "rowlimit": rowlimit,
                "startrow": start,
                "trimduplicates": "false",
            },
        )
        relevant = (response.get("PrimaryQueryResult") or {}).get("RelevantResults") or {}
        rows = ((relevant.get("Table") or {}).get("Rows")) or []
        for row in rows:
            record = {cell.get("Key"): cell.get("Value") for cell in row.get("Cells", [])}
            record_key = key(record) if key else None
            if record_key is not None and record_key in seen:
                logger.warning("[iter_search_rows] duplicate row across pages; key:%s", record_key)
                warnings.warn(
                    f"Search results changed during paging; skipped duplicate {record_key!r}",
                    StaleReadWarning,
                    stacklevel=2,
                )
                continue
            if record_key is not None:
                seen.add(record_key)
            yield record
            yielded += 1
            if max_rows is not None and yielded >= max_rows:
                return

        start += len(rows)
        total = relevant.get("TotalRows")
        if len(rows) < rowlimit or (isinstance(total, int) and start >= total):
            break

    logger.info("[iter_search_rows] search read complete; rows:%d", yielded)


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"
