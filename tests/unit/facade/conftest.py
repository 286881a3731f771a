"""Shared fixtures for façade tests — an in-memory stand-in for SharePointClient."""

from __future__ import annotations

from typing import Any

import pytest

from sharepoint_admin.rest.client import SharePointApiError
from sharepoint_admin.session import Session

SITE_URL = "https://contoso.sharepoint.com/sites/hr"


class FakeClient:
    """Answers requests from canned routes keyed by path and records every call.

    A route value may be a dict (returned), an Exception (raised) or a
    callable taking the params/body and returning a dict. Unrouted GETs
    answer 404 like the real store.
    """

    def __init__(self, site_url: str = SITE_URL) -> None:
        self.site_url = site_url
        self.get_routes: dict[str, Any] = {"/_api/web": {"Title": "Site"}}
        self.post_routes: dict[str, Any] = {}
        self.merge_routes: dict[str, Any] = {}
        self.delete_routes: dict[str, Any] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.sites: dict[str, FakeClient] = {}

    @property
    def mutations(self) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[0] != "GET"]

    def paths(self, method: str) -> list[str]:
        return [path for m, path, _ in self.calls if m == method]

    def for_site(self, site_url: str) -> FakeClient:
        return self.sites.setdefault(site_url, FakeClient(site_url))

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append(("GET", path, params))
        return self._answer(self.get_routes, path, params, missing_status=404)

    def post(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append(("POST", path, body))
        return self._answer(self.post_routes, path, body)

    def merge(self, path: str, body: dict[str, Any]) -> None:
        self.calls.append(("MERGE", path, body))
        self._answer(self.merge_routes, path, body)

    def delete(self, path: str) -> None:
        self.calls.append(("DELETE", path, None))
        self._answer(self.delete_routes, path, None)

    @staticmethod
    def _answer(
        routes: dict[str, Any], path: str, arg: Any, missing_status: int | None = None
    ) -> dict[str, Any]:
        if path not in routes:
            if missing_status is not None:
                raise SharePointApiError(missing_status, f"Not found: {path}")
            return {}
        value = routes[path]
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(arg)  # type: ignore[no-any-return]
        return value  # type: ignore[no-any-return]


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def session(client: FakeClient) -> Session:
    return Session(target_url=SITE_URL, is_admin_scope=False, client=client)  # type: ignore[arg-type]
