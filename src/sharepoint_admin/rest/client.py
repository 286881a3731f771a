"""SharePoint REST API client with MSAL authentication."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode, urlparse

import msal

if TYPE_CHECKING:
    from sharepoint_admin.config import AppConfig

logger = logging.getLogger(__name__)

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
ODATA_JSON = "application/json;odata=nometadata"

# Characters left unescaped in query strings so OData expressions stay readable.
_QUERY_SAFE = "$'(),:/@"


class SharePointAuthError(Exception):
    """Raised when MSAL token acquisition fails."""


class SharePointConnectionError(Exception):
    """Raised when the site cannot be reached (DNS, refused or reset connection, timeout)."""


class SharePointApiError(Exception):
    """Raised when the SharePoint REST API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"SharePoint API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


def build_msal_app(
    client_id: str,
    tenant_id: str,
    client_secret: str = "",
    certificate: dict[str, str] | None = None,
) -> msal.ClientApplication:
    """Build the MSAL application for the configured credential type.

    A certificate credential takes precedence over a client secret. With
    neither, a public client is returned and tokens are acquired through
    interactive sign-in.
    """
    authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
    credential: dict[str, str] | str | None = certificate or client_secret or None
    if credential is None:
        return msal.PublicClientApplication(client_id=client_id, authority=authority)
    return msal.ConfidentialClientApplication(
        client_id=client_id,
        client_credential=credential,
        authority=authority,
    )


class SharePointClient:
    """Authenticated client for one SharePoint site's REST API."""

    def __init__(self, site_url: str, app: msal.ClientApplication, interactive: bool = False) -> None:
        """Initialise the client for a site.

        Args:
            site_url: Absolute URL of the site (e.g. "https://contoso.sharepoint.com/sites/hr").
            app: MSAL application used to acquire tokens. Shared between
                clients created with for_site() so the token cache is reused.
            interactive: Acquire tokens through interactive sign-in instead
                of the client credentials flow.
        """
        parsed = urlparse(site_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Site URL must be absolute: {site_url!r}")
        self.site_url = site_url.rstrip("/")
        self._app = app
        self._interactive = interactive
        self._scopes = [f"{parsed.scheme}://{parsed.netloc}/.default"]

    def for_site(self, site_url: str) -> SharePointClient:
        """Return a client for another site that shares this client's credentials."""
        return SharePointClient(site_url, self._app, interactive=self._interactive)

    def _acquire_token(self) -> str:
        """Acquire a Bearer token for the site's host.

        Returns:
            Access token string.

        Raises:
            SharePointAuthError: If MSAL cannot acquire a token.
        """
        result: dict[str, Any]
        if self._interactive:
            accounts = self._app.get_accounts()
            cached = self._app.acquire_token_silent(self._scopes, account=accounts[0]) if accounts else None
            result = cached or self._app.acquire_token_interactive(scopes=self._scopes) or {}
        else:
            result = self._app.acquire_token_for_client(scopes=self._scopes) or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[_acquire_token] MSAL token acquisition failed; error:%s", error)
            raise SharePointAuthError(f"Token acquisition failed: {error} — {description}")
        return str(result["access_token"])

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Perform an authenticated GET request.

        Args:
            path: Path relative to the site URL (must start with '/'), or an
                absolute URL such as an odata.nextLink.
            params: Optional query parameters (e.g. {"$select": "Id,Title"}).

        Returns:
            Parsed JSON response body as a dict.

        Raises:
            SharePointAuthError: If token acquisition fails.
            SharePointApiError: If the API returns a non-2xx status code.
            SharePointConnectionError: If the site cannot be reached.
        """
        return self._request("GET", path, params=params)

    def post(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        """Perform an authenticated POST request with a JSON body."""
        return self._request("POST", path, body=body)

    def merge(self, path: str, body: dict[str, Any]) -> None:
        """Update an entity in place (POST tunnelled as MERGE)."""
        self._request("POST", path, body=body, headers={"X-HTTP-Method": "MERGE", "IF-MATCH": "*"})

    def delete(self, path: str) -> None:
        """Delete an entity (POST tunnelled as DELETE)."""
        self._request("POST", path, headers={"X-HTTP-Method": "DELETE", "IF-MATCH": "*"})

    def _url(self, path: str, params: dict[str, Any] | None) -> str:
        url = path if path.startswith(("http://", "https://")) else f"{self.site_url}{path}"
        if params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(params, quote_via=quote, safe=_QUERY_SAFE)}"
        return url

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        token = self._acquire_token()
        all_headers = {
            "Authorization": f"Bearer {token}",
            "Accept": ODATA_JSON,
        }
        data: bytes | None = None
        if method != "GET":
            data = json.dumps(body or {}).encode("utf-8")
            all_headers["Content-Type"] = ODATA_JSON
        all_headers.update(headers or {})
        req = urllib_request.Request(
            self._url(path, params),
            data=data,
            headers=all_headers,
            method=method,
        )
        try:
            with urllib_request.urlopen(req) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}  # type: ignore[no-any-return]
        except HTTPError as exc:
            raise SharePointApiError(exc.code, _error_detail(exc)) from exc
        except URLError as exc:
            logger.warning(
                "[_request] connection failed; method:%s;path:%s;reason:%s", method, path, exc.reason
            )
            raise SharePointConnectionError(f"Could not reach {self.site_url}: {exc.reason}") from exc
        except OSError as exc:
            logger.warning("[_request] connection failed; method:%s;path:%s;error:%s", method, path, exc)
            raise SharePointConnectionError(f"Connection to {self.site_url} failed: {exc}") from exc


def _error_detail(exc: HTTPError) -> str:
    """Extract the message from a SharePoint error body (nometadata or verbose)."""
    raw = exc.read()
    try:
        payload = json.loads(raw)
        error = payload.get("odata.error") or payload.get("error") or {}
        message = error.get("message", exc.reason)
        if isinstance(message, dict):
            message = message.get("value", exc.reason)
        return str(message)
    except Exception:
        return str(exc.reason)


def sharepoint_client_from_config(config: AppConfig, site_url: str | None = None) -> SharePointClient:
    """Construct a SharePointClient from application configuration.

    Args:
        config: Application configuration instance.
        site_url: Site to target. Defaults to config.site_url.

    Returns:
        Configured SharePointClient instance.
    """
    certificate = None
    if config.uses_certificate:
        certificate = {
            "thumbprint": config.cert_thumbprint,
            "private_key": Path(config.cert_path).read_text(encoding="utf-8"),
        }
    app = build_msal_app(
        client_id=config.client_id,
        tenant_id=config.tenant_id,
        client_secret=config.client_secret,
        certificate=certificate,
    )
    interactive = certificate is None and not config.client_secret
    return SharePointClient(site_url or config.site_url, app, interactive=interactive)
