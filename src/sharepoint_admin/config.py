"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass

_TRUTHY = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Credentials are
    picked in order: certificate, client secret, interactive sign-in.
    """

    # Required: no defaults, fail at startup if missing
    client_id: str
    tenant_id: str
    site_url: str

    # Credentials: at most one of secret or certificate is normally set
    client_secret: str = ""
    cert_thumbprint: str = ""
    cert_path: str = ""

    # Domain constants: defaults provided, overridable via env
    admin_scope: bool = False
    page_size: int = 100
    recycle_bin_row_limit: int = 5000

    @property
    def uses_certificate(self) -> bool:
        return bool(self.cert_thumbprint and self.cert_path)


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        SPA_CLIENT_ID: Entra ID application (client) ID.
        SPA_TENANT_ID: Entra ID tenant ID.
        SPA_SITE_URL: Default target site URL used to seed the initial session.

    Optional environment variables (with defaults):
        SPA_CLIENT_SECRET: Application client secret.
        SPA_CERT_THUMBPRINT: Thumbprint of the app registration certificate.
        SPA_CERT_PATH: Path to the PEM private key matching the certificate.
        SPA_ADMIN_SCOPE: Whether the default session is an admin session (default: false).
        SPA_PAGE_SIZE: Page size for collection reads (default: 100).
        SPA_RECYCLE_BIN_ROW_LIMIT: Default row limit for recycle bin reads (default: 5000).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        client_id=os.environ["SPA_CLIENT_ID"],
        tenant_id=os.environ["SPA_TENANT_ID"],
        site_url=os.environ["SPA_SITE_URL"].rstrip("/"),
        client_secret=os.environ.get("SPA_CLIENT_SECRET", ""),
        cert_thumbprint=os.environ.get("SPA_CERT_THUMBPRINT", ""),
        cert_path=os.environ.get("SPA_CERT_PATH", ""),
        admin_scope=os.environ.get("SPA_ADMIN_SCOPE", "false").strip().lower() in _TRUTHY,
        page_size=int(os.environ.get("SPA_PAGE_SIZE", "100")),
        recycle_bin_row_limit=int(os.environ.get("SPA_RECYCLE_BIN_ROW_LIMIT", "5000")),
    )
