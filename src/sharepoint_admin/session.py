"""Connection context shared by every façade component."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from sharepoint_admin.errors import AuthenticationError, NotFoundError
from sharepoint_admin.rest.client import (
    SharePointApiError,
    SharePointAuthError,
    SharePointClient,
    SharePointConnectionError,
    sharepoint_client_from_config,
)

if TYPE_CHECKING:
    from sharepoint_admin.config import AppConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHECK_PATH = "/_api/web"


@dataclass
class Session:
    """An authenticated connection to one site.

    Attributes:
        target_url: Absolute URL of the connected site.
        is_admin_scope: Whether the session was opened for tenant administration.
        client: Authenticated REST client for target_url.
    """

    target_url: str
    is_admin_scope: bool
    client: SharePointClient
    closed: bool = False

    def require_client(self) -> SharePointClient:
        """Return the client, refusing to hand it out once the session is closed.

        Raises:
            AuthenticationError: If the session has been closed.
        """
        if self.closed:
            raise AuthenticationError("No active session", ref=self.target_url)
        return self.client

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            logger.info("[close] session closed; target_url:%s", self.target_url)


def open_session(client: SharePointClient, admin_scope: bool = False) -> Session:
    """Verify a client against its site and wrap it in a Session.

    Acquires a token and issues one read of the site to prove the
    credentials are accepted.

    Raises:
        AuthenticationError: If the token is refused, the site rejects the
            credentials, or the host cannot be reached.
        NotFoundError: If the host answers but there is no site at the URL.
    """
    target_url = client.site_url
    try:
        client.get(CHECK_PATH, params={"$select": "Title"})
    except SharePointAuthError as exc:
        raise AuthenticationError(str(exc), ref=target_url) from exc
    except SharePointApiError as exc:
        if exc.status_code in (401, 403):
            raise AuthenticationError(
                f"Credentials rejected by {target_url}: {exc.message}", ref=target_url
            ) from exc
        if exc.status_code == 404:
            raise NotFoundError(f"No site at {target_url}", ref=target_url) from exc
        raise AuthenticationError(
            f"Could not connect to {target_url}: {exc.message}", ref=target_url
        ) from exc
    except SharePointConnectionError as exc:
        raise AuthenticationError(str(exc), ref=target_url) from exc
    logger.info("[open_session] connected; target_url:%s;admin_scope:%s", target_url, admin_scope)
    return Session(target_url=target_url, is_admin_scope=admin_scope, client=client)


def connect(target_url: str, config: AppConfig, admin_scope: bool = False) -> Session:
    """Establish a session to a site using configured credentials.

    Args:
        target_url: Absolute URL of the site to connect to.
        config: Application configuration providing credentials.
        admin_scope: Mark the session as a tenant administration session.

    Returns:
        An active Session.

    Raises:
        AuthenticationError: If the connection cannot be established.
    """
    try:
        client = sharepoint_client_from_config(config, site_url=target_url)
    except ValueError as exc:
        raise AuthenticationError(str(exc), ref=target_url) from exc
    except OSError as exc:
        # Unreadable certificate key file.
        raise AuthenticationError(f"Could not load credentials: {exc}", ref=target_url) from exc
    try:
        return open_session(client, admin_scope=admin_scope)
    except NotFoundError as exc:
        raise AuthenticationError(exc.message, ref=target_url) from exc


@contextmanager
def temporary_connection(session: Session, target_url: str) -> Iterator[Session]:
    """Open a secondary session to another site for the duration of a block.

    The secondary session reuses the primary session's credentials and is
    closed on every exit path.
    """
    client = session.require_client().for_site(target_url)
    secondary = open_session(client, admin_scope=session.is_admin_scope)
    try:
        yield secondary
    finally:
        secondary.close()


def with_temporary_connection(session: Session, target_url: str, fn: Callable[[Session], T]) -> T:
    """Run fn against a secondary session to target_url and return its result."""
    with temporary_connection(session, target_url) as secondary:
        return fn(secondary)
