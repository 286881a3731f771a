"""Façade wiring: one active session threaded into every component."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sharepoint_admin.facade.accessor import ResourceAccessor
from sharepoint_admin.facade.confirmation import Confirmer, prompt_confirmation
from sharepoint_admin.facade.groups import GroupMembershipManager
from sharepoint_admin.facade.permissions import PermissionInspector
from sharepoint_admin.facade.recycle_bin import DEFAULT_ROW_LIMIT, RecycleBinManager
from sharepoint_admin.rest.paging import DEFAULT_PAGE_SIZE
from sharepoint_admin.session import Session, connect

if TYPE_CHECKING:
    from sharepoint_admin.config import AppConfig

logger = logging.getLogger(__name__)


class SharePointAdmin:
    """Entry point bundling the resource, permission, group and recycle bin components."""

    def __init__(
        self,
        session: Session,
        config: AppConfig | None = None,
        confirm: Confirmer = prompt_confirmation,
    ) -> None:
        """Initialise the façade around an active session.

        Args:
            session: Active session for the default target site.
            config: Configuration used to open replacement sessions and to
                size reads. Required for connect().
            confirm: Confirmer consulted before destructive operations.
        """
        self._config = config
        self._confirm = confirm
        self._bind(session)

    @property
    def session(self) -> Session:
        return self._session

    def connect(self, target_url: str, admin_scope: bool = False) -> Session:
        """Replace the active session with a new connection.

        The previous session is closed only once the new one is established.

        Raises:
            AuthenticationError: If the new connection cannot be established.
        """
        if self._config is None:
            raise RuntimeError("SharePointAdmin.connect() requires a configuration")
        new_session = connect(target_url, self._config, admin_scope=admin_scope)
        previous = self._session
        self._bind(new_session)
        previous.close()
        logger.info("[connect] active session replaced; target_url:%s", target_url)
        return new_session

    def close(self) -> None:
        self._session.close()

    def _bind(self, session: Session) -> None:
        page_size = self._config.page_size if self._config else DEFAULT_PAGE_SIZE
        row_limit = self._config.recycle_bin_row_limit if self._config else DEFAULT_ROW_LIMIT
        self._session = session
        self.resources = ResourceAccessor(session, confirm=self._confirm, page_size=page_size)
        self.permissions = PermissionInspector(session, self.resources)
        self.groups = GroupMembershipManager(session, self.resources, self.permissions)
        self.recycle_bin = RecycleBinManager(
            session, confirm=self._confirm, row_limit=row_limit, page_size=page_size
        )


def admin_from_config(config: AppConfig, confirm: Confirmer = prompt_confirmation) -> SharePointAdmin:
    """Connect to the configured default site and build the façade.

    Args:
        config: Application configuration instance.
        confirm: Confirmer consulted before destructive operations.

    Returns:
        Configured SharePointAdmin instance.

    Raises:
        AuthenticationError: If the initial session cannot be established.
    """
    session = connect(config.site_url, config, admin_scope=config.admin_scope)
    return SharePointAdmin(session, config=config, confirm=confirm)
