"""Add and remove principals from site groups."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sharepoint_admin.errors import ConflictError, translated_errors
from sharepoint_admin.facade.accessor import WEB
from sharepoint_admin.rest.models import (
    FIELD_ID,
    FIELD_LOGIN_NAME,
    ResourceKind,
    ResourceRef,
    matches_login,
    to_claims_login,
)

if TYPE_CHECKING:
    from sharepoint_admin.facade.accessor import ResourceAccessor
    from sharepoint_admin.facade.permissions import PermissionInspector
    from sharepoint_admin.session import Session

logger = logging.getLogger(__name__)


class GroupMembershipManager:
    """Manages site group membership."""

    def __init__(
        self,
        session: Session,
        accessor: ResourceAccessor,
        inspector: PermissionInspector,
    ) -> None:
        self._session = session
        self._accessor = accessor
        self._inspector = inspector

    def add_member(self, group_name: str, login: str) -> None:
        """Add a principal to a group.

        Raises:
            NotFoundError: If the group does not exist.
            ConflictError: If the principal is already a member.
        """
        group = self._accessor.get_one(ResourceKind.GROUP, ResourceRef(name=group_name))
        members = self._inspector.group_members(group_name)
        if any(matches_login(m, login) for m in members):
            raise ConflictError(f"{login} is already a member of {group_name}", ref=group_name)

        with translated_errors(group_name):
            self._session.require_client().post(
                f"{WEB}/sitegroups/GetById({group.id})/users",
                {FIELD_LOGIN_NAME: to_claims_login(login)},
            )
        logger.info("[add_member] member added; group:%s;login:%s", group_name, login)

    def remove_member(self, group_name: str, login: str) -> None:
        """Remove a principal from a group; removing a non-member does nothing.

        Raises:
            NotFoundError: If the group does not exist.
        """
        group = self._accessor.get_one(ResourceKind.GROUP, ResourceRef(name=group_name))
        members = self._inspector.group_members(group_name)
        member = next((m for m in members if matches_login(m, login)), None)
        if member is None:
            logger.info("[remove_member] not a member, nothing to do; group:%s;login:%s", group_name, login)
            return

        with translated_errors(group_name):
            self._session.require_client().post(
                f"{WEB}/sitegroups/GetById({group.id})/users/removeById({member[FIELD_ID]})"
            )
        logger.info("[remove_member] member removed; group:%s;login:%s", group_name, login)
