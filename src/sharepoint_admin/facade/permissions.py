"""Read-only permission and access queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sharepoint_admin.errors import NotFoundError, SharePointAdminError, translated_errors
from sharepoint_admin.facade.accessor import WEB, odata_literal
from sharepoint_admin.rest.models import (
    FIELD_ID,
    FIELD_LOGIN_NAME,
    FIELD_MEMBER,
    FIELD_NAME,
    FIELD_ROLE_BINDINGS,
    FIELD_TITLE,
    PermissionReportEntry,
    ResourceRef,
    RoleDefinition,
    matches_login,
    to_claims_login,
)
from sharepoint_admin.rest.paging import iter_records

if TYPE_CHECKING:
    from sharepoint_admin.facade.accessor import ResourceAccessor
    from sharepoint_admin.session import Session

logger = logging.getLogger(__name__)


class PermissionInspector:
    """Answers who-can-access questions by composing read queries.

    The access checks are heuristics kept deliberately simple: they look at
    direct principal records and role bindings only. Sharing links,
    external sharing, group-transitive grants and deny assignments are not
    taken into account, and any lookup failure reads as "no access".
    """

    def __init__(self, session: Session, accessor: ResourceAccessor) -> None:
        self._session = session
        self._accessor = accessor

    def list_role_definitions(self) -> list[RoleDefinition]:
        """Return the permission levels defined on the connected site."""
        client = self._session.require_client()
        path = f"{WEB}/roledefinitions"
        with translated_errors(path):
            records = list(iter_records(client, path))
        return [_parse_role_definition(raw) for raw in records]

    def list_groups_with_members(self) -> list[PermissionReportEntry]:
        """Build one report row per (group, member) with the group's roles.

        A group whose members or role bindings cannot be read is logged and
        contributes no rows.
        """
        client = self._session.require_client()
        groups_path = f"{WEB}/sitegroups"
        with translated_errors(groups_path):
            groups = list(iter_records(client, groups_path, params={"$select": "Id,Title"}))

        report: list[PermissionReportEntry] = []
        for group in groups:
            group_id = group.get(FIELD_ID)
            title = str(group.get(FIELD_TITLE, ""))
            try:
                with translated_errors(title):
                    members = list(iter_records(client, f"{WEB}/sitegroups/GetById({group_id})/users"))
                    bindings = client.get(
                        f"{WEB}/roleassignments/GetByPrincipalId({group_id})/{FIELD_ROLE_BINDINGS}"
                    )
            except SharePointAdminError as exc:
                logger.warning(
                    "[list_groups_with_members] skipping group; group:%s;error:%s", title, exc
                )
                continue
            roles = frozenset(str(r.get(FIELD_NAME, "")) for r in bindings.get("value", []))
            for member in members:
                principal = str(member.get(FIELD_LOGIN_NAME) or member.get(FIELD_TITLE, ""))
                report.append(PermissionReportEntry(principal=principal, group=title, roles=roles))

        logger.info(
            "[list_groups_with_members] report built; groups:%d;rows:%d", len(groups), len(report)
        )
        return report

    def user_has_site_access(self, login: str) -> bool:
        """Heuristic: the user is known to the site.

        Existence of a site user record is treated as access. This is an
        approximation and does not reflect effective permissions.
        """
        return self._find_principal(login) is not None

    def user_has_list_access(self, list_ref: ResourceRef | str, login: str) -> bool:
        """Heuristic: the user holds at least one direct role binding on the list.

        A missing principal and a failed permission query both return False.
        """
        principal = self._find_principal(login)
        if principal is None:
            return False
        ref = list_ref if isinstance(list_ref, ResourceRef) else ResourceRef(name=list_ref)
        try:
            list_path = self._accessor.list_path(ref)
            with translated_errors(ref):
                bindings = self._session.require_client().get(
                    f"{list_path}/roleassignments/GetByPrincipalId({principal[FIELD_ID]})"
                    f"/{FIELD_ROLE_BINDINGS}"
                )
        except SharePointAdminError as exc:
            logger.warning(
                "[user_has_list_access] permission query failed; list:%s;login:%s;error:%s",
                ref.describe(),
                login,
                exc,
            )
            return False
        return bool(bindings.get("value"))

    def user_has_item_access(self, list_ref: ResourceRef | str, item_id: int, login: str) -> bool:
        """Exact principal-name match against the item's role assignments.

        Group membership is not expanded: a user granted access only through
        a group reads as False.
        """
        ref = list_ref if isinstance(list_ref, ResourceRef) else ResourceRef(name=list_ref)
        try:
            list_path = self._accessor.list_path(ref)
            with translated_errors(ref):
                assignments = list(
                    iter_records(
                        self._session.require_client(),
                        f"{list_path}/items({int(item_id)})/roleassignments",
                        params={"$expand": f"{FIELD_MEMBER},{FIELD_ROLE_BINDINGS}"},
                    )
                )
        except SharePointAdminError as exc:
            logger.warning(
                "[user_has_item_access] permission query failed; list:%s;item:%s;error:%s",
                ref.describe(),
                item_id,
                exc,
            )
            return False
        return any(matches_login(a.get(FIELD_MEMBER) or {}, login) for a in assignments)

    def is_group_member(self, group_name: str, login: str) -> bool:
        """Exact match of login against the group's member list; False if the group is missing."""
        try:
            members = self.group_members(group_name)
        except NotFoundError:
            logger.info("[is_group_member] group not found; group:%s", group_name)
            return False
        return any(matches_login(m, login) for m in members)

    def group_members(self, group_name: str) -> list[dict[str, Any]]:
        """Fetch the raw member records of a site group.

        Raises:
            NotFoundError: If the group does not exist.
        """
        path = f"{WEB}/sitegroups/GetByName({odata_literal(group_name)})/users"
        with translated_errors(group_name):
            return list(iter_records(self._session.require_client(), path))

    def _find_principal(self, login: str) -> dict[str, Any] | None:
        client = self._session.require_client()
        try:
            with translated_errors(login):
                return client.get(
                    f"{WEB}/siteusers/GetByLoginName(@v)",
                    params={"@v": odata_literal(to_claims_login(login))},
                )
        except NotFoundError:
            return None
        except SharePointAdminError as exc:
            logger.warning("[_find_principal] principal lookup failed; login:%s;error:%s", login, exc)
            return None


def _parse_role_definition(raw: dict[str, Any]) -> RoleDefinition:
    return RoleDefinition(
        id=int(raw.get(FIELD_ID, 0)),
        name=str(raw.get(FIELD_NAME, "")),
        description=str(raw.get("Description") or ""),
        hidden=bool(raw.get("Hidden", False)),
        base_permissions=dict(raw.get("BasePermissions") or {}),
    )
