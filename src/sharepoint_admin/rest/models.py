"""Data models for SharePoint resources, permissions and recycle bin entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# SharePoint REST JSON field names
FIELD_ID = "Id"
FIELD_TITLE = "Title"
FIELD_NAME = "Name"
FIELD_URL = "Url"
FIELD_SERVER_RELATIVE_URL = "ServerRelativeUrl"
FIELD_STRING_VALUE = "StringValue"
FIELD_LOGIN_NAME = "LoginName"
FIELD_EMAIL = "Email"
FIELD_USER_PRINCIPAL_NAME = "UserPrincipalName"
FIELD_MEMBER = "Member"
FIELD_ROLE_BINDINGS = "RoleDefinitionBindings"
FIELD_LEAF_NAME = "LeafName"
FIELD_DIR_NAME = "DirName"

# OData response keys
ODATA_NEXT_LINK = "odata.nextLink"
ODATA_VALUE = "value"

CLAIMS_PREFIX = "i:0#.f|membership|"


class ResourceKind(str, Enum):
    """Kinds of remote resource handled by the resource accessor."""

    SITE = "site"
    LIST = "list"
    ITEM = "item"
    COLUMN = "column"
    CONTENT_TYPE = "content_type"
    GROUP = "group"


class SiteType(str, Enum):
    """Site templates accepted by site creation."""

    TEAM_SITE = "TeamSite"
    COMMUNICATION_SITE = "CommunicationSite"
    TEAM_SITE_WITHOUT_GROUP = "TeamSiteWithoutGroup"


@dataclass(frozen=True)
class ResourceRef:
    """Reference to a remote resource by name, id or path.

    Attributes:
        name: Display name (title) of the resource.
        id: Opaque identifier (GUID, integer item id, content type id).
        path: Server-relative or absolute path of the resource.
        parent: Reference to the owning list, for items and list-scoped
            columns or content types.
    """

    name: str | None = None
    id: str | int | None = None
    path: str | None = None
    parent: ResourceRef | None = None

    def describe(self) -> str:
        parts = [f"{label}={value}" for label, value in self.identifiers()]
        if self.parent is not None:
            parts.append(f"parent=({self.parent.describe()})")
        return ", ".join(parts) or "<empty>"

    def identifiers(self) -> list[tuple[str, str | int]]:
        """Return the supplied identifiers in resolution order (name, id, path)."""
        candidates: list[tuple[str, str | int | None]] = [
            ("name", self.name),
            ("id", self.id),
            ("path", self.path),
        ]
        return [(label, value) for label, value in candidates if value not in (None, "")]  # type: ignore[misc]


@dataclass
class Resource:
    """A remote resource as returned by the store."""

    kind: ResourceKind
    id: str
    name: str
    path: str
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RoleDefinition:
    """A permission level grantable to a principal."""

    id: int
    name: str
    description: str = ""
    hidden: bool = False
    base_permissions: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PermissionReportEntry:
    """One (group, member) row of the group permission report."""

    principal: str
    group: str
    roles: frozenset[str] = frozenset()


@dataclass
class RecycleBinEntry:
    """A soft-deleted resource retained in the site recycle bin."""

    id: str
    leaf_name: str
    original_path: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class UpdateResult:
    """Aggregate outcome of a bulk update."""

    updated_count: int = 0
    failures: list[tuple[Any, Exception]] = field(default_factory=list)


@dataclass
class RestoreResult:
    """Aggregate outcome of a recycle bin restore."""

    restored_count: int = 0
    failures: list[tuple[str, Exception]] = field(default_factory=list)


def to_claims_login(login: str) -> str:
    """Convert a plain login (UPN or e-mail) to SharePoint Online claims form."""
    if "|" in login:
        return login
    return f"{CLAIMS_PREFIX}{login}"


def principal_names(raw: dict[str, Any]) -> set[str]:
    """Return the literal names a principal record can be matched by."""
    names = {raw.get(FIELD_LOGIN_NAME), raw.get(FIELD_EMAIL), raw.get(FIELD_USER_PRINCIPAL_NAME)}
    return {n for n in names if n}


def matches_login(raw: dict[str, Any], login: str) -> bool:
    """Exact match of a login (plain or claims form) against a principal record."""
    names = principal_names(raw)
    return login in names or to_claims_login(login) in names
