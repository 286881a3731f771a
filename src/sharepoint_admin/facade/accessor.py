"""Generic get/create/update/delete over SharePoint resource kinds."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from sharepoint_admin.errors import (
    NotFoundError,
    RemoteOperationError,
    SharePointAdminError,
    ValidationError,
    translated_errors,
)
from sharepoint_admin.facade.confirmation import Confirmer, prompt_confirmation, require_confirmation
from sharepoint_admin.rest.models import (
    FIELD_ID,
    FIELD_NAME,
    FIELD_STRING_VALUE,
    FIELD_TITLE,
    FIELD_URL,
    ODATA_VALUE,
    Resource,
    ResourceKind,
    ResourceRef,
    SiteType,
    UpdateResult,
)
from sharepoint_admin.rest.paging import DEFAULT_PAGE_SIZE, SEARCH_QUERY, iter_records, iter_search_rows
from sharepoint_admin.session import temporary_connection

if TYPE_CHECKING:
    from sharepoint_admin.rest.client import SharePointClient
    from sharepoint_admin.session import Session

logger = logging.getLogger(__name__)

WEB = "/_api/web"
SITE = "/_api/site"
SITE_DELETE = "/_api/SPSiteManager/delete"

# Site provisioning status values returned by SPSiteManager / GroupSiteManager
SITE_STATUS_READY = 2
SITE_STATUS_ERROR = 3

SITE_QUERY = "contentclass:STS_Site"
SITE_SEARCH_PROPERTIES = ["SiteId", "Title", "Path"]

_WEB_TEMPLATES = {
    SiteType.COMMUNICATION_SITE: "SITEPAGEPUBLISHING#0",
    SiteType.TEAM_SITE_WITHOUT_GROUP: "STS#3",
}

RefLike = ResourceRef | int | str


def odata_literal(value: str) -> str:
    """Quote a string as an OData literal, doubling embedded quotes."""
    return "'" + str(value).replace("'", "''") + "'"


def as_ref(value: RefLike, parent: ResourceRef | None = None) -> ResourceRef:
    """Coerce an int (id) or str (name) into a ResourceRef."""
    if isinstance(value, ResourceRef):
        return value
    if isinstance(value, int):
        return ResourceRef(id=value, parent=parent)
    return ResourceRef(name=value, parent=parent)


# ----------------------------------------------------------------------
# Per-kind endpoint tables
# ----------------------------------------------------------------------


class _KindEndpoints:
    """Endpoints and validation rules for one resource kind.

    ``base`` is the REST path of the scope that owns the collection:
    ``/_api/web`` for web-scoped resources, or the list entity path for
    list-scoped ones.
    """

    kind: ResourceKind
    name_field = FIELD_TITLE
    path_field: str | None = None
    parent_required = False
    parent_allowed = False
    recyclable = False

    def collection(self, base: str) -> str:
        raise NotImplementedError

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        """Return (path, query_params) for one identifier, or None if unsupported.

        When query_params is not None the path is a collection query and the
        first returned record is the match.
        """
        raise NotImplementedError

    def entity(self, base: str, resource: Resource) -> str:
        raise NotImplementedError

    def validate_create(self, spec: dict[str, Any]) -> None:
        if not spec.get(self.name_field):
            raise ValidationError(f"{self.kind.value} creation requires '{self.name_field}'", spec)

    def create_body(self, spec: dict[str, Any]) -> dict[str, Any]:
        return dict(spec)

    def create_path(self, base: str, spec: dict[str, Any]) -> str:
        return self.collection(base)

    def delete(self, client: SharePointClient, base: str, resource: Resource) -> None:
        client.delete(self.entity(base, resource))

    def to_resource(self, raw: dict[str, Any]) -> Resource:
        raw_id = raw.get(FIELD_ID, "")
        if isinstance(raw_id, dict):
            raw_id = raw_id.get(FIELD_STRING_VALUE, "")
        elif FIELD_STRING_VALUE in raw and not raw_id:
            raw_id = raw[FIELD_STRING_VALUE]
        path = raw.get(self.path_field, "") if self.path_field else ""
        return Resource(
            kind=self.kind,
            id=str(raw_id),
            name=str(raw.get(self.name_field, "")),
            path=str(path or ""),
            fields=raw,
        )


class _SiteEndpoints(_KindEndpoints):
    """Site collections.

    Names and ids are resolved through the search index, paths (absolute
    site URLs) through a secondary session on the site itself. Either way
    the record is normalised to {Id, Title, Url} where Id is the site
    collection id, the same id SPSiteManager reports on creation.
    """

    kind = ResourceKind.SITE
    path_field = FIELD_URL

    def collection(self, base: str) -> str:
        return SEARCH_QUERY

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        # Resolved by ResourceAccessor._fetch_site.
        return None

    def entity(self, base: str, resource: Resource) -> str:
        return WEB

    def validate_create(self, spec: dict[str, Any]) -> None:
        raw_type = spec.get("type")
        if not raw_type:
            raise ValidationError("Site creation requires 'type'", spec)
        try:
            site_type = SiteType(raw_type)
        except ValueError:
            allowed = ", ".join(t.value for t in SiteType)
            raise ValidationError(f"Unknown site type {raw_type!r}; expected one of: {allowed}", spec) from None
        if not spec.get("title"):
            raise ValidationError("Site creation requires 'title'", spec)
        if site_type is SiteType.TEAM_SITE:
            if not spec.get("alias"):
                raise ValidationError("TeamSite requires 'alias'", spec)
            if spec.get("url"):
                raise ValidationError("TeamSite takes an 'alias', not a 'url'", spec)
        else:
            if not spec.get("url"):
                raise ValidationError(f"{site_type.value} requires a full 'url'", spec)
            if spec.get("alias"):
                raise ValidationError(f"{site_type.value} takes a 'url', not an 'alias'", spec)

    def create_path(self, base: str, spec: dict[str, Any]) -> str:
        if SiteType(spec["type"]) is SiteType.TEAM_SITE:
            return "/_api/GroupSiteManager/CreateGroupEx"
        return "/_api/SPSiteManager/create"

    def create_body(self, spec: dict[str, Any]) -> dict[str, Any]:
        site_type = SiteType(spec["type"])
        if site_type is SiteType.TEAM_SITE:
            optional: dict[str, Any] = {"Description": spec.get("description", "")}
            if spec.get("owners"):
                optional["Owners"] = list(spec["owners"])
            return {
                "displayName": spec["title"],
                "alias": spec["alias"],
                "isPublic": bool(spec.get("is_public", False)),
                "optionalParams": optional,
            }
        request: dict[str, Any] = {
            "Title": spec["title"],
            "Url": spec["url"],
            "Lcid": int(spec.get("lcid", 1033)),
            "WebTemplate": _WEB_TEMPLATES[site_type],
            "Description": spec.get("description", ""),
        }
        if spec.get("owner"):
            request["Owner"] = spec["owner"]
        return {"request": request}

    def delete(self, client: SharePointClient, base: str, resource: Resource) -> None:
        client.post(SITE_DELETE, {"siteId": resource.id})


class _ListEndpoints(_KindEndpoints):
    kind = ResourceKind.LIST
    recyclable = True

    def collection(self, base: str) -> str:
        return f"{WEB}/lists"

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        if label == "name":
            return f"{WEB}/lists/GetByTitle({odata_literal(str(value))})", None
        if label == "id":
            return f"{WEB}/lists(guid'{value}')", None
        return f"{WEB}/GetList({odata_literal(str(value))})", None

    def entity(self, base: str, resource: Resource) -> str:
        return f"{WEB}/lists(guid'{resource.id}')"

    def validate_create(self, spec: dict[str, Any]) -> None:
        super().validate_create(spec)
        template = spec.get("BaseTemplate", 100)
        if not isinstance(template, int) or isinstance(template, bool):
            raise ValidationError("'BaseTemplate' must be an integer template id", spec)

    def create_body(self, spec: dict[str, Any]) -> dict[str, Any]:
        return {"BaseTemplate": 100, **spec}

    def to_resource(self, raw: dict[str, Any]) -> Resource:
        resource = super().to_resource(raw)
        root_folder = raw.get("RootFolder") or {}
        resource.path = str(root_folder.get("ServerRelativeUrl", "")) if isinstance(root_folder, dict) else ""
        return resource


class _ItemEndpoints(_KindEndpoints):
    kind = ResourceKind.ITEM
    path_field = "FileRef"
    parent_required = True
    parent_allowed = True
    recyclable = True

    def collection(self, base: str) -> str:
        return f"{base}/items"

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        if label == "name":
            return self.collection(base), {"$filter": f"Title eq {odata_literal(str(value))}"}
        if label == "id":
            try:
                item_id = int(value)
            except ValueError:
                return None
            return f"{base}/items({item_id})", None
        return f"{WEB}/GetFileByServerRelativePath(decodedurl={odata_literal(str(value))})/ListItemAllFields", None

    def entity(self, base: str, resource: Resource) -> str:
        return f"{base}/items({resource.id})"

    def validate_create(self, spec: dict[str, Any]) -> None:
        if not spec:
            raise ValidationError("Item creation requires at least one field value", spec)


class _ColumnEndpoints(_KindEndpoints):
    kind = ResourceKind.COLUMN
    path_field = "InternalName"
    parent_allowed = True

    def collection(self, base: str) -> str:
        return f"{base}/fields"

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        if label == "name":
            return f"{base}/fields/GetByInternalNameOrTitle({odata_literal(str(value))})", None
        if label == "id":
            return f"{base}/fields(guid'{value}')", None
        return None

    def entity(self, base: str, resource: Resource) -> str:
        return f"{base}/fields(guid'{resource.id}')"

    def validate_create(self, spec: dict[str, Any]) -> None:
        if spec.get("SchemaXml"):
            return
        super().validate_create(spec)
        kind = spec.get("FieldTypeKind", 2)
        if not isinstance(kind, int) or isinstance(kind, bool):
            raise ValidationError("'FieldTypeKind' must be an integer", spec)

    def create_path(self, base: str, spec: dict[str, Any]) -> str:
        if spec.get("SchemaXml"):
            return f"{base}/fields/CreateFieldAsXml"
        return self.collection(base)

    def create_body(self, spec: dict[str, Any]) -> dict[str, Any]:
        if spec.get("SchemaXml"):
            return {"parameters": {"SchemaXml": spec["SchemaXml"]}}
        return {"FieldTypeKind": 2, **spec}


class _ContentTypeEndpoints(_KindEndpoints):
    kind = ResourceKind.CONTENT_TYPE
    name_field = FIELD_NAME
    parent_allowed = True

    def collection(self, base: str) -> str:
        return f"{base}/contenttypes"

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        if label == "name":
            return self.collection(base), {"$filter": f"Name eq {odata_literal(str(value))}"}
        if label == "id":
            return f"{base}/contenttypes({odata_literal(str(value))})", None
        return None

    def entity(self, base: str, resource: Resource) -> str:
        return f"{base}/contenttypes({odata_literal(resource.id)})"

    def create_body(self, spec: dict[str, Any]) -> dict[str, Any]:
        body = dict(spec)
        if isinstance(body.get(FIELD_ID), str):
            body[FIELD_ID] = {FIELD_STRING_VALUE: body[FIELD_ID]}
        return body


class _GroupEndpoints(_KindEndpoints):
    kind = ResourceKind.GROUP

    def collection(self, base: str) -> str:
        return f"{WEB}/sitegroups"

    def lookup(self, base: str, label: str, value: str | int) -> tuple[str, dict[str, Any] | None] | None:
        if label == "name":
            return f"{WEB}/sitegroups/GetByName({odata_literal(str(value))})", None
        if label == "id":
            return f"{WEB}/sitegroups/GetById({value})", None
        return None

    def entity(self, base: str, resource: Resource) -> str:
        return f"{WEB}/sitegroups/GetById({resource.id})"

    def delete(self, client: SharePointClient, base: str, resource: Resource) -> None:
        client.post(f"{WEB}/sitegroups/RemoveById({resource.id})")


KINDS: dict[ResourceKind, _KindEndpoints] = {
    impl.kind: impl
    for impl in (
        _SiteEndpoints(),
        _ListEndpoints(),
        _ItemEndpoints(),
        _ColumnEndpoints(),
        _ContentTypeEndpoints(),
        _GroupEndpoints(),
    )
}


# ----------------------------------------------------------------------
# Accessor
# ----------------------------------------------------------------------


class ResourceAccessor:
    """Uniform CRUD and query operations over every resource kind."""

    def __init__(
        self,
        session: Session,
        confirm: Confirmer = prompt_confirmation,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialise the accessor.

        Args:
            session: Active session every request is issued through.
            confirm: Confirmer consulted before destructive operations.
            page_size: Default page size for collection reads.
        """
        self._session = session
        self._confirm = confirm
        self._page_size = page_size

    @property
    def session(self) -> Session:
        return self._session

    # -- reads ---------------------------------------------------------

    def get_one(self, kind: ResourceKind, ref: RefLike, fields: Sequence[str] | None = None) -> Resource:
        """Resolve a reference to a single resource.

        Identifiers are tried in the order name, id, path; the first one the
        store resolves wins.

        Args:
            kind: Kind of resource to look up.
            ref: Reference to resolve.
            fields: Optional field projection ($select). Ignored for sites,
                which always carry Id, Title and Url.

        Returns:
            The resolved Resource.

        Raises:
            ValidationError: If the reference carries no identifier usable for this kind.
            NotFoundError: If no identifier resolves.
        """
        impl = KINDS[kind]
        ref = as_ref(ref)
        self._check_ref(impl, ref)
        resource, _ = self._resolve(impl, ref, fields)
        return resource

    def _resolve(
        self, impl: _KindEndpoints, ref: ResourceRef, fields: Sequence[str] | None = None
    ) -> tuple[Resource, str]:
        """Resolve a reference; returns the resource and the base path of its scope."""
        kind = impl.kind
        base = self._base(impl, ref.parent)
        params = _select(fields)

        attempted = False
        for label, value in ref.identifiers():
            if kind is ResourceKind.SITE:
                attempted = True
                raw = self._fetch_site(label, value, ref)
            else:
                lookup = impl.lookup(base, label, value)
                if lookup is None:
                    continue
                attempted = True
                raw = self._fetch(lookup, ref, params)
            if raw is not None:
                logger.info("[get_one] resolved; kind:%s;by:%s;value:%s", kind.value, label, value)
                return impl.to_resource(raw), base

        if not attempted:
            raise ValidationError(f"{kind.value} cannot be resolved from {ref.describe()}", ref)
        raise NotFoundError(f"{kind.value} not found: {ref.describe()}", ref)

    def get_all(
        self,
        kind: ResourceKind,
        fields: Sequence[str] | None = None,
        filter: str | None = None,
        page_size: int | None = None,
        parent: ResourceRef | None = None,
    ) -> Iterator[Resource]:
        """Lazily iterate every resource of a kind.

        Paging is hidden from the caller. The returned iterator is consumed
        once; call again for a fresh read.

        Args:
            kind: Kind of resource to enumerate.
            fields: Optional field projection ($select).
            filter: Optional OData $filter expression, passed through verbatim.
                For sites it is a KQL refinement appended to the site query.
            page_size: Records per page; defaults to the accessor's page size.
            parent: Owning list for list-scoped kinds.

        Yields:
            Resources in store order.
        """
        impl = KINDS[kind]
        if parent is None and impl.parent_required:
            raise ValidationError(f"{kind.value} enumeration requires a parent list")
        size = page_size if page_size is not None else self._page_size
        if size < 1:
            raise ValidationError("page_size must be positive", size)
        return self._iter_all(impl, fields, filter, size, parent)

    def _iter_all(
        self,
        impl: _KindEndpoints,
        fields: Sequence[str] | None,
        filter: str | None,
        page_size: int,
        parent: ResourceRef | None,
    ) -> Iterator[Resource]:
        client = self._session.require_client()
        if impl.kind is ResourceKind.SITE:
            # Sites come from the search index; filter is a KQL refinement.
            query = f"{SITE_QUERY} {filter}" if filter else SITE_QUERY
            with translated_errors(query):
                for row in iter_search_rows(
                    client, query, SITE_SEARCH_PROPERTIES, page_size=page_size, key=lambda r: r.get("SiteId")
                ):
                    yield impl.to_resource(_site_record(row))
            return

        base = self._base(impl, parent)
        params = _select(fields) or {}
        if filter:
            params["$filter"] = filter
        path = impl.collection(base)
        with translated_errors(path):
            for raw in iter_records(client, path, params=params, page_size=page_size):
                yield impl.to_resource(raw)

    # -- writes --------------------------------------------------------

    def create(self, kind: ResourceKind, spec: dict[str, Any], parent: ResourceRef | None = None) -> Resource:
        """Create a resource.

        Args:
            kind: Kind of resource to create.
            spec: Field values for the new resource. Sites take ``type``,
                ``title`` and either ``alias`` (TeamSite) or ``url``; other
                kinds take SharePoint field names.
            parent: Owning list for list-scoped kinds.

        Returns:
            The created Resource.

        Raises:
            ValidationError: If the spec is malformed (no request is sent).
            ConflictError: If the store reports the resource already exists.
        """
        impl = KINDS[kind]
        if not isinstance(spec, dict):
            raise ValidationError("Creation spec must be a mapping", spec)
        if parent is None and impl.parent_required:
            raise ValidationError(f"{kind.value} creation requires a parent list", spec)
        if parent is not None and not impl.parent_allowed:
            raise ValidationError(f"{kind.value} does not take a parent", spec)
        impl.validate_create(spec)

        base = self._base(impl, parent)
        client = self._session.require_client()
        with translated_errors(spec):
            raw = client.post(impl.create_path(base, spec), impl.create_body(spec))

        if kind is ResourceKind.SITE:
            resource = self._site_from_creation(spec, raw)
        else:
            resource = impl.to_resource(raw)
        logger.info("[create] created; kind:%s;id:%s;name:%s", kind.value, resource.id, resource.name)
        return resource

    def update_one(self, kind: ResourceKind, ref: RefLike, values: dict[str, Any]) -> None:
        """Apply field values to one resource.

        Raises:
            ValidationError: If values is empty.
            NotFoundError: If the reference does not resolve.
        """
        _check_values(values)
        impl = KINDS[kind]
        ref = as_ref(ref)
        self._check_ref(impl, ref)
        resource, base = self._resolve(impl, ref)

        if kind is ResourceKind.SITE:
            with temporary_connection(self._session, resource.path) as site, translated_errors(ref):
                site.require_client().merge(WEB, values)
        else:
            with translated_errors(ref):
                self._session.require_client().merge(impl.entity(base, resource), values)
        logger.info("[update_one] updated; kind:%s;id:%s;fields:%s", kind.value, resource.id, sorted(values))

    def update_many(
        self,
        kind: ResourceKind,
        refs_or_filter: Sequence[RefLike] | str,
        values: dict[str, Any],
        parent: ResourceRef | None = None,
    ) -> UpdateResult:
        """Apply the same values to many resources, independently.

        Args:
            kind: Kind of resource to update.
            refs_or_filter: Explicit references (ints are ids) or an OData
                filter resolved to ids with a read query first.
            values: Field values to apply.
            parent: Owning list for list-scoped kinds.

        Returns:
            UpdateResult counting successes and listing (ref, error) failures.
            A failure on one resource never stops the remaining updates.
        """
        _check_values(values)
        targets: list[tuple[Any, ResourceRef]]
        if isinstance(refs_or_filter, str):
            matches = self.get_all(kind, fields=[FIELD_ID], filter=refs_or_filter, parent=parent)
            targets = [(m.id, ResourceRef(id=m.id, parent=parent)) for m in matches]
            logger.info("[update_many] filter resolved; kind:%s;count:%d", kind.value, len(targets))
        else:
            targets = [(original, _with_parent(as_ref(original), parent)) for original in refs_or_filter]

        result = UpdateResult()
        for original, ref in targets:
            try:
                self.update_one(kind, ref, values)
            except SharePointAdminError as exc:
                logger.warning(
                    "[update_many] update failed; kind:%s;ref:%s;error:%s", kind.value, original, exc
                )
                result.failures.append((original, exc))
            else:
                result.updated_count += 1
        logger.info(
            "[update_many] complete; kind:%s;updated:%d;failed:%d",
            kind.value,
            result.updated_count,
            len(result.failures),
        )
        return result

    def delete(
        self,
        kind: ResourceKind,
        ref: RefLike,
        skip_recycle: bool = False,
        force: bool = False,
    ) -> None:
        """Delete a resource after the confirmation gate.

        Lists and items go to the recycle bin unless skip_recycle is set;
        other kinds are removed permanently.

        Raises:
            OperationCancelledError: If the confirmation is declined.
            NotFoundError: If the reference does not resolve.
            PermissionDeniedError: If the store refuses the deletion.
        """
        impl = KINDS[kind]
        ref = as_ref(ref)
        self._check_ref(impl, ref)
        action = "Permanently delete" if skip_recycle or not impl.recyclable else "Recycle"
        require_confirmation(self._confirm, f"{action} {kind.value} {ref.describe()}?", force, ref)

        resource, base = self._resolve(impl, ref)
        client = self._session.require_client()
        with translated_errors(ref):
            if impl.recyclable and not skip_recycle:
                client.post(f"{impl.entity(base, resource)}/recycle()")
            else:
                impl.delete(client, base, resource)
        logger.info("[delete] deleted; kind:%s;id:%s;recycled:%s", kind.value, resource.id, action == "Recycle")

    # -- helpers -------------------------------------------------------

    def list_path(self, ref: ResourceRef) -> str:
        """Resolve a list reference to its entity path (``/_api/web/lists(guid'...')``)."""
        resource = self.get_one(ResourceKind.LIST, ref, fields=[FIELD_ID])
        return KINDS[ResourceKind.LIST].entity(WEB, resource)

    def _base(self, impl: _KindEndpoints, parent: ResourceRef | None) -> str:
        if parent is None or not impl.parent_allowed:
            return WEB
        return self.list_path(parent)

    @staticmethod
    def _check_ref(impl: _KindEndpoints, ref: ResourceRef) -> None:
        if not ref.identifiers():
            raise ValidationError("Resource reference needs a name, id or path", ref)
        if impl.parent_required and ref.parent is None:
            raise ValidationError(f"{impl.kind.value} reference requires a parent list", ref)

    def _fetch(
        self,
        lookup: tuple[str, dict[str, Any] | None],
        ref: ResourceRef,
        params: dict[str, Any] | None,
    ) -> dict[str, Any] | None:
        path, query = lookup
        client = self._session.require_client()
        try:
            with translated_errors(ref):
                if query is None:
                    return client.get(path, params=params)
                response = client.get(path, params={**(params or {}), **query, "$top": 1})
        except NotFoundError:
            return None
        matches = response.get(ODATA_VALUE, [])
        return matches[0] if matches else None

    def _fetch_site(self, label: str, value: str | int, ref: Any) -> dict[str, Any] | None:
        """Find one site collection record ({Id, Title, Url}) by name, id or URL."""
        if label == "path":
            return self._fetch_site_by_url(str(value), ref)
        if label == "name":
            name = str(value)
            phrase = name.replace('"', "")
            query = f'{SITE_QUERY} Title:"{phrase}"'

            def matches(record: dict[str, Any]) -> bool:
                return record[FIELD_TITLE] == name
        else:
            site_id = _normalize_guid(value)
            query = f"{SITE_QUERY} SiteId:{site_id}"

            def matches(record: dict[str, Any]) -> bool:
                return record[FIELD_ID] == site_id

        client = self._session.require_client()
        with translated_errors(ref):
            for row in iter_search_rows(client, query, SITE_SEARCH_PROPERTIES, page_size=self._page_size):
                record = _site_record(row)
                if matches(record):
                    return record
        return None

    def _fetch_site_by_url(self, url: str, ref: Any) -> dict[str, Any] | None:
        try:
            with temporary_connection(self._session, url) as site, translated_errors(ref):
                client = site.require_client()
                site_record = client.get(SITE, params={"$select": "Id,Url"})
                web = client.get(WEB, params={"$select": FIELD_TITLE})
        except NotFoundError:
            return None
        return {
            FIELD_ID: _normalize_guid(site_record.get(FIELD_ID)),
            FIELD_TITLE: str(web.get(FIELD_TITLE) or ""),
            FIELD_URL: str(site_record.get(FIELD_URL) or url),
        }

    def _site_from_creation(self, spec: dict[str, Any], raw: dict[str, Any]) -> Resource:
        """Build the created site's Resource, read back from the new site when it is ready.

        A site still provisioning cannot be read yet; its Resource carries
        the SiteId reported by the create call (empty for group sites that
        have not finished) and the raw response in fields.
        """
        status = raw.get("SiteStatus")
        if status == SITE_STATUS_ERROR:
            raise RemoteOperationError(f"Site provisioning failed for {spec.get('title')!r}", spec)
        url = str(raw.get("SiteUrl") or spec.get("url") or "")
        impl = KINDS[ResourceKind.SITE]
        if status == SITE_STATUS_READY and url:
            record = self._fetch_site_by_url(url, spec)
            if record is not None:
                return impl.to_resource(record)
        logger.info("[create] site not readable yet; url:%s;status:%s", url, status)
        return Resource(
            kind=ResourceKind.SITE,
            id=_normalize_guid(raw.get("SiteId")),
            name=str(spec["title"]),
            path=url,
            fields=raw,
        )


def _select(fields: Sequence[str] | None) -> dict[str, Any] | None:
    if not fields:
        return None
    return {"$select": ",".join(fields)}


def _check_values(values: dict[str, Any]) -> None:
    if not isinstance(values, dict) or not values:
        raise ValidationError("Update requires a non-empty mapping of field values", values)


def _normalize_guid(value: Any) -> str:
    """GUIDs come back braced from search and bare from REST; compare them bare and lower-case."""
    if value is None:
        return ""
    return str(value).strip().strip("{}").lower()


def _site_record(row: dict[str, Any]) -> dict[str, Any]:
    return {
        FIELD_ID: _normalize_guid(row.get("SiteId")),
        FIELD_TITLE: str(row.get(FIELD_TITLE) or ""),
        FIELD_URL: str(row.get("Path") or ""),
    }


def _with_parent(ref: ResourceRef, parent: ResourceRef | None) -> ResourceRef:
    if parent is None or ref.parent is not None:
        return ref
    return ResourceRef(name=ref.name, id=ref.id, path=ref.path, parent=parent)
