"""HTTP trigger blueprint — health check, permission reports and recycle bin endpoints."""

import json
import logging
from dataclasses import asdict
from typing import Any

import azure.functions as func

from sharepoint_admin import __version__
from sharepoint_admin.config import load_config
from sharepoint_admin.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    OperationCancelledError,
    PermissionDeniedError,
    SharePointAdminError,
    ValidationError,
)
from sharepoint_admin.facade.admin import SharePointAdmin, admin_from_config
from sharepoint_admin.facade.confirmation import deny_confirmation

logger = logging.getLogger(__name__)

bp = func.Blueprint()

_STATUS_BY_ERROR: list[tuple[type[SharePointAdminError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (OperationCancelledError, 409),
]


def _json(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(payload), status_code=status_code, mimetype="application/json")


def _error_response(exc: SharePointAdminError) -> func.HttpResponse:
    status = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 500)
    return _json({"status": "error", "error": type(exc).__name__, "message": exc.message}, status)


def _admin() -> SharePointAdmin:
    # HTTP callers cannot answer a prompt; destructive routes need "force".
    return admin_from_config(load_config(), confirm=deny_confirmation)


def _require_param(req: func.HttpRequest, name: str) -> str:
    value = req.params.get(name)
    if not value:
        raise ValidationError(f"Missing query parameter '{name}'")
    return value


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")

    try:
        return _json({"status": "ok", "version": __version__})

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="groups/report", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def groups_report(req: func.HttpRequest) -> func.HttpResponse:
    """One row per (group, member) with the group's role names."""
    logger.info("[groups_report] group report requested")

    try:
        rows = _admin().permissions.list_groups_with_members()
        results = [
            {"principal": row.principal, "group": row.group, "roles": sorted(row.roles)} for row in rows
        ]
        return _json({"status": "ok", "count": len(results), "results": results})

    except SharePointAdminError as exc:
        logger.warning("[groups_report] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[groups_report] group report failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="access/site", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def site_access(req: func.HttpRequest) -> func.HttpResponse:
    """Heuristic site access check for ?login=."""
    try:
        login = _require_param(req, "login")
        has_access = _admin().permissions.user_has_site_access(login)
        logger.info("[site_access] checked; login:%s;has_access:%s", login, has_access)
        return _json({"status": "ok", "login": login, "has_access": has_access})

    except SharePointAdminError as exc:
        logger.warning("[site_access] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[site_access] site access check failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="access/list", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def list_access(req: func.HttpRequest) -> func.HttpResponse:
    """Heuristic list access check for ?list=&login=."""
    try:
        list_name = _require_param(req, "list")
        login = _require_param(req, "login")
        has_access = _admin().permissions.user_has_list_access(list_name, login)
        logger.info("[list_access] checked; list:%s;login:%s;has_access:%s", list_name, login, has_access)
        return _json({"status": "ok", "list": list_name, "login": login, "has_access": has_access})

    except SharePointAdminError as exc:
        logger.warning("[list_access] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[list_access] list access check failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="groups/{group}/members/check", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def group_member_check(req: func.HttpRequest) -> func.HttpResponse:
    """Exact membership check of ?login= in the group named in the route."""
    try:
        group = req.route_params.get("group", "")
        login = _require_param(req, "login")
        is_member = _admin().permissions.is_group_member(group, login)
        return _json({"status": "ok", "group": group, "login": login, "is_member": is_member})

    except SharePointAdminError as exc:
        logger.warning("[group_member_check] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[group_member_check] membership check failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="recyclebin", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def recycle_bin_list(req: func.HttpRequest) -> func.HttpResponse:
    """List recycle bin entries; ?name= filters by leaf name, ?location= by path substring."""
    try:
        admin = _admin()
        name = req.params.get("name")
        raw_limit = req.params.get("row_limit")
        row_limit = int(raw_limit) if raw_limit else None
        if name:
            entries = admin.recycle_bin.find_by_name(name, req.params.get("location"), row_limit)
        else:
            entries = admin.recycle_bin.list_all(row_limit)
        results = [asdict(entry) for entry in entries]
        return _json({"status": "ok", "count": len(results), "results": results})

    except ValueError:
        return _error_response(ValidationError("row_limit must be an integer"))
    except SharePointAdminError as exc:
        logger.warning("[recycle_bin_list] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[recycle_bin_list] recycle bin listing failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)


@bp.route(route="recyclebin/restore", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def recycle_bin_restore(req: func.HttpRequest) -> func.HttpResponse:
    """Restore entries. Body: {"ids": [...]} or {"row_limit": n}, plus "force": true."""
    logger.info("[recycle_bin_restore] restore requested")

    try:
        try:
            body = req.get_json()
        except ValueError:
            raise ValidationError("Request body must be JSON") from None
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        ids = body.get("ids")
        if ids is not None and (not isinstance(ids, list) or not all(isinstance(i, str) for i in ids)):
            raise ValidationError("ids must be a list of strings", ids)
        row_limit = body.get("row_limit")
        if row_limit is not None and (not isinstance(row_limit, int) or isinstance(row_limit, bool)):
            raise ValidationError("row_limit must be an integer", row_limit)

        result = _admin().recycle_bin.restore(
            ids=ids,
            row_limit=row_limit,
            force=bool(body.get("force", False)),
        )
        failures = [{"id": entry_id, "error": str(err)} for entry_id, err in result.failures]
        return _json({"status": "ok", "restored_count": result.restored_count, "failures": failures})

    except SharePointAdminError as exc:
        logger.warning("[recycle_bin_restore] request failed; error:%s", exc)
        return _error_response(exc)
    except Exception:
        logger.error("[recycle_bin_restore] restore failed", exc_info=True)
        return _json({"status": "error", "message": "Internal server error"}, 500)
