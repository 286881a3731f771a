"""Command-line entry point: typer commands over the SharePointAdmin facade."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, Optional, TypeVar

import typer

from sharepoint_admin import __version__
from sharepoint_admin.config import load_config
from sharepoint_admin.errors import SharePointAdminError
from sharepoint_admin.facade.admin import SharePointAdmin, admin_from_config
from sharepoint_admin.rest.models import ResourceKind, ResourceRef

app = typer.Typer(add_completion=False, help="SharePoint administration CLI")

T = TypeVar("T")


@app.callback()
def _root(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr")) -> None:
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")


def _admin() -> SharePointAdmin:
    return admin_from_config(load_config())


def _run(action: Callable[[SharePointAdmin], T]) -> T:
    try:
        return action(_admin())
    except SharePointAdminError as exc:
        typer.echo(f"{type(exc).__name__}: {exc.message}", err=True)
        raise typer.Exit(code=1) from exc


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command()
def version() -> None:
    """Print the installed package version."""
    typer.echo(__version__)


@app.command("groups-report")
def groups_report() -> None:
    """Print one row per (group, member) with the group's roles."""
    rows = _run(lambda admin: admin.permissions.list_groups_with_members())
    _echo_json([{"group": r.group, "principal": r.principal, "roles": sorted(r.roles)} for r in rows])


@app.command("check-site-access")
def check_site_access(login: str) -> None:
    """Heuristic: is the user known to the site?"""
    typer.echo(str(_run(lambda admin: admin.permissions.user_has_site_access(login))).lower())


@app.command("check-member")
def check_member(group: str, login: str) -> None:
    """Print true if login is a member of group, else false."""
    typer.echo(str(_run(lambda admin: admin.permissions.is_group_member(group, login))).lower())


@app.command("add-member")
def add_member(group: str, login: str) -> None:
    """Add a user to a site group."""
    _run(lambda admin: admin.groups.add_member(group, login))
    typer.echo(f"Added {login} to {group}")


@app.command("remove-member")
def remove_member(group: str, login: str) -> None:
    """Remove a user from a site group."""
    _run(lambda admin: admin.groups.remove_member(group, login))
    typer.echo(f"{login} is no longer a member of {group}")


@app.command("recycle-list")
def recycle_list(
    name: Optional[str] = typer.Option(None, help="Exact leaf name to match"),
    location: Optional[str] = typer.Option(None, help="Substring of the original path"),
    row_limit: Optional[int] = typer.Option(None, help="Maximum entries to read (or search, with --name)"),
) -> None:
    """List recycle bin entries."""
    if name:
        entries = _run(lambda admin: admin.recycle_bin.find_by_name(name, location, row_limit))
    else:
        entries = _run(lambda admin: admin.recycle_bin.list_all(row_limit))
    _echo_json([
        {"id": e.id, "leaf_name": e.leaf_name, "original_path": e.original_path} for e in entries
    ])


@app.command("recycle-restore")
def recycle_restore(
    ids: Optional[list[str]] = typer.Option(None, "--id", help="Entry id (repeatable)"),
    row_limit: Optional[int] = typer.Option(None, help="Restore the first N entries"),
    force: bool = typer.Option(False, "--force", help="Skip the confirmation prompt"),
) -> None:
    """Restore recycle bin entries by id or by row limit."""
    result = _run(lambda admin: admin.recycle_bin.restore(ids=ids or None, row_limit=row_limit, force=force))
    typer.echo(f"Restored {result.restored_count}; failed {len(result.failures)}")
    for entry_id, err in result.failures:
        typer.echo(f"  {entry_id}: {err}", err=True)
    if result.failures:
        raise typer.Exit(code=1)


@app.command("update-items")
def update_items(
    list_name: str = typer.Argument(..., metavar="LIST"),
    assignments: list[str] = typer.Option(..., "--set", help="Field=Value (repeatable)"),
    ids: Optional[list[int]] = typer.Option(None, "--id", help="Item id (repeatable)"),
    filter: Optional[str] = typer.Option(None, "--filter", help="OData filter selecting items"),
) -> None:
    """Set field values on many list items; failures do not stop the batch."""
    if bool(ids) == bool(filter):
        typer.echo("Pass either --id or --filter", err=True)
        raise typer.Exit(code=2)
    values: dict[str, Any] = {}
    for assignment in assignments:
        field, sep, value = assignment.partition("=")
        if not sep or not field:
            typer.echo(f"Invalid --set {assignment!r}; expected Field=Value", err=True)
            raise typer.Exit(code=2)
        values[field] = value
    targets: list[Any] | str = filter if filter else list(ids or [])
    result = _run(
        lambda admin: admin.resources.update_many(
            ResourceKind.ITEM, targets, values, parent=ResourceRef(name=list_name)
        )
    )
    typer.echo(f"Updated {result.updated_count}; failed {len(result.failures)}")
    for ref, err in result.failures:
        typer.echo(f"  {ref}: {err}", err=True)
    if result.failures:
        raise typer.Exit(code=1)


@app.command()
def delete(
    kind: ResourceKind = typer.Argument(..., case_sensitive=False),
    name: Optional[str] = typer.Option(None),
    id: Optional[str] = typer.Option(None, "--id"),
    path: Optional[str] = typer.Option(None),
    list_name: Optional[str] = typer.Option(None, "--list", help="Owning list for items, columns, content types"),
    skip_recycle: bool = typer.Option(False, help="Delete permanently instead of recycling"),
    force: bool = typer.Option(False, "--force", help="Skip the confirmation prompt"),
) -> None:
    """Delete a resource, prompting for confirmation unless --force."""
    parent = ResourceRef(name=list_name) if list_name else None
    ref = ResourceRef(name=name, id=id, path=path, parent=parent)
    _run(lambda admin: admin.resources.delete(kind, ref, skip_recycle=skip_recycle, force=force))
    typer.echo(f"Deleted {kind.value} {ref.describe()}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
