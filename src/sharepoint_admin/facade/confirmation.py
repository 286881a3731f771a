"""Confirmation gate in front of destructive operations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import typer

from sharepoint_admin.errors import OperationCancelledError

logger = logging.getLogger(__name__)

Confirmer = Callable[[str], bool]


def prompt_confirmation(message: str) -> bool:
    """Ask the operator on the terminal; defaults to no."""
    return typer.confirm(message, default=False)


def deny_confirmation(message: str) -> bool:
    """Confirmer for surfaces that cannot prompt: always declines."""
    logger.info("[deny_confirmation] non-interactive caller; declined:%s", message)
    return False


def require_confirmation(confirm: Confirmer, message: str, force: bool, ref: Any = None) -> None:
    """Pass the gate or raise.

    Must be called before the first mutating request of an operation.

    Raises:
        OperationCancelledError: If force is not set and the confirmer declines.
    """
    if force:
        return
    if not confirm(message):
        logger.info("[require_confirmation] operation cancelled; message:%s", message)
        raise OperationCancelledError(f"Cancelled: {message}", ref)
