"""Typed failures raised by the administrative façade."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sharepoint_admin.rest.client import (
    SharePointApiError,
    SharePointAuthError,
    SharePointConnectionError,
)

_CONFLICT_MARKERS = ("already exists", "already in use", "duplicate")


class SharePointAdminError(Exception):
    """Base class for façade failures; carries the triggering reference."""

    def __init__(self, message: str, ref: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.ref = ref


class AuthenticationError(SharePointAdminError):
    """Session establishment failed, or no active session is available."""


class NotFoundError(SharePointAdminError):
    """A resource reference did not resolve."""


class ValidationError(SharePointAdminError):
    """Caller-supplied arguments are structurally invalid."""


class ConflictError(SharePointAdminError):
    """Remote state precludes the operation."""


class PermissionDeniedError(SharePointAdminError):
    """The store rejected the operation due to insufficient rights."""


class OperationCancelledError(SharePointAdminError):
    """A destructive operation was declined at the confirmation gate."""


class RemoteOperationError(SharePointAdminError):
    """The store failed the operation for another reason, or could not be reached."""

    def __init__(self, message: str, ref: Any = None, status_code: int | None = None) -> None:
        super().__init__(message, ref)
        self.status_code = status_code


class StaleReadWarning(UserWarning):
    """A paged read observed the collection changing between pages."""


def translate_api_error(exc: SharePointApiError, ref: Any = None) -> SharePointAdminError:
    """Map a transport error to the matching typed failure.

    Args:
        exc: Error raised by SharePointClient.
        ref: Resource reference the request was made for.

    Returns:
        A SharePointAdminError subclass instance (not raised).
    """
    message = exc.message
    if exc.status_code == 404:
        return NotFoundError(message, ref)
    if exc.status_code in (401, 403):
        return PermissionDeniedError(message, ref)
    if exc.status_code == 409 or any(m in message.lower() for m in _CONFLICT_MARKERS):
        return ConflictError(message, ref)
    return RemoteOperationError(message, ref, status_code=exc.status_code)


@contextmanager
def translated_errors(ref: Any = None) -> Iterator[None]:
    """Re-raise transport errors from the enclosed block as typed failures."""
    try:
        yield
    except SharePointApiError as exc:
        raise translate_api_error(exc, ref) from exc
    except SharePointAuthError as exc:
        raise AuthenticationError(str(exc), ref) from exc
    except SharePointConnectionError as exc:
        raise RemoteOperationError(str(exc), ref) from exc
