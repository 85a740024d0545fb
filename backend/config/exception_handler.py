from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from config.domain_exceptions import DomainError

logger = logging.getLogger(__name__)

_DRF_ERROR_STATUS: tuple[tuple[type[Exception], str], ...] = (
    (drf_exceptions.ValidationError, "validation_error"),
    (drf_exceptions.ParseError, "bad_request"),
    (drf_exceptions.UnsupportedMediaType, "bad_request"),
    (drf_exceptions.NotAuthenticated, "unauthorized"),
    (drf_exceptions.AuthenticationFailed, "unauthorized"),
    (drf_exceptions.PermissionDenied, "forbidden"),
    (drf_exceptions.NotFound, "not_found"),
    (drf_exceptions.MethodNotAllowed, "method_not_allowed"),
    (drf_exceptions.Throttled, "rate_limited"),
)


def _error_response(*, error_status: str, message: str, http_status: int, **extra: Any) -> Response:
    """Build `{"error": {"status", "message", ...}}`; empty extras are omitted."""
    error: dict[str, Any] = {"status": error_status, "message": message}
    error.update({key: value for key, value in extra.items() if value})
    return Response({"error": error}, status=http_status)


def _flatten_error_details(details: Any, path: str = "") -> dict[str, list[str]]:
    """Flatten nested serializer errors into dotted field paths (`namespaces.0`)."""
    out: dict[str, list[str]] = {}
    if isinstance(details, Mapping):
        items = [(f"{path}.{key}" if path else str(key), value) for key, value in details.items()]
    elif isinstance(details, list) and any(isinstance(item, (Mapping, list)) for item in details):
        items = [(f"{path}.{idx}" if path else str(idx), value) for idx, value in enumerate(details)]
    else:
        messages = details if isinstance(details, list) else [details]
        return {path or "non_field_errors": [str(message) for message in messages]}

    for key, value in items:
        for field, messages in _flatten_error_details(value, key).items():
            out.setdefault(field, []).extend(messages)
    return out


def _drf_message(data: Any) -> str:
    if isinstance(data, Mapping) and isinstance(data.get("detail"), str):
        return data["detail"]
    if isinstance(data, list) and data and isinstance(data[0], str):
        return data[0]
    return "Request failed."


def _wrap_drf_error(exc: Exception, response: Response) -> Response:
    error_status = next(
        (status for exc_type, status in _DRF_ERROR_STATUS if isinstance(exc, exc_type)),
        "server_error" if response.status_code >= 500 else "bad_request",
    )

    if not isinstance(exc, drf_exceptions.ValidationError):
        return _error_response(
            error_status=error_status,
            message=_drf_message(response.data),
            http_status=response.status_code,
        )

    details = _flatten_error_details(response.data)
    if len(details) == 1:
        message = next(iter(details.values()))[0]
    else:
        message = "One or more fields failed validation."
    return _error_response(
        error_status=error_status,
        message=message,
        http_status=response.status_code,
        details=details,
    )


def custom_exception_handler(exc: Exception, context):
    """
    Map DRF and domain exceptions to the `{"error": {...}}` envelope.

    Domain errors carry their own HTTP status; reconcile failures also expose
    the failing `operation` (e.g. `list_events`, `update_status`) and the
    underlying `error`.
    """
    response = drf_exception_handler(exc, context)
    if response is not None:
        return _wrap_drf_error(exc, response)

    if isinstance(exc, DomainError):
        if exc.http_status >= 500:
            logger.warning("%s: %s", type(exc).__name__, exc)
        return _error_response(
            error_status=exc.error_status,
            message=str(exc),
            http_status=exc.http_status,
            operation=getattr(exc, "operation", None),
            error=getattr(exc, "error", None),
        )

    view = context.get("view")
    logger.exception(
        "Unhandled exception in API view: %s",
        view.__class__.__name__ if view else "unknown",
        exc_info=exc,
    )
    return None
