from __future__ import annotations


class DomainError(Exception):
    """
    Base class for predictable, user-facing errors raised by views, the
    reconcile engine and its data sources.

    `http_status` and `error_status` drive the API error envelope.
    """

    http_status = 400
    error_status = "bad_request"


class ValidationError(DomainError):
    error_status = "validation_error"


class NotFoundError(DomainError):
    http_status = 404
    error_status = "not_found"


class ConflictError(DomainError):
    http_status = 409
    error_status = "conflict"


class ServiceUnavailableError(DomainError):
    """A backing store or the engine itself cannot serve the request right now."""

    http_status = 503
    error_status = "service_unavailable"


class ConfigurationError(DomainError):
    """A stored notifier references configuration the server cannot act on."""

    http_status = 503
    error_status = "configuration_error"


class OperationTimeoutError(DomainError):
    """A reconcile cycle hit its deadline or was cancelled."""

    http_status = 504
    error_status = "timeout"
