from __future__ import annotations

from django.test import SimpleTestCase
from rest_framework.exceptions import NotAuthenticated
from rest_framework.exceptions import ValidationError as DrfValidationError

from config.domain_exceptions import ConflictError, NotFoundError, ValidationError
from config.exception_handler import custom_exception_handler
from notifiers.engine.errors import (
    CycleCancelledError,
    SourceError,
    StatusUpdateError,
    UnsupportedChannelError,
)


class _DummyView:
    pass


class ExceptionHandlerTests(SimpleTestCase):
    def _handle(self, exc: Exception):
        response = custom_exception_handler(exc, {"view": _DummyView()})
        self.assertIsNotNone(response)
        return response

    def test_drf_validation_error_includes_envelope(self):
        response = self._handle(DrfValidationError({"name": ["This field is required."]}))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["status"], "validation_error")
        self.assertEqual(response.data["error"]["message"], "This field is required.")
        self.assertIn("name", response.data["error"]["details"])

    def test_drf_validation_error_with_several_fields(self):
        response = self._handle(
            DrfValidationError({"name": ["Required."], "webhook": ["Enter a valid URL."]})
        )
        self.assertEqual(response.data["error"]["message"], "One or more fields failed validation.")
        self.assertEqual(set(response.data["error"]["details"]), {"name", "webhook"})

    def test_not_authenticated_maps_to_unauthorized(self):
        response = self._handle(NotAuthenticated())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["error"]["status"], "unauthorized")

    def test_domain_validation_error_maps_to_400(self):
        response = self._handle(ValidationError("timeout_seconds must be a positive number."))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"]["status"], "validation_error")

    def test_not_found_maps_to_404(self):
        response = self._handle(NotFoundError("Notifier not found."))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["status"], "not_found")

    def test_conflict_maps_to_409(self):
        response = self._handle(ConflictError("Already running."))
        self.assertEqual(response.status_code, 409)

    def test_source_error_includes_operation(self):
        with self.assertLogs("config.exception_handler", level="WARNING"):
            response = self._handle(SourceError("events", "database is locked"))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["status"], "service_unavailable")
        self.assertEqual(response.data["error"]["operation"], "list_events")
        self.assertEqual(response.data["error"]["error"], "database is locked")

    def test_status_update_error_includes_operation(self):
        with self.assertLogs("config.exception_handler", level="WARNING"):
            response = self._handle(StatusUpdateError("ops", "notifier no longer exists"))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["operation"], "update_status")

    def test_cancelled_cycle_maps_to_timeout(self):
        with self.assertLogs("config.exception_handler", level="WARNING"):
            response = self._handle(CycleCancelledError("Reconcile cycle cancelled or timed out"))
        self.assertEqual(response.status_code, 504)
        self.assertEqual(response.data["error"]["status"], "timeout")
        self.assertNotIn("operation", response.data["error"])

    def test_unsupported_channel_maps_to_configuration_error(self):
        response = self._handle(UnsupportedChannelError("teams"))
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"]["status"], "configuration_error")

    def test_unhandled_exception_returns_none(self):
        with self.assertLogs("config.exception_handler", level="ERROR"):
            response = custom_exception_handler(RuntimeError("boom"), {"view": _DummyView()})
        self.assertIsNone(response)
