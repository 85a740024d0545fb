"""Tests for on-change reconcile triggers."""

from __future__ import annotations

from unittest.mock import patch

from django.test import TestCase, override_settings

from events.ingest import ingest_events

from .helpers import create_notifier


def _event(uid="u-1"):
    return {
        "metadata": {"uid": uid, "name": uid, "namespace": "default"},
        "type": "Warning",
        "reason": "BackOff",
        "message": "Back-off",
    }


@override_settings(IS_TESTING=False, NOTIFIER_RECONCILE_ON_CHANGE=True)
@patch("notifiers.receivers._is_management_command", return_value=False)
@patch("notifiers.receivers.request_reconcile")
class ReconcileOnChangeTests(TestCase):
    def test_ingest_queues_reconcile_after_commit(self, mock_request, _mock_cmd):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            ingest_events(_event())

        self.assertEqual(len(callbacks), 1)
        mock_request.assert_called_once_with("events_ingested")

    def test_delete_only_ingest_does_not_queue(self, mock_request, _mock_cmd):
        ingest_events(_event())
        mock_request.reset_mock()

        with self.captureOnCommitCallbacks(execute=True):
            ingest_events({"type": "DELETED", "object": _event()})

        mock_request.assert_not_called()

    def test_saving_enabled_notifier_queues_reconcile(self, mock_request, _mock_cmd):
        with self.captureOnCommitCallbacks(execute=True):
            create_notifier("ops")

        mock_request.assert_called_once_with("notifier_saved:ops")

    def test_saving_disabled_notifier_does_not_queue(self, mock_request, _mock_cmd):
        with self.captureOnCommitCallbacks(execute=True):
            create_notifier("ops", is_enabled=False)

        mock_request.assert_not_called()

    @override_settings(NOTIFIER_RECONCILE_ON_CHANGE=False)
    def test_setting_disables_triggers(self, mock_request, _mock_cmd):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            create_notifier("ops")

        self.assertEqual(callbacks, [])
        mock_request.assert_not_called()


class ReconcileOnChangeDisabledInTestsTests(TestCase):
    @patch("notifiers.receivers.request_reconcile")
    def test_no_trigger_while_testing(self, mock_request):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            create_notifier("ops")

        self.assertEqual(callbacks, [])
        mock_request.assert_not_called()
