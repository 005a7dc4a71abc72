import os
import sys
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from unittest import mock

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tradescreen.core.config import settings  # noqa: E402
from tradescreen.core.errors import ReferentialError  # noqa: E402
from tradescreen.integrations import email as email_integration  # noqa: E402
from tradescreen.schemas import Candidate  # noqa: E402
from tradescreen.services.candidates import CandidateService  # noqa: E402
from tradescreen.services.notifications import NotificationService, make_notification  # noqa: E402
from tradescreen.store import ScreeningStore  # noqa: E402


def alert(priority="high"):
    return make_notification(
        "safety_failure" if priority == "critical" else "system_alert",
        priority,
        "Review needed",
        "Candidate session needs a look.",
        candidate_id="cand_1",
        session_id="sess_1",
    )


class NotificationServiceTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ScreeningStore(os.path.join(self._tmp.name, "screening.db"))
        self.mailer = mock.Mock(return_value=True)
        self.service = NotificationService(self.store, mailer=self.mailer)

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_only_urgent_notifications_are_emailed(self):
        low = alert("low")
        medium = alert("medium")
        high = alert("high")
        critical = alert("critical")
        self.service.deliver([low, medium, high, critical])
        self.assertEqual([call.args[0] for call in self.mailer.call_args_list], [high, critical])

    def test_mailer_errors_are_swallowed(self):
        self.mailer.side_effect = RuntimeError("smtp down")
        self.service.deliver([alert("critical")])
        self.mailer.assert_called_once()

    def test_read_and_acknowledge(self):
        candidate = self.store.insert_candidate(Candidate(email="lee@example.com", position="Welder"))
        CandidateService(self.store, notifications=self.service).flag(candidate.id, "Gap in work history")
        (stored,) = self.service.list_notifications()
        read = self.service.mark_read(stored.id)
        self.assertTrue(read.read)
        self.assertIsNotNone(read.read_at)
        acked = self.service.acknowledge(stored.id)
        self.assertTrue(acked.acknowledged)
        self.assertEqual(acked.read_at, read.read_at)
        self.assertEqual(self.service.list_notifications(unread_only=True), [])

    def test_unknown_notification(self):
        with self.assertRaises(ReferentialError):
            self.service.mark_read("ntf_missing")


class HrAlertEmailTests(unittest.TestCase):
    def test_skipped_without_smtp_settings(self):
        unconfigured = replace(settings, smtp_host=None, hr_notify_email=None)
        with mock.patch.object(email_integration, "settings", unconfigured), mock.patch.object(
            email_integration.smtplib, "SMTP"
        ) as smtp:
            self.assertFalse(email_integration.send_hr_alert(alert()))
        smtp.assert_not_called()

    def test_sends_over_starttls(self):
        configured = replace(
            settings,
            smtp_host="smtp.example.com",
            smtp_port=587,
            smtp_user="alerts@example.com",
            smtp_password="abcd efgh",
            smtp_from=None,
            smtp_use_tls=True,
            hr_notify_email="hr@example.com",
        )
        with mock.patch.object(email_integration, "settings", configured), mock.patch.object(
            email_integration.smtplib, "SMTP"
        ) as smtp:
            self.assertTrue(email_integration.send_hr_alert(alert("critical")))
        server = smtp.return_value.__enter__.return_value
        server.login.assert_called_once_with("alerts@example.com", "abcdefgh")
        message = server.send_message.call_args.args[0]
        self.assertEqual(message["To"], "hr@example.com")
        self.assertEqual(message["From"], "alerts@example.com")
        self.assertEqual(message["Subject"], "[CRITICAL] Review needed")

    def test_send_failure_returns_false(self):
        configured = replace(settings, smtp_host="smtp.example.com", hr_notify_email="hr@example.com", smtp_use_tls=True)
        with mock.patch.object(email_integration, "settings", configured), mock.patch.object(
            email_integration.smtplib, "SMTP", side_effect=OSError("refused")
        ):
            self.assertFalse(email_integration.send_hr_alert(alert()))


if __name__ == "__main__":
    unittest.main()
