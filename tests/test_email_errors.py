"""Tests for email error handling."""

import smtplib
import unittest
from unittest.mock import patch

from talenthub import create_app
from talenthub.utils import EmailError, send_email


class TestEmailErrors(unittest.TestCase):
    """Test case for email errors."""

    def setUp(self):
        """Set up the test case."""
        self.app = create_app({"TESTING": True, "MAIL_SUPPRESS_SEND": False})
        self.ctx = self.app.app_context()
        self.ctx.push()

    def tearDown(self):
        """Tear down the test case."""
        self.ctx.pop()

    def _send(self):
        send_email(
            "owner@example.com",
            "Subject",
            "email/notification.html",
            endpoint_key="send-project-approved",
            title="Website",
            data={"projectTitle": "Website"},
            extra={},
        )

    @patch("talenthub.utils.mail.send")
    def test_send_email_smtp_534(self, mock_send):
        """Test handling of SMTP 534 error."""
        error_msg = b"5.7.9 Please log in with your web browser and then try again"
        mock_send.side_effect = smtplib.SMTPAuthenticationError(534, error_msg)

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("requires an app password", str(cm.exception))

    @patch("talenthub.utils.mail.send")
    def test_send_email_other_auth_error(self, mock_send):
        """Other authentication failures keep the SMTP detail."""
        mock_send.side_effect = smtplib.SMTPAuthenticationError(535, b"bad creds")

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("SMTP Authentication failed", str(cm.exception))

    @patch("talenthub.utils.mail.send")
    def test_send_email_generic_error(self, mock_send):
        """Test handling of generic email errors."""
        mock_send.side_effect = Exception("Some other error")

        with self.assertRaises(EmailError) as cm:
            self._send()

        self.assertIn("Failed to send email: Some other error", str(cm.exception))

    @patch("talenthub.utils.mail.send")
    def test_rejection_reason_rendered(self, mock_send):
        """The rendered body carries the rejection reason."""
        send_email(
            "owner@example.com",
            "Subject",
            "email/notification.html",
            endpoint_key="send-project-rejected",
            title="Website",
            data={"rejectionReason": "Too vague"},
            extra={},
        )
        html = mock_send.call_args.args[0].html
        self.assertIn("Too vague", html)
        self.assertIn("needs attention", html)
