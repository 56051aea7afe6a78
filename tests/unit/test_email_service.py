from unittest.mock import MagicMock

import pytest

from educafric.services.communication import email_service as email_module
from educafric.services.communication.email_service import EmailService
from tests.conftest import make_settings


class TestRender:
    def test_attendance_alert_layout(self):
        service = EmailService(make_settings())
        html = service.render(
            "attendance_alert.html",
            language="en",
            subject="Attendance Alert - Jean",
            parent_name="Paul Dupont",
            student_name="Jean Dupont",
            class_name="Tle A",
            status_label="absent",
            status_color="#dc3545",
            date="10/12/2026",
            notes="Sick",
            body="Hello",
            wa_url="https://wa.me/237656200001?text=hi",
        )
        assert "#dc3545" in html
        assert "Open in WhatsApp" in html
        assert "https://wa.me/237656200001?text=hi" in html
        assert "support@educafric.com" in html
        assert "This message was sent automatically by EDUCAFRIC." in html

    def test_autoescape(self):
        service = EmailService(make_settings())
        html = service.render("generic_notification.html", subject="S", body="<script>x</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_fee_notification_paragraphs(self):
        service = EmailService(make_settings())
        html = service.render("fee_notification.html", title="T", message="Premier\n\nSecond",
                              recipient_name="Marie", urgent=True)
        assert "#fee2e2" in html
        assert "<p style=\"line-height:1.6;\">Second</p>" in html
        assert "Bonjour Marie," in html


@pytest.mark.asyncio
class TestSendEmail:
    async def test_unconfigured_smtp_returns_false(self):
        service = EmailService(make_settings(MAIL_SERVER=None))
        assert await service.send_email("a@example.com", "Subject", "<p>x</p>") is False

    async def test_sends_through_smtp(self, monkeypatch):
        smtp_cls = MagicMock()
        monkeypatch.setattr(email_module.smtplib, "SMTP", smtp_cls)
        service = EmailService(make_settings(MAIL_SERVER="smtp.example.com", MAIL_USERNAME="u", MAIL_PASSWORD="p"))

        assert await service.send_email("a@example.com", "Subject", "<p>x</p>", "x") is True

        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=20.0)
        server = smtp_cls.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("u", "p")
        message = server.send_message.call_args.args[0]
        assert message["To"] == "a@example.com"
        assert message["Subject"] == "Subject"

    async def test_smtp_failure_returns_false(self, monkeypatch):
        monkeypatch.setattr(email_module.smtplib, "SMTP", MagicMock(side_effect=OSError("unreachable")))
        service = EmailService(make_settings(MAIL_SERVER="smtp.example.com"))
        assert await service.send_email("a@example.com", "Subject", "<p>x</p>") is False
