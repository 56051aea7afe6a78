import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from educafric.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parents[2] / "templates" / "email"


class EmailService:
    """Email service for sending notifications"""

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.smtp_server = config.MAIL_SERVER
        self.smtp_port = config.MAIL_PORT
        self.username = config.MAIL_USERNAME
        self.password = config.MAIL_PASSWORD
        self.from_email = config.MAIL_FROM
        self.from_name = config.MAIL_FROM_NAME
        self.use_tls = config.MAIL_TLS
        self.timeout = config.MAIL_TIMEOUT
        self.support_email = config.SUPPORT_EMAIL
        self.support_phone = config.SUPPORT_PHONE

        # Setup Jinja2 for email templates
        self.template_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_server)

    def render(self, template_name: str, **context) -> str:
        """Render an HTML email; the base layout gets branding and support contacts."""
        context.setdefault("platform_name", self.from_name)
        context.setdefault("support_email", self.support_email)
        context.setdefault("support_phone", self.support_phone)
        context.setdefault("language", "fr")
        template = self.template_env.get_template(template_name)
        return template.render(**context)

    def _build_message(self, to_email: str, subject: str, html_content: str,
                       text_content: Optional[str]) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        if text_content:
            msg.attach(MIMEText(text_content, 'plain', 'utf-8'))
        msg.attach(MIMEText(html_content, 'html', 'utf-8'))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str = None
    ) -> bool:
        """Send email"""
        if not self.is_configured:
            logger.warning("SMTP not configured; email to %s not sent", to_email)
            return False
        try:
            msg = self._build_message(to_email, subject, html_content, text_content)
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, msg)

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False
