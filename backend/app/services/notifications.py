from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage

from app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """
    Account emails over SMTP.

    Every send returns True/False instead of raising: a failed email must
    never fail the registration or verification that triggered it.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST and self._sender())

    def send_verification_email(self, email: str, token: str) -> bool:
        link = f"{self._frontend_url()}/verify-email/{token}"
        body = "\n".join(
            [
                f"Welcome to {self.settings.APP_NAME}!",
                "",
                "Please confirm your email address by opening the link below:",
                link,
                "",
                "If you did not create an account, you can ignore this email.",
            ]
        )
        return self._send(email, f"Verify your {self.settings.APP_NAME} account", body)

    def send_welcome_email(self, email: str) -> bool:
        body = "\n".join(
            [
                f"Your email address is verified. Welcome to {self.settings.APP_NAME}!",
                "",
                f"Sign in at {self._frontend_url()}/login to get started.",
            ]
        )
        return self._send(email, f"Welcome to {self.settings.APP_NAME}", body)

    def _frontend_url(self) -> str:
        return (self.settings.FRONTEND_URL or "http://localhost:3000").rstrip("/")

    def _sender(self) -> str:
        return self.settings.SMTP_FROM or self.settings.SMTP_USER

    def _password(self) -> str | None:
        if not self.settings.SMTP_PASSWORD:
            return None
        # App passwords are often copied with spaces every 4 chars.
        return self.settings.SMTP_PASSWORD.replace(" ", "")

    def _login_if_needed(self, server: smtplib.SMTP) -> None:
        if self.settings.SMTP_USER and self._password():
            server.login(self.settings.SMTP_USER, self._password())

    def _send(self, recipient: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.info("Email is not configured; skipping %r to %s", subject, recipient)
            return False

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender()
        msg["To"] = recipient
        msg.set_content(body)

        context = ssl.create_default_context()
        host = self.settings.SMTP_HOST
        port = self.settings.SMTP_PORT
        try:
            if self.settings.SMTP_USE_TLS:
                with smtplib.SMTP(host, port, timeout=15) as server:
                    server.starttls(context=context)
                    self._login_if_needed(server)
                    server.send_message(msg)
            else:
                with smtplib.SMTP_SSL(host, port, context=context, timeout=15) as server:
                    self._login_if_needed(server)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "Email %r to %s failed (host=%s port=%s): %s",
                subject,
                recipient,
                host,
                port,
                exc,
            )
            return False

        logger.info("Email %r sent to %s", subject, recipient)
        return True
