"""Outbound email: verification links for self-registration."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Protocol
from urllib.parse import urlencode

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Confirm your email address"
DEFAULT_SENDER_NAME = "Inboxdesk"


class Mailer(Protocol):
    def send_verification_email(self, email: str, name: str, token: str) -> bool:
        """Send the verification link. Returns False on failure instead of raising."""
        ...


def build_verification_url(frontend_url: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/verify-email?{urlencode({'token': token})}"


def render_verification_email(name: str, verification_url: str) -> tuple[str, str]:
    """Return (plain text, html) bodies for the verification mail."""
    text = (
        f"Hello {name},\n\n"
        "Thank you for registering.\n\n"
        "Please confirm your email address by opening the following link:\n"
        f"{verification_url}\n\n"
        "This link is valid for 24 hours.\n\n"
        "If you did not request this registration, you can ignore this email.\n"
    )
    safe_name = html.escape(name)
    safe_url = html.escape(verification_url, quote=True)
    body = (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head><body>"
        f"<h2>Hello {safe_name}!</h2>"
        "<p>Thank you for registering.</p>"
        "<p>Please confirm your email address:</p>"
        f"<p><a href=\"{safe_url}\">Confirm email</a></p>"
        f"<p>Or copy this link into your browser:<br>{safe_url}</p>"
        "<p><strong>This link is valid for 24 hours.</strong></p>"
        "<p>If you did not request this registration, you can ignore this email.</p>"
        "</body></html>"
    )
    return text, body


class SmtpMailer:
    """Sends mail through an SMTP relay (STARTTLS and login when configured)."""

    def __init__(
        self,
        host: str,
        port: int,
        frontend_url: str,
        use_tls: bool = True,
        user: str | None = None,
        password: str | None = None,
        from_addr: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.frontend_url = frontend_url
        self.use_tls = use_tls
        self.user = user
        self.password = password
        self.from_addr = from_addr or f"{DEFAULT_SENDER_NAME} <{user or 'no-reply@localhost'}>"
        self.timeout = timeout

    def send_verification_email(self, email: str, name: str, token: str) -> bool:
        text, body = render_verification_email(name, build_verification_url(self.frontend_url, token))

        msg = MIMEMultipart("alternative")
        msg["From"] = self.from_addr
        msg["To"] = email
        msg["Subject"] = VERIFICATION_SUBJECT
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "Verification email delivery failed",
                extra={"smtp_host": self.host, "error_kind": type(e).__name__},
            )
            return False
        logger.info("Verification email sent", extra={"smtp_host": self.host})
        return True


class LogMailer:
    """Development fallback when SMTP is not configured: logs the link instead of sending."""

    def __init__(self, frontend_url: str) -> None:
        self.frontend_url = frontend_url

    def send_verification_email(self, email: str, name: str, token: str) -> bool:
        url = build_verification_url(self.frontend_url, token)
        logger.info(
            "SMTP not configured; verification email for %s not sent. Link: %s",
            email,
            url,
        )
        return True


def build_mailer(settings: Settings) -> Mailer:
    """SmtpMailer when SMTP_HOST is set, otherwise LogMailer."""
    if not settings.SMTP_HOST:
        logger.warning("SMTP_HOST not set; verification emails will only be logged")
        return LogMailer(settings.FRONTEND_URL)
    password = settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
    return SmtpMailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        frontend_url=settings.FRONTEND_URL,
        use_tls=settings.SMTP_USE_TLS,
        user=settings.SMTP_USER,
        password=password,
        from_addr=settings.SMTP_FROM,
        timeout=settings.SMTP_TIMEOUT_SEC,
    )
