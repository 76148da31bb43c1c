"""
core/mailer.py -- Outbound e-mail delivery collaborator.

The identity core only builds messages ({from, to, subject, text}); delivery
is this module's job. SMTPMailer reads its credentials from Settings and
speaks SMTP (implicit TLS when SMTP_USE_SSL=true, STARTTLS otherwise when a
user is configured).

When SMTP_HOST is empty:
  - DEBUG=true: the message is logged instead of sent, so local registration
    works without a mail server.
  - production: send() raises ServiceError -- silently dropping activation
    e-mails would leave new users unable to activate.

Any transport failure is raised as ServiceError (HTTP 503) with the original
exception chained; it is never swallowed.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from core.config import Settings, get_settings
from core.errors import ServiceError

logger = logging.getLogger("bonsai.mailer")


class Mailer(Protocol):
    def send(self, *, from_addr: str, to: str, subject: str, text: str) -> None: ...


class SMTPMailer:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def send(self, *, from_addr: str, to: str, subject: str, text: str) -> None:
        settings = self.settings
        if not settings.smtp_host:
            if settings.debug:
                logger.info("SMTP not configured; e-mail to %s not sent.\nSubject: %s\n\n%s", to, subject, text)
                return
            raise ServiceError(
                message="E-mail delivery is not configured.",
                action="Set SMTP_HOST and related settings.",
            )

        msg = EmailMessage()
        msg["From"] = from_addr
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)

        try:
            if settings.smtp_use_ssl:
                with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=ssl.create_default_context()) as server:
                    if settings.smtp_user:
                        server.login(settings.smtp_user, settings.smtp_password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
                    if settings.smtp_user:
                        server.starttls(context=ssl.create_default_context())
                        server.login(settings.smtp_user, settings.smtp_password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("E-mail delivery to %s failed: %s", to, exc)
            raise ServiceError(
                message="Could not deliver the e-mail.",
                action="Try again later.",
                cause=exc,
            ) from exc
        logger.info("E-mail '%s' delivered to %s", subject, to)
