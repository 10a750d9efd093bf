"""Outbound e-mail transports.

SendGrid is used when an API key is configured, SMTP when a host is
configured, and otherwise messages are only written to the log.
"""

import asyncio
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib
import httpx

from app.config import settings
from app.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)
from app.observability import log_event


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    body: str


class MailTransportProtocol(Protocol):
    def send(self, message: MailMessage) -> None: ...


class SendGridTransport:
    def __init__(self, api_key: str, sender: str, base_url: str, timeout_s: float) -> None:
        self.api_key = api_key
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _payload(self, message: MailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.sender},
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body}],
        }

    def send(self, message: MailMessage) -> None:
        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.post(
                    f"{self.base_url}/v3/mail/send",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=self._payload(message),
                )
        except httpx.TimeoutException as err:
            raise IntegrationTimeoutError("sendgrid") from err
        except httpx.TransportError as err:
            raise IntegrationUnavailableError("sendgrid", str(err)) from err

        if response.status_code >= 500:
            raise IntegrationUnavailableError("sendgrid", "SendGrid returned 5xx")
        if response.status_code >= 400:
            raise IntegrationBadGatewayError(
                "sendgrid", f"SendGrid returned {response.status_code}"
            )


class SmtpTransport:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str,
        password: str,
        use_tls: bool,
        start_tls: bool,
        timeout_s: float,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.timeout_s = timeout_s

    def build_message(self, message: MailMessage) -> EmailMessage:
        mime = EmailMessage()
        mime["From"] = self.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.body)
        return mime

    async def send_async(self, message: MailMessage) -> None:
        try:
            await aiosmtplib.send(
                self.build_message(message),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=self.use_tls,
                start_tls=False if self.use_tls else self.start_tls,
                timeout=self.timeout_s,
            )
        except aiosmtplib.SMTPTimeoutError as err:
            raise IntegrationTimeoutError("smtp") from err
        except aiosmtplib.SMTPConnectError as err:
            raise IntegrationUnavailableError("smtp", str(err)) from err
        except aiosmtplib.SMTPException as err:
            raise IntegrationBadGatewayError("smtp", str(err)) from err

    def send(self, message: MailMessage) -> None:
        # Called from side-effect worker threads, which have no running loop.
        asyncio.run(self.send_async(message))


class LoggingTransport:
    def send(self, message: MailMessage) -> None:
        log_event(f"mail_not_configured to={message.to} subject={message.subject!r}")


def get_mail_transport() -> MailTransportProtocol:
    if settings.sendgrid_api_key.strip():
        return SendGridTransport(
            api_key=settings.sendgrid_api_key,
            sender=settings.mail_from,
            base_url=settings.sendgrid_base_url,
            timeout_s=settings.mail_timeout_s,
        )
    if settings.smtp_host.strip():
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            start_tls=settings.smtp_start_tls,
            timeout_s=settings.mail_timeout_s,
        )
    return LoggingTransport()
