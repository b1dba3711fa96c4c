"""Transactional email through the Resend and SendGrid REST APIs.

``EmailSender.send`` tries Resend first and falls back to SendGrid. Like the
webhook dispatcher it reports problems as a failed ``EmailResult`` and never
raises. The template helpers at the bottom build subject, HTML and text
bodies for the standard notification emails.
"""

import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from src.notifications.config import EmailConfig
from src.observability.metrics import MetricsCollector

logger = logging.getLogger(__name__)

NO_PROVIDER_ERROR = "No email provider configured. Set RESEND_API_KEY or SENDGRID_API_KEY."
TEST_BODY = (
    "This is a test email from Lands DB Monitoring System. "
    "Email configuration is working correctly."
)


@dataclass
class EmailMessage:
    """An outgoing email. ``from_address`` overrides the configured sender."""

    to: list[str]
    subject: str
    html: str | None = None
    text: str | None = None
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    from_address: str | None = None
    reply_to: str | None = None

    def __post_init__(self) -> None:
        if not self.to:
            raise ValueError("EmailMessage needs at least one recipient")
        if self.html is None and self.text is None:
            raise ValueError("EmailMessage needs an html or text body")


@dataclass(frozen=True)
class EmailResult:
    success: bool
    provider: str | None = None
    message_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "provider": self.provider,
            "message_id": self.message_id,
            "error": self.error,
        }


@dataclass(frozen=True)
class EmailProviderStatus:
    name: str
    is_configured: bool
    status: str
    last_check: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "is_configured": self.is_configured,
            "status": self.status,
            "last_check": self.last_check.isoformat(),
        }


@dataclass(frozen=True)
class EmailContent:
    """Rendered template output."""

    subject: str
    html: str
    text: str

    def to_message(self, to: list[str]) -> EmailMessage:
        return EmailMessage(to=to, subject=self.subject, html=self.html, text=self.text)


class EmailSender:
    """Sends email with provider fallback.

    Args:
        config: Provider credentials. Defaults to ``EmailConfig()``.
        metrics: Optional Prometheus collector.
    """

    def __init__(
        self,
        config: EmailConfig | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config = config or EmailConfig()
        self._metrics = metrics

    @property
    def is_configured(self) -> bool:
        return self._config.resend_configured or self._config.sendgrid_configured

    def configured_providers(self) -> list[EmailProviderStatus]:
        now = datetime.now(timezone.utc)
        states = [
            ("Resend", self._config.resend_configured),
            ("SendGrid", self._config.sendgrid_configured),
            ("Custom SMTP", self._config.smtp_configured),
        ]
        return [
            EmailProviderStatus(
                name=name,
                is_configured=configured,
                status="active" if configured else "inactive",
                last_check=now,
            )
            for name, configured in states
        ]

    async def send(self, message: EmailMessage) -> EmailResult:
        """Send via Resend, then SendGrid.

        Returns the first successful result. If every configured provider
        fails, the last failure is returned. If none is configured, the
        result carries ``NO_PROVIDER_ERROR``.
        """
        attempts = []
        if self._config.resend_configured:
            attempts.append(("resend", self._send_resend))
        if self._config.sendgrid_configured:
            attempts.append(("sendgrid", self._send_sendgrid))

        if not attempts:
            logger.warning("Email not sent (%s): no provider configured", message.subject)
            return EmailResult(success=False, error=NO_PROVIDER_ERROR)

        result = EmailResult(success=False, error=NO_PROVIDER_ERROR)
        for provider, send in attempts:
            try:
                result = await send(message)
            except Exception as e:
                result = EmailResult(
                    success=False,
                    provider=provider,
                    error=str(e) or type(e).__name__,
                )

            if self._metrics is not None:
                self._metrics.record_email_delivery(provider, result.success)

            if result.success:
                logger.info("Email '%s' sent via %s", message.subject, provider)
                return result
            logger.warning("Email provider %s failed: %s", provider, result.error)

        return result

    async def send_test(self, to: str | None = None) -> EmailResult:
        """Send the fixed test email to ``to`` (or the admin address)."""
        return await self.send(EmailMessage(
            to=[to or self._config.admin_email],
            subject="Lands DB - Email Test",
            html=f"<p>{TEST_BODY}</p>",
            text=TEST_BODY,
        ))

    async def _send_resend(self, message: EmailMessage) -> EmailResult:
        body: dict[str, Any] = {
            "from": message.from_address or (
                f"{self._config.from_name} <{self._config.from_address}>"
            ),
            "to": message.to,
            "subject": message.subject,
        }
        if message.cc:
            body["cc"] = message.cc
        if message.bcc:
            body["bcc"] = message.bcc
        if message.html is not None:
            body["html"] = message.html
        if message.text is not None:
            body["text"] = message.text
        if message.reply_to:
            body["reply_to"] = message.reply_to

        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            resp = await client.post(
                self._config.resend_api_url,
                json=body,
                headers={"Authorization": f"Bearer {self._config.resend_api_key}"},
            )

        if resp.is_success:
            return EmailResult(
                success=True,
                provider="resend",
                message_id=_json_or_empty(resp).get("id"),
            )
        error = _json_or_empty(resp).get("message") or f"Resend API error: {resp.status_code}"
        return EmailResult(success=False, provider="resend", error=error)

    async def _send_sendgrid(self, message: EmailMessage) -> EmailResult:
        personalization: dict[str, Any] = {"to": [{"email": a} for a in message.to]}
        if message.cc:
            personalization["cc"] = [{"email": a} for a in message.cc]
        if message.bcc:
            personalization["bcc"] = [{"email": a} for a in message.bcc]

        content = []
        if message.text is not None:
            content.append({"type": "text/plain", "value": message.text})
        if message.html is not None:
            content.append({"type": "text/html", "value": message.html})

        body: dict[str, Any] = {
            "personalizations": [personalization],
            "from": {
                "email": message.from_address or self._config.from_address,
                "name": self._config.from_name,
            },
            "subject": message.subject,
            "content": content,
        }
        if message.reply_to:
            body["reply_to"] = {"email": message.reply_to}

        async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
            resp = await client.post(
                self._config.sendgrid_api_url,
                json=body,
                headers={"Authorization": f"Bearer {self._config.sendgrid_api_key}"},
            )

        if resp.is_success:
            return EmailResult(
                success=True,
                provider="sendgrid",
                message_id=resp.headers.get("x-message-id"),
            )
        errors = _json_or_empty(resp).get("errors") or [{}]
        error = errors[0].get("message") or f"SendGrid API error: {resp.status_code}"
        return EmailResult(success=False, provider="sendgrid", error=error)


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


# ── Templates ───────────────────────────────────────────

_FOOTER = (
    '<hr style="border: none; border-top: 1px solid #d4d4d8; margin: 20px 0;">'
    '<p style="color: #71717a; font-size: 12px;">{note}</p>'
)


def _wrap(title: str, colour: str, body: str, subtitle: str | None = None) -> str:
    sub = f'<p style="margin: 5px 0 0 0;">{subtitle}</p>' if subtitle else ""
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<div style="background: #{colour}; color: white; padding: 20px; '
        'border-radius: 8px 8px 0 0;">'
        f'<h1 style="margin: 0;">{title}</h1>{sub}</div>'
        '<div style="background: #f4f4f5; padding: 20px; border-radius: 0 0 8px 8px;">'
        f"{body}</div></div>"
    )


def _rows(pairs: list[tuple[str, Any]]) -> str:
    return "".join(
        f"<p><strong>{label}:</strong> {html.escape(str(value))}</p>"
        for label, value in pairs
    )


def alert_email(alert_type: str, system_name: str, message: str, timestamp: str) -> EmailContent:
    body = _rows([
        ("Alert Type", alert_type),
        ("System", system_name),
        ("Message", message),
        ("Time", timestamp),
    ]) + _FOOTER.format(note="This is an automated message from Lands DB Monitoring System.")
    return EmailContent(
        subject=f"[ALERT] {alert_type} - {system_name}",
        html=_wrap("System Alert", "dc2626", body),
        text=(
            f"ALERT: {alert_type}\nSystem: {system_name}\n"
            f"Message: {message}\nTime: {timestamp}"
        ),
    )


def daily_report_email(date: str, stats: dict[str, float]) -> EmailContent:
    cell = "padding: 8px; border-bottom: 1px solid #d4d4d8;"
    rows = "".join(
        f'<tr><td style="{cell}">{html.escape(str(key))}</td>'
        f'<td style="{cell} text-align: right; font-weight: bold;">'
        f"{html.escape(str(value))}</td></tr>"
        for key, value in stats.items()
    )
    body = (
        '<h2 style="margin-top: 0;">System Statistics</h2>'
        f'<table style="width: 100%; border-collapse: collapse;">{rows}</table>'
        + _FOOTER.format(note="This is an automated report from Lands DB Monitoring System.")
    )
    lines = "\n".join(f"{key}: {value}" for key, value in stats.items())
    return EmailContent(
        subject=f"Daily System Report - {date}",
        html=_wrap("Daily Report", "0891b2", body, subtitle=html.escape(date)),
        text=f"Daily Report - {date}\n\n{lines}",
    )


def backup_complete_email(backup_name: str, size: str, duration: str, location: str) -> EmailContent:
    body = _rows([
        ("Backup", backup_name),
        ("Size", size),
        ("Duration", duration),
        ("Location", location),
    ])
    return EmailContent(
        subject=f"[BACKUP] {backup_name} completed successfully",
        html=_wrap("Backup Complete", "16a34a", body),
        text=(
            f"Backup Complete: {backup_name}\nSize: {size}\n"
            f"Duration: {duration}\nLocation: {location}"
        ),
    )


def security_alert_email(event_type: str, username: str, ip_address: str, details: str) -> EmailContent:
    body = _rows([
        ("Event", event_type),
        ("User", username),
        ("IP Address", ip_address),
        ("Details", details),
    ]) + '<p style="color: #dc2626; font-weight: bold;">Please investigate immediately.</p>'
    return EmailContent(
        subject=f"[SECURITY] {event_type} detected",
        html=_wrap("Security Alert", "ea580c", body),
        text=(
            f"SECURITY ALERT: {event_type}\nUser: {username}\n"
            f"IP: {ip_address}\nDetails: {details}"
        ),
    )
