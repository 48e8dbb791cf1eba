"""Alert delivery through email, Discord webhook or the log."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

import httpx

from .analyzer import AlertEvent
from .config import EmailSettings, MonitorConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS: int = 30
SMTP_TIMEOUT_SECONDS: int = 30


class NotificationError(Exception):
    """Raised when an alert could not be delivered."""


class Notifier(Protocol):
    async def notify(self, event: AlertEvent) -> None: ...


def format_subject(event: AlertEvent) -> str:
    return f"Variação do preço: {event.percent:.2f}%"


def format_html(event: AlertEvent) -> str:
    return (
        f"<b>Valor atual: R$ {event.current_price}</b></br>\n"
        f"<b>Variação: {event.percent:.2f}%</b></br>\n"
        f"<b>Saldo: R$ {event.computed_balance:.2f}</b>\n"
    )


class EmailNotifier:
    """Sends alerts as HTML email over SMTP."""

    def __init__(self, settings: EmailSettings):
        self.settings = settings

    def build_message(self, event: AlertEvent) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.settings.sender
        message["To"] = self.settings.to_address
        message["Subject"] = format_subject(event)
        message.attach(MIMEText(format_html(event), "html", "utf-8"))
        return message

    def _send(self, message: MIMEMultipart) -> None:
        settings = self.settings
        if settings.secure:
            server = smtplib.SMTP_SSL(settings.host, settings.port, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(settings.host, settings.port, timeout=SMTP_TIMEOUT_SECONDS)

        with server:
            if not settings.secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                else:
                    logger.debug(f"{settings.host} does not offer STARTTLS, sending in plain text")
            if settings.user:
                server.login(settings.user, settings.password or "")
            server.send_message(message)

    async def notify(self, event: AlertEvent) -> None:
        message = self.build_message(event)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery to {self.settings.to_address} failed: {e}") from e

        logger.info(f"Email alert sent to {self.settings.to_address}")


class DiscordNotifier:
    """Posts alerts as an embed to a Discord webhook."""

    def __init__(self, webhook_url: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.webhook_url = webhook_url
        self._transport = transport

    @staticmethod
    def build_payload(event: AlertEvent) -> dict:
        # Red when the price moved up past the threshold, green otherwise
        color = 0xFF0000 if event.percent >= 0 else 0x00CC00
        embed = {
            "title": f"🔔 {format_subject(event)}",
            "color": color,
            "fields": [
                {
                    "name": "💰 Valor atual",
                    "value": f"R$ {event.current_price}",
                    "inline": True,
                },
                {
                    "name": "📈 Variação",
                    "value": f"**{event.percent:.2f}%**",
                    "inline": True,
                },
                {
                    "name": "🏦 Saldo",
                    "value": f"R$ {event.computed_balance:.2f}",
                    "inline": True,
                },
            ],
            "footer": {"text": f"Quantidade: {event.quantity:g}"},
        }
        return {"embeds": [embed]}

    async def notify(self, event: AlertEvent) -> None:
        payload = self.build_payload(event)
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"Discord webhook error: {e.response.status_code} - {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise NotificationError(f"Discord webhook request failed: {e}") from e

        logger.info("Discord alert sent")


class LogNotifier:
    """Fallback used when no delivery channel is configured."""

    async def notify(self, event: AlertEvent) -> None:
        logger.warning("No notification channel configured. Logging alert only.")
        logger.info(
            f"[ALERT] price={event.current_price} deviation={event.percent:.2f}% "
            f"balance={event.computed_balance:.2f}"
        )


def build_notifier(config: MonitorConfig) -> Notifier:
    """Pick the delivery channel: Discord webhook, then email, then the log."""
    if config.discord_webhook_url:
        return DiscordNotifier(config.discord_webhook_url)
    if config.email is not None:
        return EmailNotifier(config.email)
    return LogNotifier()
