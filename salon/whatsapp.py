# salon/whatsapp.py
"""
WhatsApp reminders through the Meta WhatsApp Cloud API.

The salon never talks to customers' phones directly: every message is a
templated text forwarded to the Cloud API, and every attempt is recorded as a
``Notification`` row so the owner can see what was sent and what failed.
"""

import logging
from datetime import datetime
from typing import Optional

import requests
from sqlmodel import Session

from salon.config import Settings, settings
from salon.core import digits_only
from salon.models import Notification

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com/{version}/{phone_number_id}/messages"

MONTHS_PT = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)


def international_phone(phone: str, country_code: str = "55") -> str:
    """Digits of ``phone`` with the country code in front of local numbers."""
    numbers = digits_only(phone)
    if not numbers:
        return ""
    if len(numbers) in (10, 11):
        return f"{country_code}{numbers}"
    return numbers


def format_date_pt(when: datetime) -> str:
    return f"{when.day} de {MONTHS_PT[when.month - 1]} de {when.year} às {when:%H:%M}"


def build_reminder_message(client_name: str, service_name: str, when: datetime) -> str:
    if when.tzinfo is not None:
        when = when.astimezone().replace(tzinfo=None)
    return (
        f"Olá {client_name}! 👋\n\n"
        "Lembrando do seu agendamento amanhã:\n\n"
        f"Serviço: {service_name}\n"
        f"Data: {format_date_pt(when)}\n\n"
        "Aguardamos você! 😊"
    )


class WhatsAppClient:
    def __init__(self, config: Settings):
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.whatsapp_phone_number_id and self.config.whatsapp_token)

    def send_text(self, to: str, text: str) -> bool:
        if self.config.whatsapp_dry_run:
            logger.info("[WHATSAPP DRY RUN] To: %s | Msg: %s", to, text)
            return True

        if not self.configured:
            logger.error("Missing WhatsApp credentials")
            return False

        url = GRAPH_API_URL.format(
            version=self.config.whatsapp_api_version,
            phone_number_id=self.config.whatsapp_phone_number_id,
        )
        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }

        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.config.whatsapp_token}"},
                timeout=self.config.whatsapp_timeout,
            )
        except requests.RequestException:
            logger.exception("Error sending WhatsApp message to %s", to)
            return False

        if not response.ok:
            logger.error(
                "WhatsApp API returned %s for %s: %s",
                response.status_code, to, response.text[:500],
            )
            return False

        logger.info("WhatsApp message sent to %s", to)
        return True


_client: Optional[WhatsAppClient] = None


def get_whatsapp_client() -> WhatsAppClient:
    global _client
    if _client is None:
        _client = WhatsAppClient(settings)
    return _client


def send_reminder(
    session: Session,
    client: WhatsAppClient,
    owner_id: int,
    phone: str,
    client_name: str,
    service_name: str,
    when: datetime,
    appointment_id: Optional[int] = None,
) -> Notification:
    """Send the reminder and record the attempt. The caller commits."""
    to = international_phone(phone, client.config.whatsapp_country_code)
    message = build_reminder_message(client_name, service_name, when)

    notification = Notification(
        owner_id=owner_id,
        appointment_id=appointment_id,
        phone=to,
        type="reminder",
        message=message,
    )

    if to and client.send_text(to, message):
        notification.status = "sent"
        notification.sent_at = datetime.utcnow()
    else:
        notification.status = "failed"

    session.add(notification)
    return notification
