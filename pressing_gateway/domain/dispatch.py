"""Receipt dispatch - outbound message text and transport outcome"""

import re
from datetime import date
from typing import Any, Dict, Optional, Protocol
from urllib.parse import quote
from pressing_gateway.domain.models import (
    Deposit,
    DispatchChannel,
    DispatchOutcome,
    DispatchResult,
    ReceiptType,
)
from pressing_gateway.domain.exceptions import NotificationError
from pressing_gateway.utils.formatting import format_currency, format_date

MESSAGE_TITLES = {
    ReceiptType.DEPOSIT: "Reçu de Dépôt",
    ReceiptType.PAYMENT: "Reçu de Paiement",
    ReceiptType.DELIVERY: "Reçu de Livraison",
}


class ReceiptSender(Protocol):
    """Transport collaborator (WhatsApp / email gateway)"""

    async def send_receipt(self, recipient: str, message: str, channel: DispatchChannel) -> Dict[str, Any]:
        ...


def build_message(deposit: Deposit, receipt_type: ReceiptType, sent_on: Optional[date] = None) -> str:
    """
    Plain-text summary for a WhatsApp deep-link or an email body.

    Deterministic: the same deposit, type and date always give the same text.
    """
    item_count = len(deposit.items)
    sent_on = sent_on or deposit.created_at.date()

    return (
        f"Bonjour {deposit.customer_name},\n"
        "\n"
        f"{MESSAGE_TITLES[receipt_type]} - {deposit.deposit_number}\n"
        "\n"
        f"📦 Articles: {item_count} article{'s' if item_count > 1 else ''}\n"
        f"💰 Montant: {format_currency(deposit.total_cents, deposit.currency_code)}\n"
        f"📅 Date: {format_date(sent_on)}\n"
        "\n"
        "Merci pour votre confiance !\n"
        "\n"
        f"{deposit.tenant_name}\n"
        f"{deposit.agency_name}"
    )


def detect_channel(recipient: str) -> DispatchChannel:
    return DispatchChannel.EMAIL if "@" in recipient else DispatchChannel.WHATSAPP


def whatsapp_url(phone: str, message: str) -> str:
    """wa.me deep-link with the message pre-filled"""
    digits = re.sub(r"[^0-9]", "", phone)
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


async def dispatch_receipt(sender: ReceiptSender, recipient: str, message: str) -> DispatchResult:
    """
    Hand a message to the transport and report the outcome.

    Transport failures are reported as DispatchOutcome.ERROR; there is no
    automatic retry, the operator repeats the send if needed.
    """
    channel = detect_channel(recipient)
    link = whatsapp_url(recipient, message) if channel == DispatchChannel.WHATSAPP else None

    try:
        response = await sender.send_receipt(recipient, message, channel)
    except NotificationError as e:
        return DispatchResult(
            outcome=DispatchOutcome.ERROR,
            channel=channel,
            error=str(e),
            whatsapp_url=link,
        )

    return DispatchResult(
        outcome=DispatchOutcome.SUCCESS,
        channel=channel,
        message_id=response.get("message_id"),
        status=response.get("status"),
        whatsapp_url=link,
    )
