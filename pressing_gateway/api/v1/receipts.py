"""Receipt rendering, storage and dispatch endpoints"""

import uuid
from typing import List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from pressing_gateway.api.v1.schemas import (
    ReceiptCreateRequest,
    ReceiptResponse,
    SavedReceiptResponse,
    SendReceiptRequest,
    SendReceiptResponse,
)
from pressing_gateway.api.dependencies import get_notification_client, get_request_id
from pressing_gateway.api.errors import raise_for_domain_error, raise_internal_error
from pressing_gateway.config import settings
from pressing_gateway.infrastructure.database.session import get_db
from pressing_gateway.infrastructure.database.models import ReceiptRecord
from pressing_gateway.infrastructure.database.repositories import DepositRepository, ReceiptRepository
from pressing_gateway.infrastructure.clients.notification import NotificationClient
from pressing_gateway.domain.models import DispatchOutcome, ReceiptFormat, ReceiptType
from pressing_gateway.domain.receipts import compose_receipt
from pressing_gateway.domain.dispatch import build_message, dispatch_receipt
from pressing_gateway.domain.exceptions import DomainException, ReceiptNotFoundError
from pressing_gateway.utils.date_utils import utc_now
from pressing_gateway.infrastructure.observability.metrics import record_dispatch, record_receipt
from pressing_gateway.infrastructure.observability.logging import log_dispatch

router = APIRouter()


def _saved_receipt_response(receipt: ReceiptRecord) -> SavedReceiptResponse:
    return SavedReceiptResponse(
        receipt_id=str(receipt.id),
        deposit_id=str(receipt.deposit_id),
        receipt_type=receipt.type,
        receipt_format=receipt.format,
        content_type=receipt.content_type,
        content=receipt.content,
        status=receipt.status,
        sent_to=receipt.sent_to,
        sent_at=receipt.sent_at.isoformat() if receipt.sent_at else None,
        generated_by=receipt.generated_by,
        generated_at=receipt.generated_at.isoformat(),
    )


@router.get("/deposits/{deposit_id}/receipt", response_model=ReceiptResponse)
def render_receipt(
    deposit_id: uuid.UUID,
    request: Request,
    receipt_type: ReceiptType = Query(ReceiptType.DEPOSIT, alias="type"),
    receipt_format: ReceiptFormat = Query(ReceiptFormat.A4, alias="format"),
    db: Session = Depends(get_db),
):
    """Render a receipt for preview or printing without storing it"""
    request_id = get_request_id(request)

    try:
        deposit = DepositRepository(db).load(deposit_id)
        receipt = compose_receipt(
            deposit,
            receipt_type,
            receipt_format,
            ticket_width=settings.ticket_width,
            website=settings.receipt_website,
            timezone=settings.receipt_timezone,
        )
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)

    record_receipt(receipt_type.value, receipt_format.value)

    return ReceiptResponse(
        receipt_type=receipt.receipt_type,
        receipt_format=receipt.receipt_format,
        content_type=receipt.content_type,
        content=receipt.content,
        figures=receipt.figures,
    )


@router.post("/deposits/{deposit_id}/receipts", response_model=SavedReceiptResponse, status_code=201)
def save_receipt(
    deposit_id: uuid.UUID,
    request_body: ReceiptCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Render a receipt and keep it for later sending or reprinting"""
    request_id = get_request_id(request)

    try:
        deposit = DepositRepository(db).load(deposit_id)
        rendered = compose_receipt(
            deposit,
            request_body.receipt_type,
            request_body.receipt_format,
            ticket_width=settings.ticket_width,
            website=settings.receipt_website,
            timezone=settings.receipt_timezone,
        )

        db_receipt = ReceiptRepository(db).create_receipt(deposit.id, rendered, request_body.generated_by)

        db.commit()
        db.refresh(db_receipt)

    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_receipt(rendered.receipt_type.value, rendered.receipt_format.value)

    return _saved_receipt_response(db_receipt)


@router.get("/deposits/{deposit_id}/receipts", response_model=List[SavedReceiptResponse])
def list_receipts(deposit_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Saved receipts of a deposit, newest first"""
    request_id = get_request_id(request)
    try:
        deposit = DepositRepository(db).load(deposit_id)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)

    return [_saved_receipt_response(r) for r in ReceiptRepository(db).list_receipts(deposit.id)]


@router.post("/receipts/{receipt_id}/send", response_model=SendReceiptResponse)
async def send_receipt(
    receipt_id: uuid.UUID,
    request_body: SendReceiptRequest,
    request: Request,
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """
    Send a saved receipt to the customer.

    Flow:
    1. Build the plain-text summary for the receipt type
    2. Hand it to the notification gateway (email when the recipient has an @, WhatsApp otherwise)
    3. Record SENT or FAILED on the receipt

    A transport failure is not an HTTP error: the response carries outcome
    "error" so the operator can retry by hand.
    """
    request_id = get_request_id(request)

    try:
        receipt_repo = ReceiptRepository(db)
        db_receipt = receipt_repo.get_receipt(receipt_id)
        if db_receipt is None:
            raise ReceiptNotFoundError(f"Receipt {receipt_id} not found")

        deposit = DepositRepository(db).load(db_receipt.deposit_id)
        recipient = request_body.recipient or deposit.customer_phone
        message = build_message(deposit, ReceiptType(db_receipt.type), sent_on=utc_now().date())

        result = await dispatch_receipt(notification_client, recipient, message)

        if result.outcome == DispatchOutcome.SUCCESS:
            receipt_repo.mark_sent(db_receipt, recipient, result.message_id, utc_now())
        else:
            receipt_repo.mark_failed(db_receipt, recipient, result.error)

        db.commit()

    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_dispatch(result.channel.value, result.outcome.value)
    log_dispatch(request_id, deposit.deposit_number, result.channel.value, result.outcome.value, result.error)

    return SendReceiptResponse(
        receipt_id=str(receipt_id),
        outcome=result.outcome.value,
        channel=result.channel.value,
        recipient=recipient,
        message=message,
        message_id=result.message_id,
        status=result.status,
        error=result.error,
        whatsapp_url=result.whatsapp_url,
    )
