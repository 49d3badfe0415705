"""Deposit intake and fulfillment endpoints"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from pressing_gateway.api.v1.schemas import (
    CancelRequest,
    DepositCreateRequest,
    DepositListResponse,
    DepositResponse,
    DepositSummary,
    InstallmentSchema,
    ItemResponse,
    StatusChangeRequest,
)
from pressing_gateway.api.dependencies import get_request_id
from pressing_gateway.api.errors import raise_for_domain_error, raise_internal_error
from pressing_gateway.config import settings
from pressing_gateway.infrastructure.database.session import get_db
from pressing_gateway.infrastructure.database.repositories import DepositRepository
from pressing_gateway.domain.models import Deposit, DepositStatus, Installment, PaymentStatus
from pressing_gateway.domain.lifecycle import (
    advance_status,
    cancel,
    create_deposit,
    generate_deposit_number,
    initial_payment_entry,
)
from pressing_gateway.domain.exceptions import DomainException
from pressing_gateway.infrastructure.observability.metrics import (
    record_deposit_created,
    record_payment,
    record_status_transition,
)
from pressing_gateway.infrastructure.observability.logging import log_deposit_event

router = APIRouter()


def installment_schema(inst: Installment) -> InstallmentSchema:
    return InstallmentSchema(
        installment_id=str(inst.id),
        installment_number=inst.installment_number,
        due_date=inst.due_date,
        amount_cents=inst.amount_cents,
        paid_cents=inst.paid_cents,
        status=inst.status.value,
        paid_date=inst.paid_date,
        payment_method=inst.payment_method.value if inst.payment_method else None,
        notes=inst.notes,
    )


def deposit_response(deposit: Deposit) -> DepositResponse:
    return DepositResponse(
        deposit_id=str(deposit.id),
        deposit_number=deposit.deposit_number,
        version=deposit.version,
        tenant_name=deposit.tenant_name,
        agency_name=deposit.agency_name,
        created_by_name=deposit.created_by_name,
        customer_name=deposit.customer_name,
        customer_phone=deposit.customer_phone,
        customer_email=deposit.customer_email,
        collection_address=deposit.collection_address,
        collection_date=deposit.collection_date,
        collection_time=deposit.collection_time,
        collection_notes=deposit.collection_notes,
        delivery_address=deposit.delivery_address,
        delivery_date=deposit.delivery_date,
        delivery_time=deposit.delivery_time,
        delivery_notes=deposit.delivery_notes,
        items=[
            ItemResponse(
                name=item.name,
                category=item.category,
                category_label=item.category.label,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                total_price_cents=item.total_price_cents,
                special_instructions=item.special_instructions,
            )
            for item in deposit.items
        ],
        currency_code=deposit.currency_code,
        subtotal_cents=deposit.subtotal_cents,
        discount_cents=deposit.discount_cents,
        total_cents=deposit.total_cents,
        paid_cents=deposit.paid_cents,
        remaining_cents=deposit.remaining_cents,
        refunded_cents=deposit.refunded_cents,
        status=deposit.status.value,
        payment_status=deposit.payment_status.value,
        payment_method=deposit.payment_method.value if deposit.payment_method else None,
        is_installment_payment=deposit.is_installment_payment,
        installment_count=deposit.installment_count,
        installment_interval_days=deposit.installment_interval_days,
        financed_cents=deposit.financed_cents,
        installments=[installment_schema(inst) for inst in deposit.installments],
        cancellation_reason=deposit.cancellation_reason,
        refund_reason=deposit.refund_reason,
        created_at=deposit.created_at.isoformat(),
    )


@router.post("/deposits", response_model=DepositResponse, status_code=201)
def create_deposit_endpoint(
    request_body: DepositCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Register a customer drop-off.

    Flow:
    1. Validate the form and price the items
    2. Schedule installments against the balance if requested
    3. Persist deposit + items + installments + initial payment in one transaction
    """
    request_id = get_request_id(request)

    try:
        form = request_body.to_form(settings.default_installment_interval_days)
        deposit = create_deposit(
            form,
            deposit_number=generate_deposit_number(settings.deposit_number_prefix),
            currency_code=settings.currency_code,
        )
        initial_payment = initial_payment_entry(deposit)

        deposit_repo = DepositRepository(db)
        deposit_repo.create_deposit(deposit, initial_payment)

        db.commit()

    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_deposit_created(deposit.total_cents, deposit.is_installment_payment)
    if initial_payment is not None:
        record_payment(initial_payment.method.value, initial_payment.kind.value)
    log_deposit_event(
        request_id,
        deposit.deposit_number,
        "created",
        total_cents=deposit.total_cents,
        paid_cents=deposit.paid_cents,
        payment_status=deposit.payment_status.value,
        installment_count=len(deposit.installments),
    )

    return deposit_response(deposit)


@router.get("/deposits", response_model=DepositListResponse)
def list_deposits(
    tenant_name: Optional[str] = Query(None),
    agency_name: Optional[str] = Query(None),
    status: Optional[DepositStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Most recent deposits first"""
    filters = {
        "tenant_name": tenant_name,
        "agency_name": agency_name,
        "status": status.value if status else None,
        "payment_status": payment_status.value if payment_status else None,
    }

    deposit_repo = DepositRepository(db)
    records = deposit_repo.list_deposits(limit=limit, offset=offset, **filters)

    return DepositListResponse(
        total=deposit_repo.count_deposits(**filters),
        limit=limit,
        offset=offset,
        deposits=[
            DepositSummary(
                deposit_id=str(r.id),
                deposit_number=r.deposit_number,
                customer_name=r.customer_name,
                agency_name=r.agency_name,
                total_cents=r.total_cents,
                paid_cents=r.paid_cents,
                status=r.status,
                payment_status=r.payment_status,
                created_at=r.created_at.isoformat(),
            )
            for r in records
        ],
    )


@router.get("/deposits/{deposit_id}", response_model=DepositResponse)
def get_deposit(deposit_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    request_id = get_request_id(request)
    try:
        deposit = DepositRepository(db).load(deposit_id)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)

    return deposit_response(deposit)


@router.post("/deposits/{deposit_id}/status", response_model=DepositResponse)
def change_status(
    deposit_id: uuid.UUID,
    request_body: StatusChangeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Move a deposit one step along NEW → CONFIRMED → IN_PROGRESS → READY → DELIVERED"""
    request_id = get_request_id(request)

    try:
        deposit_repo = DepositRepository(db)
        deposit = deposit_repo.load(deposit_id, request_body.expected_version)
        read_version = deposit.version

        previous = advance_status(deposit, request_body.status)
        deposit_repo.save_state(deposit, read_version)

        db.commit()

    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_status_transition(previous.value, deposit.status.value)
    log_deposit_event(
        request_id,
        deposit.deposit_number,
        "status_changed",
        from_status=previous.value,
        to_status=deposit.status.value,
    )

    return deposit_response(deposit)


@router.post("/deposits/{deposit_id}/cancel", response_model=DepositResponse)
def cancel_deposit(
    deposit_id: uuid.UUID,
    request_body: CancelRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Cancel a deposit that has not been delivered; payments already recorded are kept"""
    request_id = get_request_id(request)

    try:
        deposit_repo = DepositRepository(db)
        deposit = deposit_repo.load(deposit_id, request_body.expected_version)
        read_version = deposit.version

        previous = cancel(deposit, request_body.reason)
        deposit_repo.save_state(deposit, read_version)

        db.commit()

    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_status_transition(previous.value, deposit.status.value)
    log_deposit_event(
        request_id,
        deposit.deposit_number,
        "cancelled",
        from_status=previous.value,
        reason=deposit.cancellation_reason,
    )

    return deposit_response(deposit)
