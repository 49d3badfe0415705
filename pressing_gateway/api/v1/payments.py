"""Payment, installment and refund endpoints"""

import uuid
from typing import Optional
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from pressing_gateway.api.v1.schemas import (
    DepositResponse,
    InstallmentPaymentRequest,
    InstallmentScheduleResponse,
    PaymentRequest,
    RefundRequest,
)
from pressing_gateway.api.v1.deposits import deposit_response, installment_schema
from pressing_gateway.api.dependencies import get_request_id
from pressing_gateway.api.errors import raise_for_domain_error, raise_internal_error
from pressing_gateway.infrastructure.database.session import get_db
from pressing_gateway.infrastructure.database.repositories import DepositRepository
from pressing_gateway.domain.models import Deposit, InstallmentStatus, PaymentMethod
from pressing_gateway.domain.lifecycle import apply_payment, refund
from pressing_gateway.domain.installments import summarize_installments
from pressing_gateway.domain.exceptions import (
    DomainException,
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    ValidationError,
)
from pressing_gateway.infrastructure.observability.metrics import record_payment, record_payment_rejection
from pressing_gateway.infrastructure.observability.logging import log_deposit_event, log_payment

router = APIRouter()


def _settle(
    deposit_repo: DepositRepository,
    deposit: Deposit,
    amount_cents: int,
    method: PaymentMethod,
    installment_id: Optional[uuid.UUID],
    notes: Optional[str],
) -> Optional[int]:
    """
    Apply a payment and stage every write it implies.

    The deposit row goes first so a concurrent writer is detected before the
    installment and ledger rows are touched. Every installment whose paid
    amount moved is written back. Returns the targeted installment number,
    if any.
    """
    read_version = deposit.version
    paid_before = {inst.id: inst.paid_cents for inst in deposit.installments}
    entry = apply_payment(deposit, amount_cents, method, installment_id=installment_id, notes=notes)
    deposit_repo.save_state(deposit, read_version)

    for inst in deposit.installments:
        if inst.paid_cents != paid_before[inst.id]:
            deposit_repo.update_installment(inst)

    installment_number = None
    if installment_id is not None:
        installment_number = deposit.find_installment(installment_id).installment_number

    deposit_repo.add_payment(deposit.id, entry)
    return installment_number


@router.post("/deposits/{deposit_id}/payments", response_model=DepositResponse)
def record_deposit_payment(
    deposit_id: uuid.UUID,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a payment against a deposit.

    Overpayment, payments on cancelled or refunded deposits and non-positive
    amounts are rejected with 422. A stale expected_version returns 409.
    """
    request_id = get_request_id(request)

    try:
        deposit_repo = DepositRepository(db)
        deposit = deposit_repo.load(deposit_id, request_body.expected_version)

        installment_number = _settle(
            deposit_repo,
            deposit,
            request_body.amount_cents,
            request_body.method,
            request_body.installment_id,
            request_body.notes,
        )

        db.commit()

    except ValidationError as e:
        record_payment_rejection(e)
        raise_for_domain_error(db, request_id, e)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_payment(request_body.method.value, "PAYMENT")
    log_payment(
        request_id,
        deposit.deposit_number,
        request_body.amount_cents,
        request_body.method.value,
        deposit.payment_status.value,
        installment_number,
    )

    return deposit_response(deposit)


@router.post("/installments/{installment_id}/pay", response_model=DepositResponse)
def pay_installment(
    installment_id: uuid.UUID,
    request_body: InstallmentPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Settle one installment; without an amount the whole outstanding balance of the installment is paid"""
    request_id = get_request_id(request)

    try:
        deposit_repo = DepositRepository(db)
        db_installment = deposit_repo.get_installment(installment_id)
        if db_installment is None:
            raise InstallmentNotFoundError(f"Installment {installment_id} not found")

        deposit = deposit_repo.load(db_installment.deposit_id, request_body.expected_version)
        installment = deposit.find_installment(installment_id)
        if installment.status == InstallmentStatus.PAID:
            raise InstallmentAlreadyPaidError(f"Installment {installment.installment_number} is already paid")
        amount = request_body.amount_cents
        if amount is None:
            amount = installment.outstanding_cents

        installment_number = _settle(
            deposit_repo,
            deposit,
            amount,
            request_body.method,
            installment_id,
            request_body.notes,
        )

        db.commit()

    except ValidationError as e:
        record_payment_rejection(e)
        raise_for_domain_error(db, request_id, e)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_payment(request_body.method.value, "PAYMENT")
    log_payment(
        request_id,
        deposit.deposit_number,
        amount,
        request_body.method.value,
        deposit.payment_status.value,
        installment_number,
    )

    return deposit_response(deposit)


@router.post("/deposits/{deposit_id}/refund", response_model=DepositResponse)
def refund_deposit(
    deposit_id: uuid.UUID,
    request_body: RefundRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Refund a fully paid deposit; the ledger keeps the original payments and gains a REFUND line"""
    request_id = get_request_id(request)

    try:
        deposit_repo = DepositRepository(db)
        deposit = deposit_repo.load(deposit_id, request_body.expected_version)
        read_version = deposit.version

        entry = refund(deposit, request_body.reason, request_body.method)
        deposit_repo.save_state(deposit, read_version)
        deposit_repo.add_payment(deposit.id, entry)

        db.commit()

    except ValidationError as e:
        record_payment_rejection(e)
        raise_for_domain_error(db, request_id, e)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)
    except Exception as e:
        raise_internal_error(db, request_id, e)

    record_payment(entry.method.value, entry.kind.value)
    log_deposit_event(
        request_id,
        deposit.deposit_number,
        "refunded",
        refunded_cents=deposit.refunded_cents,
        reason=deposit.refund_reason,
    )

    return deposit_response(deposit)


@router.get("/deposits/{deposit_id}/installments", response_model=InstallmentScheduleResponse)
def get_installments(deposit_id: uuid.UUID, request: Request, db: Session = Depends(get_db)):
    """Installment schedule with paid/pending totals and overdue count"""
    request_id = get_request_id(request)
    try:
        deposit = DepositRepository(db).load(deposit_id)
    except DomainException as e:
        raise_for_domain_error(db, request_id, e)

    summary = summarize_installments(deposit.installments)

    return InstallmentScheduleResponse(
        deposit_id=str(deposit.id),
        installments=[installment_schema(inst) for inst in deposit.installments],
        total_paid_cents=summary.total_paid_cents,
        total_pending_cents=summary.total_pending_cents,
        overdue_count=summary.overdue_count,
        next_due_date=summary.next_due_date,
    )
