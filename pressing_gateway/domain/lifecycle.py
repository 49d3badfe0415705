"""Deposit lifecycle - intake, fulfillment status machine and payment application"""

import secrets
import uuid
from datetime import date, datetime
from typing import Dict, FrozenSet, Iterable, Optional
from pressing_gateway.domain.models import (
    Deposit,
    DepositForm,
    DepositItem,
    DepositStatus,
    InstallmentStatus,
    PaymentEntry,
    PaymentKind,
    PaymentMethod,
    PaymentStatus,
)
from pressing_gateway.domain.exceptions import (
    DiscountExceedsSubtotalError,
    EmptyItemsError,
    IllegalTransitionError,
    InstallmentAlreadyPaidError,
    InstallmentNotFoundError,
    InvalidInstallmentPlanError,
    InvalidItemError,
    InvalidPaymentAmountError,
    MissingCustomerInfoError,
    OverpaymentError,
    PaymentNotAllowedError,
    RefundNotAllowedError,
    UnsupportedCurrencyError,
    ValidationError,
)
from pressing_gateway.domain.installments import allocate_payment, schedule_installments
from pressing_gateway.domain.pricing import compute_totals
from pressing_gateway.utils.date_utils import utc_now
from pressing_gateway.utils.formatting import is_supported_currency

# Linear happy path; any non-terminal state may be cancelled
TRANSITIONS: Dict[DepositStatus, FrozenSet[DepositStatus]] = {
    DepositStatus.NEW: frozenset({DepositStatus.CONFIRMED, DepositStatus.CANCELLED}),
    DepositStatus.CONFIRMED: frozenset({DepositStatus.IN_PROGRESS, DepositStatus.CANCELLED}),
    DepositStatus.IN_PROGRESS: frozenset({DepositStatus.READY, DepositStatus.CANCELLED}),
    DepositStatus.READY: frozenset({DepositStatus.DELIVERED, DepositStatus.CANCELLED}),
    DepositStatus.DELIVERED: frozenset(),
    DepositStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({DepositStatus.DELIVERED, DepositStatus.CANCELLED})


def derive_payment_status(paid_cents: int, total_cents: int, refunded: bool = False) -> PaymentStatus:
    """
    Payment status as a pure function of the amounts.

    REFUNDED cannot be derived from amounts; it is an explicit override set
    by a refund.
    """
    if refunded:
        return PaymentStatus.REFUNDED
    if paid_cents == 0:
        return PaymentStatus.PENDING
    if paid_cents < total_cents:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PAID


def can_transition(current: DepositStatus, target: DepositStatus) -> bool:
    return target in TRANSITIONS[current]


def generate_deposit_number(prefix: str, now: Optional[datetime] = None) -> str:
    """Business-facing identifier, e.g. DEP-20261019-3FA9C1"""
    now = now or utc_now()
    return f"{prefix}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def validate_items(items: Iterable[DepositItem]) -> None:
    """Every line needs a name, at least one piece and a positive unit price"""
    for item in items:
        if not item.name or not item.name.strip():
            raise InvalidItemError("Every item needs a name")
        if item.quantity < 1:
            raise InvalidItemError(f"Quantity for '{item.name}' must be at least 1")
        if item.unit_price_cents <= 0:
            raise InvalidItemError(f"Unit price for '{item.name}' must be positive")


def validate_form(form: DepositForm) -> None:
    """Reject intake input that cannot become a deposit"""
    if not form.customer_name or not form.customer_name.strip():
        raise MissingCustomerInfoError("Customer name is required")
    if not form.customer_phone or not form.customer_phone.strip():
        raise MissingCustomerInfoError("Customer phone is required")

    if not form.items:
        raise EmptyItemsError("A deposit needs at least one item")

    validate_items(form.items)

    if form.discount_cents < 0:
        raise DiscountExceedsSubtotalError("Discount cannot be negative")
    if form.paid_cents < 0:
        raise InvalidPaymentAmountError("Up-front payment cannot be negative")


def create_deposit(
    form: DepositForm,
    deposit_number: str,
    currency_code: str,
    today: Optional[date] = None,
    created_at: Optional[datetime] = None,
) -> Deposit:
    """
    Build a NEW deposit from the intake form.

    Flow:
    1. Validate customer, items, discount and up-front payment
    2. Price the items
    3. Derive payment status from the up-front payment
    4. Schedule installments against the remaining balance when requested

    The deposit and its installments are returned together; the caller
    persists them in a single transaction.
    """
    validate_form(form)

    subtotal = sum(item.total_price_cents for item in form.items)
    if form.discount_cents > subtotal:
        raise DiscountExceedsSubtotalError(
            f"Discount of {form.discount_cents} exceeds the subtotal of {subtotal}"
        )

    totals = compute_totals(form.items, form.discount_cents)

    if form.paid_cents > totals.total_cents:
        raise OverpaymentError(form.paid_cents, totals.total_cents)

    currency = (form.currency_code or currency_code).upper()
    if not is_supported_currency(currency):
        raise UnsupportedCurrencyError(currency)

    created_at = created_at or utc_now()
    today = today or created_at.date()

    deposit = Deposit(
        deposit_number=deposit_number,
        customer_name=form.customer_name.strip(),
        customer_phone=form.customer_phone.strip(),
        customer_email=form.customer_email,
        collection_address=form.collection_address,
        collection_date=form.collection_date,
        collection_time=form.collection_time,
        collection_notes=form.collection_notes,
        delivery_address=form.delivery_address,
        delivery_date=form.delivery_date,
        delivery_time=form.delivery_time,
        delivery_notes=form.delivery_notes,
        items=list(form.items),
        subtotal_cents=totals.subtotal_cents,
        discount_cents=totals.discount_cents,
        total_cents=totals.total_cents,
        paid_cents=form.paid_cents,
        status=DepositStatus.NEW,
        payment_status=derive_payment_status(form.paid_cents, totals.total_cents),
        payment_method=form.payment_method,
        tenant_name=form.tenant_name,
        agency_name=form.agency_name,
        created_by_name=form.created_by_name,
        currency_code=currency,
        created_at=created_at,
    )

    if form.is_installment_payment:
        if form.installment_count is None or form.installment_count < 2:
            raise InvalidInstallmentPlanError("Installment payment needs at least 2 installments")
        if form.installment_interval_days is None or form.installment_interval_days <= 0:
            raise InvalidInstallmentPlanError("Installment interval must be at least one day")

        deposit.is_installment_payment = True
        deposit.installment_count = form.installment_count
        deposit.installment_interval_days = form.installment_interval_days
        deposit.financed_cents = deposit.remaining_cents
        deposit.installments = schedule_installments(
            deposit.remaining_cents,
            form.installment_count,
            form.installment_interval_days,
            start_date=today,
        )

    return deposit


def initial_payment_entry(deposit: Deposit) -> Optional[PaymentEntry]:
    """Ledger line for the amount paid at intake, if any"""
    if deposit.paid_cents <= 0:
        return None
    return PaymentEntry(
        amount_cents=deposit.paid_cents,
        method=deposit.payment_method or PaymentMethod.CASH,
        notes="Paiement initial",
        recorded_at=deposit.created_at,
    )


def advance_status(deposit: Deposit, target: DepositStatus) -> DepositStatus:
    """
    Move the deposit along the fulfillment state machine.

    Returns the previous status. Illegal moves raise instead of being ignored.
    """
    current = deposit.status
    if not can_transition(current, target):
        raise IllegalTransitionError(current.value, target.value)

    deposit.status = target
    return current


def cancel(deposit: Deposit, reason: str) -> DepositStatus:
    """Cancel a deposit that has not been delivered; recorded payments are kept"""
    if not reason or not reason.strip():
        raise ValidationError("A cancellation reason is required")

    previous = advance_status(deposit, DepositStatus.CANCELLED)
    deposit.cancellation_reason = reason.strip()
    return previous


def apply_payment(
    deposit: Deposit,
    amount_cents: int,
    method: PaymentMethod,
    installment_id: Optional[uuid.UUID] = None,
    paid_on: Optional[date] = None,
    notes: Optional[str] = None,
) -> PaymentEntry:
    """
    Record a payment against the deposit, optionally settling one installment.
    Without an installment_id, a deposit with a schedule has the amount spread
    over its unpaid installments in due order.

    Rules:
    - amount must be positive
    - paid amount never exceeds the total (overpayment is rejected, not capped)
    - cancelled and refunded deposits accept no payments
    - an installment payment cannot exceed what is still due on that installment
    """
    if amount_cents <= 0:
        raise InvalidPaymentAmountError("Payment amount must be positive")
    if deposit.payment_status == PaymentStatus.REFUNDED:
        raise PaymentNotAllowedError("Deposit has been refunded")
    if deposit.status == DepositStatus.CANCELLED:
        raise PaymentNotAllowedError("Deposit is cancelled")
    if deposit.paid_cents + amount_cents > deposit.total_cents:
        raise OverpaymentError(amount_cents, deposit.remaining_cents)

    paid_on = paid_on or utc_now().date()

    installment = None
    if installment_id is not None:
        installment = deposit.find_installment(installment_id)
        if installment is None:
            raise InstallmentNotFoundError(f"Installment {installment_id} not found on this deposit")
        if installment.status == InstallmentStatus.PAID:
            raise InstallmentAlreadyPaidError(
                f"Installment {installment.installment_number} is already paid"
            )
        if amount_cents > installment.outstanding_cents:
            raise InvalidPaymentAmountError(
                f"Installment {installment.installment_number} only has "
                f"{installment.outstanding_cents} left to pay"
            )

    deposit.paid_cents += amount_cents
    deposit.payment_status = derive_payment_status(deposit.paid_cents, deposit.total_cents)

    if installment is not None:
        installment.paid_cents += amount_cents
        installment.payment_method = method
        installment.paid_date = paid_on
        if notes:
            installment.notes = notes
        if installment.outstanding_cents == 0:
            installment.status = InstallmentStatus.PAID
    elif deposit.installments:
        # Untargeted payments settle the earliest open installments first
        allocate_payment(deposit.installments, amount_cents, method, paid_on)

    return PaymentEntry(
        amount_cents=amount_cents,
        method=method,
        installment_id=installment_id,
        notes=notes or (f"Paiement échéance {installment.installment_number}" if installment else None),
    )


def refund(deposit: Deposit, reason: str, method: Optional[PaymentMethod] = None) -> PaymentEntry:
    """
    Return the money of a fully paid deposit to the customer.

    paid_cents is left as recorded; the refunded amount is tracked separately
    and the payment status is overridden to REFUNDED.
    """
    if deposit.payment_status != PaymentStatus.PAID:
        raise RefundNotAllowedError(
            f"Only paid deposits can be refunded (current: {deposit.payment_status.value})"
        )
    if not reason or not reason.strip():
        raise ValidationError("A refund reason is required")

    deposit.refunded_cents = deposit.paid_cents
    deposit.refund_reason = reason.strip()
    deposit.payment_status = derive_payment_status(deposit.paid_cents, deposit.total_cents, refunded=True)

    return PaymentEntry(
        amount_cents=deposit.refunded_cents,
        method=method or deposit.payment_method or PaymentMethod.CASH,
        kind=PaymentKind.REFUND,
        notes=deposit.refund_reason,
    )
