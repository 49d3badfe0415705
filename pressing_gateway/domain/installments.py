"""Installment plan generation for deposits paid in several times"""

from datetime import date
from typing import List, Optional, Tuple
from pressing_gateway.domain.models import Installment, InstallmentStatus, InstallmentSummary, PaymentMethod
from pressing_gateway.domain.exceptions import InvalidInstallmentPlanError
from pressing_gateway.utils.date_utils import add_days


def installment_amounts(remaining_cents: int, count: int) -> Tuple[int, int]:
    """
    Split a balance into a regular amount and a last amount.

    Installments 1..count-1 are ceil(remaining / count); the last one
    absorbs the rounding remainder so the sum is always exactly the balance.

    Example:
        100 / 3 → regular 34, last 32 (34 + 34 + 32 = 100)

    Returns: (regular_cents, last_cents)
    """
    if count < 2:
        raise InvalidInstallmentPlanError("An installment plan needs at least 2 installments")
    if remaining_cents <= 0:
        raise InvalidInstallmentPlanError("Nothing left to pay, no installments to schedule")

    regular = -(-remaining_cents // count)  # ceil without floats
    last = remaining_cents - regular * (count - 1)

    if last <= 0:
        raise InvalidInstallmentPlanError(
            f"Balance of {remaining_cents} is too small to split into {count} installments"
        )

    return regular, last


def schedule_installments(
    remaining_cents: int,
    count: int,
    interval_days: int,
    start_date: date,
) -> List[Installment]:
    """
    Generate the installment schedule for a deposit balance.

    Requirements:
    - count >= 2 (a single payment is a plain full payment)
    - interval_days > 0
    - Installment i (1-based) is due start_date + i * interval_days, never on start_date itself
    - Last installment absorbs the rounding remainder

    Example:
        100 in 3 installments every 7 days from day 0
        → [34 due day 7, 34 due day 14, 32 due day 21]
    """
    if interval_days <= 0:
        raise InvalidInstallmentPlanError("Installment interval must be at least one day")

    regular, last = installment_amounts(remaining_cents, count)

    installments = []
    for number in range(1, count + 1):
        installments.append(
            Installment(
                installment_number=number,
                amount_cents=last if number == count else regular,
                due_date=add_days(start_date, number * interval_days),
            )
        )

    return installments


def allocate_payment(
    installments: List[Installment],
    amount_cents: int,
    method: PaymentMethod,
    paid_on: date,
) -> List[Installment]:
    """
    Spread a payment over the unpaid installments, earliest number first.

    Each installment takes at most its outstanding balance. Returns the
    installments that received money.
    """
    touched = []
    left = amount_cents
    for inst in sorted(installments, key=lambda i: i.installment_number):
        if left <= 0:
            break
        if inst.status == InstallmentStatus.PAID or inst.outstanding_cents == 0:
            continue

        share = min(left, inst.outstanding_cents)
        inst.paid_cents += share
        inst.payment_method = method
        inst.paid_date = paid_on
        if inst.outstanding_cents == 0:
            inst.status = InstallmentStatus.PAID
        left -= share
        touched.append(inst)

    return touched


def is_overdue(installment: Installment, today: date) -> bool:
    """Unpaid and past its due date"""
    return installment.status != InstallmentStatus.PAID and installment.due_date < today


def summarize_installments(installments: List[Installment], today: Optional[date] = None) -> InstallmentSummary:
    """Paid / pending totals and overdue count for the installment dashboard"""
    today = today or date.today()

    unpaid = [inst for inst in installments if inst.status != InstallmentStatus.PAID]
    next_due: Optional[date] = min((inst.due_date for inst in unpaid), default=None)

    return InstallmentSummary(
        total_paid_cents=sum(inst.paid_cents for inst in installments),
        total_pending_cents=sum(inst.outstanding_cents for inst in unpaid),
        overdue_count=sum(1 for inst in unpaid if is_overdue(inst, today)),
        next_due_date=next_due,
    )
