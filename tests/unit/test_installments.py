"""Unit tests for installment plan generation"""

import pytest
from datetime import date, timedelta
from hypothesis import assume, given
from hypothesis import strategies as st
from pressing_gateway.domain.models import Installment, InstallmentStatus, PaymentMethod
from pressing_gateway.domain.installments import (
    allocate_payment,
    installment_amounts,
    is_overdue,
    schedule_installments,
    summarize_installments,
)
from pressing_gateway.domain.exceptions import InvalidInstallmentPlanError

DAY_0 = date(2026, 3, 2)


def test_schedule_installments_equal_split():
    """Test plan with evenly divisible amount"""
    installments = schedule_installments(40000, 4, 14, DAY_0)

    assert len(installments) == 4
    assert all(inst.amount_cents == 10000 for inst in installments)
    assert sum(inst.amount_cents for inst in installments) == 40000


def test_schedule_installments_rounding():
    """100 in 3 installments every 7 days: 34, 34, 32"""
    installments = schedule_installments(100, 3, 7, DAY_0)

    assert [inst.amount_cents for inst in installments] == [34, 34, 32]
    assert [inst.due_date for inst in installments] == [
        DAY_0 + timedelta(days=7),
        DAY_0 + timedelta(days=14),
        DAY_0 + timedelta(days=21),
    ]
    assert all(inst.status == InstallmentStatus.PENDING for inst in installments)


def test_schedule_installments_numbering():
    """Installments are numbered from 1"""
    installments = schedule_installments(900, 3, 30, DAY_0)
    assert [inst.installment_number for inst in installments] == [1, 2, 3]


def test_first_installment_never_due_on_start_date():
    """Installment i is due start + i * interval"""
    installments = schedule_installments(1000, 2, 1, DAY_0)
    assert installments[0].due_date == DAY_0 + timedelta(days=1)


@pytest.mark.parametrize(
    "remaining,count,interval",
    [
        (100, 1, 7),  # a single payment is not a plan
        (100, 0, 7),
        (0, 3, 7),  # nothing left to pay
        (-50, 3, 7),
        (100, 3, 0),  # interval must be positive
        (100, 3, -7),
        (5, 4, 7),  # ceil(5/4) = 2, last would be -1
        (2, 3, 7),  # ceil(2/3) = 1, last would be 0
    ],
)
def test_schedule_installments_rejects_invalid_plans(remaining, count, interval):
    """Impossible plans raise instead of producing zero or negative installments"""
    with pytest.raises(InvalidInstallmentPlanError):
        schedule_installments(remaining, count, interval, DAY_0)


def test_installment_amounts_sum_exactly():
    """Sum equals the balance and all but the last installment are identical"""
    checked = 0
    for remaining in range(1, 400):
        for count in range(2, 13):
            try:
                regular, last = installment_amounts(remaining, count)
            except InvalidInstallmentPlanError:
                # Only rejected when the ceil split leaves nothing for the last one
                assert remaining - -(-remaining // count) * (count - 1) <= 0
                continue

            installments = schedule_installments(remaining, count, 7, DAY_0)
            amounts = [inst.amount_cents for inst in installments]

            assert sum(amounts) == remaining
            assert len(set(amounts[:-1])) == 1
            assert amounts[-1] == last
            assert 0 < last <= regular
            checked += 1

    assert checked > 0


@given(remaining=st.integers(min_value=1, max_value=10**9), count=st.integers(min_value=2, max_value=60))
def test_installment_split_properties(remaining, count):
    """Sum is exact, installments 1..n-1 are equal and the last never exceeds them"""
    regular = -(-remaining // count)
    assume(remaining - regular * (count - 1) > 0)

    amounts = [inst.amount_cents for inst in schedule_installments(remaining, count, 7, DAY_0)]

    assert len(amounts) == count
    assert sum(amounts) == remaining
    assert set(amounts[:-1]) == {regular}
    assert 0 < amounts[-1] <= regular


@given(
    remaining=st.integers(min_value=1, max_value=10**6),
    count=st.integers(min_value=2, max_value=24),
    interval=st.integers(min_value=1, max_value=90),
)
def test_due_dates_are_evenly_spaced(remaining, count, interval):
    try:
        installments = schedule_installments(remaining, count, interval, DAY_0)
    except InvalidInstallmentPlanError:
        return

    for inst in installments:
        assert inst.due_date == DAY_0 + timedelta(days=inst.installment_number * interval)


def test_allocate_payment_earliest_first():
    """Money goes to installment 1 before 2, each capped at what it still owes"""
    installments = schedule_installments(100, 3, 7, DAY_0)

    touched = allocate_payment(installments, 50, PaymentMethod.CASH, DAY_0)

    assert [inst.installment_number for inst in touched] == [1, 2]
    assert [inst.paid_cents for inst in installments] == [34, 16, 0]
    assert [inst.status for inst in installments] == [
        InstallmentStatus.PAID,
        InstallmentStatus.PENDING,
        InstallmentStatus.PENDING,
    ]


def test_allocate_payment_skips_paid_installments():
    installments = schedule_installments(100, 3, 7, DAY_0)
    installments[0].paid_cents = 34
    installments[0].status = InstallmentStatus.PAID

    touched = allocate_payment(installments, 66, PaymentMethod.CARD, DAY_0)

    assert [inst.installment_number for inst in touched] == [2, 3]
    assert all(inst.status == InstallmentStatus.PAID for inst in installments)


@given(
    remaining=st.integers(min_value=2, max_value=10**6),
    count=st.integers(min_value=2, max_value=12),
    payments=st.lists(st.integers(min_value=1, max_value=10**6), max_size=10),
)
def test_allocation_never_overpays_an_installment(remaining, count, payments):
    """Whatever the payments, each installment holds at most its amount and nothing is lost below the balance"""
    try:
        installments = schedule_installments(remaining, count, 7, DAY_0)
    except InvalidInstallmentPlanError:
        return

    paid = 0
    for amount in payments:
        amount = min(amount, remaining - paid)
        if amount <= 0:
            break
        allocate_payment(installments, amount, PaymentMethod.CASH, DAY_0)
        paid += amount

    assert sum(inst.paid_cents for inst in installments) == paid
    for inst in installments:
        assert 0 <= inst.paid_cents <= inst.amount_cents
        assert (inst.status == InstallmentStatus.PAID) == (inst.paid_cents == inst.amount_cents)


def test_is_overdue():
    """Unpaid installments past their due date are overdue"""
    inst = Installment(installment_number=1, amount_cents=500, due_date=DAY_0)

    assert is_overdue(inst, DAY_0 + timedelta(days=1)) is True
    assert is_overdue(inst, DAY_0) is False

    inst.status = InstallmentStatus.PAID
    assert is_overdue(inst, DAY_0 + timedelta(days=30)) is False


def test_summarize_installments():
    """Paid and pending totals, overdue count and next due date"""
    installments = schedule_installments(100, 3, 7, DAY_0)
    installments[0].paid_cents = 34
    installments[0].status = InstallmentStatus.PAID
    installments[1].paid_cents = 10

    summary = summarize_installments(installments, today=DAY_0 + timedelta(days=15))

    assert summary.total_paid_cents == 44
    assert summary.total_pending_cents == 24 + 32
    assert summary.overdue_count == 1  # installment 2 was due on day 14
    assert summary.next_due_date == DAY_0 + timedelta(days=14)


def test_summarize_installments_all_paid():
    """A settled plan has nothing pending and no next due date"""
    installments = schedule_installments(100, 2, 7, DAY_0)
    for inst in installments:
        inst.paid_cents = inst.amount_cents
        inst.status = InstallmentStatus.PAID

    summary = summarize_installments(installments, today=DAY_0 + timedelta(days=60))

    assert summary.total_paid_cents == 100
    assert summary.total_pending_cents == 0
    assert summary.overdue_count == 0
    assert summary.next_due_date is None
