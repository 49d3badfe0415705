"""Data access layer for deposit entities"""

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Query, Session
from pressing_gateway.infrastructure.database.models import (
    DepositRecord,
    DepositItemRecord,
    InstallmentRecord,
    PaymentRecord,
    ReceiptRecord,
)
from pressing_gateway.domain.models import (
    Deposit,
    DepositItem,
    DepositStatus,
    Installment,
    InstallmentStatus,
    ItemCategory,
    PaymentEntry,
    PaymentMethod,
    PaymentStatus,
    RenderedReceipt,
)
from pressing_gateway.domain.exceptions import ConcurrencyConflictError, DepositNotFoundError


def _method(value: Optional[str]) -> Optional[PaymentMethod]:
    return PaymentMethod(value) if value else None


class DepositRepository:
    """Repository for deposits, their installments and payment ledger"""

    def __init__(self, db: Session):
        self.db = db

    def create_deposit(self, deposit: Deposit, initial_payment: Optional[PaymentEntry] = None) -> DepositRecord:
        """
        Persist a new deposit with items, installment batch and initial payment.

        Everything is flushed in the caller's transaction; the caller commits
        once so the deposit never exists without its declared plan.
        """
        db_deposit = DepositRecord(
            id=deposit.id or uuid.uuid4(),
            deposit_number=deposit.deposit_number,
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
            currency_code=deposit.currency_code,
            subtotal_cents=deposit.subtotal_cents,
            discount_cents=deposit.discount_cents,
            total_cents=deposit.total_cents,
            paid_cents=deposit.paid_cents,
            refunded_cents=deposit.refunded_cents,
            status=deposit.status.value,
            payment_status=deposit.payment_status.value,
            payment_method=deposit.payment_method.value if deposit.payment_method else None,
            is_installment_payment=deposit.is_installment_payment,
            installment_count=deposit.installment_count,
            installment_interval_days=deposit.installment_interval_days,
            financed_cents=deposit.financed_cents,
            version=deposit.version,
            created_at=deposit.created_at,
        )
        self.db.add(db_deposit)
        self.db.flush()  # Get ID without committing

        for position, item in enumerate(deposit.items, start=1):
            self.db.add(
                DepositItemRecord(
                    deposit_id=db_deposit.id,
                    position=position,
                    name=item.name,
                    category=item.category.value,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    total_price_cents=item.total_price_cents,
                    special_instructions=item.special_instructions,
                )
            )

        # Create installments
        for inst in deposit.installments:
            inst.id = inst.id or uuid.uuid4()
            self.db.add(
                InstallmentRecord(
                    id=inst.id,
                    deposit_id=db_deposit.id,
                    installment_number=inst.installment_number,
                    amount_cents=inst.amount_cents,
                    due_date=inst.due_date,
                    status=inst.status.value,
                )
            )

        if initial_payment is not None:
            self.add_payment(db_deposit.id, initial_payment)

        self.db.flush()
        deposit.id = db_deposit.id
        return db_deposit

    def get_deposit(self, deposit_id: uuid.UUID) -> Optional[DepositRecord]:
        """Fetch deposit with items and installments"""
        return (
            self.db.query(DepositRecord)
            .filter(DepositRecord.id == deposit_id)
            .first()
        )

    def load(self, deposit_id: uuid.UUID, expected_version: Optional[int] = None) -> Deposit:
        """
        Load a deposit snapshot for a mutation.

        Raises:
            DepositNotFoundError: unknown id
            ConcurrencyConflictError: caller's snapshot is older than the stored one
        """
        record = self.get_deposit(deposit_id)
        if record is None:
            raise DepositNotFoundError(f"Deposit {deposit_id} not found")
        if expected_version is not None and expected_version != record.version:
            raise ConcurrencyConflictError(str(deposit_id), expected_version)
        return self.to_domain(record)

    def get_installment(self, installment_id: uuid.UUID) -> Optional[InstallmentRecord]:
        return (
            self.db.query(InstallmentRecord)
            .filter(InstallmentRecord.id == installment_id)
            .first()
        )

    def _filtered(
        self,
        tenant_name: Optional[str] = None,
        agency_name: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> Query:
        query = self.db.query(DepositRecord)
        if tenant_name:
            query = query.filter(DepositRecord.tenant_name == tenant_name)
        if agency_name:
            query = query.filter(DepositRecord.agency_name == agency_name)
        if status:
            query = query.filter(DepositRecord.status == status)
        if payment_status:
            query = query.filter(DepositRecord.payment_status == payment_status)
        return query

    def list_deposits(self, limit: int = 10, offset: int = 0, **filters: Optional[str]) -> List[DepositRecord]:
        """Most recent deposits first"""
        return (
            self._filtered(**filters)
            .order_by(DepositRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_deposits(self, **filters: Optional[str]) -> int:
        return self._filtered(**filters).count()

    def save_state(self, deposit: Deposit, expected_version: int) -> None:
        """
        Write status and payment fields back with a compare-and-set on version.

        Raises:
            ConcurrencyConflictError: another operator committed first
        """
        result = self.db.execute(
            update(DepositRecord)
            .where(DepositRecord.id == deposit.id, DepositRecord.version == expected_version)
            .values(
                status=deposit.status.value,
                payment_status=deposit.payment_status.value,
                paid_cents=deposit.paid_cents,
                refunded_cents=deposit.refunded_cents,
                cancellation_reason=deposit.cancellation_reason,
                refund_reason=deposit.refund_reason,
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(str(deposit.id), expected_version)

        deposit.version = expected_version + 1

    def update_installment(self, installment: Installment) -> None:
        self.db.execute(
            update(InstallmentRecord)
            .where(InstallmentRecord.id == installment.id)
            .values(
                status=installment.status.value,
                paid_cents=installment.paid_cents,
                paid_date=installment.paid_date,
                payment_method=installment.payment_method.value if installment.payment_method else None,
                notes=installment.notes,
            )
            .execution_options(synchronize_session=False)
        )

    def add_payment(self, deposit_id: uuid.UUID, entry: PaymentEntry) -> PaymentRecord:
        db_payment = PaymentRecord(
            deposit_id=deposit_id,
            installment_id=entry.installment_id,
            kind=entry.kind.value,
            amount_cents=entry.amount_cents,
            method=entry.method.value,
            notes=entry.notes,
        )
        self.db.add(db_payment)
        return db_payment

    def to_domain(self, record: DepositRecord) -> Deposit:
        """Rebuild the aggregate from its rows"""
        return Deposit(
            id=record.id,
            deposit_number=record.deposit_number,
            customer_name=record.customer_name,
            customer_phone=record.customer_phone,
            customer_email=record.customer_email,
            collection_address=record.collection_address,
            collection_date=record.collection_date,
            collection_time=record.collection_time,
            collection_notes=record.collection_notes,
            delivery_address=record.delivery_address,
            delivery_date=record.delivery_date,
            delivery_time=record.delivery_time,
            delivery_notes=record.delivery_notes,
            items=[
                DepositItem(
                    name=item.name,
                    category=ItemCategory(item.category),
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    special_instructions=item.special_instructions,
                )
                for item in record.items
            ],
            subtotal_cents=record.subtotal_cents,
            discount_cents=record.discount_cents,
            total_cents=record.total_cents,
            paid_cents=record.paid_cents,
            refunded_cents=record.refunded_cents,
            status=DepositStatus(record.status),
            payment_status=PaymentStatus(record.payment_status),
            payment_method=_method(record.payment_method),
            is_installment_payment=record.is_installment_payment,
            installment_count=record.installment_count,
            installment_interval_days=record.installment_interval_days,
            financed_cents=record.financed_cents,
            installments=[
                Installment(
                    id=inst.id,
                    installment_number=inst.installment_number,
                    amount_cents=inst.amount_cents,
                    due_date=inst.due_date,
                    status=InstallmentStatus(inst.status),
                    paid_cents=inst.paid_cents,
                    paid_date=inst.paid_date,
                    payment_method=_method(inst.payment_method),
                    notes=inst.notes,
                )
                for inst in record.installments
            ],
            cancellation_reason=record.cancellation_reason,
            refund_reason=record.refund_reason,
            tenant_name=record.tenant_name,
            agency_name=record.agency_name,
            created_by_name=record.created_by_name,
            currency_code=record.currency_code,
            created_at=record.created_at,
            version=record.version,
        )


class ReceiptRepository:
    """Repository for saved receipts"""

    def __init__(self, db: Session):
        self.db = db

    def create_receipt(
        self,
        deposit_id: uuid.UUID,
        receipt: RenderedReceipt,
        generated_by: Optional[str] = None,
    ) -> ReceiptRecord:
        db_receipt = ReceiptRecord(
            deposit_id=deposit_id,
            type=receipt.receipt_type.value,
            format=receipt.receipt_format.value,
            content=receipt.content,
            content_type=receipt.content_type,
            status="GENERATED",
            generated_by=generated_by,
        )
        self.db.add(db_receipt)
        self.db.flush()
        return db_receipt

    def get_receipt(self, receipt_id: uuid.UUID) -> Optional[ReceiptRecord]:
        return (
            self.db.query(ReceiptRecord)
            .filter(ReceiptRecord.id == receipt_id)
            .first()
        )

    def list_receipts(self, deposit_id: uuid.UUID) -> List[ReceiptRecord]:
        return (
            self.db.query(ReceiptRecord)
            .filter(ReceiptRecord.deposit_id == deposit_id)
            .order_by(ReceiptRecord.generated_at.desc())
            .all()
        )

    def mark_sent(self, receipt: ReceiptRecord, recipient: str, message_id: Optional[str], sent_at: datetime) -> None:
        receipt.status = "SENT"
        receipt.sent_to = recipient
        receipt.sent_at = sent_at
        receipt.message_id = message_id
        receipt.error = None

    def mark_failed(self, receipt: ReceiptRecord, recipient: str, error: Optional[str]) -> None:
        receipt.status = "FAILED"
        receipt.sent_to = recipient
        receipt.error = error
