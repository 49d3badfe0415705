"""SQLAlchemy ORM models for deposits, installments, payments and receipts"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class DepositRecord(Base):
    """Customer drop-off with pricing and payment state"""

    __tablename__ = "deposit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deposit_number = Column(String(64), nullable=False, unique=True)
    tenant_name = Column(Text, nullable=False, index=True)
    agency_name = Column(Text, nullable=False, index=True)
    created_by_name = Column(Text, nullable=False)

    customer_name = Column(Text, nullable=False)
    customer_phone = Column(Text, nullable=False)
    customer_email = Column(Text, nullable=True)

    collection_address = Column(Text, nullable=False)
    collection_date = Column(Date, nullable=False)
    collection_time = Column(Text, nullable=False)
    collection_notes = Column(Text, nullable=True)

    delivery_address = Column(Text, nullable=True)
    delivery_date = Column(Date, nullable=True)
    delivery_time = Column(Text, nullable=True)
    delivery_notes = Column(Text, nullable=True)

    currency_code = Column(String(3), nullable=False)
    subtotal_cents = Column(BigInteger, nullable=False)
    discount_cents = Column(BigInteger, nullable=False, default=0)
    total_cents = Column(BigInteger, nullable=False)
    paid_cents = Column(BigInteger, nullable=False, default=0)
    refunded_cents = Column(BigInteger, nullable=False, default=0)

    status = Column(Text, nullable=False, default="NEW", index=True)
    payment_status = Column(Text, nullable=False, default="PENDING", index=True)
    payment_method = Column(Text, nullable=True)

    is_installment_payment = Column(Boolean, nullable=False, default=False)
    installment_count = Column(Integer, nullable=True)
    installment_interval_days = Column(Integer, nullable=True)
    financed_cents = Column(BigInteger, nullable=False, default=0)

    cancellation_reason = Column(Text, nullable=True)
    refund_reason = Column(Text, nullable=True)

    version = Column(Integer, nullable=False, default=1)  # Compare-and-set token
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship(
        "DepositItemRecord", back_populates="deposit", cascade="all, delete-orphan",
        order_by="DepositItemRecord.position",
    )
    installments = relationship(
        "InstallmentRecord", back_populates="deposit", cascade="all, delete-orphan",
        order_by="InstallmentRecord.installment_number",
    )
    payments = relationship(
        "PaymentRecord", back_populates="deposit", cascade="all, delete-orphan",
        order_by="PaymentRecord.created_at",
    )
    receipts = relationship("ReceiptRecord", back_populates="deposit", cascade="all, delete-orphan")


class DepositItemRecord(Base):
    """Article line of a deposit"""

    __tablename__ = "deposit_item"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deposit_id = Column(UUID(as_uuid=True), ForeignKey("deposit.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    total_price_cents = Column(BigInteger, nullable=False)
    special_instructions = Column(Text, nullable=True)

    deposit = relationship("DepositRecord", back_populates="items")


class InstallmentRecord(Base):
    """Individual installment within a deposit payment plan"""

    __tablename__ = "deposit_installment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deposit_id = Column(UUID(as_uuid=True), ForeignKey("deposit.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="PENDING")
    paid_cents = Column(BigInteger, nullable=False, default=0)
    paid_date = Column(Date, nullable=True)
    payment_method = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    deposit = relationship("DepositRecord", back_populates="installments")


class PaymentRecord(Base):
    """Payment ledger entry (payments and refunds)"""

    __tablename__ = "deposit_payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deposit_id = Column(UUID(as_uuid=True), ForeignKey("deposit.id", ondelete="CASCADE"), nullable=False)
    installment_id = Column(UUID(as_uuid=True), ForeignKey("deposit_installment.id"), nullable=True)
    kind = Column(Text, nullable=False, default="PAYMENT")
    amount_cents = Column(BigInteger, nullable=False)
    method = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    deposit = relationship("DepositRecord", back_populates="payments")


class ReceiptRecord(Base):
    """Saved rendering of a deposit receipt with its delivery tracking"""

    __tablename__ = "deposit_receipt"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deposit_id = Column(UUID(as_uuid=True), ForeignKey("deposit.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Text, nullable=False)
    format = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    content_type = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="GENERATED")  # GENERATED | SENT | FAILED
    sent_to = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    message_id = Column(Text, nullable=True)
    error = Column(Text, nullable=True)
    generated_by = Column(Text, nullable=True)
    generated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    deposit = relationship("DepositRecord", back_populates="receipts")
