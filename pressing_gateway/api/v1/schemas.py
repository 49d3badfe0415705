"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, UUID4
from datetime import date
from typing import Dict, List, Optional

from pressing_gateway.domain.models import (
    DepositForm,
    DepositItem,
    DepositStatus,
    ItemCategory,
    PaymentMethod,
    ReceiptFormat,
    ReceiptType,
)


class ItemSchema(BaseModel):
    """Single article on the intake form"""

    name: str
    category: ItemCategory = ItemCategory.OTHER
    quantity: int = Field(..., description="Number of pieces")
    unit_price_cents: int = Field(..., description="Unit price in currency minor units")
    special_instructions: Optional[str] = None

    def to_domain(self) -> DepositItem:
        return DepositItem(
            name=self.name,
            category=self.category,
            quantity=self.quantity,
            unit_price_cents=self.unit_price_cents,
            special_instructions=self.special_instructions,
        )


class ItemResponse(ItemSchema):
    total_price_cents: int
    category_label: str


class QuoteRequest(BaseModel):
    """Request body for POST /v1/pricing/quote"""

    items: List[ItemSchema]
    discount_cents: int = Field(0, ge=0)
    paid_cents: int = Field(0, ge=0)
    installment_count: Optional[int] = None
    currency_code: Optional[str] = None


class QuoteResponse(BaseModel):
    """Live totals while the operator edits the intake form"""

    subtotal_cents: int
    discount_cents: int
    total_cents: int
    remaining_cents: int
    installment_amount_cents: Optional[int] = None
    last_installment_amount_cents: Optional[int] = None
    formatted: Dict[str, str]


class DepositCreateRequest(BaseModel):
    """Request body for POST /v1/deposits"""

    tenant_name: str = Field(..., min_length=1)
    agency_name: str = Field(..., min_length=1)
    created_by_name: str = Field(..., min_length=1)

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None

    collection_address: str
    collection_date: date
    collection_time: str
    collection_notes: Optional[str] = None

    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None
    delivery_notes: Optional[str] = None

    items: List[ItemSchema]

    payment_method: PaymentMethod = PaymentMethod.CASH
    paid_cents: int = 0
    discount_cents: int = 0
    is_installment_payment: bool = False
    installment_count: Optional[int] = None
    installment_interval_days: Optional[int] = None
    currency_code: Optional[str] = None

    def to_form(self, default_interval_days: int) -> DepositForm:
        interval = self.installment_interval_days
        if self.is_installment_payment and interval is None:
            interval = default_interval_days

        return DepositForm(
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            customer_email=self.customer_email,
            collection_address=self.collection_address,
            collection_date=self.collection_date,
            collection_time=self.collection_time,
            collection_notes=self.collection_notes,
            delivery_address=self.delivery_address,
            delivery_date=self.delivery_date,
            delivery_time=self.delivery_time,
            delivery_notes=self.delivery_notes,
            items=[item.to_domain() for item in self.items],
            tenant_name=self.tenant_name,
            agency_name=self.agency_name,
            created_by_name=self.created_by_name,
            payment_method=self.payment_method,
            paid_cents=self.paid_cents,
            discount_cents=self.discount_cents,
            is_installment_payment=self.is_installment_payment,
            installment_count=self.installment_count,
            installment_interval_days=interval,
            currency_code=self.currency_code,
        )


class InstallmentSchema(BaseModel):
    """Single installment in a payment plan"""

    installment_id: str
    installment_number: int
    due_date: date
    amount_cents: int
    paid_cents: int
    status: str
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class DepositResponse(BaseModel):
    """Full deposit as returned by read and mutation endpoints"""

    deposit_id: str
    deposit_number: str
    version: int
    tenant_name: str
    agency_name: str
    created_by_name: str

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None

    collection_address: str
    collection_date: date
    collection_time: str
    collection_notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None
    delivery_notes: Optional[str] = None

    items: List[ItemResponse]

    currency_code: str
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    paid_cents: int
    remaining_cents: int
    refunded_cents: int

    status: str
    payment_status: str
    payment_method: Optional[str] = None

    is_installment_payment: bool
    installment_count: Optional[int] = None
    installment_interval_days: Optional[int] = None
    financed_cents: int
    installments: List[InstallmentSchema]

    cancellation_reason: Optional[str] = None
    refund_reason: Optional[str] = None
    created_at: str


class DepositSummary(BaseModel):
    """Row of the deposit list"""

    deposit_id: str
    deposit_number: str
    customer_name: str
    agency_name: str
    total_cents: int
    paid_cents: int
    status: str
    payment_status: str
    created_at: str


class DepositListResponse(BaseModel):
    """Response for GET /v1/deposits"""

    total: int
    limit: int
    offset: int
    deposits: List[DepositSummary]


class StatusChangeRequest(BaseModel):
    """Request body for POST /v1/deposits/{deposit_id}/status"""

    status: DepositStatus
    expected_version: Optional[int] = None


class CancelRequest(BaseModel):
    """Request body for POST /v1/deposits/{deposit_id}/cancel"""

    reason: str
    expected_version: Optional[int] = None


class PaymentRequest(BaseModel):
    """Request body for POST /v1/deposits/{deposit_id}/payments"""

    amount_cents: int
    method: PaymentMethod = PaymentMethod.CASH
    installment_id: Optional[UUID4] = None
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class InstallmentPaymentRequest(BaseModel):
    """Request body for POST /v1/installments/{installment_id}/pay; amount defaults to what is still due"""

    amount_cents: Optional[int] = None
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None
    expected_version: Optional[int] = None


class RefundRequest(BaseModel):
    """Request body for POST /v1/deposits/{deposit_id}/refund"""

    reason: str
    method: Optional[PaymentMethod] = None
    expected_version: Optional[int] = None


class InstallmentScheduleResponse(BaseModel):
    """Response for GET /v1/deposits/{deposit_id}/installments"""

    deposit_id: str
    installments: List[InstallmentSchema]
    total_paid_cents: int
    total_pending_cents: int
    overdue_count: int
    next_due_date: Optional[date] = None


class ReceiptResponse(BaseModel):
    """Rendered receipt, not persisted"""

    receipt_type: ReceiptType
    receipt_format: ReceiptFormat
    content_type: str
    content: str
    figures: Dict[str, str]


class ReceiptCreateRequest(BaseModel):
    """Request body for POST /v1/deposits/{deposit_id}/receipts"""

    receipt_type: ReceiptType = ReceiptType.DEPOSIT
    receipt_format: ReceiptFormat = ReceiptFormat.A4
    generated_by: Optional[str] = None


class SavedReceiptResponse(BaseModel):
    """Stored receipt with delivery tracking"""

    receipt_id: str
    deposit_id: str
    receipt_type: str
    receipt_format: str
    content_type: str
    content: str
    status: str
    sent_to: Optional[str] = None
    sent_at: Optional[str] = None
    generated_by: Optional[str] = None
    generated_at: str


class SendReceiptRequest(BaseModel):
    """Request body for POST /v1/receipts/{receipt_id}/send; recipient defaults to the customer's phone"""

    recipient: Optional[str] = None


class SendReceiptResponse(BaseModel):
    """Dispatch outcome shown to the operator"""

    receipt_id: str
    outcome: str
    channel: str
    recipient: str
    message: str
    message_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    whatsapp_url: Optional[str] = None
