"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional


class ItemCategory(str, Enum):
    WASHING = "WASHING"
    IRONING = "IRONING"
    DRY_CLEANING = "DRY_CLEANING"
    REPAIR = "REPAIR"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    ItemCategory.WASHING: "Lavage",
    ItemCategory.IRONING: "Repassage",
    ItemCategory.DRY_CLEANING: "Nettoyage à sec",
    ItemCategory.REPAIR: "Retouche",
    ItemCategory.OTHER: "Autre",
}


class DepositStatus(str, Enum):
    """Fulfillment state of a deposit"""

    NEW = "NEW"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    """Derived from paid vs total, except REFUNDED which is recorded explicitly"""

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class InstallmentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    MOBILE_MONEY = "MOBILE_MONEY"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"


class PaymentKind(str, Enum):
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"


class ReceiptType(str, Enum):
    DEPOSIT = "DEPOSIT"
    PAYMENT = "PAYMENT"
    DELIVERY = "DELIVERY"


class ReceiptFormat(str, Enum):
    A4 = "A4"
    A5 = "A5"
    CASH_REGISTER = "CASH_REGISTER"
    ELECTRONIC = "ELECTRONIC"


class DispatchOutcome(str, Enum):
    """Send state shown to the operator"""

    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


class DispatchChannel(str, Enum):
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"


@dataclass
class DepositItem:
    """One article dropped off by the customer"""

    name: str
    category: ItemCategory
    quantity: int
    unit_price_cents: int
    special_instructions: Optional[str] = None

    @property
    def total_price_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@dataclass
class Installment:
    """Single payment in a repayment plan"""

    installment_number: int  # 1-based
    amount_cents: int
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_cents: int = 0
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    id: Optional[uuid.UUID] = None

    @property
    def outstanding_cents(self) -> int:
        return max(0, self.amount_cents - self.paid_cents)


@dataclass
class PaymentEntry:
    """One line of a deposit's payment ledger"""

    amount_cents: int
    method: PaymentMethod
    kind: PaymentKind = PaymentKind.PAYMENT
    installment_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None


@dataclass
class DepositForm:
    """Intake form as submitted by the operator"""

    customer_name: str
    customer_phone: str
    collection_address: str
    collection_date: date
    collection_time: str
    items: List[DepositItem]
    tenant_name: str
    agency_name: str
    created_by_name: str
    customer_email: Optional[str] = None
    collection_notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None
    delivery_notes: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    paid_cents: int = 0
    discount_cents: int = 0
    is_installment_payment: bool = False
    installment_count: Optional[int] = None
    installment_interval_days: Optional[int] = None
    currency_code: Optional[str] = None


@dataclass
class Deposit:
    """Aggregate root: a customer's drop-off with its pricing and payment state"""

    deposit_number: str
    customer_name: str
    customer_phone: str
    collection_address: str
    collection_date: date
    collection_time: str
    items: List[DepositItem]
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    paid_cents: int
    status: DepositStatus
    payment_status: PaymentStatus
    tenant_name: str
    agency_name: str
    created_by_name: str
    currency_code: str
    created_at: datetime
    customer_email: Optional[str] = None
    collection_notes: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None
    delivery_notes: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    is_installment_payment: bool = False
    installment_count: Optional[int] = None
    installment_interval_days: Optional[int] = None
    financed_cents: int = 0  # Balance the installment plan was generated against
    installments: List[Installment] = field(default_factory=list)
    refunded_cents: int = 0
    cancellation_reason: Optional[str] = None
    refund_reason: Optional[str] = None
    id: Optional[uuid.UUID] = None
    version: int = 1

    @property
    def remaining_cents(self) -> int:
        return max(0, self.total_cents - self.paid_cents)

    def find_installment(self, installment_id: uuid.UUID) -> Optional[Installment]:
        for inst in self.installments:
            if inst.id == installment_id:
                return inst
        return None


@dataclass
class PricingTotals:
    """Output of the pricing engine"""

    subtotal_cents: int
    discount_cents: int
    total_cents: int


@dataclass
class InstallmentSummary:
    """Aggregate view of an installment plan on a given day"""

    total_paid_cents: int
    total_pending_cents: int
    overdue_count: int
    next_due_date: Optional[date]


@dataclass
class RenderedReceipt:
    """A deposit snapshot rendered in one layout"""

    receipt_type: ReceiptType
    receipt_format: ReceiptFormat
    content: str
    content_type: str  # text/html or text/plain
    figures: Dict[str, str]  # Formatted amounts printed in the content


@dataclass
class DispatchResult:
    """Outcome of handing a receipt message to the transport"""

    outcome: DispatchOutcome
    channel: DispatchChannel
    message_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None
    whatsapp_url: Optional[str] = None
