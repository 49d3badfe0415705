"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


# Validation errors: operator input is rejected, nothing is persisted


class ValidationError(DomainException):
    """Operator input violates a business rule"""

    pass


class EmptyItemsError(ValidationError):
    """Deposit has no items"""

    pass


class InvalidItemError(ValidationError):
    """Item has no name, a zero quantity or a zero price"""

    pass


class MissingCustomerInfoError(ValidationError):
    """Customer name or phone number is missing"""

    pass


class DiscountExceedsSubtotalError(ValidationError):
    """Discount is negative or larger than the subtotal"""

    pass


class InvalidInstallmentPlanError(ValidationError):
    """Installment count, interval or balance cannot produce a schedule"""

    pass


class InvalidPaymentAmountError(ValidationError):
    """Payment amount is zero, negative or larger than the installment due"""

    pass


class OverpaymentError(ValidationError):
    """Payment would make the paid amount exceed the deposit total"""

    def __init__(self, amount_cents: int, remaining_cents: int):
        self.amount_cents = amount_cents
        self.remaining_cents = remaining_cents
        super().__init__(
            f"Payment of {amount_cents} exceeds the remaining balance of {remaining_cents}"
        )


class UnsupportedCurrencyError(ValidationError):
    """Currency code has no known symbol or minor unit exponent"""

    def __init__(self, currency_code: str):
        self.currency_code = currency_code
        super().__init__(f"Unsupported currency: {currency_code}")


class PaymentNotAllowedError(ValidationError):
    """Deposit no longer accepts payments (cancelled or refunded)"""

    pass


class IllegalTransitionError(ValidationError):
    """Requested fulfillment status change is not in the transition table"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move deposit from {current} to {target}")


class InstallmentAlreadyPaidError(ValidationError):
    """Installment has already been settled"""

    pass


class RefundNotAllowedError(ValidationError):
    """Only fully paid deposits can be refunded"""

    pass


# Lookups


class NotFoundError(DomainException):
    """Requested record does not exist"""

    pass


class DepositNotFoundError(NotFoundError):
    pass


class InstallmentNotFoundError(NotFoundError):
    pass


class ReceiptNotFoundError(NotFoundError):
    pass


# Infrastructure-facing errors


class ConcurrencyConflictError(DomainException):
    """Deposit was modified by another operator since it was read"""

    def __init__(self, deposit_id: str, expected_version: int):
        self.deposit_id = deposit_id
        self.expected_version = expected_version
        super().__init__(
            f"Deposit {deposit_id} was modified concurrently (expected version {expected_version})"
        )


class ReceiptConsistencyError(DomainException):
    """Deposit totals do not add up; the receipt must not be rendered"""

    pass


class NotificationError(DomainException):
    """Notification transport returned an error or is unavailable"""

    pass
