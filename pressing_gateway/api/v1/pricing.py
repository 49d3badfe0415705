"""POST /v1/pricing/quote - Live totals for the intake form"""

from fastapi import APIRouter, HTTPException

from pressing_gateway.api.v1.schemas import QuoteRequest, QuoteResponse
from pressing_gateway.config import settings
from pressing_gateway.domain.pricing import compute_totals
from pressing_gateway.domain.installments import installment_amounts
from pressing_gateway.domain.lifecycle import validate_items
from pressing_gateway.domain.exceptions import InvalidInstallmentPlanError, InvalidItemError
from pressing_gateway.utils.formatting import format_currency, is_supported_currency

router = APIRouter()


@router.post("/pricing/quote", response_model=QuoteResponse)
def quote(request_body: QuoteRequest):
    """
    Recompute totals on every form edit.

    Nothing is persisted. Item lines are checked the same way as on
    deposit creation. The discount is clamped to the subtotal here;
    deposit creation rejects it instead.
    """
    items = [item.to_domain() for item in request_body.items]
    try:
        validate_items(items)
    except InvalidItemError as e:
        raise HTTPException(status_code=422, detail=str(e))

    totals = compute_totals(items, request_body.discount_cents)
    remaining = max(0, totals.total_cents - request_body.paid_cents)
    currency = request_body.currency_code or settings.currency_code
    if not is_supported_currency(currency):
        raise HTTPException(status_code=422, detail=f"Unsupported currency: {currency}")

    regular = last = None
    if request_body.installment_count is not None:
        try:
            regular, last = installment_amounts(remaining, request_body.installment_count)
        except InvalidInstallmentPlanError as e:
            raise HTTPException(status_code=422, detail=str(e))

    formatted = {
        "subtotal": format_currency(totals.subtotal_cents, currency),
        "discount": format_currency(totals.discount_cents, currency),
        "total": format_currency(totals.total_cents, currency),
        "remaining": format_currency(remaining, currency),
    }
    if regular is not None:
        formatted["installment_amount"] = format_currency(regular, currency)
        formatted["last_installment_amount"] = format_currency(last, currency)

    return QuoteResponse(
        subtotal_cents=totals.subtotal_cents,
        discount_cents=totals.discount_cents,
        total_cents=totals.total_cents,
        remaining_cents=remaining,
        installment_amount_cents=regular,
        last_installment_amount_cents=last,
        formatted=formatted,
    )
