"""
Receipt composer - renders one deposit snapshot into any (type, format) pair.

Every layout prints the same pre-formatted figures, built once from the
deposit by build_figures(). Layouts only decide density and markup.
"""

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Callable, Dict, List, Optional
from pressing_gateway.domain.models import (
    Deposit,
    InstallmentStatus,
    ReceiptFormat,
    ReceiptType,
    RenderedReceipt,
)
from pressing_gateway.domain.exceptions import ReceiptConsistencyError
from pressing_gateway.domain.installments import installment_amounts
from pressing_gateway.utils.date_utils import utc_now
from pressing_gateway.utils.formatting import format_currency, format_date, format_datetime

TYPE_TITLES = {
    ReceiptType.DEPOSIT: "REÇU DE DÉPÔT",
    ReceiptType.PAYMENT: "REÇU DE PAIEMENT",
    ReceiptType.DELIVERY: "REÇU DE LIVRAISON",
}

TYPE_EMOJI = {
    ReceiptType.DEPOSIT: "📦",
    ReceiptType.PAYMENT: "💳",
    ReceiptType.DELIVERY: "🚚",
}

# Section order per receipt type: the emphasized block comes first
SECTION_ORDER = {
    ReceiptType.DEPOSIT: ["customer", "collection", "items", "financial", "delivery"],
    ReceiptType.DELIVERY: ["customer", "delivery", "items", "financial", "collection"],
    ReceiptType.PAYMENT: ["customer", "financial", "schedule", "items"],
}

THANKS = "Merci pour votre confiance."
CARE_NOTE = "Nous nous engageons à traiter vos vêtements avec le plus grand soin."


def check_consistency(deposit: Deposit) -> None:
    """
    Refuse to render a deposit whose numbers do not add up.

    The composer never corrects figures: a mismatch means the stored
    deposit is corrupt and a receipt would mislead the customer.
    """
    if not deposit.items:
        raise ReceiptConsistencyError(f"Deposit {deposit.deposit_number} has no items")

    items_total = sum(item.total_price_cents for item in deposit.items)
    if items_total != deposit.subtotal_cents:
        raise ReceiptConsistencyError(
            f"Deposit {deposit.deposit_number}: items add up to {items_total}, "
            f"subtotal is {deposit.subtotal_cents}"
        )

    if not 0 <= deposit.discount_cents <= deposit.subtotal_cents:
        raise ReceiptConsistencyError(
            f"Deposit {deposit.deposit_number}: discount {deposit.discount_cents} outside [0, subtotal]"
        )

    if deposit.total_cents != deposit.subtotal_cents - deposit.discount_cents:
        raise ReceiptConsistencyError(
            f"Deposit {deposit.deposit_number}: total {deposit.total_cents} != "
            f"subtotal {deposit.subtotal_cents} - discount {deposit.discount_cents}"
        )

    if not 0 <= deposit.paid_cents <= deposit.total_cents:
        raise ReceiptConsistencyError(
            f"Deposit {deposit.deposit_number}: paid {deposit.paid_cents} outside [0, total]"
        )

    if deposit.is_installment_payment:
        count = deposit.installment_count or 0
        if count < 2 or deposit.financed_cents <= 0:
            raise ReceiptConsistencyError(
                f"Deposit {deposit.deposit_number}: installment plan is incomplete"
            )
        if deposit.installments:
            regular, last = installment_amounts(deposit.financed_cents, count)
            expected = [regular] * (count - 1) + [last]
            actual = [inst.amount_cents for inst in sorted(deposit.installments, key=lambda i: i.installment_number)]
            if actual != expected:
                raise ReceiptConsistencyError(
                    f"Deposit {deposit.deposit_number}: stored installments {actual} "
                    f"do not match the plan {expected}"
                )


def build_figures(deposit: Deposit) -> Dict[str, str]:
    """Formatted amounts shared by every layout"""
    currency = deposit.currency_code
    figures = {
        "subtotal": format_currency(deposit.subtotal_cents, currency),
        "discount": format_currency(deposit.discount_cents, currency),
        "total": format_currency(deposit.total_cents, currency),
        "paid": format_currency(deposit.paid_cents, currency),
        "remaining": format_currency(deposit.remaining_cents, currency),
    }

    if deposit.refunded_cents > 0:
        figures["refunded"] = format_currency(deposit.refunded_cents, currency)

    if deposit.is_installment_payment:
        regular, last = installment_amounts(deposit.financed_cents, deposit.installment_count)
        figures["installment_count"] = str(deposit.installment_count)
        figures["installment_amount"] = format_currency(regular, currency)
        figures["last_installment_amount"] = format_currency(last, currency)

    return figures


@dataclass
class _View:
    """Everything a layout needs, resolved once"""

    deposit: Deposit
    receipt_type: ReceiptType
    figures: Dict[str, str]
    generated_at: datetime
    width: int
    website: Optional[str]
    timezone: Optional[str] = None

    @property
    def title(self) -> str:
        return TYPE_TITLES[self.receipt_type]

    @property
    def sections(self) -> List[str]:
        order = SECTION_ORDER[self.receipt_type]
        if not self.deposit.is_installment_payment:
            order = [s for s in order if s != "schedule"]
        return order

    def stamp(self, value: Optional[datetime]) -> str:
        return format_datetime(value, self.timezone)

    def money(self, amount_cents: int) -> str:
        return format_currency(amount_cents, self.deposit.currency_code)

    def financial_rows(self) -> List[tuple]:
        """(label, value) pairs of the financial summary, same for every layout"""
        d, f = self.deposit, self.figures
        rows = [("Sous-total", f["subtotal"])]
        if d.discount_cents > 0:
            rows.append(("Remise", "-" + f["discount"]))
        rows.append(("Total", f["total"]))
        rows.append(("Payé", f["paid"]))
        if d.remaining_cents > 0:
            rows.append(("Reste à payer", f["remaining"]))
        if "refunded" in f:
            rows.append(("Remboursé", f["refunded"]))
        if d.is_installment_payment:
            rows.append(("Paiement échelonné", f"{f['installment_count']} échéances"))
            rows.append(("Montant par échéance", f["installment_amount"]))
            if f["last_installment_amount"] != f["installment_amount"]:
                rows.append(("Dernière échéance", f["last_installment_amount"]))
        return rows

    def schedule_rows(self) -> List[tuple]:
        """(label, due date, amount, state) per installment"""
        rows = []
        for inst in sorted(self.deposit.installments, key=lambda i: i.installment_number):
            state = "Payée" if inst.status == InstallmentStatus.PAID else "À payer"
            rows.append((f"Échéance {inst.installment_number}", format_date(inst.due_date), self.money(inst.amount_cents), state))
        return rows


# ---------------------------------------------------------------------------
# A4: full HTML document
# ---------------------------------------------------------------------------

A4_STYLE = """
body { font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #333; }
.header { text-align: center; border-bottom: 2px solid #333; padding-bottom: 20px; margin-bottom: 20px; }
.header h1 { font-size: 24px; margin: 0; }
.section { margin-bottom: 20px; }
.section h3 { border-bottom: 1px solid #ccc; padding-bottom: 5px; margin-bottom: 10px; }
table { width: 100%; border-collapse: collapse; margin-bottom: 20px; }
th, td { border: 1px solid #ccc; padding: 8px; text-align: left; }
th { background-color: #f5f5f5; }
td.amount { text-align: right; }
.total { font-weight: bold; font-size: 18px; }
.footer { text-align: center; margin-top: 30px; padding-top: 20px; border-top: 1px solid #ccc; font-size: 12px; color: #666; }
@media print { body { margin: 0; padding: 0; } }
"""


def _p(label: str, value: Optional[str]) -> str:
    if not value:
        return ""
    return f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>"


def _a4_section(view: _View, name: str) -> str:
    d = view.deposit

    if name == "customer":
        body = _p("Nom", d.customer_name) + _p("Téléphone", d.customer_phone) + _p("Email", d.customer_email)
        return f'<div class="section"><h3>Informations Client</h3>{body}</div>'

    if name == "collection":
        body = (
            _p("Adresse", d.collection_address or "N/A")
            + _p("Date", format_date(d.collection_date))
            + _p("Heure", d.collection_time)
            + _p("Notes", d.collection_notes)
        )
        return f'<div class="section"><h3>Informations de Collecte</h3>{body}</div>'

    if name == "delivery":
        body = (
            _p("Adresse", d.delivery_address or d.collection_address or "N/A")
            + (_p("Date prévue", format_date(d.delivery_date)) if d.delivery_date else "")
            + _p("Heure", d.delivery_time)
            + _p("Notes", d.delivery_notes)
        )
        return f'<div class="section"><h3>Informations de Livraison</h3>{body}</div>'

    if name == "items":
        rows = "".join(
            "<tr>"
            f"<td>{escape(item.name)}</td>"
            f"<td>{escape(item.category.label)}</td>"
            f"<td>{item.quantity}</td>"
            f'<td class="amount">{view.money(item.unit_price_cents)}</td>'
            f'<td class="amount">{view.money(item.total_price_cents)}</td>'
            "</tr>"
            for item in d.items
        )
        return (
            '<div class="section"><h3>Articles Déposés</h3><table>'
            "<thead><tr><th>Article</th><th>Catégorie</th><th>Quantité</th>"
            "<th>Prix Unitaire</th><th>Total</th></tr></thead>"
            f"<tbody>{rows}</tbody></table></div>"
        )

    if name == "financial":
        lines = "".join(
            f'<p class="total">{label}: {value}</p>' if label == "Total" else f"<p>{label}: {value}</p>"
            for label, value in view.financial_rows()
        )
        return f'<div class="section"><h3>Résumé Financier</h3>{lines}</div>'

    if name == "schedule":
        rows = "".join(
            f'<tr><td>{label}</td><td>{due}</td><td class="amount">{amount}</td><td>{state}</td></tr>'
            for label, due, amount, state in view.schedule_rows()
        )
        return (
            '<div class="section"><h3>Échéancier</h3><table>'
            "<thead><tr><th>Échéance</th><th>Date</th><th>Montant</th><th>Statut</th></tr></thead>"
            f"<tbody>{rows}</tbody></table></div>"
        )

    raise ValueError(f"Unknown receipt section: {name}")


def _render_a4(view: _View) -> str:
    d = view.deposit
    sections = "\n".join(_a4_section(view, name) for name in view.sections)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Reçu - {escape(d.deposit_number)}</title>
<style>{A4_STYLE}</style>
</head>
<body>
<div class="header">
<h1>{escape(d.tenant_name)}</h1>
<p>{escape(d.agency_name)}</p>
<p><strong>{view.title}</strong></p>
<p>N° {escape(d.deposit_number)} | Date: {view.stamp(d.created_at)}</p>
</div>
{sections}
<div class="footer">
<p>{THANKS} {CARE_NOTE}</p>
<p>Pour toute question, contactez-nous au {escape(d.agency_name)}.</p>
<p>Reçu généré le {view.stamp(view.generated_at)} par {escape(d.created_by_name or "Système")}</p>
</div>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# A5: compact HTML
# ---------------------------------------------------------------------------


def _a5_section(view: _View, name: str) -> str:
    d = view.deposit

    if name == "customer":
        return f"<div><h4>Client</h4><p>{escape(d.customer_name)}<br>{escape(d.customer_phone)}</p></div>"
    if name == "collection":
        return (
            f"<div><h4>Collecte</h4><p>{escape(d.collection_address or 'N/A')}<br>"
            f"{format_date(d.collection_date)} {escape(d.collection_time or '')}</p></div>"
        )
    if name == "delivery":
        return (
            f"<div><h4>Livraison</h4><p>{escape(d.delivery_address or d.collection_address or 'N/A')}<br>"
            f"{format_date(d.delivery_date)} {escape(d.delivery_time or '')}</p></div>"
        )
    if name == "items":
        lines = "".join(
            f"<li>{escape(item.name)} ({item.quantity}x) <span>{view.money(item.total_price_cents)}</span></li>"
            for item in d.items
        )
        return f"<div><h4>Articles</h4><ul>{lines}</ul></div>"
    if name == "financial":
        lines = "".join(f"<li>{label}: <span>{value}</span></li>" for label, value in view.financial_rows())
        return f"<div><h4>Résumé</h4><ul>{lines}</ul></div>"
    if name == "schedule":
        lines = "".join(
            f"<li>{label} ({due}): <span>{amount}</span> {state}</li>"
            for label, due, amount, state in view.schedule_rows()
        )
        return f"<div><h4>Échéancier</h4><ul>{lines}</ul></div>"

    raise ValueError(f"Unknown receipt section: {name}")


def _render_a5(view: _View) -> str:
    d = view.deposit
    sections = "\n".join(_a5_section(view, name) for name in view.sections)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Reçu - {escape(d.deposit_number)}</title>
<style>body {{ font-family: Arial, sans-serif; font-size: 12px; max-width: 148mm; margin: 0 auto; }} ul {{ list-style: none; padding: 0; }} span {{ float: right; }}</style>
</head>
<body>
<h2>{escape(d.tenant_name)}</h2>
<p>{escape(d.agency_name)}<br><strong>{view.title}</strong><br>N° {escape(d.deposit_number)} | {view.stamp(d.created_at)}</p>
{sections}
<p>{THANKS}<br>Reçu généré le {view.stamp(view.generated_at)}</p>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Cash register: monospace ticket
# ---------------------------------------------------------------------------


def _ticket_line(left: str, right: str, width: int) -> str:
    gap = width - len(left) - len(right)
    if gap < 1:
        return f"{left}\n{right.rjust(width)}"
    return left + " " * gap + right


def _ticket_section(view: _View, name: str) -> List[str]:
    d, w = view.deposit, view.width

    if name == "customer":
        return [f"Client: {d.customer_name}", f"Tel: {d.customer_phone}"]
    if name == "collection":
        return [f"Collecte: {format_date(d.collection_date)} {d.collection_time or ''}".rstrip()]
    if name == "delivery":
        return [f"Livraison: {format_date(d.delivery_date)} {d.delivery_time or ''}".rstrip()]
    if name == "items":
        lines = []
        for item in d.items:
            lines.append(item.name)
            lines.append(_ticket_line(f"  {item.quantity}x {view.money(item.unit_price_cents)}", view.money(item.total_price_cents), w))
        return lines
    if name == "financial":
        return [_ticket_line(f"{label.upper() if label == 'Total' else label}:", value, w) for label, value in view.financial_rows()]
    if name == "schedule":
        return [_ticket_line(f"{label} {due}", amount, w) for label, due, amount, _ in view.schedule_rows()]

    raise ValueError(f"Unknown receipt section: {name}")


def _render_cash_register(view: _View) -> str:
    d, w = view.deposit, view.width
    lines = [
        d.tenant_name.center(w).rstrip(),
        d.agency_name.center(w).rstrip(),
        view.title.center(w).rstrip(),
        f"N° {d.deposit_number}".center(w).rstrip(),
        view.stamp(d.created_at).center(w).rstrip(),
        "=" * w,
    ]
    for name in view.sections:
        lines.extend(_ticket_section(view, name))
        lines.append("-" * w)
    lines.append(THANKS.center(w).rstrip())
    lines.append(f"Reçu généré le {view.stamp(view.generated_at)}".center(w).rstrip())
    lines.append("=" * w)
    if view.website:
        lines.append(view.website.center(w).rstrip())
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Electronic: card-style text for screens and WhatsApp
# ---------------------------------------------------------------------------


def _electronic_section(view: _View, name: str) -> List[str]:
    d = view.deposit

    if name == "customer":
        lines = ["👤 *Informations Client*", d.customer_name, f"📞 {d.customer_phone}"]
        if d.customer_email:
            lines.append(f"📧 {d.customer_email}")
        return lines
    if name == "collection":
        lines = ["🧺 *Collecte*", f"📍 {d.collection_address or 'N/A'}", f"📅 {format_date(d.collection_date)} {d.collection_time or ''}".rstrip()]
        if d.collection_notes:
            lines.append(f"📝 {d.collection_notes}")
        return lines
    if name == "delivery":
        lines = ["🚚 *Livraison*", f"📍 {d.delivery_address or d.collection_address or 'N/A'}"]
        if d.delivery_date:
            lines.append(f"📅 {format_date(d.delivery_date)} {d.delivery_time or ''}".rstrip())
        if d.delivery_notes:
            lines.append(f"📝 {d.delivery_notes}")
        return lines
    if name == "items":
        lines = ["🧺 *Articles Déposés*"]
        for item in d.items:
            lines.append(f"• {item.name} ({item.category.label}) {item.quantity}x {view.money(item.unit_price_cents)} = {view.money(item.total_price_cents)}")
        return lines
    if name == "financial":
        lines = ["💰 *Résumé Financier*"]
        for label, value in view.financial_rows():
            lines.append(f"• *{label}: {value}*" if label == "Total" else f"• {label}: {value}")
        return lines
    if name == "schedule":
        lines = ["🗓️ *Échéancier*"]
        for label, due, amount, state in view.schedule_rows():
            lines.append(f"• {label} - {due}: {amount} ({state})")
        return lines

    raise ValueError(f"Unknown receipt section: {name}")


def _render_electronic(view: _View) -> str:
    d = view.deposit
    lines = [
        f"*{d.tenant_name}*",
        d.agency_name,
        f"{TYPE_EMOJI[view.receipt_type]} *{view.title}*",
        f"N° {d.deposit_number} • {view.stamp(d.created_at)}",
    ]
    for name in view.sections:
        lines.append("")
        lines.extend(_electronic_section(view, name))
    lines.extend(["", f"🙏 {THANKS}", CARE_NOTE, f"Reçu généré le {view.stamp(view.generated_at)} par {d.created_by_name or 'Système'}"])
    if view.website:
        lines.append(view.website)
    return "\n".join(lines) + "\n"


RENDERERS: Dict[ReceiptFormat, Callable[[_View], str]] = {
    ReceiptFormat.A4: _render_a4,
    ReceiptFormat.A5: _render_a5,
    ReceiptFormat.CASH_REGISTER: _render_cash_register,
    ReceiptFormat.ELECTRONIC: _render_electronic,
}

CONTENT_TYPES = {
    ReceiptFormat.A4: "text/html",
    ReceiptFormat.A5: "text/html",
    ReceiptFormat.CASH_REGISTER: "text/plain",
    ReceiptFormat.ELECTRONIC: "text/plain",
}


def compose_receipt(
    deposit: Deposit,
    receipt_type: ReceiptType,
    receipt_format: ReceiptFormat,
    generated_at: Optional[datetime] = None,
    ticket_width: int = 42,
    website: Optional[str] = None,
    timezone: Optional[str] = None,
) -> RenderedReceipt:
    """
    Render a deposit snapshot.

    Timestamps are printed in the given IANA timezone, UTC when omitted.

    Raises:
        ReceiptConsistencyError: if the deposit totals do not add up
    """
    check_consistency(deposit)

    view = _View(
        deposit=deposit,
        receipt_type=receipt_type,
        figures=build_figures(deposit),
        generated_at=generated_at or utc_now(),
        width=ticket_width,
        website=website,
        timezone=timezone,
    )

    return RenderedReceipt(
        receipt_type=receipt_type,
        receipt_format=receipt_format,
        content=RENDERERS[receipt_format](view),
        content_type=CONTENT_TYPES[receipt_format],
        figures=view.figures,
    )
