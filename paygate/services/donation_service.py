import re
from decimal import Decimal

from paygate.exceptions import ValidationError
from paygate.models.capability_token import Intent
from paygate.services.checkout_gateway import SessionStatus

_CURRENCY = re.compile(r"^[a-z]{3}$")


def parse_currency(value: str | None, default: str) -> str:
    currency = (value or default).strip().lower()
    if not _CURRENCY.match(currency):
        raise ValidationError("Invalid currency")
    return currency


def format_amount(amount_total: int | None) -> str | None:
    """Minor units to a two-decimal major-unit string, e.g. 1000 -> "10.00"."""
    if amount_total is None:
        return None
    return str((Decimal(amount_total) / 100).quantize(Decimal("0.01")))


def short_reference(session_id: str | None) -> str:
    if not session_id:
        return ""
    return f"{session_id[:8]}...{session_id[-4:]}"


def summarize_payment(status: SessionStatus) -> dict:
    return {
        "paid": status.paid,
        "amount": format_amount(status.amount_total),
        "currency": status.currency.upper() if status.currency else "",
        "status": status.raw_status,
        "reference": short_reference(status.session_id),
    }


async def reveal_payment_summary(intent: Intent | None, status: SessionStatus) -> dict:
    """Gated action of the donation flow: the payment summary itself."""
    return summarize_payment(status)
