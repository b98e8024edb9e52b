"""Shared test utilities."""

import asyncio
import itertools
from datetime import UTC, datetime, timedelta

from paygate.exceptions import UpstreamError
from paygate.models.capability_token import ContactIntent
from paygate.services.checkout_gateway import CheckoutGateway, CheckoutSession, SessionStatus
from paygate.services.mail_service import MailReceipt


class FakeClock:
    """Manually advanced clock for token expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeGateway(CheckoutGateway):
    """In-memory stand-in for the payment processor."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.created: list[dict] = []
        self.sessions: dict[str, dict] = {}
        self.fail_create = False
        self.fail_retrieve = False
        self.retrieve_calls = 0

    async def create_session(
        self, amount_minor_units, currency, success_url, cancel_url, description
    ):
        if self.fail_create:
            raise UpstreamError("Server error", diagnostic="processor unavailable")
        session_id = f"cs_test_{next(self._ids):04d}abcdefghijklmnop"
        call = {
            "amount_minor_units": amount_minor_units,
            "currency": currency,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "description": description,
        }
        self.created.append(call)
        self.sessions[session_id] = {
            "payment_status": "unpaid",
            "amount_total": amount_minor_units,
            "currency": currency,
        }
        return CheckoutSession(
            session_id=session_id, hosted_url=f"https://checkout.test/pay/{session_id}"
        )

    async def retrieve_status(self, session_id):
        self.retrieve_calls += 1
        # Yield so concurrent pollers interleave like real network calls
        await asyncio.sleep(0)
        if self.fail_retrieve or session_id not in self.sessions:
            raise UpstreamError("Failed to retrieve session", diagnostic="No such checkout.session")
        session = self.sessions[session_id]
        return SessionStatus(
            session_id=session_id,
            paid=session["payment_status"] == "paid",
            raw_status=session["payment_status"],
            amount_total=session["amount_total"],
            currency=session["currency"],
        )

    def mark_paid(self, session_id: str | None = None) -> None:
        session_id = session_id or list(self.sessions)[-1]
        self.sessions[session_id]["payment_status"] = "paid"


class FakeMailer:
    """Records contact messages instead of talking to SMTP."""

    def __init__(self):
        self.sent: list[ContactIntent] = []
        self.fail = False

    async def send_contact(self, intent: ContactIntent) -> MailReceipt:
        if self.fail:
            raise UpstreamError("Failed to send email", diagnostic="Connection refused")
        self.sent.append(intent)
        return MailReceipt(
            message_id=f"<{len(self.sent)}@health4yu.de>",
            preview_url="https://ethereal.email/message/abc",
        )
