"""
Checkout session gateway.

The broker only talks to `CheckoutGateway`; `StripeCheckoutGateway` is the
production implementation backed by Stripe Checkout Sessions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import stripe
import structlog
from fastapi.concurrency import run_in_threadpool

from paygate.exceptions import PaymentsNotConfigured, UpstreamError

logger = structlog.get_logger()

PAID_STATUS = "paid"


@dataclass(frozen=True, slots=True)
class CheckoutSession:
    session_id: str
    hosted_url: str


@dataclass(frozen=True, slots=True)
class SessionStatus:
    session_id: str
    paid: bool
    raw_status: str
    amount_total: int | None = None
    currency: str | None = None


class CheckoutGateway(ABC):
    """Abstract base for payment processors that host a checkout page."""

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def create_session(
        self,
        amount_minor_units: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        description: str,
    ) -> CheckoutSession:
        """
        Create a one-time payment session.

        Args:
          amount_minor_units: Positive amount in minor currency units (cents).
          currency: Lowercase ISO currency code.
          success_url: Redirect after payment; may carry processor placeholders.
          cancel_url: Redirect if the payer abandons checkout.
          description: Line item name shown on the hosted page.

        Raises UpstreamError if the processor cannot create the session.
        """
        ...

    @abstractmethod
    async def retrieve_status(self, session_id: str) -> SessionStatus:
        """
        Look up the payment status of a session.

        An unpaid or pending session is a normal result (paid=False).
        Raises UpstreamError only when the status could not be checked.
        """
        ...


def _status_from_session(session) -> SessionStatus:
    payment_status = getattr(session, "payment_status", None)
    return SessionStatus(
        session_id=session.id,
        paid=payment_status == PAID_STATUS,
        raw_status=payment_status or getattr(session, "status", None) or "unknown",
        amount_total=getattr(session, "amount_total", None),
        currency=getattr(session, "currency", None),
    )


class StripeCheckoutGateway(CheckoutGateway):
    def __init__(self, secret_key: str | None) -> None:
        self._secret_key = secret_key

    @property
    def configured(self) -> bool:
        return bool(self._secret_key)

    def _require_key(self) -> str:
        if not self._secret_key:
            raise PaymentsNotConfigured(diagnostic="STRIPE_SECRET_KEY is not set")
        return self._secret_key

    async def create_session(
        self,
        amount_minor_units: int,
        currency: str,
        success_url: str,
        cancel_url: str,
        description: str,
    ) -> CheckoutSession:
        api_key = self._require_key()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.create,
                api_key=api_key,
                payment_method_types=["card"],
                mode="payment",
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {"name": description},
                            "unit_amount": amount_minor_units,
                        },
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            logger.error("stripe_session_create_failed", error=str(e))
            raise UpstreamError("Server error", diagnostic=str(e)) from e

        logger.info("stripe_session_created", session_id=session.id, amount=amount_minor_units)
        return CheckoutSession(session_id=session.id, hosted_url=session.url)

    async def retrieve_status(self, session_id: str) -> SessionStatus:
        api_key = self._require_key()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve, session_id, api_key=api_key
            )
        except stripe.StripeError as e:
            logger.error("stripe_session_retrieve_failed", session_id=session_id, error=str(e))
            raise UpstreamError("Failed to retrieve session", diagnostic=str(e)) from e

        return _status_from_session(session)
