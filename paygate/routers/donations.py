from fastapi import APIRouter, Depends, Request

from paygate.config import settings
from paygate.dependencies import get_donation_broker
from paygate.middleware.rate_limit import limiter
from paygate.models.capability_token import DonationIntent
from paygate.pages import donation_cancel_page, donation_success_page
from paygate.schemas.checkout import CheckoutStartResponse, DonationCreate, DonationInfoResponse
from paygate.services.deferred_action_broker import DeferredActionBroker, parse_amount_cents
from paygate.services.donation_service import parse_currency, reveal_payment_summary

router = APIRouter()


@router.post("", response_model=CheckoutStartResponse)
@limiter.limit(settings.rate_limit_checkouts)
async def start_donation(
    request: Request,
    donation: DonationCreate,
    broker: DeferredActionBroker = Depends(get_donation_broker),
):
    """
    Create a checkout session for a donation.

    Amount is in major currency units. Returns the hosted checkout URL and
    the capability token that the success/cancel redirects will carry.
    """
    amount_cents = parse_amount_cents(donation.amount)
    currency = parse_currency(donation.currency, settings.default_currency)

    started = await broker.start(
        DonationIntent(amount_cents=amount_cents, currency=currency),
        amount_cents=amount_cents,
        currency=currency,
        success_url=donation.success_url,
        cancel_url=donation.cancel_url,
    )
    return CheckoutStartResponse(url=started.url, id=started.session_id, token=started.token)


@router.get("/success", name="donation_success")
async def donation_success(
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_donation_broker),
):
    """Success redirect target. Does not consume the token."""
    broker.authorize_page(token)
    return donation_success_page()


@router.get("/info", response_model=DonationInfoResponse)
@limiter.limit(settings.rate_limit_polls)
async def donation_info(
    request: Request,
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_donation_broker),
):
    """
    Return the payment summary once the session is paid.

    The token is consumed only when the summary is revealed; an unpaid
    session can be polled again.
    """
    result = await broker.poll(token, reveal_payment_summary)
    if not result.paid:
        return DonationInfoResponse(paid=False, status=result.status.raw_status)
    return DonationInfoResponse(**result.result)


@router.get("/cancel", name="donation_cancel")
async def donation_cancel(
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_donation_broker),
):
    """Cancel redirect target. Consumes the token on first view."""
    broker.cancel(token)
    return donation_cancel_page()
