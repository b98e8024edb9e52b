import structlog
from fastapi import APIRouter, Depends, Form, Request
from starlette.datastructures import UploadFile as StarletteUploadFile

from paygate.config import settings
from paygate.dependencies import get_contact_broker, get_mailer
from paygate.exceptions import Forbidden, ValidationError
from paygate.middleware.rate_limit import limiter
from paygate.models.capability_token import ContactIntent, Intent
from paygate.pages import contact_cancel_page, contact_success_page
from paygate.schemas.checkout import (
    CheckoutStartResponse,
    ContactFeeResponse,
    ContactInfoResponse,
    ContactSendResponse,
)
from paygate.services.checkout_gateway import SessionStatus
from paygate.services.deferred_action_broker import DeferredActionBroker
from paygate.services.mail_service import ContactMailer, MailReceipt

router = APIRouter()
logger = structlog.get_logger()

UNEXPECTED_FILE_DETAIL = (
    "Unexpected file field. Please use the Upload button to attach files before submitting."
)


async def contact_form(
    request: Request,
    name: str | None = Form(None),
    email: str | None = Form(None),
    subject: str | None = Form(None),
    message: str | None = Form(None),
    uploaded_filename: str | None = Form(None, alias="uploadedFilename"),
    uploaded_original_name: str | None = Form(None, alias="uploadedOriginalName"),
) -> ContactIntent:
    # Documents go through /upload/document first; the form only carries the reference
    form = await request.form()
    if any(isinstance(value, StarletteUploadFile) for _, value in form.multi_items()):
        raise ValidationError(UNEXPECTED_FILE_DETAIL)

    return ContactIntent(
        name=name,
        email=email,
        subject=subject,
        message=message,
        uploaded_filename=uploaded_filename or None,
        uploaded_original_name=uploaded_original_name or None,
    )


def payment_required() -> bool:
    return settings.contact_require_payment and settings.contact_fee_cents > 0


def _send_response(receipt: MailReceipt) -> ContactSendResponse:
    return ContactSendResponse(
        ok=True, message_id=receipt.message_id, preview_url=receipt.preview_url
    )


def _redirect_url(request: Request, route_name: str) -> str:
    if settings.public_base_url:
        path = request.app.url_path_for(route_name)
        return settings.public_base_url.rstrip("/") + str(path)
    return str(request.url_for(route_name))


@router.get("/fee", response_model=ContactFeeResponse)
async def contact_fee():
    """Public pricing for a paid contact request."""
    return ContactFeeResponse(
        fee_cents=settings.contact_fee_cents,
        currency=settings.contact_fee_currency,
        payment_required=payment_required(),
    )


@router.post("", response_model=ContactSendResponse)
@limiter.limit(settings.rate_limit_mail)
async def send_contact(
    request: Request,
    intent: ContactIntent = Depends(contact_form),
    mailer: ContactMailer = Depends(get_mailer),
):
    """
    Send a contact message immediately.

    Only available while contact requests do not require payment.
    """
    if payment_required():
        raise Forbidden("Payment required")

    receipt = await mailer.send_contact(intent)
    return _send_response(receipt)


@router.post("/checkout", response_model=CheckoutStartResponse | ContactSendResponse)
@limiter.limit(settings.rate_limit_checkouts)
async def contact_checkout(
    request: Request,
    intent: ContactIntent = Depends(contact_form),
    broker: DeferredActionBroker = Depends(get_contact_broker),
    mailer: ContactMailer = Depends(get_mailer),
):
    """
    Start a paid contact request.

    The message is held with the capability token and sent only after the
    payment is confirmed. When payment is disabled it is sent right away.
    """
    if not payment_required():
        logger.info("contact_payment_bypassed", fee_cents=settings.contact_fee_cents)
        receipt = await mailer.send_contact(intent)
        return _send_response(receipt)

    started = await broker.start(
        intent,
        amount_cents=settings.contact_fee_cents,
        currency=settings.contact_fee_currency,
        success_url=_redirect_url(request, "contact_success"),
        cancel_url=_redirect_url(request, "contact_cancel"),
    )
    return CheckoutStartResponse(url=started.url, id=started.session_id, token=started.token)


@router.get("/success", name="contact_success")
async def contact_success(
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_contact_broker),
):
    broker.authorize_page(token)
    return contact_success_page()


@router.get("/info", response_model=ContactInfoResponse)
@limiter.limit(settings.rate_limit_polls)
async def contact_info(
    request: Request,
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_contact_broker),
    mailer: ContactMailer = Depends(get_mailer),
):
    """
    Check payment and perform the deferred send.

    The email goes out at most once per token, on the first poll that sees
    the session paid.
    """

    async def send_deferred(payload: Intent | None, status: SessionStatus) -> MailReceipt:
        if not isinstance(payload, ContactIntent):
            raise ValidationError("No message information")
        return await mailer.send_contact(payload)

    result = await broker.poll(token, send_deferred)
    if not result.paid:
        return ContactInfoResponse(paid=False, status=result.status.raw_status)

    return ContactInfoResponse(
        paid=True,
        status=result.status.raw_status,
        ok=True,
        message_id=result.result.message_id,
        preview_url=result.result.preview_url,
    )


@router.get("/cancel", name="contact_cancel")
async def contact_cancel(
    token: str | None = None,
    broker: DeferredActionBroker = Depends(get_contact_broker),
):
    broker.cancel(token)
    return contact_cancel_page()
