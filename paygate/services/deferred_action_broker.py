from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

import structlog

from paygate.exceptions import TokenRejected, ValidationError
from paygate.models.capability_token import (
    CapabilityToken,
    FlowKind,
    Intent,
    TokenState,
    TokenStatus,
)
from paygate.services.checkout_gateway import CheckoutGateway, SessionStatus
from paygate.services.redirect_urls import CHECKOUT_SESSION_PLACEHOLDER, append_param
from paygate.services.token_store import TokenStore

logger = structlog.get_logger()

R = TypeVar("R")


def parse_amount_cents(amount: Any) -> int:
    """
    Convert an amount in major currency units (e.g. 10 for 10 EUR) to cents.

    Rejects missing, non-numeric, non-finite and non-positive amounts.
    """
    if amount is None or amount == "":
        raise ValidationError("Missing amount (in major currency units, e.g. 10 for €10)")
    if isinstance(amount, bool):
        raise ValidationError("Invalid amount")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValidationError("Invalid amount")
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invalid amount")

    cents = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents <= 0:
        raise ValidationError("Invalid amount")
    return cents


@dataclass(frozen=True, slots=True)
class StartedCheckout:
    url: str
    session_id: str
    token: str


@dataclass(frozen=True, slots=True)
class PollResult(Generic[R]):
    status: SessionStatus
    result: R | None = None

    @property
    def paid(self) -> bool:
        return self.status.paid


class DeferredActionBroker:
    """
    Gates one kind of action behind a confirmed checkout payment.

    Each flow (donation, contact) gets its own broker and token store; tokens
    are never valid across flows.
    """

    def __init__(
        self,
        flow: FlowKind,
        store: TokenStore,
        gateway: CheckoutGateway,
        *,
        description: str,
    ) -> None:
        self.flow = flow
        self.store = store
        self.gateway = gateway
        self.description = description

    def _require_token(self, token_id: str | None) -> str:
        if not token_id:
            raise ValidationError("Missing token")
        return token_id

    def _reject(self, token_id: str | None, status: TokenStatus) -> TokenRejected:
        logger.warning(
            "token_rejected",
            flow=self.flow.value,
            reason=status.value,
            token_prefix=(token_id or "")[:8],
        )
        return TokenRejected(status)

    async def start(
        self,
        intent: Intent,
        amount_cents: int,
        currency: str,
        success_url: str | None,
        cancel_url: str | None,
    ) -> StartedCheckout:
        if not success_url or not cancel_url:
            raise ValidationError("Missing success_url or cancel_url")
        if amount_cents <= 0:
            raise ValidationError("Invalid amount")

        token = self.store.issue(self.flow, intent)

        success_with_token = append_param(success_url, "token", token.id)
        success_with_session = append_param(
            success_with_token, "session_id", CHECKOUT_SESSION_PLACEHOLDER
        )
        cancel_with_token = append_param(cancel_url, "token", token.id)

        # On failure the token is left unattached and expires via sweep
        session = await self.gateway.create_session(
            amount_minor_units=amount_cents,
            currency=currency,
            success_url=success_with_session,
            cancel_url=cancel_with_token,
            description=self.description,
        )
        self.store.attach_session(token.id, session.session_id)

        logger.info(
            "checkout_started",
            flow=self.flow.value,
            token_prefix=token.log_prefix,
            session_id=session.session_id,
            amount=amount_cents,
            currency=currency,
        )
        return StartedCheckout(
            url=session.hosted_url, session_id=session.session_id, token=token.id
        )

    def authorize_page(self, token_id: str | None) -> CapabilityToken:
        """
        Check a token for serving the success page.

        The token must have a checkout session attached. Viewing the page does
        not consume the token, so a used token is still accepted until it is
        swept.
        """
        token_id = self._require_token(token_id)
        lookup = self.store.validate(token_id, self.flow)
        if lookup.status in (TokenStatus.NOT_FOUND, TokenStatus.EXPIRED):
            raise self._reject(token_id, lookup.status)
        if lookup.token.state_at(self.store.now()) is TokenState.PENDING:
            raise self._reject(token_id, TokenStatus.NOT_FOUND)
        return lookup.token

    async def poll(
        self,
        token_id: str | None,
        action: Callable[[Intent | None, SessionStatus], Awaitable[R]],
    ) -> PollResult[R]:
        """
        Check payment for a token and run the gated action once paid.

        Unpaid sessions leave the token untouched so the caller can poll again.
        """
        token_id = self._require_token(token_id)
        lookup = self.store.validate(token_id, self.flow)
        if not lookup.valid:
            raise self._reject(token_id, lookup.status)

        token = lookup.token
        if not token.session_id:
            raise ValidationError("No session information")

        status = await self.gateway.retrieve_status(token.session_id)
        if not status.paid:
            logger.info(
                "payment_not_settled",
                flow=self.flow.value,
                token_prefix=token.log_prefix,
                payment_status=status.raw_status,
            )
            return PollResult(status=status)

        # Only the request that flips `used` may run the action
        try:
            token = self.store.consume(token_id, self.flow)
        except TokenRejected as e:
            raise self._reject(token_id, e.status)

        result = await action(token.payload, status)
        logger.info(
            "deferred_action_performed",
            flow=self.flow.value,
            token_prefix=token.log_prefix,
            session_id=status.session_id,
        )
        return PollResult(status=status, result=result)

    def cancel(self, token_id: str | None) -> CapabilityToken:
        token_id = self._require_token(token_id)
        try:
            token = self.store.consume(token_id, self.flow)
        except TokenRejected as e:
            raise self._reject(token_id, e.status)

        logger.info("checkout_cancelled", flow=self.flow.value, token_prefix=token.log_prefix)
        return token
