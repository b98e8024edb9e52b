from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class FlowKind(str, Enum):
    DONATION = "donation"
    CONTACT = "contact"


class TokenState(str, Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class TokenStatus(str, Enum):
    """Result of classifying a presented token."""

    VALID = "valid"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    USED = "used"


@dataclass(frozen=True, slots=True)
class DonationIntent:
    amount_cents: int
    currency: str

    kind = FlowKind.DONATION


@dataclass(frozen=True, slots=True)
class ContactIntent:
    name: str | None = None
    email: str | None = None
    subject: str | None = None
    message: str | None = None
    uploaded_filename: str | None = None
    uploaded_original_name: str | None = None

    kind = FlowKind.CONTACT


Intent = DonationIntent | ContactIntent


@dataclass(slots=True)
class CapabilityToken:
    """
    Single-use, time-limited permission to complete one deferred action.

    Tokens are:
    - Single-use: `used` flips once and the token is inert afterwards
    - Flow-bound: a token issued for one flow is unknown to every other flow
    - Ephemeral: held in memory only, lost on restart
    """

    id: str
    flow: FlowKind
    created_at: datetime
    expires_at: datetime
    payload: Intent | None = None
    session_id: str | None = None
    used: bool = field(default=False)

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def state_at(self, now: datetime) -> TokenState:
        if self.used:
            return TokenState.CONSUMED
        if self.is_expired(now):
            return TokenState.EXPIRED
        if self.session_id is None:
            return TokenState.PENDING
        return TokenState.AWAITING_PAYMENT

    @property
    def log_prefix(self) -> str:
        """Short token prefix that is safe to log."""
        return self.id[:8]
