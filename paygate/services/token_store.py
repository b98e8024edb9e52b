import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from paygate.exceptions import TokenRejected
from paygate.models.capability_token import CapabilityToken, FlowKind, Intent, TokenStatus

TOKEN_TTL = timedelta(minutes=15)


def utcnow() -> datetime:
    return datetime.now(UTC)


def generate_token() -> str:
    """64 hex chars = 256 bits."""
    return secrets.token_hex(32)


@dataclass(frozen=True, slots=True)
class TokenLookup:
    status: TokenStatus
    token: CapabilityToken | None = None

    @property
    def valid(self) -> bool:
        return self.status is TokenStatus.VALID


class TokenStore:
    """
    In-memory capability token store.

    Shared by request handlers and the background sweep, so every read-modify
    path goes through the lock. `consume` is the only way a token becomes used.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._token_factory = token_factory
        self._tokens: dict[str, CapabilityToken] = {}
        self._lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._tokens

    def issue(self, flow: FlowKind, payload: Intent | None = None) -> CapabilityToken:
        now = self._clock()
        token = CapabilityToken(
            id=self._token_factory(),
            flow=flow,
            created_at=now,
            expires_at=now + self._ttl,
            payload=payload,
        )
        with self._lock:
            self._tokens[token.id] = token
        return token

    def attach_session(self, token_id: str, session_id: str) -> CapabilityToken:
        with self._lock:
            token = self._tokens.get(token_id)
            if token is None:
                raise KeyError(f"Unknown token: {token_id[:8]}")
            token.session_id = session_id
            return token

    def _classify(self, token_id: str | None, flow: FlowKind | None) -> TokenLookup:
        token = self._tokens.get(token_id) if token_id else None
        if token is None or (flow is not None and token.flow is not flow):
            return TokenLookup(TokenStatus.NOT_FOUND)
        if token.used:
            return TokenLookup(TokenStatus.USED, token)
        if token.is_expired(self._clock()):
            return TokenLookup(TokenStatus.EXPIRED, token)
        return TokenLookup(TokenStatus.VALID, token)

    def validate(self, token_id: str | None, flow: FlowKind | None = None) -> TokenLookup:
        """Classify a token without consuming it."""
        with self._lock:
            return self._classify(token_id, flow)

    def consume(self, token_id: str | None, flow: FlowKind | None = None) -> CapabilityToken:
        """
        Atomically check a token and mark it used.

        Raises TokenRejected if the token is unknown, expired or already used.
        """
        with self._lock:
            lookup = self._classify(token_id, flow)
            if not lookup.valid:
                raise TokenRejected(lookup.status)
            lookup.token.used = True
            return lookup.token

    def sweep(self) -> int:
        """Remove used and expired tokens. Returns count of removed tokens."""
        now = self._clock()
        with self._lock:
            stale = [
                token_id
                for token_id, token in self._tokens.items()
                if token.used or token.is_expired(now)
            ]
            for token_id in stale:
                del self._tokens[token_id]
        return len(stale)
