"""Error taxonomy shared by the services and mapped to HTTP responses in main."""

from paygate.models.capability_token import TokenStatus


class PaygateError(Exception):
    status_code = 500
    default_detail = "Server error"

    def __init__(self, detail: str | None = None, *, diagnostic: str | None = None) -> None:
        self.detail = detail or self.default_detail
        # Operator-only context, logged and alerted but never returned to clients
        self.diagnostic = diagnostic
        super().__init__(self.detail)


class ValidationError(PaygateError):
    status_code = 400
    default_detail = "Invalid request"


class Forbidden(PaygateError):
    status_code = 403
    default_detail = "Forbidden"


class TokenRejected(Forbidden):
    """A capability token that is unknown, expired or already used."""

    def __init__(self, status: TokenStatus) -> None:
        self.status = status
        # Unknown and already-used tokens must read the same to callers
        detail = "Token expired" if status is TokenStatus.EXPIRED else "Forbidden"
        super().__init__(detail)


class UpstreamError(PaygateError):
    status_code = 500


class PaymentsNotConfigured(UpstreamError):
    status_code = 503
    default_detail = "Payments not configured"
