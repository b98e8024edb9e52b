from slowapi import Limiter
from starlette.requests import Request

from paygate.config import settings


def client_ip(request: Request) -> str:
    """Rate-limit key for paygate's public endpoints.

    The site sits behind a reverse proxy, so the first X-Forwarded-For hop
    (or X-Real-IP) is the visitor.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=client_ip, enabled=settings.rate_limit_enabled)
