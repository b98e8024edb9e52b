from starlette.requests import Request

from paygate.config import settings
from paygate.middleware.rate_limit import client_ip, limiter


def make_request(headers=None, client=("10.0.0.1", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/donate/info",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def test_first_forwarded_hop_wins():
    request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.2"})
    assert client_ip(request) == "203.0.113.7"


def test_real_ip_header():
    assert client_ip(make_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"


def test_direct_connection():
    assert client_ip(make_request()) == "10.0.0.1"
    assert client_ip(make_request(client=None)) == "unknown"


def test_polls_are_rate_limited(client):
    allowed = int(settings.rate_limit_polls.split("/")[0])
    limiter.enabled = True
    limiter.reset()

    statuses = [
        client.get("/donate/info", params={"token": "x"}).status_code
        for _ in range(allowed + 1)
    ]

    assert statuses[:allowed] == [403] * allowed
    assert statuses[allowed] == 429
    limiter.reset()
