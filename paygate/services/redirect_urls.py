from urllib.parse import quote

CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

# Same unescaped set as the browser's encodeURIComponent
URI_COMPONENT_SAFE = "!*'()"


def _is_placeholder(value: str) -> bool:
    return len(value) >= 2 and value.startswith("{") and value.endswith("}")


def _encode_value(value: str) -> str:
    # Keep the braces so the payment processor can substitute the placeholder
    if _is_placeholder(value):
        return "{" + quote(value[1:-1], safe=URI_COMPONENT_SAFE) + "}"
    return quote(value, safe=URI_COMPONENT_SAFE)


def append_param(url: str | None, key: str, value: str) -> str | None:
    """
    Append a query parameter to a redirect URL.

    Empty URLs are returned unchanged; callers must reject them upstream.
    """
    if not url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{quote(key, safe=URI_COMPONENT_SAFE)}={_encode_value(value)}"
