"""
Placeholder pages served on the processor's success/cancel redirects.

Success pages carry a small script that polls the flow's info endpoint with
the token from the page URL; the info endpoint is what performs the action.
"""

import json

from fastapi.responses import HTMLResponse

# The token travels in the URL, so keep these pages out of caches and referrers
PAGE_HEADERS = {
    "Cache-Control": "no-store",
    "Referrer-Policy": "no-referrer",
}

POLL_ATTEMPTS = 10
POLL_DELAY_MS = 3000


def _base_page_head(title: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta name="robots" content="noindex">
  <title>{title}</title>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: #f5f7fa;
      color: #333;
      display: flex;
      justify-content: center;
      padding: 40px 20px;
    }}
    .card {{
      background: white;
      border-radius: 12px;
      box-shadow: 0 2px 12px rgba(0,0,0,0.08);
      max-width: 520px;
      width: 100%;
      padding: 40px;
    }}
    h1 {{ font-size: 22px; color: #1a5276; margin-bottom: 16px; }}
    p {{ line-height: 1.6; }}
    .muted {{ color: #888; font-size: 14px; }}
  </style>
</head>
<body>
<div class="card">
"""


def _base_page_footer() -> str:
    return """
  <p><a href="/">Back to the homepage</a></p>
</div>
</body>
</html>"""


def _poll_script(info_path: str, render_js: str) -> str:
    """Script that polls `info_path` until the payment settles."""
    return f"""
<script>
(function () {{
  var params = new URLSearchParams(window.location.search);
  var token = params.get("token");
  var out = document.getElementById("result");
  var attempts = {POLL_ATTEMPTS};
  function render(data) {{ {render_js} }}
  function poll() {{
    fetch({json.dumps(info_path)} + "?token=" + encodeURIComponent(token || ""))
      .then(function (r) {{ return r.json().then(function (d) {{ return [r.status, d]; }}); }})
      .then(function (res) {{
        var status = res[0], data = res[1];
        if (status !== 200) {{
          out.textContent = data.detail || "This link is no longer valid.";
          return;
        }}
        if (data.paid) {{ render(data); return; }}
        if (--attempts > 0) {{ setTimeout(poll, {POLL_DELAY_MS}); return; }}
        out.textContent = "Your payment is still being processed (" + data.status + ").";
      }})
      .catch(function () {{ out.textContent = "Could not check the payment status."; }});
  }}
  poll();
}})();
</script>"""


def _page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(
        content=_base_page_head(title) + body + _base_page_footer(),
        headers=PAGE_HEADERS,
    )


def donation_success_page() -> HTMLResponse:
    body = """
  <h1>Thank you for your donation!</h1>
  <p id="result" class="muted">Confirming your payment...</p>
""" + _poll_script(
        "/donate/info",
        'out.textContent = "We received " + data.amount + " " + data.currency'
        ' + " (reference " + data.reference + ").";',
    )
    return _page("Donation received", body)


def donation_cancel_page() -> HTMLResponse:
    body = """
  <h1>Donation cancelled</h1>
  <p>No payment was taken. You can start a new donation at any time.</p>
"""
    return _page("Donation cancelled", body)


def contact_success_page() -> HTMLResponse:
    body = """
  <h1>Payment received</h1>
  <p id="result" class="muted">Confirming your payment and sending your message...</p>
""" + _poll_script(
        "/mail/info",
        'out.textContent = "Your message has been sent. We will get back to you soon.";',
    )
    return _page("Message sent", body)


def contact_cancel_page() -> HTMLResponse:
    body = """
  <h1>Message not sent</h1>
  <p>The payment was cancelled, so your message was not delivered.</p>
"""
    return _page("Message not sent", body)
