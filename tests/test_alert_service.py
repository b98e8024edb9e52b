"""Tests for operator error alerts."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

import paygate.main as main_module
from paygate.services.alert_service import (
    build_alert_payload,
    reset_alert_rate_limit,
    send_error_alert,
)


class TestOperatorAlerts:
    """Unit tests for send_error_alert."""

    @pytest.fixture(autouse=True)
    def reset_rate_limit(self):
        """Reset rate limit state before each test."""
        reset_alert_rate_limit()

    @pytest.mark.asyncio
    async def test_send_error_alert_success(self):
        """Test successful error alert notification."""
        with patch("paygate.services.alert_service.settings") as mock_settings:
            mock_settings.operator_alerts_webhook_url = "https://discord.com/webhook"

            with patch("paygate.services.alert_service.httpx.AsyncClient") as mock_client:
                mock_response = MagicMock()
                mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                    return_value=mock_response
                )

                result = await send_error_alert(
                    error_type="UpstreamError",
                    message="Failed to send email",
                    path="/mail/info",
                    correlation_id="abc12345",
                    status_code=500,
                    diagnostic="Connection refused",
                )

                assert result is True
                call_args = mock_client.return_value.__aenter__.return_value.post.call_args
                payload = call_args.kwargs["json"]
                assert payload["embeds"][0]["title"] == "Server Error Alert"
                assert payload["embeds"][0]["color"] == 15158332  # Red
                fields = {f["name"]: f["value"] for f in payload["embeds"][0]["fields"]}
                assert fields["Diagnostic"] == "Connection refused"
                assert fields["Correlation ID"] == "abc12345"

    @pytest.mark.asyncio
    async def test_send_error_alert_not_configured(self):
        """Test when webhook URL is not configured."""
        with patch("paygate.services.alert_service.settings") as mock_settings:
            mock_settings.operator_alerts_webhook_url = None

            result = await send_error_alert(error_type="UpstreamError", message="Server error")

            assert result is False

    @pytest.mark.asyncio
    async def test_send_error_alert_rate_limited(self):
        """Test that second alert within cooldown is rate limited."""
        with patch("paygate.services.alert_service.settings") as mock_settings:
            mock_settings.operator_alerts_webhook_url = "https://discord.com/webhook"

            with patch("paygate.services.alert_service.httpx.AsyncClient") as mock_client:
                post = AsyncMock(return_value=MagicMock())
                mock_client.return_value.__aenter__.return_value.post = post

                assert await send_error_alert(error_type="Error1", message="First") is True
                assert await send_error_alert(error_type="Error2", message="Second") is False
                assert post.call_count == 1

    @pytest.mark.asyncio
    async def test_send_error_alert_failure_graceful(self):
        """Test that webhook failure doesn't raise exception."""
        with patch("paygate.services.alert_service.settings") as mock_settings:
            mock_settings.operator_alerts_webhook_url = "https://discord.com/webhook"

            with patch("paygate.services.alert_service.httpx.AsyncClient") as mock_client:
                mock_request = MagicMock()
                mock_response = MagicMock()
                mock_response.status_code = 500

                def raise_for_status():
                    raise httpx.HTTPStatusError(
                        "Server error", request=mock_request, response=mock_response
                    )

                mock_response.raise_for_status = raise_for_status
                mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                    return_value=mock_response
                )

                result = await send_error_alert(error_type="UpstreamError", message="boom")

                assert result is False

    @pytest.mark.asyncio
    async def test_send_error_alert_connection_error(self):
        with patch("paygate.services.alert_service.settings") as mock_settings:
            mock_settings.operator_alerts_webhook_url = "https://discord.com/webhook"

            with patch("paygate.services.alert_service.httpx.AsyncClient") as mock_client:
                mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                    side_effect=httpx.ConnectError("unreachable")
                )

                assert await send_error_alert(error_type="UpstreamError", message="x") is False

    def test_payload_truncates_long_message(self):
        payload = build_alert_payload("UpstreamError", "x" * 1000)

        message_field = next(f for f in payload["embeds"][0]["fields"] if f["name"] == "Message")
        # Should be truncated to 500 chars + "..."
        assert len(message_field["value"]) == 503
        assert message_field["value"].endswith("...")


def test_upstream_error_triggers_alert_with_diagnostic(client, gateway, monkeypatch):
    """Upstream failures alert operators; clients only see the generic detail."""
    alert = AsyncMock(return_value=True)
    monkeypatch.setattr(main_module, "send_error_alert", alert)
    gateway.fail_create = True

    response = client.post(
        "/donate",
        json={"amount": 10, "success_url": "https://x/ok", "cancel_url": "https://x/no"},
    )

    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}
    alert.assert_called_once()
    assert alert.call_args.kwargs["diagnostic"] == "processor unavailable"
    assert alert.call_args.kwargs["path"] == "/donate"
    assert alert.call_args.kwargs["correlation_id"] == response.headers["X-Correlation-ID"]


def test_client_errors_do_not_alert(client, monkeypatch):
    alert = AsyncMock(return_value=True)
    monkeypatch.setattr(main_module, "send_error_alert", alert)

    assert client.get("/donate/info", params={"token": "unknown"}).status_code == 403
    alert.assert_not_called()
