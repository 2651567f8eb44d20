"""Tests for stream negotiation and connection setup."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import ConnectionClosed

from easee_stream.errors import (
    EaseeConnectionError,
    EaseeHandshakeError,
    EaseeNegotiationError,
    EaseeResponseError,
)
from easee_stream.negotiate import (
    NEGOTIATE_URL,
    STREAM_URL,
    build_stream_url,
    negotiate,
)
from easee_stream.transport import RECORD_SEPARATOR, SignalRTransport

NEGOTIATE_RESPONSE = {
    "negotiateVersion": 1,
    "connectionId": "conn-1",
    "connectionToken": "tok-1",
}


def make_client(response=NEGOTIATE_RESPONSE, *, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.post_raw = AsyncMock(return_value=response, side_effect=side_effect)
    client.auth_token.return_value = "bearer-1"
    return client


class TestBuildStreamUrl:
    """Tests for build_stream_url()."""

    def test_url_shape(self):
        """Test connection and bearer tokens are in the query string."""
        assert (
            build_stream_url(STREAM_URL, "tok-1", "bearer-1")
            == "wss://streams.easee.com/hubs/products?id=tok-1&access_token=bearer-1"
        )

    def test_url_encodes_tokens(self):
        """Test reserved characters in tokens are escaped."""
        url = build_stream_url(STREAM_URL, "a+b/c=", "x&y")
        assert url.endswith("?id=a%2Bb%2Fc%3D&access_token=x%26y")


class TestNegotiate:
    """Tests for negotiate()."""

    async def test_success_sends_handshake(self):
        """Test negotiation posts, upgrades, and sends the handshake."""
        client = make_client()
        ws = AsyncMock()

        with patch(
            "easee_stream.negotiate.connect_websocket", return_value=ws
        ) as mock_connect:
            transport = await negotiate(client)

        assert isinstance(transport, SignalRTransport)
        client.post_raw.assert_called_once_with(NEGOTIATE_URL, None)
        assert mock_connect.call_args.args == (
            f"{STREAM_URL}?id=tok-1&access_token=bearer-1",
        )
        sent = ws.send.call_args.args[0]
        assert sent.endswith(RECORD_SEPARATOR)
        assert json.loads(sent.rstrip(RECORD_SEPARATOR)) == {
            "protocol": "json",
            "version": 1,
        }

    async def test_collaborator_error_skips_upgrade(self):
        """Test a REST failure aborts before any connection attempt."""
        cause = EaseeResponseError(500, "boom")
        client = make_client(side_effect=cause)

        with patch("easee_stream.negotiate.connect_websocket") as mock_connect:
            with pytest.raises(EaseeNegotiationError) as exc_info:
                await negotiate(client)

        assert exc_info.value.__cause__ is cause
        mock_connect.assert_not_called()

    async def test_malformed_response_skips_upgrade(self):
        """Test a response without connectionToken aborts."""
        client = make_client({"negotiateVersion": 1, "connectionId": "conn-1"})

        with patch("easee_stream.negotiate.connect_websocket") as mock_connect:
            with pytest.raises(EaseeNegotiationError):
                await negotiate(client)

        mock_connect.assert_not_called()

    async def test_rejected_upgrade_keeps_body(self):
        """Test an HTTP rejection is wrapped with its body available."""
        cause = EaseeHandshakeError(
            "WebSocket upgrade rejected with 401",
            status=401,
            body='{"error":"invalid token"}',
        )

        with patch("easee_stream.negotiate.connect_websocket", side_effect=cause):
            with pytest.raises(EaseeNegotiationError) as exc_info:
                await negotiate(make_client())

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.__cause__.body == '{"error":"invalid token"}'

    async def test_connection_error_wrapped(self):
        """Test network failures during upgrade are negotiation errors."""
        with patch(
            "easee_stream.negotiate.connect_websocket",
            side_effect=EaseeConnectionError("WebSocket connection failed"),
        ):
            with pytest.raises(EaseeNegotiationError, match="upgrade failed"):
                await negotiate(make_client())

    async def test_handshake_failure_closes_socket(self):
        """Test a failed handshake send closes the connection."""
        ws = AsyncMock()
        ws.send.side_effect = ConnectionClosed(None, None)

        with patch("easee_stream.negotiate.connect_websocket", return_value=ws):
            with pytest.raises(EaseeConnectionError):
                await negotiate(make_client())

        ws.close.assert_called_once()

    async def test_cancelled_handshake_closes_socket(self):
        """Test cancellation during the handshake send closes the connection."""
        ws = AsyncMock()
        ws.send.side_effect = asyncio.CancelledError()

        with patch("easee_stream.negotiate.connect_websocket", return_value=ws):
            with pytest.raises(asyncio.CancelledError):
                await negotiate(make_client())

        ws.close.assert_called_once()

    async def test_custom_urls(self):
        """Test endpoint overrides are honored."""
        client = make_client()

        with patch(
            "easee_stream.negotiate.connect_websocket", return_value=AsyncMock()
        ) as mock_connect:
            await negotiate(
                client,
                negotiate_url="https://example.test/negotiate",
                stream_url="ws://example.test/hub",
            )

        client.post_raw.assert_called_once_with("https://example.test/negotiate", None)
        assert mock_connect.call_args.args[0].startswith("ws://example.test/hub?")
