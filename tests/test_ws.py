"""Tests for the WebSocket upgrade helper."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.exceptions import InvalidStatus, InvalidURI

from easee_stream.errors import (
    EaseeConnectionError,
    EaseeHandshakeError,
    EaseeTimeout,
)
from easee_stream.ws import connect_websocket

URL = "wss://streams.example/hubs/products?id=t&access_token=b"


class TestConnectWebsocket:
    """Tests for connect_websocket()."""

    async def test_connect_success(self):
        """Test the connection object is returned."""
        mock_ws = AsyncMock()

        with patch(
            "easee_stream.ws.websockets.connect",
            new=AsyncMock(return_value=mock_ws),
        ) as mock_connect:
            result = await connect_websocket(URL)

        assert result is mock_ws
        assert mock_connect.call_args.args == (URL,)
        assert mock_connect.call_args.kwargs["ping_interval"] == 20

    async def test_rejected_upgrade_keeps_body(self):
        """Test an HTTP rejection keeps status and body."""
        response = MagicMock()
        response.status_code = 404
        response.body = b'{"negotiateVersion":0,"error":"No Connection with that ID"}'

        with patch(
            "easee_stream.ws.websockets.connect",
            side_effect=InvalidStatus(response),
        ):
            with pytest.raises(EaseeHandshakeError) as exc_info:
                await connect_websocket(URL)

        assert exc_info.value.status == 404
        assert "No Connection with that ID" in exc_info.value.body

    async def test_invalid_uri(self):
        """Test invalid URIs are handshake errors."""
        with patch(
            "easee_stream.ws.websockets.connect",
            side_effect=InvalidURI("nope", "bad"),
        ):
            with pytest.raises(EaseeHandshakeError):
                await connect_websocket("nope")

    async def test_os_error(self):
        """Test network failures are connection errors."""
        with patch(
            "easee_stream.ws.websockets.connect",
            side_effect=OSError("unreachable"),
        ):
            with pytest.raises(EaseeConnectionError):
                await connect_websocket(URL)

    async def test_timeout(self):
        """Test a slow upgrade is reported as a timeout."""
        with patch(
            "easee_stream.ws.websockets.connect",
            side_effect=TimeoutError(),
        ):
            with pytest.raises(EaseeTimeout):
                await connect_websocket(URL)
