"""WebSocket helpers for the Easee stream hub."""

from __future__ import annotations

import asyncio
import logging

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    EaseeConnectionError,
    EaseeHandshakeError,
    EaseeTimeout,
)

_LOGGER = logging.getLogger(__name__)


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Upgrade to a WebSocket connection.

    Uses the websockets library which properly implements RFC 6455 frame masking.
    All client-to-server frames are automatically masked per the standard.

    Args:
        url: Full ws:// or wss:// URL, query string included
        ping_interval: Interval for ping frames
        timeout: Connection timeout

    Raises:
        EaseeHandshakeError: Upgrade rejected; carries HTTP status and body
            when the server answered with an HTTP error.
        EaseeTimeout: Upgrade did not complete within ``timeout``.
        EaseeConnectionError: Network failure.
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise EaseeTimeout("WebSocket connection timed out") from err
    except InvalidStatus as err:
        response = err.response
        body = response.body.decode("utf-8", errors="replace") if response.body else ""
        _LOGGER.warning(
            "WebSocket upgrade rejected with %s: %s", response.status_code, body
        )
        raise EaseeHandshakeError(
            f"WebSocket upgrade rejected with {response.status_code}",
            status=response.status_code,
            body=body,
        ) from err
    except (InvalidHandshake, InvalidURI) as err:
        raise EaseeHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise EaseeConnectionError("WebSocket connection failed") from err
