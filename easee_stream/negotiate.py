"""Negotiation and connection setup for the Easee stream hub."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlencode

from .errors import (
    EaseeClientError,
    EaseeConnectionError,
    EaseeHandshakeError,
    EaseeNegotiationError,
    EaseeTimeout,
)
from .models import NegotiateResponse
from .protocol import build_handshake
from .transport import SignalRTransport
from .ws import connect_websocket

_LOGGER = logging.getLogger(__name__)

NEGOTIATE_URL = "https://streams.easee.com/hubs/products/negotiate?negotiateVersion=1"
STREAM_URL = "wss://streams.easee.com/hubs/products"


class NegotiationClient(Protocol):
    """What negotiation needs from the REST client."""

    async def post_raw(self, url: str, body: Any = None) -> Any:
        ...

    def auth_token(self) -> str:
        ...


def build_stream_url(stream_url: str, connection_token: str, access_token: str) -> str:
    """Build the upgrade URL carrying the connection and bearer tokens."""
    query = urlencode({"id": connection_token, "access_token": access_token})
    return f"{stream_url}?{query}"


async def negotiate(
    client: NegotiationClient,
    *,
    negotiate_url: str = NEGOTIATE_URL,
    stream_url: str = STREAM_URL,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> SignalRTransport:
    """Allocate a connection token, upgrade, and send the protocol handshake.

    Raises:
        EaseeNegotiationError: If the negotiate call or the upgrade fails. The
            underlying error is chained as ``__cause__``; for a rejected
            upgrade it is an ``EaseeHandshakeError`` holding the response body.
        EaseeConnectionError: If the handshake document cannot be sent.
    """
    try:
        raw = await client.post_raw(negotiate_url, None)
        response = NegotiateResponse.from_dict(raw)
    except EaseeClientError as err:
        raise EaseeNegotiationError(f"Stream negotiation failed: {err}") from err

    _LOGGER.debug(
        "Negotiated stream connection %s (negotiate version %d)",
        response.connection_id,
        response.negotiate_version,
    )

    url = build_stream_url(stream_url, response.connection_token, client.auth_token())
    _LOGGER.info("Connecting to %s", stream_url)
    try:
        ws = await connect_websocket(url, ping_interval=ping_interval, timeout=timeout)
    except (EaseeHandshakeError, EaseeConnectionError, EaseeTimeout) as err:
        raise EaseeNegotiationError(f"Stream upgrade failed: {err}") from err

    transport = SignalRTransport(ws)
    try:
        await transport.send(build_handshake())
    except BaseException:
        await transport.close()
        raise
    return transport
