"""Pull-based stream of charger observations.

Usage:
    async with aiohttp.ClientSession() as session:
        client = await EaseeHttpClient.login(session, "user", "password")
        async with await EaseeStream.open(client) as stream:
            await stream.subscribe("EH123456")
            async for event in stream:
                print(event.charger_id, event.observation)

There is no background task and no reconnection: each ``recv`` reads from
the connection only when the frame buffer is drained. Callers that need
retries wrap the whole stream.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from types import TracebackType

from .errors import EaseeProtocolError
from .negotiate import NEGOTIATE_URL, STREAM_URL, NegotiationClient, negotiate
from .observation import Observation, ProductUpdate, decode
from .protocol import (
    EmptyMessage,
    Invocation,
    InvocationResult,
    PingMessage,
    build_invocation,
    parse_message,
)
from .transport import SignalRTransport

_LOGGER = logging.getLogger(__name__)

PRODUCT_UPDATE_TARGET = "ProductUpdate"
SUBSCRIBE_TARGET = "SubscribeWithCurrentState"


@dataclass(frozen=True)
class Event:
    """One decoded observation of one charger."""

    charger_id: str
    observation: Observation


class EaseeStream:
    """Turns hub messages into ``Event`` objects, one per ``recv`` call."""

    def __init__(self, transport: SignalRTransport) -> None:
        self._transport = transport

    @classmethod
    async def open(
        cls,
        client: NegotiationClient,
        *,
        negotiate_url: str = NEGOTIATE_URL,
        stream_url: str = STREAM_URL,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> EaseeStream:
        """Negotiate and connect a new stream.

        Raises:
            EaseeNegotiationError: If negotiation or the upgrade fails.
        """
        transport = await negotiate(
            client,
            negotiate_url=negotiate_url,
            stream_url=stream_url,
            ping_interval=ping_interval,
            timeout=timeout,
        )
        return cls(transport)

    async def recv(self) -> Event:
        """Wait for the next observation.

        Keep-alives, invocation results and invocations of other targets are
        skipped.

        Raises:
            EaseeConnectionError: If the connection fails.
            EaseeProtocolError: If a message does not follow the hub protocol.
            EaseeValueDecodeError: If an update value mismatches its type.
        """
        while True:
            message = parse_message(await self._transport.recv())

            if isinstance(message, (EmptyMessage, PingMessage)):
                _LOGGER.debug("Skipping keep-alive %s", type(message).__name__)
                continue
            if isinstance(message, InvocationResult):
                _LOGGER.debug(
                    "Skipping result of invocation %s: %r",
                    message.invocation_id,
                    message.result,
                )
                continue
            if isinstance(message, Invocation):
                if message.target != PRODUCT_UPDATE_TARGET:
                    _LOGGER.debug("Skipping invocation of %s", message.target)
                    continue
                if len(message.arguments) != 1:
                    raise EaseeProtocolError(
                        f"{PRODUCT_UPDATE_TARGET} expects exactly one argument, "
                        f"got {len(message.arguments)}",
                        message,
                    )
                update = ProductUpdate.from_json(message.arguments[0])
                return Event(charger_id=update.charger_id, observation=decode(update))

            raise EaseeProtocolError(f"Unexpected message {message!r}", message)

    async def subscribe(self, charger_id: str) -> None:
        """Ask the hub to stream current and future state of a charger.

        Does not wait for the acknowledgement; it is skipped by ``recv``.
        """
        _LOGGER.debug("Subscribing to %s", charger_id)
        await self._transport.send(
            build_invocation(SUBSCRIBE_TARGET, [charger_id, True])
        )

    async def close(self) -> None:
        """Close the underlying connection."""
        await self._transport.close()

    async def __aenter__(self) -> EaseeStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iter_events()

    async def _iter_events(self) -> AsyncIterator[Event]:
        while True:
            yield await self.recv()
