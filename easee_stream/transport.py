"""Record-separated JSON framing over a WebSocket connection."""

from __future__ import annotations

import json
import logging
from collections import deque
from types import TracebackType
from typing import Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import EaseeConnectionError, EaseeProtocolError

_LOGGER = logging.getLogger(__name__)

RECORD_SEPARATOR = "\x1e"


def split_frames(text: str) -> list[Any]:
    """Split one text message into the JSON documents it carries.

    Segments that are empty or fail to parse are dropped.
    """
    documents: list[Any] = []
    for segment in text.split(RECORD_SEPARATOR):
        if not segment:
            continue
        try:
            documents.append(json.loads(segment))
        except ValueError:
            _LOGGER.debug("Dropping malformed frame segment: %.200r", segment)
    return documents


class SignalRTransport:
    """Owns one WebSocket connection and replays its documents one at a time.

    Every received text message may hold several documents, each terminated
    by ``RECORD_SEPARATOR``. They are buffered and handed out in order; the
    connection is read again only once the buffer is drained.
    """

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws
        self._buffer: deque[Any] = deque()

    async def recv(self) -> Any:
        """Return the next JSON document, reading from the connection as needed.

        Raises:
            EaseeConnectionError: If the connection is closed or fails.
            EaseeProtocolError: If the server sends a binary message.
        """
        while not self._buffer:
            try:
                message = await self._ws.recv()
            except ConnectionClosed as err:
                raise EaseeConnectionError("WebSocket connection closed") from err
            except WebSocketException as err:
                raise EaseeConnectionError("WebSocket receive failed") from err
            if not isinstance(message, str):
                raise EaseeProtocolError("Bad message type: expecting text", message)
            self._buffer.extend(split_frames(message))
        return self._buffer.popleft()

    async def send(self, document: Any) -> None:
        """Send one JSON document terminated by ``RECORD_SEPARATOR``."""
        payload = json.dumps(document, separators=(",", ":")) + RECORD_SEPARATOR
        try:
            await self._ws.send(payload)
        except ConnectionClosed as err:
            raise EaseeConnectionError("WebSocket connection closed") from err
        except WebSocketException as err:
            raise EaseeConnectionError("WebSocket send failed") from err

    async def close(self) -> None:
        """Close the websocket connection."""
        await self._ws.close()

    async def __aenter__(self) -> SignalRTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
