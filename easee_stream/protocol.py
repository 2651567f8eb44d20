"""Hub protocol messages for the Easee observation stream.

The stream hub speaks the SignalR JSON hub protocol: each document carries a
numeric ``type`` discriminator. Only the handful of kinds the stream needs are
decoded; anything else is preserved as ``OtherMessage``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .errors import EaseeProtocolError

HANDSHAKE_PROTOCOL = "json"
HANDSHAKE_VERSION = 1


class MessageType(IntEnum):
    """Discriminator values understood by the decoder."""

    INVOCATION = 1
    COMPLETION = 3
    PING = 6


@dataclass(frozen=True)
class EmptyMessage:
    """A ``{}`` document, sent by the hub as a keep-alive."""


@dataclass(frozen=True)
class Invocation:
    """A call directed at a named client or server procedure."""

    target: str
    arguments: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class InvocationResult:
    """Completion of an invocation previously sent by us."""

    invocation_id: str
    result: Any


@dataclass(frozen=True)
class PingMessage:
    """Protocol-level keep-alive."""


@dataclass(frozen=True)
class OtherMessage:
    """A document with a discriminator this decoder does not interpret."""

    raw: dict[str, Any]


Message = EmptyMessage | Invocation | InvocationResult | PingMessage | OtherMessage


def _require_key(document: dict[str, Any], key: str) -> Any:
    if key not in document:
        raise EaseeProtocolError(f"Missing expected key {key}", document)
    return document[key]


def _require_str(document: dict[str, Any], key: str) -> str:
    value = _require_key(document, key)
    if not isinstance(value, str):
        raise EaseeProtocolError(f"Expecting string for {key}", document)
    return value


def _require_list(document: dict[str, Any], key: str) -> list[Any]:
    value = _require_key(document, key)
    if not isinstance(value, list):
        raise EaseeProtocolError(f"Expecting array for {key}", document)
    return value


def parse_message(document: Any) -> Message:
    """Classify a decoded JSON document into a hub message.

    Raises:
        EaseeProtocolError: If the document is not an object, lacks a
            non-negative integer ``type``, or a known kind is missing one of
            its required fields.
    """
    if not isinstance(document, dict):
        raise EaseeProtocolError(f"Expecting object, received {document!r}", document)
    if not document:
        return EmptyMessage()
    if "type" not in document:
        raise EaseeProtocolError("Missing `type` key", document)

    msg_type = document["type"]
    # bool is an int subclass
    if isinstance(msg_type, bool) or not isinstance(msg_type, int) or msg_type < 0:
        raise EaseeProtocolError("`type` is not a number", document)

    if msg_type == MessageType.INVOCATION:
        return Invocation(
            target=_require_str(document, "target"),
            arguments=list(_require_list(document, "arguments")),
        )
    if msg_type == MessageType.COMPLETION:
        return InvocationResult(
            invocation_id=_require_str(document, "invocationId"),
            result=_require_key(document, "result"),
        )
    if msg_type == MessageType.PING:
        return PingMessage()
    return OtherMessage(document)


def build_handshake() -> dict[str, Any]:
    """Construct the handshake document sent right after the upgrade."""
    return {"protocol": HANDSHAKE_PROTOCOL, "version": HANDSHAKE_VERSION}


def build_invocation(
    target: str,
    arguments: list[Any],
    *,
    invocation_id: str = "0",
) -> dict[str, Any]:
    """Construct an invocation document for a server procedure."""
    return {
        "type": int(MessageType.INVOCATION),
        "invocationId": invocation_id,
        "target": target,
        "arguments": arguments,
    }
