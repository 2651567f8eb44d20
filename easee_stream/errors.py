"""Client error types for Easee cloud and stream interactions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .observation import DataType


class EaseeClientError(Exception):
    """Base error for Easee client failures."""


class EaseeTimeout(EaseeClientError):
    """Timeout while communicating with the cloud service."""


class EaseeConnectionError(EaseeClientError):
    """Network connection to the cloud service failed."""


class EaseeHandshakeError(EaseeClientError):
    """WebSocket upgrade was rejected or failed.

    When the server answers the upgrade with an HTTP error, ``status`` and
    ``body`` keep the rejection for diagnostics.
    """

    def __init__(
        self, message: str, *, status: int | None = None, body: str | None = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class EaseeResponseError(EaseeClientError):
    """HTTP response error from the REST API."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class EaseeUnexpectedDataError(EaseeClientError):
    """The REST API returned JSON that does not match the expected shape."""

    def __init__(self, data: Any, message: str) -> None:
        super().__init__(f"unexpected data: {message}")
        self.data = data


class EaseeInvalidIdError(EaseeClientError):
    """A resource identifier contains characters the API does not allow."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Invalid ID: {identifier!r}")
        self.identifier = identifier


class TokenParseError(EaseeClientError):
    """Saved credentials could not be parsed."""


class EaseeNegotiationError(EaseeClientError):
    """Opening the observation stream failed before any frame was exchanged."""


class EaseeProtocolError(EaseeClientError):
    """A stream frame does not follow the hub protocol."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class EaseeValueDecodeError(EaseeClientError):
    """A product update value cannot be parsed as its declared type."""

    def __init__(self, value: str, data_type: DataType) -> None:
        super().__init__(f"cannot parse {value!r} as {data_type.name.lower()}")
        self.value = value
        self.data_type = data_type
