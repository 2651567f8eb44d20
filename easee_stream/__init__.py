"""Client for the Easee cloud API and its real-time observation stream."""

__version__ = "0.1.0"

from .errors import (
    EaseeClientError,
    EaseeConnectionError,
    EaseeHandshakeError,
    EaseeInvalidIdError,
    EaseeNegotiationError,
    EaseeProtocolError,
    EaseeResponseError,
    EaseeTimeout,
    EaseeUnexpectedDataError,
    EaseeValueDecodeError,
    TokenParseError,
)
from .http import EaseeHttpClient
from .models import (
    Charger,
    ChargerOpMode,
    ChargerState,
    ChargingSession,
    Circuit,
    NegotiateResponse,
    OutputPhase,
    Site,
    SiteDetails,
    Triphase,
)
from .negotiate import negotiate
from .observation import (
    DataType,
    InputPin,
    Observation,
    ObservationData,
    PilotMode,
    ProductUpdate,
    ReasonForNoCurrent,
    Unknown,
    classify,
    decode,
    parse_value,
)
from .protocol import parse_message
from .stream import EaseeStream, Event
from .transport import SignalRTransport
from .ws import connect_websocket

__all__ = [
    "Charger",
    "ChargerOpMode",
    "ChargerState",
    "ChargingSession",
    "Circuit",
    "DataType",
    "EaseeClientError",
    "EaseeConnectionError",
    "EaseeHandshakeError",
    "EaseeHttpClient",
    "EaseeInvalidIdError",
    "EaseeNegotiationError",
    "EaseeProtocolError",
    "EaseeResponseError",
    "EaseeStream",
    "EaseeTimeout",
    "EaseeUnexpectedDataError",
    "EaseeValueDecodeError",
    "Event",
    "InputPin",
    "NegotiateResponse",
    "Observation",
    "ObservationData",
    "OutputPhase",
    "PilotMode",
    "ProductUpdate",
    "ReasonForNoCurrent",
    "SignalRTransport",
    "Site",
    "SiteDetails",
    "TokenParseError",
    "Triphase",
    "Unknown",
    "__version__",
    "classify",
    "connect_websocket",
    "decode",
    "negotiate",
    "parse_message",
    "parse_value",
]
