"""Typed charger observations decoded from ``ProductUpdate`` invocations.

Every product update names a feature code and carries its value as a string
together with a declared data type. Decoding happens in two steps:

1. ``parse_value`` turns the string into ``ObservationData`` according to the
   declared type. This is the only step that can fail.
2. ``classify`` maps ``(code, ObservationData)`` onto an ``Observation``
   variant. It never fails: codes without a mapping, and known codes
   carrying a value of another type, become ``Unknown``.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from .errors import EaseeProtocolError, EaseeValueDecodeError
from .models import ChargerOpMode, OutputPhase, parse_timestamp

_LOGGER = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class DataType(IntEnum):
    """Declared type of a product update value."""

    BOOLEAN = 2
    DOUBLE = 3
    INTEGER = 4
    STRING = 6


@dataclass(frozen=True)
class ObservationData:
    """A product update value parsed according to its declared type."""

    type: DataType
    value: bool | float | int | str


def parse_value(data_type: DataType, value: str) -> ObservationData:
    """Parse a wire value string as ``data_type``.

    Booleans travel as integer strings; any nonzero integer is true.

    Raises:
        EaseeValueDecodeError: If ``value`` is not a valid ``data_type``.
    """
    if data_type is DataType.BOOLEAN:
        return ObservationData(data_type, _parse_integer(value, data_type) != 0)
    if data_type is DataType.DOUBLE:
        return ObservationData(data_type, _parse_double(value, data_type))
    if data_type is DataType.INTEGER:
        return ObservationData(data_type, _parse_integer(value, data_type))
    return ObservationData(DataType.STRING, value)


def _parse_integer(value: str, data_type: DataType) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise EaseeValueDecodeError(value, data_type)
    parsed = int(value)
    if not _INT64_MIN <= parsed <= _INT64_MAX:
        raise EaseeValueDecodeError(value, data_type)
    return parsed


def _parse_double(value: str, data_type: DataType) -> float:
    # float() also takes padding and digit separators
    if not value.isascii() or "_" in value or value != value.strip():
        raise EaseeValueDecodeError(value, data_type)
    try:
        return float(value)
    except ValueError as err:
        raise EaseeValueDecodeError(value, data_type) from err


@dataclass(frozen=True)
class ProductUpdate:
    """Sole argument of a ``ProductUpdate`` invocation."""

    data_type: DataType
    code: int
    charger_id: str
    timestamp: datetime
    value: str

    @classmethod
    def from_json(cls, document: Any) -> ProductUpdate:
        """Build from the invocation argument.

        Raises:
            EaseeProtocolError: If a field is missing or has the wrong shape.
        """
        if not isinstance(document, dict):
            raise EaseeProtocolError("ProductUpdate is not an object", document)

        raw_type = document.get("dataType")
        if (
            isinstance(raw_type, bool)
            or not isinstance(raw_type, int)
            or raw_type not in set(DataType)
        ):
            raise EaseeProtocolError(f"Unknown dataType {raw_type!r}", document)

        code = document.get("id")
        if (
            isinstance(code, bool)
            or not isinstance(code, int)
            or not 0 <= code <= 0xFFFF
        ):
            raise EaseeProtocolError(f"Invalid feature code {code!r}", document)

        charger_id = document.get("mid")
        value = document.get("value")
        raw_timestamp = document.get("timestamp")
        if not isinstance(charger_id, str):
            raise EaseeProtocolError("Expecting string for mid", document)
        if not isinstance(value, str):
            raise EaseeProtocolError("Expecting string for value", document)
        if not isinstance(raw_timestamp, str):
            raise EaseeProtocolError("Expecting string for timestamp", document)
        try:
            timestamp = parse_timestamp(raw_timestamp)
        except ValueError as err:
            raise EaseeProtocolError(
                f"Invalid timestamp {raw_timestamp!r}", document
            ) from err

        return cls(
            data_type=DataType(raw_type),
            code=code,
            charger_id=charger_id,
            timestamp=timestamp,
            value=value,
        )


# -----------------------------------------------------------------------------
# Domain enums
# -----------------------------------------------------------------------------


class PilotMode(Enum):
    """IEC 61851 control pilot state."""

    DISCONNECTED = "A"
    CONNECTED = "B"
    CHARGING = "C"
    NEEDS_VENTILATION = "D"
    FAULT_DETECTED = "F"
    UNKNOWN = "unknown"


class InputPin(Enum):
    """Terminal of the charger's input block."""

    T2 = "T2"
    T3 = "T3"
    T4 = "T4"
    T5 = "T5"


REASON_FOR_NO_CURRENT: dict[int, str] = {
    0: "No reason, charging or ready to charge",
    1: "Max circuit current too low",
    2: "Max dynamic circuit current too low",
    3: "Max dynamic offline fallback circuit current too low",
    4: "Circuit fuse too low",
    5: "Waiting in queue",
    6: "Waiting in fully charged queue",
    7: "Illegal grid type",
    8: "Primary unit has not received current request from secondary",
    9: "Primary unit communication lost",
    25: "Current limited by circuit fuse",
    26: "Current limited by circuit max current",
    27: "Current limited by dynamic circuit current",
    28: "Current limited by equalizer",
    29: "Current limited by circuit load balancing",
    30: "Current limited by offline settings",
    50: "Secondary unit not requesting current",
    51: "Max charger current too low",
    52: "Max dynamic charger current too low",
    53: "Charger disabled",
    54: "Pending scheduled charging",
    55: "Pending authorization",
    56: "Charger in error state",
    57: "Erratic EV",
    75: "Current limited by cable rating",
    76: "Current limited by schedule",
    77: "Current limited by charger max current",
    78: "Current limited by dynamic charger current",
    79: "Car not charging",
    80: "Current limited by local adjustment",
    81: "Current limited by car",
    100: "Error: undefined",
}


@dataclass(frozen=True)
class ReasonForNoCurrent:
    """Why the charger is not offering (more) current."""

    code: int

    @property
    def description(self) -> str:
        return REASON_FOR_NO_CURRENT.get(self.code, f"Code {self.code}")

    def __str__(self) -> str:
        return self.description


# -----------------------------------------------------------------------------
# Observations
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Observation:
    """Base class of all decoded charger observations."""


@dataclass(frozen=True)
class SelfTestResult(Observation):
    result: str


@dataclass(frozen=True)
class SelfTestDetails(Observation):
    """Parsed self-test JSON. Hashing ignores the document, which may hold lists."""

    details: Any = field(hash=False)


@dataclass(frozen=True)
class WifiEvent(Observation):
    event: int


@dataclass(frozen=True)
class ChargerOfflineReason(Observation):
    reason: int


@dataclass(frozen=True)
class CircuitMaxCurrent(Observation):
    """Configured circuit limit for one phase."""

    phase: int
    amperes: int


@dataclass(frozen=True)
class SiteId(Observation):
    site_id: str


@dataclass(frozen=True)
class IsEnabled(Observation):
    enabled: bool


@dataclass(frozen=True)
class Temperature(Observation):
    celsius: int


@dataclass(frozen=True)
class TriplePhase(Observation):
    """Whether the charger is configured for three phases."""

    enabled: bool


@dataclass(frozen=True)
class DynamicChargerCurrent(Observation):
    amperes: float


@dataclass(frozen=True)
class ReasonForNoCurrentObservation(Observation):
    reason: ReasonForNoCurrent


@dataclass(frozen=True)
class PilotModeObservation(Observation):
    mode: PilotMode


@dataclass(frozen=True)
class SmartCharging(Observation):
    enabled: bool


@dataclass(frozen=True)
class CableLocked(Observation):
    locked: bool


@dataclass(frozen=True)
class CableRating(Observation):
    amperes: float


@dataclass(frozen=True)
class UserId(Observation):
    user_id: str


@dataclass(frozen=True)
class ChargerOpModeObservation(Observation):
    mode: ChargerOpMode


@dataclass(frozen=True)
class OutputPhaseObservation(Observation):
    phase: OutputPhase


@dataclass(frozen=True)
class DynamicCircuitCurrent(Observation):
    """Dynamic circuit limit for one phase."""

    phase: int
    amperes: float


@dataclass(frozen=True)
class OutputCurrent(Observation):
    amperes: float


@dataclass(frozen=True)
class DeratedCurrent(Observation):
    amperes: float


@dataclass(frozen=True)
class DeratingActive(Observation):
    active: bool


@dataclass(frozen=True)
class ErrorCode(Observation):
    code: int


@dataclass(frozen=True)
class TotalPower(Observation):
    kilowatts: float


@dataclass(frozen=True)
class SessionEnergy(Observation):
    kilowatt_hours: float


@dataclass(frozen=True)
class EnergyPerHour(Observation):
    kilowatt_hours: float


@dataclass(frozen=True)
class LifetimeEnergy(Observation):
    kilowatt_hours: float


@dataclass(frozen=True)
class LifetimeRelaySwitches(Observation):
    count: int


@dataclass(frozen=True)
class LifetimeHours(Observation):
    hours: int


@dataclass(frozen=True)
class WifiRssi(Observation):
    dbm: int


@dataclass(frozen=True)
class InputCurrent(Observation):
    """Current measured on one input terminal."""

    pin: InputPin
    amperes: float


@dataclass(frozen=True)
class Unknown(Observation):
    """A code/value combination without a dedicated variant."""

    code: int
    value: ObservationData


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------

_Handler = Callable[[ObservationData], Observation | None]


def _typed(data_type: DataType, build: Callable[[Any], Observation | None]) -> _Handler:
    def handler(data: ObservationData) -> Observation | None:
        if data.type is not data_type:
            return None
        return build(data.value)

    return handler


def _boolean(build: Callable[[Any], Observation | None]) -> _Handler:
    return _typed(DataType.BOOLEAN, build)


def _double(build: Callable[[Any], Observation | None]) -> _Handler:
    return _typed(DataType.DOUBLE, build)


def _integer(build: Callable[[Any], Observation | None]) -> _Handler:
    return _typed(DataType.INTEGER, build)


def _string(build: Callable[[Any], Observation | None]) -> _Handler:
    return _typed(DataType.STRING, build)


def _self_test_details(text: str) -> Observation | None:
    try:
        return SelfTestDetails(json.loads(text))
    except ValueError:
        return None


def _triple_phase(phases: int) -> Observation | None:
    if phases == 1:
        return TriplePhase(False)
    if phases == 3:
        return TriplePhase(True)
    return None


_PILOT_MODES = {mode.value: mode for mode in PilotMode if mode is not PilotMode.UNKNOWN}


def _pilot_mode(text: str) -> Observation:
    return PilotModeObservation(_PILOT_MODES.get(text, PilotMode.UNKNOWN))


_HANDLERS: dict[int, _Handler] = {
    1: _string(SelfTestResult),
    2: _string(_self_test_details),
    10: _integer(WifiEvent),
    11: _integer(ChargerOfflineReason),
    22: _integer(lambda amperes: CircuitMaxCurrent(1, amperes)),
    23: _integer(lambda amperes: CircuitMaxCurrent(2, amperes)),
    24: _integer(lambda amperes: CircuitMaxCurrent(3, amperes)),
    26: _string(SiteId),
    31: _boolean(IsEnabled),
    32: _integer(Temperature),
    38: _integer(_triple_phase),
    48: _double(DynamicChargerCurrent),
    96: _integer(
        lambda reason: ReasonForNoCurrentObservation(ReasonForNoCurrent(reason))
    ),
    100: _string(_pilot_mode),
    102: _boolean(SmartCharging),
    103: _boolean(CableLocked),
    104: _double(CableRating),
    # transmitted reversed
    107: _string(lambda text: UserId(text[::-1])),
    109: _integer(
        lambda mode: ChargerOpModeObservation(ChargerOpMode.from_code(mode))
    ),
    110: _integer(
        lambda phase: OutputPhaseObservation(OutputPhase.from_code(phase))
    ),
    111: _double(lambda amperes: DynamicCircuitCurrent(1, amperes)),
    112: _double(lambda amperes: DynamicCircuitCurrent(2, amperes)),
    113: _double(lambda amperes: DynamicCircuitCurrent(3, amperes)),
    114: _double(OutputCurrent),
    115: _double(DeratedCurrent),
    116: _boolean(DeratingActive),
    119: _integer(ErrorCode),
    120: _double(TotalPower),
    121: _double(SessionEnergy),
    122: _double(EnergyPerHour),
    124: _double(LifetimeEnergy),
    125: _integer(LifetimeRelaySwitches),
    126: _integer(LifetimeHours),
    132: _integer(WifiRssi),
    182: _double(lambda amperes: InputCurrent(InputPin.T2, amperes)),
    183: _double(lambda amperes: InputCurrent(InputPin.T3, amperes)),
    184: _double(lambda amperes: InputCurrent(InputPin.T4, amperes)),
    185: _double(lambda amperes: InputCurrent(InputPin.T5, amperes)),
}


def classify(code: int, data: ObservationData) -> Observation:
    """Map a feature code and its parsed value onto an observation.

    Total: anything without a mapping becomes ``Unknown(code, data)``.
    """
    handler = _HANDLERS.get(code)
    observation = handler(data) if handler is not None else None
    if observation is None:
        if handler is not None:
            _LOGGER.debug(
                "No mapping for code %d with %s value %r",
                code,
                data.type.name,
                data.value,
            )
        return Unknown(code, data)
    return observation


def decode(update: ProductUpdate) -> Observation:
    """Parse and classify a product update.

    Raises:
        EaseeValueDecodeError: If the value does not match its declared type.
    """
    return classify(update.code, parse_value(update.data_type, update.value))
