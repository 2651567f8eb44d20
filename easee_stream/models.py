"""REST payload data structures for the Easee cloud API.

The API speaks camelCase JSON. Each dataclass exposes ``from_dict`` which
raises ``EaseeUnexpectedDataError`` carrying the offending document when a
required key is missing or has the wrong type.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any

from .errors import EaseeUnexpectedDataError

# .NET serializers emit up to seven fractional digits
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken as UTC. Fractions beyond microseconds are
    truncated.

    Raises:
        ValueError: If ``value`` is not an ISO-8601 timestamp.
    """
    parsed = datetime.fromisoformat(_FRACTION_RE.sub(r"\1", value))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _require(data: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    if key not in data:
        raise EaseeUnexpectedDataError(data, f"missing key {key!r}")
    value = data[key]
    # bool is an int subclass
    if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
        raise EaseeUnexpectedDataError(data, f"{key!r} has the wrong type")
    return value


def _optional(data: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    if data.get(key) is None:
        return None
    return _require(data, key, kind)


def _require_timestamp(data: dict[str, Any], key: str) -> datetime:
    raw = _require(data, key, str)
    try:
        return parse_timestamp(raw)
    except ValueError as err:
        raise EaseeUnexpectedDataError(data, f"{key!r} is not a timestamp") from err


def _require_object(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise EaseeUnexpectedDataError(data, "expecting a JSON object")
    return data


def _require_number(data: dict[str, Any], key: str) -> float:
    return float(_require(data, key, (int, float)))


def _optional_number(data: dict[str, Any], key: str) -> float | None:
    value = _optional(data, key, (int, float))
    return None if value is None else float(value)


class ChargerOpMode(IntEnum):
    """Charger operating mode."""

    UNKNOWN = 0
    DISCONNECTED = 1
    PAUSED = 2
    CHARGING = 3
    FINISHED = 4
    ERROR = 5
    READY = 6

    @classmethod
    def from_code(cls, code: int) -> ChargerOpMode:
        """Map a wire code, giving ``UNKNOWN`` for unlisted values."""
        if code in set(cls):
            return cls(code)
        return cls.UNKNOWN


class OutputPhase(IntEnum):
    """Phases the charger delivers current on."""

    UNKNOWN = 0
    L1_TO_N = 10
    L1_TO_L2 = 11
    L2_TO_N = 12
    L3_TO_L1 = 13
    L3_TO_N = 14
    L2_TO_L3 = 15
    L1_L2_TO_N = 20
    L2_L3_TO_N = 21
    L1_L3_TO_L2 = 22
    L1_L2_L3_TO_N = 30

    @classmethod
    def from_code(cls, code: int) -> OutputPhase:
        """Map a wire code, giving ``UNKNOWN`` for unlisted values."""
        if code in set(cls):
            return cls(code)
        return cls.UNKNOWN


@dataclass(frozen=True)
class NegotiateResponse:
    """Answer of the stream hub negotiation endpoint."""

    negotiate_version: int
    connection_id: str
    connection_token: str

    @classmethod
    def from_dict(cls, data: Any) -> NegotiateResponse:
        data = _require_object(data)
        return cls(
            negotiate_version=_require(data, "negotiateVersion", int),
            connection_id=_require(data, "connectionId", str),
            connection_token=_require(data, "connectionToken", str),
        )


@dataclass(frozen=True)
class LoginResponse:
    """Token set returned by login and refresh calls."""

    access_token: str
    expires_in: int
    refresh_token: str
    token_type: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LoginResponse:
        data = _require_object(data)
        return cls(
            access_token=_require(data, "accessToken", str),
            expires_in=_require(data, "expiresIn", int),
            refresh_token=_require(data, "refreshToken", str),
            token_type=_optional(data, "tokenType", str),
        )


@dataclass(frozen=True)
class Charger:
    """A charger visible to the logged-in user."""

    id: str
    name: str
    product_code: int
    created_on: datetime
    updated_on: datetime
    level_of_access: int
    color: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Charger:
        data = _require_object(data)
        return cls(
            id=_require(data, "id", str),
            name=_require(data, "name", str),
            product_code=_require(data, "productCode", int),
            created_on=_require_timestamp(data, "createdOn"),
            updated_on=_require_timestamp(data, "updatedOn"),
            level_of_access=_require(data, "levelOfAccess", int),
            color=_optional(data, "color", int),
        )


@dataclass(frozen=True)
class Site:
    """A site grouping circuits and chargers."""

    id: int
    level_of_access: int
    uuid: str | None = None
    site_key: str | None = None
    name: str | None = None
    installer_alias: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Site:
        data = _require_object(data)
        return cls(
            id=_require(data, "id", int),
            level_of_access=_require(data, "levelOfAccess", int),
            uuid=_optional(data, "uuid", str),
            site_key=_optional(data, "siteKey", str),
            name=_optional(data, "name", str),
            installer_alias=_optional(data, "installerAlias", str),
        )


@dataclass(frozen=True)
class Circuit:
    """An electrical circuit of a site."""

    id: int
    uuid: str
    site_id: int
    circuit_panel_id: int
    panel_name: str
    rated_current: float
    fuse: float
    use_dynamic_master: bool
    chargers: list[Charger] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> Circuit:
        data = _require_object(data)
        return cls(
            id=_require(data, "id", int),
            uuid=_require(data, "uuid", str),
            site_id=_require(data, "siteId", int),
            circuit_panel_id=_require(data, "circuitPanelId", int),
            panel_name=_require(data, "panelName", str),
            rated_current=float(_require(data, "ratedCurrent", (int, float))),
            fuse=float(_require(data, "fuse", (int, float))),
            use_dynamic_master=_require(data, "useDynamicMaster", bool),
            chargers=[
                Charger.from_dict(item) for item in _require(data, "chargers", list)
            ],
        )


@dataclass(frozen=True)
class SiteDetails:
    """A site together with its circuits."""

    site: Site
    circuits: list[Circuit] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> SiteDetails:
        data = _require_object(data)
        return cls(
            site=Site.from_dict(data),
            circuits=[
                Circuit.from_dict(item) for item in _require(data, "circuits", list)
            ],
        )


@dataclass(frozen=True)
class Triphase:
    """A per-phase current, in amperes."""

    phase1: float
    phase2: float
    phase3: float

    @classmethod
    def from_dict(cls, data: Any) -> Triphase:
        data = _require_object(data)
        return cls(
            phase1=_require_number(data, "phase1"),
            phase2=_require_number(data, "phase2"),
            phase3=_require_number(data, "phase3"),
        )


@dataclass(frozen=True)
class ChargingSession:
    """An ongoing or finished charging session with its cost."""

    session_energy: float
    charger_id: str | None = None
    session_id: int | None = None
    charge_duration_in_seconds: int | None = None
    price_per_kwh_including_vat: float | None = None
    price_per_kwh_excluding_vat: float | None = None
    vat_percentage: float | None = None
    currency_id: str | None = None
    cost_including_vat: float | None = None
    cost_excluding_vat: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ChargingSession:
        data = _require_object(data)
        return cls(
            session_energy=_require_number(data, "sessionEnergy"),
            charger_id=_optional(data, "chargerId", str),
            session_id=_optional(data, "sessionId", int),
            charge_duration_in_seconds=_optional(data, "chargeDurationInSeconds", int),
            # the API abbreviates "per" in this one key
            price_per_kwh_including_vat=_optional_number(
                data, "pricePrKwhIncludingVat"
            ),
            price_per_kwh_excluding_vat=_optional_number(
                data, "pricePerKwhExcludingVat"
            ),
            vat_percentage=_optional_number(data, "vatPercentage"),
            currency_id=_optional(data, "currencyId", str),
            cost_including_vat=_optional_number(data, "costIncludingVat"),
            cost_excluding_vat=_optional_number(data, "costExcludingVat"),
        )


_IN_VOLTAGE_PAIRS = (
    "T1T2",
    "T1T3",
    "T1T4",
    "T1T5",
    "T2T3",
    "T2T4",
    "T2T5",
    "T3T4",
    "T3T5",
    "T4T5",
)


@dataclass(frozen=True)
class ChargerState:
    """Snapshot of a charger's live state, as read from the REST API.

    Per-phase values are ``Triphase``. Input voltages are keyed by terminal
    pair (``"T1T2"`` ... ``"T4T5"``) and input currents by terminal
    (``"T2"`` ... ``"T5"``); terminals the charger does not report are left
    out.
    """

    smart_charging: bool
    cable_locked: bool
    charger_op_mode: ChargerOpMode
    total_power: float
    session_energy: float
    energy_per_hour: float
    output_phase: OutputPhase
    dynamic_circuit_current: Triphase
    latest_pulse: datetime
    charger_firmware: int
    voltage: float
    charger_rat: int
    lock_cable_permanently: bool
    output_current: float
    is_online: bool
    led_mode: int
    cable_rating: float
    dynamic_charger_current: float
    circuit_total_allocated_phase_conductor_current: Triphase
    circuit_total_phase_conductor_current: Triphase
    reason_for_no_current: int
    wifi_ap_enabled: bool
    lifetime_energy: float
    offline_max_circuit_current: Triphase
    error_code: int
    fatal_error_code: int
    derating_active: bool
    connected_to_cloud: bool
    wifi_rssi: int | None = None
    cell_rssi: int | None = None
    local_rssi: int | None = None
    in_current: dict[str, float] = field(default_factory=dict, hash=False)
    in_voltage: dict[str, float] = field(default_factory=dict, hash=False)
    eq_available_current: Triphase | None = None
    derated_current: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ChargerState:
        data = _require_object(data)
        return cls(
            smart_charging=_require(data, "smartCharging", bool),
            cable_locked=_require(data, "cableLocked", bool),
            charger_op_mode=ChargerOpMode.from_code(
                _require(data, "chargerOpMode", int)
            ),
            total_power=_require_number(data, "totalPower"),
            session_energy=_require_number(data, "sessionEnergy"),
            energy_per_hour=_require_number(data, "energyPerHour"),
            output_phase=OutputPhase.from_code(_require(data, "outputPhase", int)),
            dynamic_circuit_current=_phases(data, "dynamicCircuitCurrentP{}"),
            latest_pulse=_require_timestamp(data, "latestPulse"),
            charger_firmware=_require(data, "chargerFirmware", int),
            voltage=_require_number(data, "voltage"),
            charger_rat=_require(data, "chargerRAT", int),
            lock_cable_permanently=_require(data, "lockCablePermanently", bool),
            output_current=_require_number(data, "outputCurrent"),
            is_online=_require(data, "isOnline", bool),
            led_mode=_require(data, "ledMode", int),
            cable_rating=_require_number(data, "cableRating"),
            dynamic_charger_current=_require_number(data, "dynamicChargerCurrent"),
            circuit_total_allocated_phase_conductor_current=_phases(
                data, "circuitTotalAllocatedPhaseConductorCurrentL{}"
            ),
            circuit_total_phase_conductor_current=_phases(
                data, "circuitTotalPhaseConductorCurrentL{}"
            ),
            reason_for_no_current=_require(data, "reasonForNoCurrent", int),
            wifi_ap_enabled=_require(data, "wiFiAPEnabled", bool),
            lifetime_energy=_require_number(data, "lifetimeEnergy"),
            offline_max_circuit_current=_phases(data, "offlineMaxCircuitCurrentP{}"),
            error_code=_require(data, "errorCode", int),
            fatal_error_code=_require(data, "fatalErrorCode", int),
            derating_active=_require(data, "deratingActive", bool),
            connected_to_cloud=_require(data, "connectedToCloud", bool),
            wifi_rssi=_optional(data, "wiFiRSSI", int),
            cell_rssi=_optional(data, "cellRSSI", int),
            local_rssi=_optional(data, "localRSSI", int),
            in_current=_present(data, "inCurrent", ("T2", "T3", "T4", "T5")),
            in_voltage=_present(data, "inVoltage", _IN_VOLTAGE_PAIRS),
            eq_available_current=_optional_phases(data, "eqAvailableCurrentP{}"),
            derated_current=_optional_number(data, "deratedCurrent"),
        )


def _phases(data: dict[str, Any], pattern: str) -> Triphase:
    return Triphase(*(_require_number(data, pattern.format(n)) for n in (1, 2, 3)))


def _optional_phases(data: dict[str, Any], pattern: str) -> Triphase | None:
    values = [_optional_number(data, pattern.format(n)) for n in (1, 2, 3)]
    if None in values:
        return None
    return Triphase(*values)


def _present(
    data: dict[str, Any], prefix: str, suffixes: tuple[str, ...]
) -> dict[str, float]:
    values = {}
    for suffix in suffixes:
        value = _optional_number(data, prefix + suffix)
        if value is not None:
            values[suffix] = value
    return values
