"""Pytest configuration and fixtures for easee_stream tests."""

from __future__ import annotations

import json
import time
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from websockets.exceptions import ConnectionClosed

from easee_stream import EaseeHttpClient
from easee_stream.transport import RECORD_SEPARATOR

CHARGER_STATE: dict[str, Any] = {
    "smartCharging": False,
    "cableLocked": True,
    "chargerOpMode": 3,
    "totalPower": 7.2,
    "sessionEnergy": 4.25,
    "energyPerHour": 0,
    "wiFiRSSI": -61,
    "cellRSSI": None,
    "localRSSI": None,
    "outputPhase": 30,
    "dynamicCircuitCurrentP1": 16,
    "dynamicCircuitCurrentP2": 16,
    "dynamicCircuitCurrentP3": 16,
    "latestPulse": "2024-03-01T12:30:45Z",
    "chargerFirmware": 302,
    "voltage": 231.4,
    "chargerRAT": 1,
    "lockCablePermanently": False,
    "inCurrentT2": 10.5,
    "inCurrentT3": 10.4,
    "inCurrentT4": 10.6,
    "inCurrentT5": None,
    "outputCurrent": 16,
    "isOnline": True,
    "inVoltageT1T2": 3.1,
    "inVoltageT2T3": 400.2,
    "ledMode": 18,
    "cableRating": 32,
    "dynamicChargerCurrent": 32,
    "circuitTotalAllocatedPhaseConductorCurrentL1": 16,
    "circuitTotalAllocatedPhaseConductorCurrentL2": 16,
    "circuitTotalAllocatedPhaseConductorCurrentL3": 16,
    "circuitTotalPhaseConductorCurrentL1": 10.5,
    "circuitTotalPhaseConductorCurrentL2": 10.4,
    "circuitTotalPhaseConductorCurrentL3": 10.6,
    "reasonForNoCurrent": 0,
    "wiFiAPEnabled": False,
    "lifetimeEnergy": 1234.5,
    "offlineMaxCircuitCurrentP1": 6,
    "offlineMaxCircuitCurrentP2": 6,
    "offlineMaxCircuitCurrentP3": 6,
    "errorCode": 0,
    "fatalErrorCode": 0,
    "eqAvailableCurrentP1": None,
    "eqAvailableCurrentP2": None,
    "eqAvailableCurrentP3": None,
    "deratedCurrent": None,
    "deratingActive": False,
    "connectedToCloud": True,
}

CHARGING_SESSION: dict[str, Any] = {
    "chargerId": "EH123456",
    "sessionEnergy": 12.3,
    "sessionStart": "2024-03-01T18:00:00",
    "sessionId": 4711,
    "chargeDurationInSeconds": 5400,
    "pricePrKwhIncludingVat": 2.5,
    "pricePerKwhExcludingVat": 2.0,
    "vatPercentage": 25,
    "currencyId": "NOK",
    "costIncludingVat": 30.75,
    "costExcludingVat": 24.6,
}


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def http_client(mock_session: MagicMock) -> EaseeHttpClient:
    """Create a client holding a token valid for one hour."""
    return EaseeHttpClient(
        mock_session,
        "access-1",
        "refresh-1",
        time.time() + 3600,
    )


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    text_data: str | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        text_data: Data to return from text() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data
    if text_data is not None:
        response.text.return_value = text_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def frame(*documents: Any) -> str:
    """Encode documents the way the hub does: each one record-terminated."""
    return "".join(json.dumps(doc) + RECORD_SEPARATOR for doc in documents)


def product_update(
    code: int,
    value: str,
    data_type: int = 4,
    charger_id: str = "EH123456",
) -> dict[str, Any]:
    """Build a ProductUpdate invocation document."""
    return {
        "type": 1,
        "target": "ProductUpdate",
        "arguments": [
            {
                "dataType": data_type,
                "id": code,
                "mid": charger_id,
                "timestamp": "2024-03-01T12:30:45.1234567Z",
                "value": value,
            }
        ],
    }


def mock_websocket(*messages: str | bytes) -> AsyncMock:
    """Create a mock websockets connection replaying ``messages``.

    Once exhausted, ``recv`` raises ConnectionClosed like a closed socket.
    """
    ws = AsyncMock()
    ws.recv.side_effect = [*messages, ConnectionClosed(None, None)]
    return ws
