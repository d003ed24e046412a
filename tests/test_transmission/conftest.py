"""Fixtures compartidas para las pruebas de transmisión."""

from collections.abc import Callable

import pytest

from dte_sv.transmission.connectors.memory import MemoryTransmitter

CODE = "0A1B2C3D-4E5F-4A6B-8C7D-9E0F1A2B3C4D"


def _payload(code: str | None = CODE, control_number: str = "DTE-01-M001P001-000000000000001") -> dict:
    return {
        "identificacion": {
            "version": 1,
            "ambiente": "00",
            "tipoDte": "01",
            "numeroControl": control_number,
            "codigoGeneracion": code,
        },
        "resumen": {"montoTotalOperacion": 25.0},
    }


@pytest.fixture
def make_payload() -> Callable[..., dict]:
    """Fabrica un JSON mínimo con la sección de identificación."""
    return _payload


@pytest.fixture
def payload() -> dict:
    return _payload()


@pytest.fixture
def memory_transmitter() -> MemoryTransmitter:
    return MemoryTransmitter()
