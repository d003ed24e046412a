"""Clientes de transmisión hacia el Ministerio de Hacienda.

ES: Interfaz abstracta, modelos de resultado y conectores (HTTP y memoria).
EN: Abstract interface, outcome models and connectors.
"""

from dte_sv.transmission.base import BaseTransmitter
from dte_sv.transmission.models import (
    Accepted,
    Rejected,
    TransmissionMode,
    TransmissionOutcome,
    Unavailable,
)

__all__ = [
    "Accepted",
    "BaseTransmitter",
    "Rejected",
    "TransmissionMode",
    "TransmissionOutcome",
    "Unavailable",
]
