"""Modelos de datos para los resultados de transmisión al MH.

ES: Todo intento de transmisión se normaliza en uno de tres resultados:
    `Accepted`, `Rejected` o `Unavailable`. El rechazo es siempre una
    decisión explícita del MH; cualquier falla de red, tiempo de espera,
    error 5xx o respuesta mal formada es `Unavailable`.
EN: Every attempt is normalized into Accepted, Rejected or Unavailable.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class TransmissionMode(StrEnum):
    """Modo de procesamiento declarado en la solicitud."""

    NORMAL = "normal"
    """Transmisión normal / Normal transmission"""

    CONTINGENCY_REPORT = "contingency-report"
    """Reporte de evento de contingencia / Contingency report"""


class Accepted(BaseModel):
    """Documento aceptado (procesado) por el MH."""

    outcome: Literal["accepted"] = "accepted"
    generation_code: str
    control_number: str | None = None
    reception_seal: str
    processed_at: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    response: dict | None = None


class Rejected(BaseModel):
    """Documento rechazado por el MH (decisión de negocio)."""

    outcome: Literal["rejected"] = "rejected"
    observations: list[str] = Field(default_factory=list)
    message: str | None = None
    response: dict | None = None


class Unavailable(BaseModel):
    """El MH no pudo ser contactado o respondió de forma inutilizable."""

    outcome: Literal["unavailable"] = "unavailable"
    reason: str
    response: dict | None = None


TransmissionOutcome = Annotated[
    Accepted | Rejected | Unavailable, Field(discriminator="outcome")
]
