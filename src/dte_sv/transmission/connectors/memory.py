"""Conector de transmisión en memoria para pruebas y desarrollo.

ES: Simula al MH: acepta los documentos asignando un sello secuencial,
    rechaza un código de generación ya recibido y permite programar
    resultados (`script`) o simular una caída (`available = False`).
    Registra cada llamada para que las pruebas verifiquen cuántas
    transmisiones se hicieron realmente.
EN: Simulates the MH in memory; outcomes can be scripted and every call is
    recorded.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime

from dte_sv.models.enums import Ambiente, DocumentKind
from dte_sv.transmission.base import BaseTransmitter
from dte_sv.transmission.models import Accepted, Rejected, TransmissionMode, Unavailable


@dataclass
class _Call:
    """Llamada registrada por el conector en memoria."""

    payload: dict
    mode: TransmissionMode
    kind: DocumentKind
    at: datetime


class MemoryTransmitter(BaseTransmitter):
    """MH simulado en memoria."""

    def __init__(self, delay: float = 0.0, **kwargs: object) -> None:
        super().__init__(ambiente=Ambiente.TEST, base_url=None)
        self.delay = delay
        self.available = True
        self.calls: list[_Call] = []
        self._scripted: deque[Accepted | Rejected | Unavailable] = deque()
        self._received: set[str] = set()
        self._counter = 0

    def script(self, *outcomes: Accepted | Rejected | Unavailable) -> None:
        """Programa los próximos resultados, en orden."""
        self._scripted.extend(outcomes)

    def _next_seal(self) -> str:
        self._counter += 1
        year = datetime.now(UTC).year
        return f"{year}MEM{self._counter:036d}"

    async def submit(
        self,
        payload: dict,
        mode: TransmissionMode,
        *,
        kind: DocumentKind,
    ) -> Accepted | Rejected | Unavailable:
        self.calls.append(
            _Call(payload=payload, mode=mode, kind=kind, at=datetime.now(UTC))
        )
        if self.delay:
            await asyncio.sleep(self.delay)

        if self._scripted:
            return self._scripted.popleft()
        if not self.available:
            return Unavailable(reason="MH simulado fuera de servicio")

        ident = payload.get("identificacion", {})
        code = ident.get("codigoGeneracion")
        if not code:
            return Unavailable(reason="Respuesta mal formada : sin codigoGeneracion")
        if code in self._received:
            return Rejected(
                observations=["[identificacion.codigoGeneracion] YA EXISTE UN REGISTRO CON ESE VALOR"],
                message="RECHAZADO",
            )
        self._received.add(code)
        seal = self._next_seal()
        response = {
            "estado": "RECIBIDO" if mode == TransmissionMode.CONTINGENCY_REPORT else "PROCESADO",
            "codigoGeneracion": code,
            "selloRecibido": seal,
            "observaciones": [],
        }
        return Accepted(
            generation_code=code,
            control_number=ident.get("numeroControl"),
            reception_seal=seal,
            processed_at=datetime.now(UTC),
            response=response,
        )
