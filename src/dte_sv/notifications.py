"""Notificaciones posteriores a una transición.

ES: El orquestador avisa al servicio de notificaciones después de confirmar
    cada transición, sin esperar la respuesta. Una falla al notificar se
    registra en el log y nunca revierte una transición fiscal.
EN: Fire-and-forget notifications after a committed transition; failures
    are logged and never roll anything back.
"""

from __future__ import annotations

import logging
from abc import ABCMeta, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime

from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionNotice:
    """Aviso de una transición confirmada."""

    document_id: str
    kind: str
    previous_state: DocumentState | None
    state: DocumentState
    generation_code: str | None = None
    observations: tuple[str, ...] = ()
    at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def for_document(
        cls, document: FiscalDocument, previous_state: DocumentState | None
    ) -> TransitionNotice:
        return cls(
            document_id=document.id,
            kind=document.kind.value,
            previous_state=previous_state,
            state=document.state,
            generation_code=document.generation_code,
            observations=tuple(document.observations),
        )


class BaseNotifier(metaclass=ABCMeta):
    """Clase base de los servicios de notificación."""

    @abstractmethod
    async def notify(self, notice: TransitionNotice) -> None:
        ...


class LoggingNotifier(BaseNotifier):
    """Notificador por defecto: escribe el aviso en el log."""

    async def notify(self, notice: TransitionNotice) -> None:
        logger.info(
            "Documento %s (%s) : %s → %s",
            notice.document_id,
            notice.kind,
            notice.previous_state.value if notice.previous_state else "-",
            notice.state.value,
        )


class MemoryNotifier(BaseNotifier):
    """Notificador en memoria para pruebas.

    ES: Guarda los avisos recibidos; `fail = True` simula una caída del
        servicio de notificaciones.
    EN: Records notices; `fail = True` simulates an outage.
    """

    def __init__(self) -> None:
        self.notices: list[TransitionNotice] = []
        self.fail = False

    async def notify(self, notice: TransitionNotice) -> None:
        if self.fail:
            msg = "Servicio de notificaciones no disponible"
            raise ConnectionError(msg)
        self.notices.append(notice)
