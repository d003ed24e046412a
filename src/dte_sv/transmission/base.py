"""Interfaz abstracta para los clientes de transmisión al MH.

ES: Único componente autorizado a realizar E/S contra el Ministerio de
    Hacienda. Los conectores concretos (HTTP, memoria) heredan de esta clase.
EN: The only component allowed to perform I/O against the tax authority.
"""

from abc import ABCMeta, abstractmethod

from dte_sv.models.enums import Ambiente, DocumentKind
from dte_sv.transmission.models import Accepted, Rejected, TransmissionMode, Unavailable


class BaseTransmitter(metaclass=ABCMeta):
    """Clase base abstracta para los clientes de transmisión.

    ES: Define el contrato con el MH: la solicitud lleva el JSON del
        documento y el modo de procesamiento; la respuesta se normaliza en
        `Accepted`, `Rejected` o `Unavailable`. Las implementaciones nunca
        lanzan excepciones por fallas de transporte.
    EN: Request carries the document payload and processing mode; the
        response is normalized. Implementations never raise on transport
        failures.
    """

    def __init__(
        self,
        ambiente: str = Ambiente.TEST,
        base_url: str | None = None,
    ) -> None:
        self.ambiente = str(ambiente)
        self.base_url = base_url

    @abstractmethod
    async def submit(
        self,
        payload: dict,
        mode: TransmissionMode,
        *,
        kind: DocumentKind,
    ) -> Accepted | Rejected | Unavailable:
        """Envía un documento al MH.

        Args:
            payload: JSON canónico del documento (sin firmar).
            mode: Modo de procesamiento (normal o reporte de contingencia).
            kind: Tipo de documento, usado para elegir el servicio del MH.

        Returns:
            El resultado normalizado de la transmisión.
        """
        ...

    async def aclose(self) -> None:
        """Libera los recursos del cliente (conexiones HTTP, etc.)."""
