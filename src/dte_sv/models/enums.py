"""Enumeraciones para los documentos tributarios electrónicos de El Salvador.

ES: Códigos y catálogos del Ministerio de Hacienda (MH) para tipos de DTE,
    estados del ciclo de vida, motivos de contingencia e invalidación.
EN: MH codes and catalogs for DTE kinds, lifecycle states, contingency and
    invalidation reasons.
"""

from enum import IntEnum, StrEnum


class DocumentKind(StrEnum):
    """Tipo de documento fiscal.

    ES: Los cinco tipos de DTE manejados por la plataforma más los dos
        eventos (invalidación y contingencia).
    EN: The five DTE kinds plus the two event documents.
    """

    INVOICE_CONSUMER = "01"
    """Factura de consumidor final / Consumer invoice"""

    INVOICE_CREDIT_FISCAL = "03"
    """Comprobante de crédito fiscal (CCF) / Tax credit invoice"""

    CREDIT_NOTE = "05"
    """Nota de crédito / Credit note"""

    DEBIT_NOTE = "06"
    """Nota de débito / Debit note"""

    FSE = "14"
    """Factura de sujeto excluido / Excluded-subject invoice"""

    INVALIDATION_EVENT = "invalidation_event"
    """Evento de invalidación / Invalidation event"""

    CONTINGENCY_EVENT = "contingency_event"
    """Evento de contingencia / Contingency event"""

    @property
    def is_event(self) -> bool:
        return self in (
            DocumentKind.INVALIDATION_EVENT,
            DocumentKind.CONTINGENCY_EVENT,
        )

    @property
    def is_note(self) -> bool:
        return self in (DocumentKind.CREDIT_NOTE, DocumentKind.DEBIT_NOTE)


class DocumentState(StrEnum):
    """Estado del ciclo de vida de un documento.

    ES: `pending` es siempre el estado inicial; `processed` y `rejected`
        son resultados de una transmisión; `contingency` queda a la espera
        del reporte; `invalidated` es terminal.
    EN: `pending` is always the initial state.
    """

    PENDING = "pending"
    """Pendiente / Pending"""

    PROCESSED = "processed"
    """Procesado por el MH / Accepted by MH"""

    REJECTED = "rejected"
    """Rechazado por el MH / Rejected by MH"""

    CONTINGENCY = "contingency"
    """En contingencia / Held for contingency reporting"""

    INVALIDATED = "invalidated"
    """Invalidado / Invalidated"""


class ContingencyReason(StrEnum):
    """Motivo de contingencia (catálogo MH, tipos 1 a 5)."""

    MH_OUTAGE = "mh_outage"
    INTERNET_OUTAGE = "internet_outage"
    POWER_OUTAGE = "power_outage"
    TAXPAYER_SYSTEM_OUTAGE = "taxpayer_system_outage"
    OTHER = "other"

    @property
    def code(self) -> int:
        """Código numérico del catálogo MH / MH numeric code."""
        return _CONTINGENCY_CODES[self]

    @property
    def label(self) -> str:
        return _CONTINGENCY_LABELS[self]

    @classmethod
    def from_code(cls, code: int) -> "ContingencyReason":
        for reason, value in _CONTINGENCY_CODES.items():
            if value == code:
                return reason
        msg = f"Tipo de contingencia desconocido : {code}"
        raise ValueError(msg)


_CONTINGENCY_CODES: dict[ContingencyReason, int] = {
    ContingencyReason.MH_OUTAGE: 1,
    ContingencyReason.INTERNET_OUTAGE: 2,
    ContingencyReason.POWER_OUTAGE: 3,
    ContingencyReason.TAXPAYER_SYSTEM_OUTAGE: 4,
    ContingencyReason.OTHER: 5,
}

_CONTINGENCY_LABELS: dict[ContingencyReason, str] = {
    ContingencyReason.MH_OUTAGE: "Falla en el servicio del MH",
    ContingencyReason.INTERNET_OUTAGE: "Falla en el servicio de internet",
    ContingencyReason.POWER_OUTAGE: "Falla eléctrica",
    ContingencyReason.TAXPAYER_SYSTEM_OUTAGE: "Falla en el sistema del contribuyente",
    ContingencyReason.OTHER: "Otro",
}


class InvalidationType(IntEnum):
    """Tipo de anulación (catálogo MH)."""

    REPLACE = 1
    """Anular y reemplazar / Invalidate and replace"""

    NO_REPLACE = 2
    """Anular sin reemplazar / Invalidate without replacement"""

    OTHER = 3
    """Otro motivo / Other"""


class IdentityDocumentType(StrEnum):
    """Tipo de documento de identificación (catálogo MH CAT-022)."""

    DUI = "13"
    """Documento Único de Identidad"""

    NIT = "36"
    """Número de Identificación Tributaria"""

    PASSPORT = "03"
    """Pasaporte / Passport"""

    RESIDENT_CARD = "02"
    """Carné de residente / Resident card"""

    OTHER = "37"
    """Otro / Other"""


class CreditNoteReason(StrEnum):
    """Motivo de la nota de crédito."""

    FULL_CANCELLATION = "anulacion_total"
    PARTIAL_CANCELLATION = "anulacion_parcial"
    PRICE_ERROR = "error_precio"
    QUANTITY_ERROR = "error_cantidad"
    LATER_DISCOUNT = "descuento_posterior"
    RETURN = "devolucion"
    OTHER = "otro"


class DebitNoteReason(StrEnum):
    """Motivo de la nota de débito."""

    LATE_INTEREST = "intereses_mora"
    ADDITIONAL_CHARGES = "gastos_adicionales"
    UNDERCHARGE_ERROR = "error_menor_cobro"
    PRICE_ADJUSTMENT = "ajuste_precio"
    OTHER = "otro"


class Ambiente(StrEnum):
    """Ambiente de destino del MH."""

    TEST = "00"
    """Pruebas / Test"""

    PRODUCTION = "01"
    """Producción / Production"""
