"""Validador de reglas de negocio del ciclo de vida.

ES: Funciones puras, sin efectos secundarios, una por intención de
    transición. Reciben el documento candidato (o sus parámetros) y los
    documentos relacionados que el llamador ya leyó del almacén, y devuelven
    un `Verdict`. Nunca lanzan excepciones por violaciones de negocio
    esperadas; el orquestador decide convertir un veredicto negativo en
    `DTEValidationError`.
EN: Pure precondition checks, one per transition intent. They return a
    `Verdict` and never raise for expected business violations.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import NamedTuple

from dte_sv.errors import DTEValidationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState


class Verdict(NamedTuple):
    """Resultado de una verificación de precondiciones.

    ES: Verdadero cuando la transición está autorizada; si no, `errors`
        contiene los mensajes a mostrar al operador.
    EN: Truthy when the transition is allowed.
    """

    allowed: bool
    errors: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def message(self) -> str:
        return "; ".join(self.errors)

    def raise_if_denied(self, prefix: str = "Validación fallida") -> None:
        """Convierte un veredicto negativo en `DTEValidationError`."""
        if not self.allowed:
            msg = f"{prefix} : {self.message}"
            raise DTEValidationError(msg, errors=list(self.errors))


ALLOWED = Verdict(True)


def _verdict(errors: list[str]) -> Verdict:
    if errors:
        return Verdict(False, tuple(errors))
    return ALLOWED


def can_create_note(
    target: FiscalDocument,
    amount: Decimal,
    kind: DocumentKind = DocumentKind.CREDIT_NOTE,
) -> Verdict:
    """Verifica que se pueda emitir una nota de crédito/débito.

    ES: El documento objetivo debe ser un crédito fiscal (03) procesado.
        El monto debe ser estrictamente positivo y, para notas de crédito,
        no puede superar el monto del documento original.
    EN: Target must be a processed CCF (03); credit note amount must not
        exceed the target's amount; any note amount must be positive.
    """
    errors: list[str] = []

    if not kind.is_note:
        errors.append(f"Tipo de nota inválido : {kind.value}")

    if target.kind != DocumentKind.INVOICE_CREDIT_FISCAL:
        errors.append(
            "Las notas de crédito y débito solo aplican a comprobantes de "
            f"crédito fiscal (03), no a {target.kind.value}"
        )

    if target.state != DocumentState.PROCESSED:
        errors.append(
            f"El documento relacionado debe estar procesado (estado actual : {target.state.value})"
        )

    if amount is None or amount <= 0:
        errors.append("El monto debe ser mayor a 0")
    elif kind == DocumentKind.CREDIT_NOTE and target.amount is not None and amount > target.amount:
        errors.append(
            f"El monto no puede ser mayor al total de la factura (${target.amount:.2f})"
        )

    return _verdict(errors)


def can_invalidate(
    target: FiscalDocument,
    existing_invalidations: Iterable[FiscalDocument] = (),
) -> Verdict:
    """Verifica que se pueda invalidar el documento objetivo.

    ES: El objetivo debe tener código de generación y sello de recepción.
        Como máximo una invalidación por documento: cualquier evento de
        invalidación vigente (no rechazado) que lo referencie lo impide.
    EN: Target needs both generation code and reception seal; at most one
        live (non-rejected) invalidation event per target.
    """
    errors: list[str] = []

    if target.kind.is_event:
        errors.append("Un evento no puede ser invalidado")

    if target.generation_code is None or target.reception_seal is None:
        errors.append(
            "Solo se pueden invalidar documentos con código de generación y sello de recepción"
        )

    if target.state == DocumentState.INVALIDATED:
        errors.append("El documento ya fue invalidado")

    for event in existing_invalidations:
        if (
            event.kind == DocumentKind.INVALIDATION_EVENT
            and event.related_document_id == target.id
            and event.state != DocumentState.REJECTED
        ):
            errors.append(
                f"El documento ya tiene un evento de invalidación ({event.id}, {event.state.value})"
            )
            break

    return _verdict(errors)


def can_emit_contingency(document: FiscalDocument) -> Verdict:
    """Guardia de idempotencia para el flujo normal de emisión/contingencia.

    ES: Un documento que ya tiene código de generación fue aceptado por el MH
        y no puede volver a enviarse por este camino.
    EN: A document with a generation code was already accepted.
    """
    if document.generation_code is not None:
        return Verdict(
            False,
            (f"El documento {document.id} ya fue aceptado por el MH ({document.generation_code})",),
        )
    return ALLOWED


def can_duplicate_for_contingency(document: FiscalDocument) -> Verdict:
    """Siempre permitido: el duplicado es una instancia nueva sin identificadores."""
    return ALLOWED


def can_transmit(document: FiscalDocument) -> Verdict:
    """Verifica que un documento pueda enviarse al MH en modo normal.

    ES: Solo documentos en `pending` sin código de generación. Un documento
        en contingencia se resuelve por reporte o duplicado, nunca
        reenviándolo directamente.
    EN: Only `pending` documents without generation code.
    """
    errors = list(can_emit_contingency(document).errors)
    if document.state != DocumentState.PENDING:
        errors.append(
            f"Solo se pueden transmitir documentos pendientes (estado actual : {document.state.value})"
        )
    return _verdict(errors)


def superseding_duplicate(
    document: FiscalDocument, duplicates: Iterable[FiscalDocument]
) -> FiscalDocument | None:
    """Devuelve el duplicado procesado que reemplaza al documento, si existe."""
    for duplicate in duplicates:
        if duplicate.duplicate_of_id == document.id and duplicate.state == DocumentState.PROCESSED:
            return duplicate
    return None


def is_contingency_pending(
    document: FiscalDocument, duplicates: Iterable[FiscalDocument] = ()
) -> bool:
    """Indica si un documento en contingencia espera todavía su resolución.

    ES: Queda resuelto cuando un evento de contingencia aceptado lo reporta
        o cuando un duplicado suyo fue procesado por el MH.
    EN: Resolved once reported by an accepted contingency event or
        superseded by a processed duplicate.
    """
    return (
        document.state == DocumentState.CONTINGENCY
        and document.reported_in_id is None
        and superseding_duplicate(document, duplicates) is None
    )


def can_report_contingency(
    documents: Iterable[FiscalDocument],
    window_start: datetime | None = None,
    window_end: datetime | None = None,
    now: datetime | None = None,
    duplicates: Iterable[FiscalDocument] = (),
) -> Verdict:
    """Verifica que los documentos puedan incluirse en un reporte de contingencia.

    ES: Al menos un documento; todos en estado `contingency`, sin código de
        generación, no reportados previamente y sin un duplicado ya
        procesado (el MH recibiría la misma venta dos veces). La ventana no
        puede terminar en el futuro.
    EN: At least one document, all in `contingency`, not yet accepted,
        reported or superseded by a processed duplicate; the window cannot
        end in the future.
    """
    errors: list[str] = []
    docs = list(documents)
    duplicates = list(duplicates)

    if not docs:
        errors.append("Debes agregar al menos un DTE para reportar")

    seen: set[str] = set()
    for doc in docs:
        if doc.id in seen:
            errors.append(f"El documento {doc.id} está repetido en el reporte")
            continue
        seen.add(doc.id)
        if doc.kind.is_event:
            errors.append(f"El documento {doc.id} es un evento y no se reporta en contingencia")
        if doc.state != DocumentState.CONTINGENCY:
            errors.append(
                f"El documento {doc.id} no está en contingencia (estado actual : {doc.state.value})"
            )
        errors.extend(can_emit_contingency(doc).errors)
        if doc.reported_in_id is not None:
            errors.append(
                f"El documento {doc.id} ya fue reportado en el evento {doc.reported_in_id}"
            )
        replacement = superseding_duplicate(doc, duplicates)
        if replacement is not None:
            errors.append(
                f"El documento {doc.id} ya fue reemplazado por el duplicado procesado {replacement.id}"
            )

    if window_start is not None and window_end is not None:
        if window_end < window_start:
            errors.append("El fin de la contingencia no puede ser anterior a su inicio")
        if now is not None and window_end > now:
            errors.append("El fin de la contingencia no puede estar en el futuro")

    return _verdict(errors)
