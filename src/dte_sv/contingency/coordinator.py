"""Coordinador de contingencia.

ES: Agrupa los documentos que quedaron en contingencia y permite al
    operador (a) reportarlos al MH en un evento de contingencia con una
    ventana de falla y un motivo del catálogo, o (b) crear un duplicado
    `pending` con identidad nueva para reenviarlo individualmente. Toda
    escritura pasa por el orquestador.
EN: Batches contingency documents; the operator either reports them in a
    contingency event or duplicates them for resubmission. All writes go
    through the orchestrator.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dte_sv.errors import DTEValidationError
from dte_sv.lifecycle.orchestrator import LifecycleOrchestrator, TransitionResult
from dte_sv.models.document import ContingencyWindow, FiscalDocument
from dte_sv.models.enums import ContingencyReason, DocumentKind, DocumentState
from dte_sv.models.party import Identity
from dte_sv.rules.validator import is_contingency_pending

logger = logging.getLogger(__name__)


def parse_reported_dtes(text: str) -> list[tuple[str, DocumentKind]]:
    """Lee la lista de DTE ingresada por el operador, una línea `CODIGO|TIPO`.

    ES: Las líneas vacías o incompletas se ignoran. El tipo es el código
        del MH (01, 03, 05, 06, 14).
    EN: Parses `CODE|KIND` lines; blank or incomplete lines are skipped.

    Raises:
        DTEValidationError: Si un tipo de documento es desconocido.
    """
    entries: list[tuple[str, DocumentKind]] = []
    for raw in text.splitlines():
        code, _, kind = (part.strip() for part in raw.partition("|"))
        if not code or not kind:
            continue
        try:
            parsed = DocumentKind(kind)
        except ValueError as exc:
            msg = f"Tipo de DTE desconocido en la línea '{raw.strip()}'"
            raise DTEValidationError(msg, errors=[msg]) from exc
        if parsed.is_event:
            msg = f"Un evento no se reporta en contingencia : '{raw.strip()}'"
            raise DTEValidationError(msg, errors=[msg])
        entries.append((code, parsed))
    return entries


class ContingencyCoordinator:
    """Coordinador de los documentos en contingencia."""

    def __init__(self, orchestrator: LifecycleOrchestrator) -> None:
        self.orchestrator = orchestrator
        self.store = orchestrator.store

    async def list_pending_contingency(
        self, kind: DocumentKind | None = None
    ) -> list[FiscalDocument]:
        """Documentos en contingencia aún no resueltos, del más antiguo al más reciente.

        ES: Se excluyen los ya cerrados por un reporte aceptado y los
            reemplazados por un duplicado procesado.
        EN: Excludes documents closed by a report or superseded by a
            processed duplicate.
        """
        candidates = await self.store.find(kind=kind, state=DocumentState.CONTINGENCY)
        pending = []
        for doc in candidates:
            duplicates = await self.store.find(duplicate_of_id=doc.id)
            if is_contingency_pending(doc, duplicates):
                pending.append(doc)
        return pending

    async def create_contingency_report(
        self,
        document_ids: Sequence[str],
        window: ContingencyWindow,
        reason: ContingencyReason,
        responsible: Identity,
        *,
        description: str | None = None,
    ) -> TransitionResult:
        """Reporta al MH una ventana de contingencia que cubre los documentos."""
        logger.info(
            "Reporte de contingencia (%s) para %d documento(s)",
            reason.label,
            len(document_ids),
        )
        return await self.orchestrator.report_contingency(
            document_ids, window, reason, responsible, description=description
        )

    async def resolve_reported_codes(self, text: str) -> list[str]:
        """Traduce las líneas `CODIGO|TIPO` a identificadores de documento.

        ES: El código puede ser el código de generación enviado en el DTE
            (código candidato) o el identificador interno del documento.
        EN: The code may be the candidate generation code or the document id.

        Raises:
            DTEValidationError: Si una línea no corresponde a ningún documento
                en contingencia del tipo indicado.
        """
        pending = await self.list_pending_contingency()
        by_code = {doc.candidate_code: doc for doc in pending if doc.candidate_code}
        by_id = {doc.id: doc for doc in pending}
        ids: list[str] = []
        errors: list[str] = []
        for code, kind in parse_reported_dtes(text):
            doc = by_code.get(code.upper()) or by_code.get(code) or by_id.get(code)
            if doc is None or doc.kind != kind:
                errors.append(f"No hay un DTE {kind.value} en contingencia con código {code}")
                continue
            ids.append(doc.id)
        if errors:
            msg = "; ".join(errors)
            raise DTEValidationError(msg, errors=errors)
        return ids

    async def duplicate_for_resubmission(
        self, document_id: str, *, transmit: bool = False
    ) -> FiscalDocument | TransitionResult:
        """Crea un duplicado `pending` del documento para reenviarlo.

        ES: El duplicado tiene identidad nueva, el mismo contenido comercial
            y el mismo `related_document_id`; no hereda identificadores del
            MH. Con `transmit=True` se transmite de inmediato y se devuelve
            el resultado de la transición.
        EN: With `transmit=True` the duplicate is transmitted immediately.
        """
        duplicate = await self.orchestrator.duplicate(document_id)
        if transmit:
            return await self.orchestrator.transmit(duplicate.id)
        return duplicate
