"""Orquestador del ciclo de vida de los documentos fiscales.

ES: Punto de entrada único de toda transición. Valida con el validador de
    reglas, construye el documento y su JSON, llama al cliente de
    transmisión y persiste el resultado de forma atómica. Garantiza como
    máximo una transmisión en curso por documento y nunca reintenta
    automáticamente: un documento en contingencia se resuelve solo por un
    reporte de contingencia o por un duplicado, decididos por un operador.
EN: Single entry point for every transition. Validates, builds, transmits
    and persists atomically. At most one in-flight transmission per
    document; no automatic retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from dte_sv.billing import BaseBillingSource
from dte_sv.errors import (
    AuthorityRejectedError,
    AuthorityUnavailableError,
    ConcurrencyConflictError,
    DTEValidationError,
    IntegrityViolationError,
)
from dte_sv.lifecycle.intents import (
    CreditNoteIntent,
    DebitNoteIntent,
    FSEIntent,
    InvoiceIntent,
)
from dte_sv.lifecycle.machine import apply_outcome, check_transition, transition_copy
from dte_sv.models.document import ContingencyWindow, FiscalDocument, NoteDetails
from dte_sv.models.enums import (
    Ambiente,
    ContingencyReason,
    DocumentKind,
    DocumentState,
    InvalidationType,
)
from dte_sv.models.party import Emitter, Identity
from dte_sv.models.payload import (
    build_payload,
    format_control_number,
    local_now,
    new_generation_code,
)
from dte_sv.notifications import BaseNotifier, TransitionNotice
from dte_sv.rules.validator import (
    can_create_note,
    can_duplicate_for_contingency,
    can_invalidate,
    can_report_contingency,
    can_transmit,
)
from dte_sv.store.base import BaseDocumentStore
from dte_sv.transmission.base import BaseTransmitter
from dte_sv.transmission.models import Accepted, Rejected, TransmissionMode, Unavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """Resultado de una transición con transmisión.

    ES: `Rejected` y `Unavailable` son resultados esperados, no excepciones:
        se devuelven aquí y la UI decide cómo mostrarlos.
        `raise_for_outcome()` los convierte en excepciones a pedido.
    EN: Rejected/Unavailable are returned, not raised;
        `raise_for_outcome()` converts them on demand.
    """

    document: FiscalDocument
    outcome: Accepted | Rejected | Unavailable
    previous_state: DocumentState = DocumentState.PENDING
    related: tuple[FiscalDocument, ...] = field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return isinstance(self.outcome, Accepted)

    @property
    def rejected(self) -> bool:
        return isinstance(self.outcome, Rejected)

    @property
    def unavailable(self) -> bool:
        return isinstance(self.outcome, Unavailable)

    def raise_for_outcome(self) -> FiscalDocument:
        """Devuelve el documento si fue aceptado; si no, lanza la excepción.

        Raises:
            AuthorityRejectedError: Si el MH rechazó el documento.
            AuthorityUnavailableError: Si el documento quedó en contingencia.
        """
        if isinstance(self.outcome, Rejected):
            msg = f"El MH rechazó el documento {self.document.id}"
            if self.outcome.observations:
                msg = f"{msg} : {'; '.join(self.outcome.observations)}"
            raise AuthorityRejectedError(
                msg,
                observations=list(self.outcome.observations),
                document_id=self.document.id,
            )
        if isinstance(self.outcome, Unavailable):
            msg = f"Documento {self.document.id} pendiente de contingencia"
            raise AuthorityUnavailableError(
                msg, reason=self.outcome.reason, document_id=self.document.id
            )
        return self.document


class LifecycleOrchestrator:
    """Orquestador del ciclo de vida.

    ES: Dueño exclusivo de las transiciones de estado. Cada transmisión se
        ejecuta en una tarea propia protegida por `asyncio.shield`: si quien
        llama deja de esperar, la transmisión y el registro de su resultado
        terminan igual, y la reserva del documento se libera siempre.
    EN: Sole owner of state transitions. Each transmission runs in its own
        shielded task; cancelling the caller never cancels the attempt and
        the claim is always released.

    Args:
        store: Almacén de documentos.
        transmitter: Cliente de transmisión al MH.
        emitter: Datos del contribuyente emisor.
        ambiente: Ambiente del MH ("00" pruebas, "01" producción).
        notifier: Servicio de notificaciones (opcional).
        billing: Fuente de ventas del marketplace (opcional).
        mark_invalidated_targets: Si es verdadero, una invalidación aceptada
            pasa también el documento objetivo a `invalidated`.
        clock: Reloj usado para las fechas de emisión.
    """

    def __init__(
        self,
        store: BaseDocumentStore,
        transmitter: BaseTransmitter,
        emitter: Emitter,
        *,
        ambiente: str = Ambiente.TEST,
        notifier: BaseNotifier | None = None,
        billing: BaseBillingSource | None = None,
        mark_invalidated_targets: bool = False,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.store = store
        self.transmitter = transmitter
        self.emitter = emitter
        self.ambiente = str(ambiente)
        self.notifier = notifier
        self.billing = billing
        self.mark_invalidated_targets = mark_invalidated_targets
        self.clock = clock
        self._background: set[asyncio.Task] = set()

    # --- Consulta ---

    async def get(self, document_id: str) -> FiscalDocument:
        return await self.store.get(document_id)

    # --- Creación ---

    async def create(
        self,
        intent: InvoiceIntent | FSEIntent | CreditNoteIntent | DebitNoteIntent,
    ) -> FiscalDocument:
        """Valida la intención y registra el documento en `pending`.

        Raises:
            DTEValidationError: Si alguna precondición no se cumple.
            IntegrityViolationError: Si el documento objetivo cambió de
                estado durante la operación.
        """
        if isinstance(intent, CreditNoteIntent | DebitNoteIntent):
            return await self._create_note(intent)

        if isinstance(intent, InvoiceIntent):
            document = await self._invoice_from_intent(intent)
        elif isinstance(intent, FSEIntent):
            document = _build(
                FiscalDocument.fse,
                intent.amount,
                intent.subject,
                description=intent.description,
                income_tax_withheld=intent.income_tax_withheld,
                sale_id=intent.sale_id,
                emitter=self.emitter.series,
            )
        else:
            msg = f"Intención desconocida : {type(intent).__name__}"
            raise DTEValidationError(msg)

        document = await self.store.add(document)
        self._committed(document, None)
        return document

    async def _invoice_from_intent(self, intent: InvoiceIntent) -> FiscalDocument:
        amount = intent.amount
        counterparty = intent.counterparty
        description = intent.description
        if intent.sale_id is not None and (amount is None or counterparty is None):
            if self.billing is None:
                msg = "No hay fuente de ventas configurada para leer la venta de origen"
                raise DTEValidationError(msg)
            sale = await self.billing.get_sale(intent.sale_id)
            amount = amount if amount is not None else sale.amount
            counterparty = counterparty or sale.counterparty
            description = description or sale.description
        return _build(
            FiscalDocument.invoice,
            intent.kind,
            amount,
            counterparty,
            description=description,
            sale_id=intent.sale_id,
            emitter=self.emitter.series,
        )

    async def _create_note(self, intent: CreditNoteIntent | DebitNoteIntent) -> FiscalDocument:
        kind = (
            DocumentKind.CREDIT_NOTE
            if isinstance(intent, CreditNoteIntent)
            else DocumentKind.DEBIT_NOTE
        )
        target = await self.store.get(intent.target_id)
        can_create_note(target, intent.amount, kind).raise_if_denied(
            "No se puede emitir la nota"
        )
        try:
            details = NoteDetails(
                reason=intent.reason,
                reason_text=intent.reason_text,
                remarks=intent.remarks,
                amount_includes_vat=intent.amount_includes_vat,
            )
        except ValueError as exc:
            raise DTEValidationError(str(exc), errors=[str(exc)]) from exc
        builder = (
            FiscalDocument.credit_note
            if kind == DocumentKind.CREDIT_NOTE
            else FiscalDocument.debit_note
        )
        document = _build(builder, target, intent.amount, details, emitter=self.emitter.series)

        # El objetivo debe seguir procesado en el momento de la escritura
        await self.store.save(
            document, require_states={target.id: [DocumentState.PROCESSED]}
        )
        self._committed(document, None)
        return await self.store.get(document.id)

    # --- Transmisión ---

    async def submit(
        self,
        intent: InvoiceIntent | FSEIntent | CreditNoteIntent | DebitNoteIntent,
    ) -> TransitionResult:
        """Crea el documento y lo transmite en modo normal."""
        document = await self.create(intent)
        return await self.transmit(document.id)

    async def transmit(self, document_id: str) -> TransitionResult:
        """Transmite un documento pendiente.

        ES: Reserva el documento (como máximo una transmisión en curso),
            vuelve a leerlo bajo la reserva y verifica que siga pendiente y
            sin código de generación. Un duplicado reserva también su
            original, que no puede haber sido reportado en contingencia.
        EN: Claims the document, re-reads it under the claim and checks it
            is still pending without generation code. A duplicate also
            claims its original, which must not have been reported.

        Raises:
            ConcurrencyConflictError: Si otra transmisión del documento está
                en curso.
            DTEValidationError: Si el documento no puede transmitirse.
            DocumentNotFoundError: Si el documento no existe.
        """
        await self._claim_all([document_id])
        held: list[str] = []
        try:
            document = await self.store.get(document_id)
            can_transmit(document).raise_if_denied("No se puede transmitir el documento")
            if document.duplicate_of_id is not None:
                held = await self._claim_all([document.duplicate_of_id])
                original = await self.store.get(document.duplicate_of_id)
                if original.reported_in_id is not None:
                    msg = (
                        f"El original {original.id} ya fue reportado en el evento "
                        f"{original.reported_in_id}"
                    )
                    raise DTEValidationError(
                        f"No se puede transmitir el documento : {msg}", errors=[msg]
                    )
        except BaseException:
            await self._release_all([document_id, *held])
            raise

        return await self._launch(document, held)

    async def _claim_all(self, document_ids: Sequence[str]) -> list[str]:
        """Reserva los documentos; si alguno ya está reservado no reserva ninguno.

        Raises:
            ConcurrencyConflictError: Si un documento ya está reservado.
        """
        claimed: list[str] = []
        try:
            for document_id in dict.fromkeys(document_ids):
                if not await self.store.try_claim(document_id):
                    msg = f"Ya hay una transmisión en curso para el documento {document_id}"
                    logger.warning(msg)
                    raise ConcurrencyConflictError(msg, document_id=document_id)
                claimed.append(document_id)
        except BaseException:
            await self._release_all(claimed)
            raise
        return claimed

    async def _release_all(self, document_ids: Sequence[str]) -> None:
        for document_id in document_ids:
            await self.store.release(document_id)

    async def _launch(
        self, document: FiscalDocument, held: Sequence[str] = ()
    ) -> TransitionResult:
        """Transmite un documento ya reservado en una tarea protegida.

        ES: `held` son otras reservas que se liberan junto con la del
            documento cuando termina la transmisión.
        EN: `held` are extra claims released together with the document's.
        """
        task = asyncio.create_task(self._transmit_claimed(document, held))
        self._track(task)
        return await asyncio.shield(task)

    async def _transmit_claimed(
        self, document: FiscalDocument, held: Sequence[str] = ()
    ) -> TransitionResult:
        try:
            prepared = await self._prepare(document)
            mode = (
                TransmissionMode.CONTINGENCY_REPORT
                if prepared.kind == DocumentKind.CONTINGENCY_EVENT
                else TransmissionMode.NORMAL
            )
            logger.info(
                "Transmitiendo %s (%s, modo %s, código %s)",
                prepared.id,
                prepared.kind.value,
                mode.value,
                prepared.candidate_code,
            )
            outcome = await self.transmitter.submit(prepared.payload, mode, kind=prepared.kind)
            return await self._commit(prepared, outcome)
        finally:
            await self._release_all([document.id, *held])

    async def _prepare(self, document: FiscalDocument) -> FiscalDocument:
        """Asigna número de control y código candidato y construye el JSON.

        ES: Un documento que ya fue construido (por ejemplo, si una
            transmisión anterior terminó con un error inesperado) conserva
            su JSON, su código candidato y su número de control.
        EN: A document already built keeps its payload, code and number.
        """
        if document.payload is not None and document.candidate_code is not None:
            return document

        control_number = document.control_number
        if control_number is None and not document.kind.is_event:
            sequence = await self.store.next_sequence(document.kind, document.emitter)
            control_number = format_control_number(document.kind, document.emitter, sequence)

        target = None
        if document.kind.is_note:
            target = await self.store.get(document.related_document_id)

        code = new_generation_code()
        issued_at = self.clock()
        try:
            payload = build_payload(
                document,
                self.emitter,
                ambiente=self.ambiente,
                generation_code=code,
                control_number=control_number,
                issued_at=issued_at,
                target=target,
            )
        except ValueError as exc:
            raise DTEValidationError(str(exc), errors=[str(exc)]) from exc

        prepared = transition_copy(
            document,
            control_number=control_number,
            candidate_code=code,
            payload=payload,
            ambiente=self.ambiente,
            issued_at=issued_at,
        )
        await self.store.save(prepared, require_states={document.id: [DocumentState.PENDING]})
        return prepared

    async def _commit(
        self,
        document: FiscalDocument,
        outcome: Accepted | Rejected | Unavailable,
    ) -> TransitionResult:
        """Persiste el resultado de la transmisión en una sola escritura."""
        updated = apply_outcome(document, outcome)
        batch: list[FiscalDocument] = [updated]
        require: dict[str, list[DocumentState]] = {document.id: [DocumentState.PENDING]}
        previous: dict[str, DocumentState] = {document.id: document.state}

        if isinstance(outcome, Accepted):
            if document.kind == DocumentKind.CONTINGENCY_EVENT:
                for reported_id in document.reported_document_ids:
                    reported = await self.store.get(reported_id)
                    previous[reported.id] = reported.state
                    batch.append(transition_copy(reported, reported_in_id=updated.id))
                    require[reported.id] = [DocumentState.CONTINGENCY]
            elif (
                document.kind == DocumentKind.INVALIDATION_EVENT
                and self.mark_invalidated_targets
            ):
                target = await self.store.get(document.related_document_id)
                check_transition(target, DocumentState.INVALIDATED)
                previous[target.id] = target.state
                batch.append(transition_copy(target, state=DocumentState.INVALIDATED))
                require[target.id] = [DocumentState.PROCESSED]

        try:
            await self.store.save(*batch, require_states=require)
        except IntegrityViolationError:
            logger.exception(
                "No se pudo registrar el resultado (%s) del documento %s",
                outcome.outcome,
                document.id,
            )
            raise

        if isinstance(outcome, Rejected):
            logger.warning(
                "El MH rechazó el documento %s : %s",
                document.id,
                "; ".join(outcome.observations) or outcome.message or "-",
            )
        elif isinstance(outcome, Unavailable):
            logger.warning(
                "MH no disponible, documento %s en contingencia : %s",
                document.id,
                outcome.reason,
            )
        for doc in batch:
            self._committed(doc, previous.get(doc.id))

        return TransitionResult(
            document=updated,
            outcome=outcome,
            previous_state=document.state,
            related=tuple(batch[1:]),
        )

    # --- Eventos ---

    async def invalidate(
        self,
        target_id: str,
        motive: str,
        responsible: Identity,
        requester: Identity,
        *,
        invalidation_type: InvalidationType = InvalidationType.NO_REPLACE,
        replacement_generation_code: str | None = None,
    ) -> TransitionResult:
        """Crea y transmite el evento de invalidación de un documento.

        ES: El documento objetivo no cambia de estado salvo con
            `mark_invalidated_targets`; el evento es el registro permanente
            de la anulación.
        EN: The target's state is left untouched unless
            `mark_invalidated_targets` is set.

        Raises:
            DTEValidationError: Si el documento no puede invalidarse.
            IntegrityViolationError: Si otra invalidación se registró en
                paralelo.
        """
        target = await self.store.get(target_id)
        existing = await self.store.find(
            kind=DocumentKind.INVALIDATION_EVENT, related_document_id=target_id
        )
        can_invalidate(target, existing).raise_if_denied("No se puede invalidar el documento")

        event = _build(
            FiscalDocument.invalidation_event,
            target,
            motive=motive,
            responsible=responsible,
            requester=requester,
            invalidation_type=invalidation_type,
            replacement_generation_code=replacement_generation_code,
        )
        await self.store.save(event, require_states={target.id: [DocumentState.PROCESSED]})
        self._committed(event, None)
        return await self.transmit(event.id)

    async def report_contingency(
        self,
        document_ids: Sequence[str],
        window: ContingencyWindow,
        reason: ContingencyReason,
        responsible: Identity,
        *,
        description: str | None = None,
    ) -> TransitionResult:
        """Crea y transmite un evento de contingencia.

        ES: Todos los documentos deben estar en contingencia. Si el MH acepta
            el evento, cada documento reportado queda cerrado por el reporte
            (`reported_in_id`) y no se reenvía individualmente.
        EN: On acceptance each reported document is closed by the report.

            Los documentos reportados quedan reservados hasta que termina la
            transmisión del evento: dos reportes simultáneos del mismo
            documento no llegan ambos al MH.
        EN: On acceptance each reported document is closed by the report.
            Reported documents stay claimed until the event's transmission
            ends.

        Raises:
            ConcurrencyConflictError: Si algún documento ya está reservado
                por otro reporte o transmisión.
            DTEValidationError: Si algún documento no puede reportarse.
        """
        held = await self._claim_all(document_ids)
        try:
            documents = [await self.store.get(document_id) for document_id in document_ids]
            duplicates = [
                duplicate
                for document_id in held
                for duplicate in await self.store.find(duplicate_of_id=document_id)
            ]
            can_report_contingency(
                documents, window.start, window.end, now=self.clock(), duplicates=duplicates
            ).raise_if_denied("No se puede reportar la contingencia")

            event = _build(
                FiscalDocument.contingency_event,
                documents,
                window=window,
                reason=reason,
                responsible=responsible,
                description=description,
                emitter=self.emitter.series,
            )
            event = await self.store.add(event)
            self._committed(event, None)
            await self._claim_all([event.id])
        except BaseException:
            await self._release_all(held)
            raise

        return await self._launch(event, held)

    async def duplicate(self, document_id: str) -> FiscalDocument:
        """Crea un duplicado `pending` con identidad nueva."""
        original = await self.store.get(document_id)
        can_duplicate_for_contingency(original).raise_if_denied()
        duplicate = await self.store.add(original.duplicate())
        logger.info("Documento %s duplicado como %s", original.id, duplicate.id)
        self._committed(duplicate, None)
        return duplicate

    # --- Tareas en segundo plano ---

    def _track(self, task: asyncio.Task) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _committed(self, document: FiscalDocument, previous: DocumentState | None) -> None:
        logger.info(
            "Documento %s (%s) : %s → %s",
            document.id,
            document.kind.value,
            previous.value if previous else "nuevo",
            document.state.value,
        )
        if self.notifier is None:
            return
        notice = TransitionNotice.for_document(document, previous)
        self._track(asyncio.create_task(self._notify(notice)))

    async def _notify(self, notice: TransitionNotice) -> None:
        try:
            await self.notifier.notify(notice)
        except Exception:
            logger.exception("No se pudo notificar la transición de %s", notice.document_id)

    async def join(self) -> None:
        """Espera las transmisiones y notificaciones pendientes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)


def _build(factory: Callable[..., FiscalDocument], *args: object, **kwargs: object) -> FiscalDocument:
    """Llama a un constructor por tipo y traduce sus errores a `DTEValidationError`."""
    try:
        return factory(*args, **kwargs)
    except ValueError as exc:
        raise DTEValidationError(str(exc), errors=[str(exc)]) from exc
