"""Almacén de documentos sobre el ORM de Django.

ES: `DocumentRepository` implementa las operaciones de forma síncrona con
    `transaction.atomic`; las restricciones de la base de datos garantizan
    los índices únicos. `DjangoDocumentStore` expone el repositorio al
    orquestador asíncrono mediante `sync_to_async`.
EN: `DocumentRepository` is the synchronous ORM implementation;
    `DjangoDocumentStore` exposes it to async code through `sync_to_async`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from asgiref.sync import sync_to_async
from django.db import IntegrityError, transaction

from dte_sv.contrib.django.models import ControlNumberSequence, FiscalDocumentRecord
from dte_sv.errors import DocumentNotFoundError, IntegrityViolationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState
from dte_sv.store.base import BaseDocumentStore

logger = logging.getLogger(__name__)


class DocumentRepository:
    """Operaciones síncronas sobre `FiscalDocumentRecord`."""

    def get(self, document_id: str) -> FiscalDocument:
        try:
            return FiscalDocumentRecord.objects.get(pk=document_id).to_document()
        except FiscalDocumentRecord.DoesNotExist as exc:
            msg = f"Documento no encontrado : {document_id}"
            raise DocumentNotFoundError(msg) from exc

    def add(self, document: FiscalDocument) -> FiscalDocument:
        if FiscalDocumentRecord.objects.filter(pk=document.id).exists():
            msg = f"El documento {document.id} ya existe"
            raise IntegrityViolationError(msg)
        try:
            with transaction.atomic():
                FiscalDocumentRecord.from_document(document).save(force_insert=True)
        except IntegrityError as exc:
            msg = f"Escritura rechazada para {document.id} : {exc}"
            raise IntegrityViolationError(msg) from exc
        return document.model_copy(deep=True)

    def save(
        self,
        *documents: FiscalDocument,
        require_states: Mapping[str, Iterable[DocumentState]] | None = None,
    ) -> None:
        try:
            with transaction.atomic():
                self._check_required(require_states or {})
                for document in documents:
                    record = (
                        FiscalDocumentRecord.objects.select_for_update()
                        .filter(pk=document.id)
                        .first()
                    )
                    if record is None:
                        FiscalDocumentRecord.from_document(document).save(force_insert=True)
                    else:
                        record.apply(document)
                        record.save()
        except IntegrityError as exc:
            ids = ", ".join(doc.id for doc in documents)
            msg = f"Escritura rechazada para {ids} : {exc}"
            raise IntegrityViolationError(msg) from exc

    def _check_required(self, require_states: Mapping[str, Iterable[DocumentState]]) -> None:
        for document_id, states in require_states.items():
            record = (
                FiscalDocumentRecord.objects.select_for_update()
                .filter(pk=document_id)
                .only("state")
                .first()
            )
            if record is None:
                msg = f"Documento no encontrado : {document_id}"
                raise DocumentNotFoundError(msg)
            allowed = {str(state) for state in states}
            if record.state not in allowed:
                msg = (
                    f"El documento {document_id} cambió de estado "
                    f"({record.state}) durante la operación"
                )
                raise IntegrityViolationError(msg)

    def find(
        self,
        *,
        kind: DocumentKind | None = None,
        state: DocumentState | None = None,
        related_document_id: str | None = None,
        duplicate_of_id: str | None = None,
    ) -> list[FiscalDocument]:
        queryset = FiscalDocumentRecord.objects.all()
        if kind is not None:
            queryset = queryset.filter(kind=kind.value)
        if state is not None:
            queryset = queryset.filter(state=state.value)
        if related_document_id is not None:
            queryset = queryset.filter(related_document_id=related_document_id)
        if duplicate_of_id is not None:
            queryset = queryset.filter(duplicate_of_id=duplicate_of_id)
        return [record.to_document() for record in queryset.order_by("created_at", "id")]

    def find_by_generation_code(self, generation_code: str) -> FiscalDocument | None:
        record = FiscalDocumentRecord.objects.filter(generation_code=generation_code).first()
        return record.to_document() if record else None

    def next_sequence(self, kind: DocumentKind, emitter: str) -> int:
        return ControlNumberSequence.next_value(kind, emitter)

    def try_claim(self, document_id: str) -> bool:
        updated = FiscalDocumentRecord.objects.filter(
            pk=document_id, in_flight=False
        ).update(in_flight=True)
        if updated:
            return True
        if not FiscalDocumentRecord.objects.filter(pk=document_id).exists():
            msg = f"Documento no encontrado : {document_id}"
            raise DocumentNotFoundError(msg)
        return False

    def release(self, document_id: str) -> None:
        FiscalDocumentRecord.objects.filter(pk=document_id).update(in_flight=False)

    def is_claimed(self, document_id: str) -> bool:
        return FiscalDocumentRecord.objects.filter(pk=document_id, in_flight=True).exists()


class DjangoDocumentStore(BaseDocumentStore):
    """Almacén asíncrono respaldado por el ORM de Django."""

    def __init__(self, repository: DocumentRepository | None = None) -> None:
        self.repository = repository or DocumentRepository()

    async def get(self, document_id: str) -> FiscalDocument:
        return await sync_to_async(self.repository.get)(document_id)

    async def add(self, document: FiscalDocument) -> FiscalDocument:
        return await sync_to_async(self.repository.add)(document)

    async def save(
        self,
        *documents: FiscalDocument,
        require_states: Mapping[str, Iterable[DocumentState]] | None = None,
    ) -> None:
        await sync_to_async(self.repository.save)(*documents, require_states=require_states)

    async def find(
        self,
        *,
        kind: DocumentKind | None = None,
        state: DocumentState | None = None,
        related_document_id: str | None = None,
        duplicate_of_id: str | None = None,
    ) -> list[FiscalDocument]:
        return await sync_to_async(self.repository.find)(
            kind=kind,
            state=state,
            related_document_id=related_document_id,
            duplicate_of_id=duplicate_of_id,
        )

    async def find_by_generation_code(self, generation_code: str) -> FiscalDocument | None:
        return await sync_to_async(self.repository.find_by_generation_code)(generation_code)

    async def next_sequence(self, kind: DocumentKind, emitter: str) -> int:
        return await sync_to_async(self.repository.next_sequence)(kind, emitter)

    async def try_claim(self, document_id: str) -> bool:
        return await sync_to_async(self.repository.try_claim)(document_id)

    async def release(self, document_id: str) -> None:
        await sync_to_async(self.repository.release)(document_id)

    async def is_claimed(self, document_id: str) -> bool:
        return await sync_to_async(self.repository.is_claimed)(document_id)
