"""Almacén de documentos en memoria para pruebas y desarrollo.

ES: Guarda copias profundas de los documentos en un diccionario y verifica
    los índices únicos en cada escritura. Un `asyncio.Lock` serializa las
    escrituras y las reservas de transmisión.
EN: Keeps deep copies in a dict and checks the unique indexes on every
    write; an `asyncio.Lock` serializes writes and claims.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

from dte_sv.errors import DocumentNotFoundError, IntegrityViolationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState
from dte_sv.store.base import BaseDocumentStore, check_unique_indexes


class MemoryDocumentStore(BaseDocumentStore):
    """Almacén en memoria."""

    def __init__(self) -> None:
        self._documents: dict[str, FiscalDocument] = {}
        self._sequences: dict[tuple[str, str], int] = {}
        self._in_flight: set[str] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._documents)

    def _stored(self, document_id: str) -> FiscalDocument:
        stored = self._documents.get(document_id)
        if stored is None:
            msg = f"Documento no encontrado : {document_id}"
            raise DocumentNotFoundError(msg)
        return stored

    async def get(self, document_id: str) -> FiscalDocument:
        return self._stored(document_id).model_copy(deep=True)

    async def add(self, document: FiscalDocument) -> FiscalDocument:
        async with self._lock:
            if document.id in self._documents:
                msg = f"El documento {document.id} ya existe"
                raise IntegrityViolationError(msg)
            check_unique_indexes([document], self._documents.values())
            self._documents[document.id] = document.model_copy(deep=True)
        return document.model_copy(deep=True)

    async def save(
        self,
        *documents: FiscalDocument,
        require_states: Mapping[str, Iterable[DocumentState]] | None = None,
    ) -> None:
        async with self._lock:
            for document_id, states in (require_states or {}).items():
                current = self._stored(document_id)
                allowed = set(states)
                if current.state not in allowed:
                    msg = (
                        f"El documento {document_id} cambió de estado "
                        f"({current.state.value}) durante la operación"
                    )
                    raise IntegrityViolationError(msg)

            replaced = {doc.id for doc in documents}
            if len(replaced) != len(documents):
                msg = "Un mismo documento aparece dos veces en la escritura"
                raise IntegrityViolationError(msg)
            untouched = [d for i, d in self._documents.items() if i not in replaced]
            check_unique_indexes(documents, untouched)

            for doc in documents:
                self._documents[doc.id] = doc.model_copy(deep=True)

    async def find(
        self,
        *,
        kind: DocumentKind | None = None,
        state: DocumentState | None = None,
        related_document_id: str | None = None,
        duplicate_of_id: str | None = None,
    ) -> list[FiscalDocument]:
        found = [
            doc
            for doc in self._documents.values()
            if (kind is None or doc.kind == kind)
            and (state is None or doc.state == state)
            and (related_document_id is None or doc.related_document_id == related_document_id)
            and (duplicate_of_id is None or doc.duplicate_of_id == duplicate_of_id)
        ]
        found.sort(key=lambda d: d.created_at)
        return [doc.model_copy(deep=True) for doc in found]

    async def find_by_generation_code(self, generation_code: str) -> FiscalDocument | None:
        for doc in self._documents.values():
            if doc.generation_code == generation_code:
                return doc.model_copy(deep=True)
        return None

    async def next_sequence(self, kind: DocumentKind, emitter: str) -> int:
        async with self._lock:
            key = (kind.value, emitter)
            self._sequences[key] = self._sequences.get(key, 0) + 1
            return self._sequences[key]

    async def try_claim(self, document_id: str) -> bool:
        async with self._lock:
            self._stored(document_id)
            if document_id in self._in_flight:
                return False
            self._in_flight.add(document_id)
            return True

    async def release(self, document_id: str) -> None:
        async with self._lock:
            self._in_flight.discard(document_id)

    async def is_claimed(self, document_id: str) -> bool:
        return document_id in self._in_flight
