"""Interfaz abstracta del almacén de documentos fiscales.

ES: Un registro durable por documento, indexado por `id`, con un índice
    único sobre `generation_code` y un índice sobre
    `(kind, related_document_id)` que garantiza como máximo una
    invalidación vigente por documento. Las escrituras de varios documentos
    son atómicas. El almacén entrega siempre copias: nadie fuera del
    orquestador modifica un documento almacenado.
EN: One durable record per document, unique `generation_code` index and a
    `(kind, related_document_id)` index. Multi-document writes are atomic;
    the store always returns copies.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Iterable, Mapping

from dte_sv.errors import IntegrityViolationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState

# Una invalidación rechazada no cuenta; una en contingencia solo se reemplaza
# por su duplicado, que ocupa su lugar en el índice.
LIVE_INVALIDATION_STATES: frozenset[DocumentState] = frozenset(
    {DocumentState.PENDING, DocumentState.PROCESSED}
)


class BaseDocumentStore(metaclass=ABCMeta):
    """Clase base abstracta para los almacenes de documentos."""

    @abstractmethod
    async def get(self, document_id: str) -> FiscalDocument:
        """Devuelve una copia del documento.

        Raises:
            DocumentNotFoundError: Si el documento no existe.
        """
        ...

    @abstractmethod
    async def add(self, document: FiscalDocument) -> FiscalDocument:
        """Inserta un documento nuevo.

        Raises:
            IntegrityViolationError: Si el `id` ya existe o si se viola un
                índice único.
        """
        ...

    @abstractmethod
    async def save(
        self,
        *documents: FiscalDocument,
        require_states: Mapping[str, Iterable[DocumentState]] | None = None,
    ) -> None:
        """Escribe uno o más documentos en una sola operación atómica.

        ES: Inserta o reemplaza cada documento. `require_states` exige que
            ciertos documentos almacenados (por ejemplo el objetivo de una
            nota) sigan en alguno de los estados indicados en el momento
            de la escritura; si no, nada se escribe.
        EN: Upserts every document atomically. `require_states` guards
            against stale snapshots of related documents.

        Raises:
            IntegrityViolationError: Si se viola un índice único o un
                documento requerido cambió de estado.
        """
        ...

    @abstractmethod
    async def find(
        self,
        *,
        kind: DocumentKind | None = None,
        state: DocumentState | None = None,
        related_document_id: str | None = None,
        duplicate_of_id: str | None = None,
    ) -> list[FiscalDocument]:
        """Busca documentos, ordenados del más antiguo al más reciente."""
        ...

    @abstractmethod
    async def find_by_generation_code(self, generation_code: str) -> FiscalDocument | None:
        ...

    @abstractmethod
    async def next_sequence(self, kind: DocumentKind, emitter: str) -> int:
        """Reserva el siguiente correlativo de la serie (tipo + emisor)."""
        ...

    @abstractmethod
    async def try_claim(self, document_id: str) -> bool:
        """Marca el documento como en transmisión (comparar e intercambiar).

        Returns:
            `False` si otra transmisión del mismo documento está en curso.

        Raises:
            DocumentNotFoundError: Si el documento no existe.
        """
        ...

    @abstractmethod
    async def release(self, document_id: str) -> None:
        """Libera la marca de transmisión en curso."""
        ...

    @abstractmethod
    async def is_claimed(self, document_id: str) -> bool:
        ...


def check_unique_indexes(
    incoming: Iterable[FiscalDocument],
    existing: Iterable[FiscalDocument],
) -> None:
    """Verifica los índices únicos sobre el estado resultante de una escritura.

    ES: `existing` son los documentos almacenados que no se reemplazan en
        esta escritura. Se usa por los almacenes que no delegan la
        verificación a una base de datos.
    EN: Checks unique indexes over the post-write state.

    Raises:
        IntegrityViolationError: Si dos documentos comparten código de
            generación o si un documento tiene dos invalidaciones vigentes.
    """
    codes: dict[str, str] = {}
    invalidations: dict[str, str] = {}
    for doc in [*existing, *incoming]:
        if doc.generation_code is not None:
            other = codes.setdefault(doc.generation_code, doc.id)
            if other != doc.id:
                msg = (
                    f"Código de generación duplicado {doc.generation_code} "
                    f"({other}, {doc.id})"
                )
                raise IntegrityViolationError(msg)
        if (
            doc.kind == DocumentKind.INVALIDATION_EVENT
            and doc.related_document_id is not None
            and doc.state in LIVE_INVALIDATION_STATES
        ):
            other = invalidations.setdefault(doc.related_document_id, doc.id)
            if other != doc.id:
                msg = (
                    f"El documento {doc.related_document_id} ya tiene una "
                    f"invalidación vigente ({other})"
                )
                raise IntegrityViolationError(msg)
