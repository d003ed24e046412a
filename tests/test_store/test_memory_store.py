"""Tests del almacén de documentos en memoria."""

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from dte_sv.errors import DocumentNotFoundError, IntegrityViolationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState
from dte_sv.store.memory import MemoryDocumentStore


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def invoice(consumer) -> FiscalDocument:
    return FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)


def _invalidation(target, responsible, requester) -> FiscalDocument:
    return FiscalDocument.invalidation_event(
        target, motive="Error en el monto", responsible=responsible, requester=requester
    )


class TestReadWrite:
    """Tests de lectura y escritura."""

    async def test_add_and_get(self, store: MemoryDocumentStore, invoice: FiscalDocument) -> None:
        await store.add(invoice)
        stored = await store.get(invoice.id)
        assert stored == invoice
        assert len(store) == 1

    async def test_get_missing(self, store: MemoryDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError, match="no encontrado"):
            await store.get("nope")

    async def test_add_twice(self, store: MemoryDocumentStore, invoice: FiscalDocument) -> None:
        await store.add(invoice)
        with pytest.raises(IntegrityViolationError, match="ya existe"):
            await store.add(invoice)

    async def test_returns_copies(self, store: MemoryDocumentStore, invoice: FiscalDocument) -> None:
        await store.add(invoice)
        copy = await store.get(invoice.id)
        copy.observations.append("modificado fuera del almacén")
        assert (await store.get(invoice.id)).observations == []

    async def test_caller_mutation_does_not_leak(
        self, store: MemoryDocumentStore, invoice: FiscalDocument
    ) -> None:
        await store.add(invoice)
        invoice.observations.append("después de guardar")
        assert (await store.get(invoice.id)).observations == []

    async def test_save_replaces(self, store: MemoryDocumentStore, invoice: FiscalDocument) -> None:
        await store.add(invoice)
        await store.save(invoice.model_copy(update={"state": DocumentState.CONTINGENCY}))
        assert (await store.get(invoice.id)).state == DocumentState.CONTINGENCY

    async def test_save_same_document_twice_in_batch(
        self, store: MemoryDocumentStore, invoice: FiscalDocument
    ) -> None:
        with pytest.raises(IntegrityViolationError, match="dos veces"):
            await store.save(invoice, invoice)
        assert len(store) == 0


class TestUniqueIndexes:
    """Tests de los índices únicos."""

    async def test_generation_code_unique(
        self, store: MemoryDocumentStore, processed_ccf: FiscalDocument
    ) -> None:
        await store.add(processed_ccf)
        clone = processed_ccf.model_copy(update={"id": "inv2"})
        with pytest.raises(IntegrityViolationError, match="duplicado"):
            await store.add(clone)

    async def test_find_by_generation_code(
        self, store: MemoryDocumentStore, processed_ccf: FiscalDocument
    ) -> None:
        await store.add(processed_ccf)
        found = await store.find_by_generation_code(processed_ccf.generation_code)
        assert found.id == processed_ccf.id
        assert await store.find_by_generation_code("OTRO") is None

    async def test_one_live_invalidation(
        self, store: MemoryDocumentStore, processed_ccf, responsible, requester
    ) -> None:
        await store.add(processed_ccf)
        await store.add(_invalidation(processed_ccf, responsible, requester))
        with pytest.raises(IntegrityViolationError, match="invalidación vigente"):
            await store.add(_invalidation(processed_ccf, responsible, requester))

    async def test_rejected_invalidation_frees_the_slot(
        self, store: MemoryDocumentStore, processed_ccf, responsible, requester
    ) -> None:
        await store.add(processed_ccf)
        first = _invalidation(processed_ccf, responsible, requester)
        await store.add(first)
        await store.save(first.model_copy(update={"state": DocumentState.REJECTED}))
        await store.add(_invalidation(processed_ccf, responsible, requester))
        events = await store.find(kind=DocumentKind.INVALIDATION_EVENT)
        assert len(events) == 2

    async def test_failed_batch_writes_nothing(
        self, store: MemoryDocumentStore, processed_ccf, invoice
    ) -> None:
        await store.add(processed_ccf)
        clone = processed_ccf.model_copy(update={"id": "inv2"})
        with pytest.raises(IntegrityViolationError):
            await store.save(invoice, clone)
        assert len(store) == 1


class TestRequireStates:
    """Tests de la verificación de estado de los documentos relacionados."""

    async def test_required_state_holds(
        self, store: MemoryDocumentStore, processed_ccf, invoice
    ) -> None:
        await store.add(processed_ccf)
        await store.save(invoice, require_states={processed_ccf.id: [DocumentState.PROCESSED]})
        assert len(store) == 2

    async def test_stale_state_rejected(
        self, store: MemoryDocumentStore, processed_ccf, invoice
    ) -> None:
        await store.add(processed_ccf.model_copy(update={"state": DocumentState.INVALIDATED}))
        with pytest.raises(IntegrityViolationError, match="cambió de estado"):
            await store.save(invoice, require_states={processed_ccf.id: [DocumentState.PROCESSED]})
        with pytest.raises(DocumentNotFoundError):
            await store.get(invoice.id)

    async def test_required_document_missing(self, store: MemoryDocumentStore, invoice) -> None:
        with pytest.raises(DocumentNotFoundError):
            await store.save(invoice, require_states={"nope": [DocumentState.PROCESSED]})


class TestFind:
    """Tests de búsqueda."""

    async def test_filters(self, store: MemoryDocumentStore, processed_ccf, invoice) -> None:
        await store.add(processed_ccf)
        await store.add(invoice)
        dup = invoice.duplicate()
        await store.add(dup)

        assert [d.id for d in await store.find(kind=DocumentKind.INVOICE_CREDIT_FISCAL)] == ["inv1"]
        assert len(await store.find(state=DocumentState.PENDING)) == 2
        assert [d.id for d in await store.find(duplicate_of_id=invoice.id)] == [dup.id]
        assert await store.find(related_document_id="inv1") == []

    async def test_ordered_by_creation(self, store: MemoryDocumentStore, consumer) -> None:
        base = datetime(2026, 9, 15, 12, 0, tzinfo=UTC)
        docs = [
            FiscalDocument.invoice(
                DocumentKind.INVOICE_CONSUMER, Decimal(n), consumer
            ).model_copy(update={"created_at": base + timedelta(minutes=int(n))})
            for n in ("1", "2", "3")
        ]
        for doc in reversed(docs):
            await store.add(doc)
        found = await store.find(kind=DocumentKind.INVOICE_CONSUMER)
        assert [d.amount for d in found] == [Decimal("1.00"), Decimal("2.00"), Decimal("3.00")]


class TestSequences:
    """Tests de los correlativos de número de control."""

    async def test_sequence_per_kind_and_emitter(self, store: MemoryDocumentStore) -> None:
        assert await store.next_sequence(DocumentKind.INVOICE_CONSUMER, "E1") == 1
        assert await store.next_sequence(DocumentKind.INVOICE_CONSUMER, "E1") == 2
        assert await store.next_sequence(DocumentKind.FSE, "E1") == 1
        assert await store.next_sequence(DocumentKind.INVOICE_CONSUMER, "E2") == 1

    async def test_concurrent_reservations_are_distinct(self, store: MemoryDocumentStore) -> None:
        values = await asyncio.gather(
            *(store.next_sequence(DocumentKind.FSE, "E1") for _ in range(20))
        )
        assert sorted(values) == list(range(1, 21))


class TestClaims:
    """Tests de la reserva de transmisión."""

    async def test_claim_once(self, store: MemoryDocumentStore, invoice) -> None:
        await store.add(invoice)
        assert await store.try_claim(invoice.id) is True
        assert await store.try_claim(invoice.id) is False
        assert await store.is_claimed(invoice.id)

    async def test_release(self, store: MemoryDocumentStore, invoice) -> None:
        await store.add(invoice)
        await store.try_claim(invoice.id)
        await store.release(invoice.id)
        assert not await store.is_claimed(invoice.id)
        assert await store.try_claim(invoice.id) is True

    async def test_claim_missing(self, store: MemoryDocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError):
            await store.try_claim("nope")
