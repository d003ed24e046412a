"""Fixtures compartidas para las pruebas del orquestador."""

from datetime import timedelta
from decimal import Decimal

import pytest

from dte_sv.billing import MemoryBillingSource, SaleRecord
from dte_sv.lifecycle.orchestrator import LifecycleOrchestrator
from dte_sv.models.document import ContingencyWindow
from dte_sv.models.party import Counterparty, Emitter
from dte_sv.models.payload import local_now
from dte_sv.notifications import MemoryNotifier
from dte_sv.store.memory import MemoryDocumentStore
from dte_sv.transmission.connectors.memory import MemoryTransmitter


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def transmitter() -> MemoryTransmitter:
    return MemoryTransmitter()


@pytest.fixture
def notifier() -> MemoryNotifier:
    return MemoryNotifier()


@pytest.fixture
def billing(customer: Counterparty) -> MemoryBillingSource:
    return MemoryBillingSource(
        [
            SaleRecord(
                sale_id="SALE-100",
                amount=Decimal("339.00"),
                counterparty=customer,
                description="Instalación eléctrica residencial",
            )
        ]
    )


@pytest.fixture
def orchestrator(
    store: MemoryDocumentStore,
    transmitter: MemoryTransmitter,
    emitter: Emitter,
    notifier: MemoryNotifier,
    billing: MemoryBillingSource,
) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(
        store, transmitter, emitter, notifier=notifier, billing=billing
    )


@pytest.fixture
def past_window() -> ContingencyWindow:
    """Ventana de falla de dos horas que terminó hace una hora."""
    end = local_now() - timedelta(hours=1)
    return ContingencyWindow(start=end - timedelta(hours=2), end=end)
