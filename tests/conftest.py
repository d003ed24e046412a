"""Fixtures compartidas: emisor, contrapartes, responsables y documentos base."""

from datetime import datetime
from decimal import Decimal

import pytest

from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState, IdentityDocumentType
from dte_sv.models.party import Address, Counterparty, Emitter, Identity
from dte_sv.models.payload import SV_TZ


@pytest.fixture
def emitter() -> Emitter:
    """Emisor de prueba (la plataforma)."""
    return Emitter(
        nit="06140101001011",
        nrc="1234567",
        name="Servicios Marketplace S.A. de C.V.",
        activity_code="62010",
        activity_description="Programación informática",
        address=Address(
            department="06",
            municipality="14",
            complement="Colonia Escalón, Paseo General Escalón 3700",
        ),
        phone="22501000",
        email="facturacion@marketplace.sv",
    )


@pytest.fixture
def customer() -> Counterparty:
    """Contribuyente inscrito (receptor de crédito fiscal)."""
    return Counterparty(
        name="Distribuidora El Roble S.A. de C.V.",
        document_type=IdentityDocumentType.NIT,
        document_number="06142302951024",
        nrc="254781",
        activity_code="46900",
        activity_description="Venta al por mayor",
        address=Address(department="05", municipality="11", complement="Santa Tecla, calle Daniel Hernández"),
        email="compras@elroble.sv",
    )


@pytest.fixture
def consumer() -> Counterparty:
    """Consumidor final."""
    return Counterparty(
        name="María Fernanda López",
        document_type=IdentityDocumentType.DUI,
        document_number="012345678",
    )


@pytest.fixture
def excluded_subject() -> Counterparty:
    """Sujeto excluido (proveedor no inscrito)."""
    return Counterparty(
        name="José Antonio Martínez",
        document_type=IdentityDocumentType.DUI,
        document_number="045678912",
        address=Address(department="06", municipality="20", complement="Soyapango, colonia Los Ángeles"),
    )


@pytest.fixture
def responsible() -> Identity:
    return Identity(
        name="Ana Guadalupe Rivas",
        document_type=IdentityDocumentType.DUI,
        document_number="031234567",
    )


@pytest.fixture
def requester() -> Identity:
    return Identity(
        name="Carlos Ernesto Pineda",
        document_type=IdentityDocumentType.NIT,
        document_number="06140101001011",
    )


@pytest.fixture
def processed_ccf(customer: Counterparty) -> FiscalDocument:
    """Crédito fiscal INV-1 procesado por el MH, por 100.00."""
    return FiscalDocument(
        id="inv1",
        kind=DocumentKind.INVOICE_CREDIT_FISCAL,
        state=DocumentState.PROCESSED,
        amount=Decimal("100.00"),
        counterparty=customer,
        generation_code="5F3B2A10-1C2D-4E5F-8A9B-0C1D2E3F4A5B",
        reception_seal="2026A1B2C3D4E5F6A7B8C9D0E1F2A3B4C5D6E7F8",
        control_number="DTE-03-M001P001-000000000000001",
        ambiente="00",
        candidate_code="5F3B2A10-1C2D-4E5F-8A9B-0C1D2E3F4A5B",
        issued_at=datetime(2026, 9, 15, 10, 30, tzinfo=SV_TZ),
    )
