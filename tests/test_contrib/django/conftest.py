"""Configuración pytest para las pruebas Django.

ES: Configura Django con SQLite en memoria para las pruebas.
EN: Configures Django with in-memory SQLite for tests.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import django
from django.conf import settings


def pytest_configure() -> None:
    """Configura Django para las pruebas."""
    if not settings.configured:
        settings.configure(
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                },
            },
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "dte_sv.contrib.django",
            ],
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
        )
        django.setup()


import pytest  # noqa: E402

from dte_sv.models.document import FiscalDocument  # noqa: E402
from dte_sv.models.enums import DocumentKind, DocumentState  # noqa: E402

EMITTER_SETTINGS = {
    "nrc": "1234567",
    "name": "Servicios Marketplace S.A. de C.V.",
    "activity_code": "62010",
    "activity_description": "Programación informática",
    "address": {
        "department": "06",
        "municipality": "14",
        "complement": "Colonia Escalón, Paseo General Escalón 3700",
    },
}


@pytest.fixture
def emitter_settings() -> dict:
    """Fixture : diccionario DTE_SV['EMITTER'] de prueba."""
    return dict(EMITTER_SETTINGS)


@pytest.fixture
def make_parked(consumer):
    """Fixture : fabrica facturas en contingencia con fechas de creación crecientes."""
    base = datetime(2026, 9, 15, 8, 0, tzinfo=UTC)
    counter = iter(range(1, 1000))

    def factory(**update) -> FiscalDocument:
        n = next(counter)
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        data = {
            "state": DocumentState.CONTINGENCY,
            "candidate_code": f"00000000-0000-4000-8000-{n:012d}",
            "control_number": f"DTE-01-M001P001-{n:015d}",
            "created_at": base + timedelta(minutes=n),
        }
        data.update(update)
        return doc.model_copy(update=data)

    return factory
