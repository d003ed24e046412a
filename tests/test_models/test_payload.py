"""Tests de la construcción y lectura del JSON de los DTE."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from dte_sv.models.document import ContingencyWindow, FiscalDocument, NoteDetails
from dte_sv.models.enums import (
    ContingencyReason,
    CreditNoteReason,
    DocumentKind,
    DocumentState,
)
from dte_sv.models.payload import (
    SV_TZ,
    build_payload,
    format_control_number,
    new_generation_code,
    parse_payload,
    public_lookup_url,
)

ISSUED_AT = datetime(2026, 9, 15, 10, 30, 5, tzinfo=SV_TZ)
CODE = "0A1B2C3D-4E5F-4A6B-8C7D-9E0F1A2B3C4D"


class TestControlNumber:
    """Tests del número de control."""

    def test_format(self):
        number = format_control_number(DocumentKind.INVOICE_CREDIT_FISCAL, "M001P001", 42)
        assert number == "DTE-03-M001P001-000000000000042"
        assert len(number) == 31

    def test_events_have_no_control_number(self):
        with pytest.raises(ValueError, match="eventos"):
            format_control_number(DocumentKind.INVALIDATION_EVENT, "M001P001", 1)

    def test_sequence_starts_at_one(self):
        with pytest.raises(ValueError, match="Correlativo"):
            format_control_number(DocumentKind.FSE, "M001P001", 0)


class TestGenerationCode:
    def test_uppercase_uuid(self):
        code = new_generation_code()
        assert code == code.upper()
        assert len(code) == 36

    def test_unique(self):
        assert new_generation_code() != new_generation_code()


class TestBuildPayload:
    """Tests de build_payload()."""

    def test_invoice_sections(self, emitter, customer):
        doc = FiscalDocument.invoice(
            DocumentKind.INVOICE_CREDIT_FISCAL,
            Decimal("113.00"),
            customer,
            description="Servicio de fontanería",
        )
        payload = build_payload(
            doc,
            emitter,
            ambiente="00",
            generation_code=CODE,
            control_number="DTE-03-M001P001-000000000000001",
            issued_at=ISSUED_AT,
        )
        ident = payload["identificacion"]
        assert ident["tipoDte"] == "03"
        assert ident["codigoGeneracion"] == CODE
        assert ident["numeroControl"] == "DTE-03-M001P001-000000000000001"
        assert ident["fecEmi"] == "2026-09-15"
        assert ident["horEmi"] == "10:30:05"
        assert ident["ambiente"] == "00"
        assert payload["emisor"]["nit"] == emitter.nit
        assert payload["receptor"]["nrc"] == "254781"
        assert payload["resumen"]["montoTotalOperacion"] == 113.0
        assert payload["cuerpoDocumento"][0]["descripcion"] == "Servicio de fontanería"
        assert payload["documentoRelacionado"] is None

    def test_fse_uses_excluded_subject(self, emitter, excluded_subject):
        doc = FiscalDocument.fse(
            Decimal("100"), excluded_subject, income_tax_withheld=Decimal("10")
        )
        payload = build_payload(
            doc,
            emitter,
            ambiente="00",
            generation_code=CODE,
            control_number="DTE-14-M001P001-000000000000001",
            issued_at=ISSUED_AT,
        )
        assert "receptor" not in payload
        assert payload["sujetoExcluido"]["numDocumento"] == "045678912"
        assert payload["sujetoExcluido"]["direccion"]["municipio"] == "20"
        assert payload["resumen"]["reteRenta"] == 10.0
        assert payload["resumen"]["totalPagar"] == 90.0

    def test_note_references_target(self, emitter, processed_ccf):
        note = FiscalDocument.credit_note(
            processed_ccf,
            Decimal("30"),
            NoteDetails(reason=CreditNoteReason.RETURN, remarks="Devolución de repuestos"),
        )
        payload = build_payload(
            note,
            emitter,
            ambiente="00",
            generation_code=CODE,
            control_number="DTE-05-M001P001-000000000000001",
            issued_at=ISSUED_AT,
            target=processed_ccf,
        )
        related = payload["documentoRelacionado"][0]
        assert related["tipoDocumento"] == "03"
        assert related["numeroDocumento"] == processed_ccf.generation_code
        assert related["fechaEmision"] == "2026-09-15"
        assert payload["extension"]["observaciones"] == "Devolución de repuestos"

    def test_note_without_target(self, emitter, processed_ccf):
        note = FiscalDocument.credit_note(
            processed_ccf, Decimal("30"), NoteDetails(reason=CreditNoteReason.RETURN)
        )
        with pytest.raises(ValueError, match="documento relacionado"):
            build_payload(
                note,
                emitter,
                ambiente="00",
                generation_code=CODE,
                control_number="DTE-05-M001P001-000000000000001",
                issued_at=ISSUED_AT,
            )

    def test_invalidation_event(self, emitter, processed_ccf, responsible, requester):
        event = FiscalDocument.invalidation_event(
            processed_ccf,
            motive="Monto incorrecto",
            responsible=responsible,
            requester=requester,
        )
        payload = build_payload(
            event,
            emitter,
            ambiente="00",
            generation_code=CODE,
            control_number=None,
            issued_at=ISSUED_AT,
        )
        assert payload["identificacion"]["fecAnula"] == "2026-09-15"
        assert payload["documento"]["codigoGeneracion"] == processed_ccf.generation_code
        assert payload["documento"]["selloRecibido"] == processed_ccf.reception_seal
        assert payload["motivo"]["tipoAnulacion"] == 2
        assert payload["motivo"]["nombreResponsable"] == "Ana Guadalupe Rivas"
        assert payload["motivo"]["tipDocSolicita"] == "36"

    def test_contingency_event(self, emitter, consumer, responsible):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        doc = doc.model_copy(update={"state": DocumentState.CONTINGENCY, "candidate_code": CODE})
        start = datetime(2026, 9, 15, 8, 0, tzinfo=SV_TZ)
        event = FiscalDocument.contingency_event(
            [doc],
            window=ContingencyWindow(start=start, end=start + timedelta(hours=2)),
            reason=ContingencyReason.INTERNET_OUTAGE,
            responsible=responsible,
        )
        payload = build_payload(
            event,
            emitter,
            ambiente="00",
            generation_code=new_generation_code(),
            control_number=None,
            issued_at=ISSUED_AT,
        )
        assert payload["detalleDTE"] == [{"noItem": 1, "codigoGeneracion": CODE, "tipoDoc": "01"}]
        assert payload["motivo"]["tipoContingencia"] == 2
        assert payload["motivo"]["hInicio"] == "08:00:00"
        assert payload["motivo"]["hFin"] == "10:00:00"
        assert payload["emisor"]["codEstableMH"] == "M001"


class TestParsePayload:
    """Tests de parse_payload()."""

    def test_invoice_round_trip(self, emitter, consumer):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25.50"), consumer)
        payload = build_payload(
            doc,
            emitter,
            ambiente="01",
            generation_code=CODE,
            control_number="DTE-01-M001P001-000000000000007",
            issued_at=ISSUED_AT,
        )
        summary = parse_payload(payload)
        assert summary.kind == DocumentKind.INVOICE_CONSUMER
        assert summary.generation_code == CODE
        assert summary.control_number == "DTE-01-M001P001-000000000000007"
        assert summary.amount == Decimal("25.50")
        assert summary.issued_at == ISSUED_AT

    def test_invalidation_event(self, emitter, processed_ccf, responsible, requester):
        event = FiscalDocument.invalidation_event(
            processed_ccf, motive="x", responsible=responsible, requester=requester
        )
        payload = build_payload(
            event, emitter, ambiente="00", generation_code=CODE,
            control_number=None, issued_at=ISSUED_AT,
        )
        summary = parse_payload(payload)
        assert summary.kind == DocumentKind.INVALIDATION_EVENT
        assert summary.related_generation_code == processed_ccf.generation_code

    def test_malformed(self):
        with pytest.raises(ValueError, match="identificacion"):
            parse_payload({"emisor": {}})


class TestPublicLookupUrl:
    """Tests de la URL de consulta pública (código QR)."""

    def test_processed_document(self, processed_ccf):
        url = public_lookup_url(processed_ccf)
        assert url.startswith("https://admin.factura.gob.sv/consultaPublica?")
        assert "ambiente=00" in url
        assert f"codGen={processed_ccf.generation_code}" in url
        assert "fechaEmi=2026-09-15" in url

    def test_pending_document_has_no_url(self, consumer):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        assert public_lookup_url(doc) is None
