"""Tests del validador de reglas de negocio."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from dte_sv.errors import DTEValidationError
from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState
from dte_sv.models.payload import SV_TZ
from dte_sv.rules.validator import (
    ALLOWED,
    Verdict,
    can_create_note,
    can_duplicate_for_contingency,
    can_emit_contingency,
    can_invalidate,
    can_report_contingency,
    can_transmit,
    is_contingency_pending,
    superseding_duplicate,
)


def _parked(consumer, **update) -> FiscalDocument:
    doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
    data = {"state": DocumentState.CONTINGENCY, "candidate_code": "C0DE"}
    data.update(update)
    return doc.model_copy(update=data)


def _processed_duplicate(document: FiscalDocument) -> FiscalDocument:
    return document.duplicate().model_copy(
        update={
            "state": DocumentState.PROCESSED,
            "generation_code": "7D1E3A52-0B4C-4F8E-9A21-6C5D0E8F1B23",
            "reception_seal": "2026SELLO",
        }
    )


class TestVerdict:
    """Tests del veredicto."""

    def test_allowed_is_truthy(self):
        assert ALLOWED
        assert ALLOWED.errors == ()

    def test_denied_is_falsy(self):
        verdict = Verdict(False, ("a", "b"))
        assert not verdict
        assert verdict.message == "a; b"

    def test_raise_if_denied(self):
        with pytest.raises(DTEValidationError, match="Prefijo : a") as exc_info:
            Verdict(False, ("a",)).raise_if_denied("Prefijo")
        assert exc_info.value.errors == ["a"]

    def test_raise_if_allowed_does_nothing(self):
        ALLOWED.raise_if_denied()


class TestCanCreateNote:
    """Tests de can_create_note()."""

    def test_credit_note_within_amount(self, processed_ccf):
        assert can_create_note(processed_ccf, Decimal("100.00"))

    def test_credit_note_exceeding_amount(self, processed_ccf):
        """Nota de crédito de 150.00 sobre un CCF de 100.00."""
        verdict = can_create_note(processed_ccf, Decimal("150.00"))
        assert not verdict
        assert "mayor al total" in verdict.message

    def test_debit_note_has_no_upper_bound(self, processed_ccf):
        assert can_create_note(processed_ccf, Decimal("150.00"), DocumentKind.DEBIT_NOTE)

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_amount_must_be_positive(self, processed_ccf, amount):
        verdict = can_create_note(processed_ccf, amount, DocumentKind.DEBIT_NOTE)
        assert not verdict
        assert "mayor a 0" in verdict.message

    def test_target_must_be_credit_fiscal(self, processed_ccf):
        target = processed_ccf.model_copy(update={"kind": DocumentKind.INVOICE_CONSUMER})
        verdict = can_create_note(target, Decimal("10"))
        assert not verdict
        assert "(03)" in verdict.message

    def test_target_must_be_processed(self, processed_ccf):
        target = processed_ccf.model_copy(update={"state": DocumentState.REJECTED})
        verdict = can_create_note(target, Decimal("10"))
        assert not verdict
        assert "procesado" in verdict.message

    def test_kind_must_be_note(self, processed_ccf):
        assert not can_create_note(processed_ccf, Decimal("10"), DocumentKind.FSE)


class TestCanInvalidate:
    """Tests de can_invalidate()."""

    def test_processed_document(self, processed_ccf):
        assert can_invalidate(processed_ccf)

    def test_requires_code_and_seal(self, customer):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CREDIT_FISCAL, Decimal("10"), customer)
        verdict = can_invalidate(doc)
        assert not verdict
        assert "sello de recepción" in verdict.message

    def test_at_most_one_invalidation(self, processed_ccf, responsible, requester):
        event = FiscalDocument.invalidation_event(
            processed_ccf, motive="x", responsible=responsible, requester=requester
        )
        verdict = can_invalidate(processed_ccf, [event])
        assert not verdict
        assert event.id in verdict.message

    def test_rejected_invalidation_does_not_count(self, processed_ccf, responsible, requester):
        event = FiscalDocument.invalidation_event(
            processed_ccf, motive="x", responsible=responsible, requester=requester
        ).model_copy(update={"state": DocumentState.REJECTED})
        assert can_invalidate(processed_ccf, [event])

    def test_already_invalidated(self, processed_ccf):
        target = processed_ccf.model_copy(update={"state": DocumentState.INVALIDATED})
        assert not can_invalidate(target)

    def test_event_cannot_be_invalidated(self, processed_ccf):
        target = processed_ccf.model_copy(update={"kind": DocumentKind.INVALIDATION_EVENT})
        assert not can_invalidate(target)


class TestCanEmitContingency:
    """Tests de can_emit_contingency()."""

    def test_without_code(self, customer):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CREDIT_FISCAL, Decimal("10"), customer)
        assert can_emit_contingency(doc)

    def test_with_code(self, processed_ccf):
        verdict = can_emit_contingency(processed_ccf)
        assert not verdict
        assert processed_ccf.generation_code in verdict.message

    def test_duplicate_always_allowed(self, processed_ccf, consumer):
        assert can_duplicate_for_contingency(processed_ccf)
        assert can_duplicate_for_contingency(_parked(consumer))


class TestCanTransmit:
    """Tests de can_transmit()."""

    def test_pending(self, consumer):
        doc = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        assert can_transmit(doc)

    def test_processed(self, processed_ccf):
        assert not can_transmit(processed_ccf)

    def test_contingency_is_never_retransmitted(self, consumer):
        verdict = can_transmit(_parked(consumer))
        assert not verdict
        assert "pendientes" in verdict.message


class TestCanReportContingency:
    """Tests de can_report_contingency()."""

    def test_contingency_documents(self, consumer):
        assert can_report_contingency([_parked(consumer), _parked(consumer)])

    def test_empty(self):
        verdict = can_report_contingency([])
        assert not verdict
        assert "al menos un DTE" in verdict.message

    def test_document_not_in_contingency(self, consumer):
        pending = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        verdict = can_report_contingency([_parked(consumer), pending])
        assert not verdict
        assert "no está en contingencia" in verdict.message

    def test_already_reported(self, consumer):
        verdict = can_report_contingency([_parked(consumer, reported_in_id="evt")])
        assert not verdict
        assert "ya fue reportado" in verdict.message

    def test_repeated_document(self, consumer):
        doc = _parked(consumer)
        verdict = can_report_contingency([doc, doc])
        assert not verdict
        assert "repetido" in verdict.message

    def test_window_in_the_future(self, consumer):
        now = datetime(2026, 9, 15, 12, 0, tzinfo=SV_TZ)
        verdict = can_report_contingency(
            [_parked(consumer)], now - timedelta(hours=2), now + timedelta(hours=1), now=now
        )
        assert not verdict
        assert "futuro" in verdict.message

    def test_window_in_the_past(self, consumer):
        now = datetime(2026, 9, 15, 12, 0, tzinfo=SV_TZ)
        assert can_report_contingency(
            [_parked(consumer)], now - timedelta(hours=2), now - timedelta(hours=1), now=now
        )

    def test_superseded_by_processed_duplicate(self, consumer):
        doc = _parked(consumer)
        duplicate = _processed_duplicate(doc)
        verdict = can_report_contingency([doc], duplicates=[duplicate])
        assert not verdict
        assert f"reemplazado por el duplicado procesado {duplicate.id}" in verdict.message

    def test_pending_duplicate_does_not_block(self, consumer):
        doc = _parked(consumer)
        assert can_report_contingency([doc], duplicates=[doc.duplicate()])


class TestContingencyPending:
    """Tests de is_contingency_pending() y superseding_duplicate()."""

    def test_open_document(self, consumer):
        assert is_contingency_pending(_parked(consumer))

    def test_reported_document(self, consumer):
        assert not is_contingency_pending(_parked(consumer, reported_in_id="evt"))

    def test_superseded_document(self, consumer):
        doc = _parked(consumer)
        duplicate = _processed_duplicate(doc)
        assert superseding_duplicate(doc, [doc.duplicate(), duplicate]) == duplicate
        assert not is_contingency_pending(doc, [duplicate])

    def test_duplicate_of_another_document(self, consumer):
        doc = _parked(consumer)
        other = _processed_duplicate(_parked(consumer))
        assert superseding_duplicate(doc, [other]) is None
        assert is_contingency_pending(doc, [other])

    def test_not_in_contingency(self, consumer):
        pending = FiscalDocument.invoice(DocumentKind.INVOICE_CONSUMER, Decimal("25"), consumer)
        assert not is_contingency_pending(pending)
