"""Intenciones de creación de documentos.

ES: Lo que la UI de administración pide al orquestador: emitir una factura
    (desde una venta del marketplace o con datos explícitos), una factura
    de sujeto excluido o una nota de crédito/débito sobre un crédito fiscal.
EN: Caller intents for document creation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator

from dte_sv.models.document import INVOICE_KINDS
from dte_sv.models.enums import CreditNoteReason, DebitNoteReason, DocumentKind
from dte_sv.models.party import Counterparty


class InvoiceIntent(BaseModel):
    """Emitir una factura (01) o un crédito fiscal (03).

    ES: Con `sale_id`, el monto y el cliente se toman de la venta cuando no
        se indican explícitamente.
    EN: With `sale_id`, amount and customer default to the sale's.
    """

    intent: Literal["invoice"] = "invoice"
    kind: DocumentKind = Field(default=DocumentKind.INVOICE_CONSUMER)
    amount: Decimal | None = Field(default=None, description="Total / Amount")
    counterparty: Counterparty | None = None
    description: str | None = None
    sale_id: str | None = None

    @model_validator(mode="after")
    def check_source(self) -> InvoiceIntent:
        if self.kind not in INVOICE_KINDS:
            msg = f"Tipo de factura inválido : {self.kind}"
            raise ValueError(msg)
        if self.sale_id is None and (self.amount is None or self.counterparty is None):
            msg = "Indica la venta de origen o el monto y el cliente"
            raise ValueError(msg)
        return self


class FSEIntent(BaseModel):
    """Emitir una factura de sujeto excluido (14)."""

    intent: Literal["fse"] = "fse"
    amount: Decimal = Field(..., description="Total de la compra / Purchase total")
    subject: Counterparty = Field(..., description="Sujeto excluido / Excluded subject")
    description: str | None = None
    income_tax_withheld: Decimal | None = Field(default=None, ge=0)
    sale_id: str | None = None


class CreditNoteIntent(BaseModel):
    """Emitir una nota de crédito (05) sobre un crédito fiscal."""

    intent: Literal["credit_note"] = "credit_note"
    target_id: str
    amount: Decimal
    reason: CreditNoteReason
    reason_text: str | None = None
    remarks: str | None = Field(default=None, max_length=3000)
    amount_includes_vat: bool = True


class DebitNoteIntent(BaseModel):
    """Emitir una nota de débito (06) sobre un crédito fiscal."""

    intent: Literal["debit_note"] = "debit_note"
    target_id: str
    amount: Decimal
    reason: DebitNoteReason
    reason_text: str | None = None
    remarks: str | None = Field(default=None, max_length=3000)
    amount_includes_vat: bool = True


NoteIntent = CreditNoteIntent | DebitNoteIntent

DocumentIntent = Annotated[
    InvoiceIntent | FSEIntent | CreditNoteIntent | DebitNoteIntent,
    Field(discriminator="intent"),
]
