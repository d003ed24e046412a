"""Modelo principal de documento fiscal.

ES: Un único modelo Pydantic `FiscalDocument` representa los cinco tipos de
    DTE y los dos eventos. Los campos de identidad son inmutables; los campos
    de ciclo de vida (estado, códigos del MH, observaciones) solo los modifica
    el orquestador. Los constructores por tipo verifican la presencia de los
    campos obligatorios de cada variante.
EN: A single Pydantic `FiscalDocument` models the five DTE kinds and the two
    events. Per-kind constructors enforce required-field presence.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from dte_sv.models.enums import (
    ContingencyReason,
    CreditNoteReason,
    DebitNoteReason,
    DocumentKind,
    DocumentState,
    InvalidationType,
)
from dte_sv.models.party import Counterparty, Identity

CENT = Decimal("0.01")

# El Salvador no aplica horario de verano
SV_TZ = timezone(timedelta(hours=-6), name="America/El_Salvador")

INVOICE_KINDS: frozenset[DocumentKind] = frozenset(
    {DocumentKind.INVOICE_CONSUMER, DocumentKind.INVOICE_CREDIT_FISCAL}
)


def quantize_amount(value: Decimal | None) -> Decimal | None:
    """Redondea un monto a centavos / Rounds an amount to cents."""
    if value is None:
        return None
    return Decimal(value).quantize(CENT)


def utcnow() -> datetime:
    return datetime.now(UTC)


class NoteDetails(BaseModel):
    """Datos propios de una nota de crédito o débito."""

    reason: CreditNoteReason | DebitNoteReason = Field(
        ..., description="Motivo de la nota / Note reason"
    )
    reason_text: str | None = Field(
        default=None,
        max_length=250,
        description="Descripción del motivo (obligatoria si 'otro') / Reason text",
    )
    remarks: str | None = Field(
        default=None,
        max_length=3000,
        description="Observaciones libres / Free-text remarks",
    )
    amount_includes_vat: bool = Field(
        default=True,
        description="El monto afectado incluye IVA / Amount includes VAT",
    )

    @model_validator(mode="after")
    def check_other_reason(self) -> NoteDetails:
        if self.reason in (CreditNoteReason.OTHER, DebitNoteReason.OTHER) and not (
            self.reason_text and self.reason_text.strip()
        ):
            msg = "El motivo 'otro' exige una descripción"
            raise ValueError(msg)
        return self


class InvalidationDetails(BaseModel):
    """Datos del evento de invalidación.

    ES: Tipo de anulación, motivo, responsable y solicitante. Se conserva
        una copia de los identificadores del documento invalidado, ya que
        el evento es un registro permanente de la anulación.
    EN: Invalidation type, motive, responsible party and requester, plus a
        snapshot of the target's identifiers.
    """

    invalidation_type: InvalidationType = Field(
        default=InvalidationType.NO_REPLACE,
        description="Tipo de anulación / Invalidation type",
    )
    motive: str = Field(
        ..., min_length=1, max_length=250, description="Motivo / Motive"
    )
    responsible: Identity = Field(..., description="Responsable / Responsible party")
    requester: Identity = Field(..., description="Solicitante / Requester")
    replacement_generation_code: str | None = Field(
        default=None,
        description="Código de generación del documento de reemplazo / Replacement code",
    )
    target_kind: DocumentKind = Field(..., description="Tipo del documento invalidado")
    target_generation_code: str = Field(..., description="Código del documento invalidado")
    target_reception_seal: str = Field(..., description="Sello del documento invalidado")
    target_control_number: str | None = None
    target_issued_at: datetime | None = None

    @model_validator(mode="after")
    def check_replacement(self) -> InvalidationDetails:
        if (
            self.invalidation_type == InvalidationType.REPLACE
            and not self.replacement_generation_code
        ):
            msg = "'Anular y reemplazar' exige el código del documento de reemplazo"
            raise ValueError(msg)
        return self


class ContingencyWindow(BaseModel):
    """Período de contingencia (inicio y fin).

    ES: Las fechas sin zona horaria se interpretan en hora local de
        El Salvador, como las ingresa el operador.
    EN: Naive datetimes are taken as El Salvador local time.
    """

    start: datetime = Field(..., description="Inicio / Start")
    end: datetime = Field(..., description="Fin / End")

    @field_validator("start", "end")
    @classmethod
    def localize(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=SV_TZ)
        return value

    @model_validator(mode="after")
    def check_order(self) -> ContingencyWindow:
        if self.end < self.start:
            msg = "El fin de la contingencia no puede ser anterior a su inicio"
            raise ValueError(msg)
        return self


class ReportedDocument(BaseModel):
    """Documento reportado dentro de un evento de contingencia."""

    document_id: str
    kind: DocumentKind
    candidate_code: str = Field(
        ..., description="Código de generación enviado en el DTE / Code sent in the DTE"
    )


class ContingencyDetails(BaseModel):
    """Datos del evento de contingencia.

    ES: Ventana de la falla, motivo del catálogo MH (descripción obligatoria
        si el motivo es 'otro'), responsable y documentos reportados.
    EN: Outage window, MH reason code, responsible party and the reported
        documents.
    """

    window: ContingencyWindow
    reason: ContingencyReason
    description: str | None = Field(default=None, max_length=500)
    responsible: Identity
    reported: list[ReportedDocument] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_description(self) -> ContingencyDetails:
        if self.reason == ContingencyReason.OTHER and not (
            self.description and self.description.strip()
        ):
            msg = "Debes especificar el motivo cuando seleccionas 'Otro'"
            raise ValueError(msg)
        return self

    @property
    def reason_text(self) -> str:
        """Descripción enviada al MH (etiqueta del catálogo por defecto)."""
        return self.description or self.reason.label


class FiscalDocument(BaseModel):
    """Documento fiscal (DTE o evento).

    ES: Identidad inmutable (`id`, `kind`, contenido comercial) y campos de
        ciclo de vida mutables. `generation_code` y `reception_seal` se
        establecen juntos y solo cuando el MH acepta el documento.
    EN: Immutable identity plus mutable lifecycle fields. `generation_code`
        and `reception_seal` are set together, only on acceptance.
    """

    # --- Identidad ---
    id: str = Field(default_factory=lambda: uuid4().hex, description="Identificador")
    kind: DocumentKind = Field(..., description="Tipo de documento / Document kind")
    emitter: str = Field(
        default="M001P001",
        description="Serie del emisor (establecimiento + punto de venta) / Emitter series",
    )

    # --- Ciclo de vida ---
    state: DocumentState = Field(default=DocumentState.PENDING)
    generation_code: str | None = Field(
        default=None,
        description="Código de generación aceptado por el MH / Accepted generation code",
    )
    control_number: str | None = Field(
        default=None,
        description="Número de control / Control number",
    )
    reception_seal: str | None = Field(
        default=None,
        description="Sello de recepción del MH / MH reception seal",
    )
    authority_response: dict | None = None
    observations: list[str] = Field(default_factory=list)

    # --- Contenido comercial ---
    amount: Decimal | None = Field(default=None, description="Monto total / Total amount")
    description: str | None = Field(default=None, max_length=1000)
    counterparty: Counterparty | None = None
    sale_id: str | None = Field(
        default=None,
        description="Venta de origen en el marketplace / Originating sale",
    )
    income_tax_withheld: Decimal | None = Field(
        default=None,
        ge=0,
        description="Retención de renta (FSE) / Income tax withheld",
    )

    # --- Relaciones ---
    related_document_id: str | None = Field(
        default=None,
        description="Documento afectado (notas, invalidación) / Amended document",
    )
    reported_document_ids: list[str] = Field(
        default_factory=list,
        description="Documentos reportados (contingencia) / Reported documents",
    )
    reported_count: int | None = None
    duplicate_of_id: str | None = Field(
        default=None,
        description="Documento original del duplicado / Original of a duplicate",
    )
    reported_in_id: str | None = Field(
        default=None,
        description="Evento de contingencia que cerró este documento / Closing report",
    )

    # --- Detalles por tipo ---
    note: NoteDetails | None = None
    invalidation: InvalidationDetails | None = None
    contingency: ContingencyDetails | None = None

    # --- Transmisión ---
    candidate_code: str | None = Field(
        default=None,
        description="Código de generación enviado en el último DTE construido",
    )
    payload: dict | None = None
    ambiente: str | None = None
    issued_at: datetime | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("amount", "income_tax_withheld")
    @classmethod
    def round_amount(cls, value: Decimal | None) -> Decimal | None:
        return quantize_amount(value)

    @model_validator(mode="after")
    def check_invariants(self) -> FiscalDocument:
        if (self.generation_code is None) != (self.reception_seal is None):
            msg = "generation_code y reception_seal deben establecerse juntos"
            raise ValueError(msg)
        if self.state == DocumentState.PROCESSED and self.generation_code is None:
            msg = "Un documento procesado requiere código de generación y sello"
            raise ValueError(msg)
        if (
            self.state in (DocumentState.PENDING, DocumentState.CONTINGENCY)
            and self.reception_seal is not None
        ):
            msg = f"Un documento en estado {self.state} no puede tener sello de recepción"
            raise ValueError(msg)
        if self.kind == DocumentKind.CONTINGENCY_EVENT:
            if self.reported_count != len(self.reported_document_ids):
                msg = "reported_count debe coincidir con los documentos reportados"
                raise ValueError(msg)
        return self

    # --- Constructores por tipo ---

    @classmethod
    def invoice(
        cls,
        kind: DocumentKind,
        amount: Decimal,
        counterparty: Counterparty,
        *,
        description: str | None = None,
        sale_id: str | None = None,
        emitter: str = "M001P001",
    ) -> FiscalDocument:
        """Factura de consumidor final (01) o crédito fiscal (03)."""
        if kind not in INVOICE_KINDS:
            msg = f"Tipo de factura inválido : {kind}"
            raise ValueError(msg)
        _require_positive(amount)
        if kind == DocumentKind.INVOICE_CREDIT_FISCAL and not counterparty.nrc:
            msg = "El crédito fiscal exige el NRC del receptor"
            raise ValueError(msg)
        return cls(
            kind=kind,
            amount=amount,
            counterparty=counterparty,
            description=description,
            sale_id=sale_id,
            emitter=emitter,
        )

    @classmethod
    def fse(
        cls,
        amount: Decimal,
        subject: Counterparty,
        *,
        description: str | None = None,
        income_tax_withheld: Decimal | None = None,
        sale_id: str | None = None,
        emitter: str = "M001P001",
    ) -> FiscalDocument:
        """Factura de sujeto excluido (14).

        ES: El sujeto excluido exige documento de identidad y dirección
            completa; la retención de renta no puede superar el total.
        EN: The excluded subject needs identity and full address.
        """
        _require_positive(amount)
        if not subject.document_type or not subject.document_number:
            msg = "Completa tipo/número de documento del sujeto excluido"
            raise ValueError(msg)
        if subject.address is None:
            msg = "Completa dirección (departamento, municipio y complemento)"
            raise ValueError(msg)
        if income_tax_withheld is not None and income_tax_withheld > amount:
            msg = "La retención de renta no puede superar el total de la compra"
            raise ValueError(msg)
        return cls(
            kind=DocumentKind.FSE,
            amount=amount,
            counterparty=subject,
            description=description,
            income_tax_withheld=income_tax_withheld,
            sale_id=sale_id,
            emitter=emitter,
        )

    @classmethod
    def credit_note(
        cls,
        target: FiscalDocument,
        amount: Decimal,
        details: NoteDetails,
        *,
        emitter: str | None = None,
    ) -> FiscalDocument:
        """Nota de crédito (05) sobre un crédito fiscal."""
        if not isinstance(details.reason, CreditNoteReason):
            msg = f"Motivo inválido para nota de crédito : {details.reason}"
            raise ValueError(msg)
        return cls._note(DocumentKind.CREDIT_NOTE, target, amount, details, emitter)

    @classmethod
    def debit_note(
        cls,
        target: FiscalDocument,
        amount: Decimal,
        details: NoteDetails,
        *,
        emitter: str | None = None,
    ) -> FiscalDocument:
        """Nota de débito (06) sobre un crédito fiscal."""
        if not isinstance(details.reason, DebitNoteReason):
            msg = f"Motivo inválido para nota de débito : {details.reason}"
            raise ValueError(msg)
        return cls._note(DocumentKind.DEBIT_NOTE, target, amount, details, emitter)

    @classmethod
    def _note(
        cls,
        kind: DocumentKind,
        target: FiscalDocument,
        amount: Decimal,
        details: NoteDetails,
        emitter: str | None,
    ) -> FiscalDocument:
        _require_positive(amount)
        return cls(
            kind=kind,
            amount=amount,
            counterparty=target.counterparty,
            sale_id=target.sale_id,
            related_document_id=target.id,
            note=details,
            emitter=emitter or target.emitter,
        )

    @classmethod
    def invalidation_event(
        cls,
        target: FiscalDocument,
        *,
        motive: str,
        responsible: Identity,
        requester: Identity,
        invalidation_type: InvalidationType = InvalidationType.NO_REPLACE,
        replacement_generation_code: str | None = None,
    ) -> FiscalDocument:
        """Evento de invalidación que referencia al documento objetivo."""
        if target.generation_code is None or target.reception_seal is None:
            msg = "Solo se puede invalidar un documento con código y sello del MH"
            raise ValueError(msg)
        details = InvalidationDetails(
            invalidation_type=invalidation_type,
            motive=motive,
            responsible=responsible,
            requester=requester,
            replacement_generation_code=replacement_generation_code,
            target_kind=target.kind,
            target_generation_code=target.generation_code,
            target_reception_seal=target.reception_seal,
            target_control_number=target.control_number,
            target_issued_at=target.issued_at,
        )
        return cls(
            kind=DocumentKind.INVALIDATION_EVENT,
            related_document_id=target.id,
            counterparty=target.counterparty,
            invalidation=details,
            emitter=target.emitter,
        )

    @classmethod
    def contingency_event(
        cls,
        documents: Sequence[FiscalDocument],
        *,
        window: ContingencyWindow,
        reason: ContingencyReason,
        responsible: Identity,
        description: str | None = None,
        emitter: str = "M001P001",
    ) -> FiscalDocument:
        """Evento de contingencia que reporta uno o más documentos."""
        reported = []
        for doc in documents:
            if doc.candidate_code is None:
                msg = f"El documento {doc.id} nunca fue construido para transmisión"
                raise ValueError(msg)
            reported.append(
                ReportedDocument(
                    document_id=doc.id,
                    kind=doc.kind,
                    candidate_code=doc.candidate_code,
                )
            )
        details = ContingencyDetails(
            window=window,
            reason=reason,
            description=description,
            responsible=responsible,
            reported=reported,
        )
        return cls(
            kind=DocumentKind.CONTINGENCY_EVENT,
            reported_document_ids=[doc.id for doc in documents],
            reported_count=len(documents),
            contingency=details,
            emitter=emitter,
        )

    def duplicate(self) -> FiscalDocument:
        """Copia comercial con identidad nueva, en estado `pending`.

        ES: Conserva el contenido comercial y el `related_document_id`;
            no hereda ningún identificador del MH ni número de control.
        EN: Keeps the commercial content and back-pointer; inherits no
            authority identifiers.
        """
        return FiscalDocument(
            kind=self.kind,
            emitter=self.emitter,
            amount=self.amount,
            description=self.description,
            counterparty=self.counterparty,
            sale_id=self.sale_id,
            income_tax_withheld=self.income_tax_withheld,
            related_document_id=self.related_document_id,
            reported_document_ids=list(self.reported_document_ids),
            reported_count=self.reported_count,
            note=self.note,
            invalidation=self.invalidation,
            contingency=self.contingency,
            duplicate_of_id=self.id,
        )


def _require_positive(amount: Decimal) -> None:
    if amount is None or Decimal(amount) <= 0:
        msg = "El monto debe ser mayor a 0"
        raise ValueError(msg)
