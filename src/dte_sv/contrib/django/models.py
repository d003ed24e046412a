"""Modelos Django para los documentos tributarios electrónicos.

ES: Un registro por documento fiscal. Las columnas planas (tipo, estado,
    códigos del MH, relaciones) sirven a los índices y restricciones; el
    documento completo se guarda además en un campo JSON para reconstruir
    el modelo Pydantic sin pérdida.
EN: One row per fiscal document. Flat columns back the indexes and
    constraints; the full document is kept as JSON for a lossless round-trip.
"""

from __future__ import annotations

from django.db import models, transaction

from dte_sv.models.document import FiscalDocument
from dte_sv.models.enums import DocumentKind, DocumentState


class DocumentKindChoices(models.TextChoices):
    """Tipos de documento fiscal."""

    INVOICE_CONSUMER = DocumentKind.INVOICE_CONSUMER.value, "Factura (01)"
    INVOICE_CREDIT_FISCAL = DocumentKind.INVOICE_CREDIT_FISCAL.value, "Crédito fiscal (03)"
    CREDIT_NOTE = DocumentKind.CREDIT_NOTE.value, "Nota de crédito (05)"
    DEBIT_NOTE = DocumentKind.DEBIT_NOTE.value, "Nota de débito (06)"
    FSE = DocumentKind.FSE.value, "Sujeto excluido (14)"
    INVALIDATION_EVENT = DocumentKind.INVALIDATION_EVENT.value, "Evento de invalidación"
    CONTINGENCY_EVENT = DocumentKind.CONTINGENCY_EVENT.value, "Evento de contingencia"


class DocumentStateChoices(models.TextChoices):
    """Estados del ciclo de vida."""

    PENDING = DocumentState.PENDING.value, "Pendiente"
    PROCESSED = DocumentState.PROCESSED.value, "Procesado"
    REJECTED = DocumentState.REJECTED.value, "Rechazado"
    CONTINGENCY = DocumentState.CONTINGENCY.value, "Contingencia"
    INVALIDATED = DocumentState.INVALIDATED.value, "Invalidado"


class FiscalDocumentRecord(models.Model):
    """Documento fiscal persistido.

    ES: Nunca se borra: todos los documentos son registros fiscales
        permanentes. `in_flight` es la marca de transmisión en curso,
        adquirida con un comparar e intercambiar.
    EN: Never deleted. `in_flight` is the compare-and-swap claim marker.
    """

    id = models.CharField("identificador", max_length=32, primary_key=True)
    kind = models.CharField(
        "tipo de documento", max_length=20, choices=DocumentKindChoices.choices
    )
    state = models.CharField(
        "estado",
        max_length=12,
        choices=DocumentStateChoices.choices,
        default=DocumentStateChoices.PENDING,
    )
    emitter = models.CharField("serie del emisor", max_length=8)

    # --- Identificadores del MH ---
    generation_code = models.CharField(
        "código de generación", max_length=36, blank=True, null=True
    )
    control_number = models.CharField(
        "número de control", max_length=31, blank=True, null=True
    )
    reception_seal = models.CharField(
        "sello de recepción", max_length=100, blank=True, null=True
    )
    candidate_code = models.CharField(
        "código enviado", max_length=36, blank=True, null=True
    )

    # --- Relaciones ---
    related_document_id = models.CharField(
        "documento relacionado", max_length=32, blank=True, null=True
    )
    duplicate_of_id = models.CharField(
        "duplicado de", max_length=32, blank=True, null=True
    )
    reported_in_id = models.CharField(
        "reportado en", max_length=32, blank=True, null=True
    )

    amount = models.DecimalField(
        "monto", max_digits=14, decimal_places=2, blank=True, null=True
    )
    ambiente = models.CharField("ambiente", max_length=2, blank=True, default="")
    issued_at = models.DateTimeField("fecha de emisión", blank=True, null=True)

    # --- JSON ---
    payload = models.JSONField("JSON del DTE", blank=True, null=True)
    authority_response = models.JSONField("respuesta del MH", blank=True, null=True)
    observations = models.JSONField("observaciones", default=list, blank=True)
    content = models.JSONField("documento completo")

    in_flight = models.BooleanField("transmisión en curso", default=False)

    created_at = models.DateTimeField("fecha de creación")
    updated_at = models.DateTimeField("fecha de modificación")

    class Meta:
        verbose_name = "documento fiscal"
        verbose_name_plural = "documentos fiscales"
        constraints = [
            models.UniqueConstraint(
                fields=["generation_code"],
                condition=models.Q(generation_code__isnull=False),
                name="uniq_dte_generation_code",
            ),
            models.UniqueConstraint(
                fields=["related_document_id"],
                condition=models.Q(
                    kind=DocumentKind.INVALIDATION_EVENT.value,
                    state__in=[DocumentState.PENDING.value, DocumentState.PROCESSED.value],
                ),
                name="uniq_dte_live_invalidation",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(generation_code__isnull=True, reception_seal__isnull=True)
                    | models.Q(generation_code__isnull=False, reception_seal__isnull=False)
                ),
                name="dte_code_and_seal_together",
            ),
        ]
        indexes = [
            models.Index(
                fields=["kind", "related_document_id"],
                name="idx_dte_kind_related",
            ),
            models.Index(fields=["state"], name="idx_dte_state"),
        ]

    def __str__(self) -> str:
        return f"DTE {self.kind} {self.control_number or self.id}"

    def to_document(self) -> FiscalDocument:
        """Convierte el registro Django en el modelo Pydantic."""
        return FiscalDocument.model_validate(self.content)

    @classmethod
    def from_document(cls, document: FiscalDocument) -> FiscalDocumentRecord:
        """Crea una instancia Django (no guardada) desde el modelo Pydantic."""
        record = cls(id=document.id)
        record.apply(document)
        return record

    def apply(self, document: FiscalDocument) -> None:
        """Copia los campos del documento en el registro (sin guardar)."""
        self.kind = document.kind.value
        self.state = document.state.value
        self.emitter = document.emitter
        self.generation_code = document.generation_code
        self.control_number = document.control_number
        self.reception_seal = document.reception_seal
        self.candidate_code = document.candidate_code
        self.related_document_id = document.related_document_id
        self.duplicate_of_id = document.duplicate_of_id
        self.reported_in_id = document.reported_in_id
        self.amount = document.amount
        self.ambiente = document.ambiente or ""
        self.issued_at = document.issued_at
        self.payload = document.payload
        self.authority_response = document.authority_response
        self.observations = list(document.observations)
        self.content = document.model_dump(mode="json")
        self.created_at = document.created_at
        self.updated_at = document.updated_at


class ControlNumberSequence(models.Model):
    """Correlativo de números de control por serie (tipo + emisor)."""

    kind = models.CharField("tipo de documento", max_length=20)
    emitter = models.CharField("serie del emisor", max_length=8)
    last_value = models.PositiveBigIntegerField("último correlativo", default=0)

    class Meta:
        verbose_name = "correlativo"
        verbose_name_plural = "correlativos"
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "emitter"], name="uniq_dte_sequence_series"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind}-{self.emitter} : {self.last_value}"

    @classmethod
    @transaction.atomic
    def next_value(cls, kind: DocumentKind, emitter: str) -> int:
        """Reserva el siguiente correlativo de la serie bajo bloqueo de fila."""
        cls.objects.get_or_create(kind=kind.value, emitter=emitter)
        sequence = cls.objects.select_for_update().get(kind=kind.value, emitter=emitter)
        sequence.last_value += 1
        sequence.save(update_fields=["last_value"])
        return sequence.last_value
