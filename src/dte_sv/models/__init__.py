"""Modelos de datos Pydantic de los documentos tributarios electrónicos."""

from dte_sv.models.document import (
    ContingencyDetails,
    ContingencyWindow,
    FiscalDocument,
    InvalidationDetails,
    NoteDetails,
    ReportedDocument,
)
from dte_sv.models.enums import (
    Ambiente,
    ContingencyReason,
    CreditNoteReason,
    DebitNoteReason,
    DocumentKind,
    DocumentState,
    IdentityDocumentType,
    InvalidationType,
)
from dte_sv.models.party import Address, Counterparty, Emitter, Identity

__all__ = [
    "Address",
    "Ambiente",
    "ContingencyDetails",
    "ContingencyReason",
    "ContingencyWindow",
    "Counterparty",
    "CreditNoteReason",
    "DebitNoteReason",
    "DocumentKind",
    "DocumentState",
    "Emitter",
    "FiscalDocument",
    "Identity",
    "IdentityDocumentType",
    "InvalidationDetails",
    "InvalidationType",
    "NoteDetails",
    "ReportedDocument",
]
