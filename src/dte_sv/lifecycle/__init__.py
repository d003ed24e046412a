"""Ciclo de vida de los documentos fiscales: máquina de estados y orquestador."""

from dte_sv.lifecycle.intents import (
    CreditNoteIntent,
    DebitNoteIntent,
    DocumentIntent,
    FSEIntent,
    InvoiceIntent,
)
from dte_sv.lifecycle.machine import TERMINAL_STATES, TRANSITIONS
from dte_sv.lifecycle.orchestrator import LifecycleOrchestrator, TransitionResult

__all__ = [
    "CreditNoteIntent",
    "DebitNoteIntent",
    "DocumentIntent",
    "FSEIntent",
    "InvoiceIntent",
    "LifecycleOrchestrator",
    "TERMINAL_STATES",
    "TRANSITIONS",
    "TransitionResult",
]
