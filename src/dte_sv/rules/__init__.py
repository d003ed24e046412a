"""Validación de precondiciones de las transiciones del ciclo de vida.

ES: Predicados puros que reemplazan las condiciones implícitas de la UI
    ("tiene código → no puede emitir contingencia", "tiene código y sello →
    puede invalidarse").
EN: Pure predicates for each transition intent.
"""

from dte_sv.rules.validator import (
    ALLOWED,
    Verdict,
    can_create_note,
    can_duplicate_for_contingency,
    can_emit_contingency,
    can_invalidate,
    can_report_contingency,
    can_transmit,
)

__all__ = [
    "ALLOWED",
    "Verdict",
    "can_create_note",
    "can_duplicate_for_contingency",
    "can_emit_contingency",
    "can_invalidate",
    "can_report_contingency",
    "can_transmit",
]
