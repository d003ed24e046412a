"""Máquina de estados del ciclo de vida de los documentos fiscales.

ES: Un documento nace en `pending`. Un intento de transmisión lo lleva a
    `processed` (aceptado), `rejected` (rechazo explícito del MH) o
    `contingency` (MH inalcanzable). Solo un documento procesado puede
    pasar a `invalidated`. Un documento en contingencia nunca se retransmite:
    se cierra con un reporte de contingencia o se reemplaza por un duplicado.
EN: pending -> processed | rejected | contingency; processed -> invalidated.
    Contingency documents are closed by a report or superseded by a
    duplicate, never retransmitted.
"""

from __future__ import annotations

from typing import NamedTuple

from dte_sv.errors import IntegrityViolationError
from dte_sv.models.document import FiscalDocument, utcnow
from dte_sv.models.enums import DocumentState
from dte_sv.transmission.models import Accepted, Rejected, Unavailable

# ---------------------------------------------------------------------------
# Grafo de transiciones autorizadas
# ---------------------------------------------------------------------------

TRANSITIONS: dict[DocumentState, list[DocumentState]] = {
    DocumentState.PENDING: [
        DocumentState.PROCESSED,
        DocumentState.REJECTED,
        DocumentState.CONTINGENCY,
    ],
    DocumentState.PROCESSED: [
        DocumentState.INVALIDATED,
    ],
    # Sin transiciones salientes
    DocumentState.REJECTED: [],
    DocumentState.CONTINGENCY: [],
    DocumentState.INVALIDATED: [],
}

TERMINAL_STATES: frozenset[DocumentState] = frozenset(
    state for state, targets in TRANSITIONS.items() if not targets
)


class StateInfo(NamedTuple):
    """Metadatos de un estado del ciclo de vida."""

    label: str
    stable: bool
    needs_seal: bool = False


STATE_METADATA: dict[DocumentState, StateInfo] = {
    DocumentState.PENDING: StateInfo(label="Pendiente", stable=False),
    DocumentState.PROCESSED: StateInfo(label="Procesado", stable=True, needs_seal=True),
    DocumentState.REJECTED: StateInfo(label="Rechazado", stable=True),
    DocumentState.CONTINGENCY: StateInfo(label="Contingencia", stable=False),
    DocumentState.INVALIDATED: StateInfo(label="Invalidado", stable=True, needs_seal=True),
}


def can_transition(current: DocumentState, target: DocumentState) -> bool:
    """Verifica si la transición está autorizada."""
    return target in TRANSITIONS.get(current, [])


def check_transition(document: FiscalDocument, target: DocumentState) -> None:
    """Lanza `IntegrityViolationError` si la transición no está autorizada."""
    if not can_transition(document.state, target):
        allowed = [s.value for s in TRANSITIONS.get(document.state, [])]
        msg = (
            f"Transición no autorizada para {document.id} : "
            f"{document.state.value} → {target.value}. "
            f"Transiciones posibles : {allowed}"
        )
        raise IntegrityViolationError(msg)


def is_terminal(state: DocumentState) -> bool:
    return state in TERMINAL_STATES


def apply_outcome(
    document: FiscalDocument,
    outcome: Accepted | Rejected | Unavailable,
) -> FiscalDocument:
    """Aplica el resultado de una transmisión y devuelve la nueva versión.

    ES: `Accepted` fija código de generación, número de control y sello en
        una sola operación; `Rejected` guarda las observaciones; `Unavailable`
        deja el documento en contingencia sin identificadores. El documento
        recibido no se modifica.
    EN: Returns an updated copy; the input document is left untouched.

    Raises:
        IntegrityViolationError: Si la transición no está autorizada.
    """
    if isinstance(outcome, Accepted):
        target = DocumentState.PROCESSED
        update = {
            "generation_code": outcome.generation_code,
            "reception_seal": outcome.reception_seal,
            "control_number": outcome.control_number or document.control_number,
            "observations": list(outcome.observations),
            "authority_response": outcome.response,
        }
    elif isinstance(outcome, Rejected):
        target = DocumentState.REJECTED
        update = {
            "observations": list(outcome.observations),
            "authority_response": outcome.response,
        }
    else:
        target = DocumentState.CONTINGENCY
        update = {"authority_response": outcome.response}

    check_transition(document, target)
    update["state"] = target
    return transition_copy(document, **update)


def transition_copy(document: FiscalDocument, **update: object) -> FiscalDocument:
    """Copia validada del documento con los campos actualizados.

    ES: `model_copy` no revalida; se reconstruye el modelo para que los
        invariantes (código y sello juntos, etc.) se verifiquen siempre.
    EN: Rebuilds the model so invariants are re-validated.

    Raises:
        IntegrityViolationError: Si la nueva versión viola un invariante.
    """
    data = document.model_dump()
    data.update(update)
    data["updated_at"] = utcnow()
    try:
        return FiscalDocument.model_validate(data)
    except ValueError as exc:
        msg = f"Estado inválido para {document.id} : {exc}"
        raise IntegrityViolationError(msg) from exc
