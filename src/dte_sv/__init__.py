"""Motor de ciclo de vida de los documentos tributarios electrónicos (DTE) de El Salvador.

ES: Modela cada tipo de documento fiscal como una máquina de estados,
    valida las reglas de negocio de cada transición y transmite los
    documentos al Ministerio de Hacienda con garantías de idempotencia y
    manejo de contingencia.
EN: Fiscal document lifecycle engine for El Salvador's DTE regime.
"""

from dte_sv.contingency import ContingencyCoordinator
from dte_sv.errors import (
    AuthorityRejectedError,
    AuthorityUnavailableError,
    ConcurrencyConflictError,
    DocumentNotFoundError,
    DTEError,
    DTEValidationError,
    IntegrityViolationError,
)
from dte_sv.lifecycle import LifecycleOrchestrator, TransitionResult
from dte_sv.models import DocumentKind, DocumentState, FiscalDocument

__version__ = "0.1.0"

__all__ = [
    "AuthorityRejectedError",
    "AuthorityUnavailableError",
    "ConcurrencyConflictError",
    "ContingencyCoordinator",
    "DTEError",
    "DTEValidationError",
    "DocumentKind",
    "DocumentNotFoundError",
    "DocumentState",
    "FiscalDocument",
    "IntegrityViolationError",
    "LifecycleOrchestrator",
    "TransitionResult",
]
