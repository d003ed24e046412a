"""Jerarquía de excepciones del motor de ciclo de vida DTE.

ES: Excepciones tipadas para las fallas de validación, los rechazos y la
    indisponibilidad del Ministerio de Hacienda, los conflictos de
    concurrencia y las violaciones de integridad del almacén de documentos.
EN: Typed exceptions for validation failures, MH rejections and
    unavailability, concurrency conflicts and store integrity violations.
"""


class DTEError(Exception):
    """Error base para todas las operaciones del motor DTE.

    ES: Clase padre de todas las excepciones del ciclo de vida fiscal.
    EN: Base class for all fiscal lifecycle exceptions.
    """


class DTEValidationError(DTEError):
    """Precondición de negocio no satisfecha.

    ES: Corregible por quien llama; el mensaje se muestra tal cual en la UI.
        Nunca se produce después de haber modificado el estado.
    EN: Caller-correctable; surfaced verbatim. Never raised after a write.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = errors or []


class AuthorityRejectedError(DTEError):
    """Rechazo explícito del Ministerio de Hacienda.

    ES: Terminal para esa instancia del documento; se requiere un documento
        nuevo para continuar.
    EN: Terminal for that document instance; a new document is required.
    """

    def __init__(
        self,
        message: str,
        observations: list[str] | None = None,
        document_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.observations: list[str] = observations or []
        self.document_id = document_id


class AuthorityUnavailableError(DTEError):
    """Hacienda no pudo ser contactado (falla transitoria).

    ES: El documento quedó en contingencia; se resuelve únicamente a través
        del coordinador de contingencia.
    EN: The document is parked in contingency.
    """

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        document_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.document_id = document_id


class ConcurrencyConflictError(DTEError):
    """Otra transición ya está en curso para el mismo documento.

    ES: Reintentar después de un momento.
    EN: Retry after a short delay.
    """

    def __init__(self, message: str, document_id: str | None = None) -> None:
        super().__init__(message)
        self.document_id = document_id


class IntegrityViolationError(DTEError):
    """La escritura violaría un invariante del modelo de datos.

    ES: Código de generación duplicado, segunda invalidación del mismo
        documento, transición ilegal, etc. Siempre fatal para la operación.
    EN: Duplicate generation code, second invalidation, illegal transition.
    """


class DocumentNotFoundError(DTEError):
    """Documento inexistente en el almacén."""
