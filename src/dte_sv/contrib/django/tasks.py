"""Tareas Celery para el motor DTE.

ES: Barrido periódico de los documentos en contingencia: informa al
    operador qué documentos esperan un reporte de contingencia o un
    duplicado. Nunca retransmite: la resolución de una contingencia es una
    acción humana con motivo y ventana legales.
EN: Periodic contingency sweep. It only logs and notifies; it never
    retransmits.
"""

import asyncio
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task
def sweep_contingency() -> list[str]:
    """Lista los documentos en contingencia pendientes de resolución.

    ES: Excluye los ya cerrados por un reporte aceptado y los reemplazados
        por un duplicado procesado. Avisa al notificador configurado por
        cada documento encontrado.
    EN: Excludes reported documents and those superseded by a processed
        duplicate; notifies the configured notifier for each one.

    Returns:
        Los identificadores de los documentos pendientes.
    """
    from dte_sv.contrib.django.conf import get_notifier_instance
    from dte_sv.contrib.django.store import DocumentRepository
    from dte_sv.models.enums import DocumentState
    from dte_sv.notifications import TransitionNotice
    from dte_sv.rules.validator import is_contingency_pending

    repository = DocumentRepository()
    pending = []
    for document in repository.find(state=DocumentState.CONTINGENCY):
        duplicates = repository.find(duplicate_of_id=document.id)
        if is_contingency_pending(document, duplicates):
            pending.append(document)

    if not pending:
        logger.info("Sin documentos en contingencia pendientes.")
        return []

    logger.warning(
        "%d documento(s) en contingencia esperan reporte o duplicado : %s",
        len(pending),
        ", ".join(doc.id for doc in pending),
    )

    notifier = get_notifier_instance()
    if notifier is not None:
        for document in pending:
            notice = TransitionNotice.for_document(document, document.state)
            try:
                asyncio.run(notifier.notify(notice))
            except Exception:
                logger.exception("No se pudo notificar el documento %s", document.id)

    return [doc.id for doc in pending]
