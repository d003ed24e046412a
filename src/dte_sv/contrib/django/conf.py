"""Configuración del motor DTE a través de los settings de Django.

ES: Lee el diccionario `DTE_SV` de settings.py con valores por defecto y
    construye las instancias configuradas (cliente de transmisión,
    notificador, orquestador).
EN: Reads the `DTE_SV` settings dict and builds configured instances.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.utils.module_loading import import_string

from dte_sv.lifecycle.orchestrator import LifecycleOrchestrator
from dte_sv.models.party import Emitter
from dte_sv.notifications import BaseNotifier
from dte_sv.transmission.base import BaseTransmitter

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, object] = {
    "TRANSMITTER_CLASS": "dte_sv.transmission.connectors.hacienda.HaciendaTransmitter",
    "API_URL": None,
    "AMBIENTE": "00",
    "NIT": "",
    "PASSWORD": "",
    "TIMEOUT": 30.0,
    "EMITTER": {},
    "ESTABLISHMENT_CODE": "M001",
    "POINT_OF_SALE_CODE": "P001",
    "NOTIFIER_CLASS": "dte_sv.notifications.LoggingNotifier",
    "MARK_INVALIDATED_TARGETS": False,
}


def get_setting(name: str) -> object:
    """Devuelve el valor de un parámetro DTE_SV.

    ES: Busca en settings.DTE_SV[name] y luego en los valores por defecto.
    EN: Looks up settings.DTE_SV[name], then falls back to defaults.
    """
    if name not in DEFAULTS:
        msg = f"Parámetro DTE_SV desconocido : {name}"
        raise KeyError(msg)
    user_settings = getattr(settings, "DTE_SV", {})
    return user_settings.get(name, DEFAULTS[name])


def get_transmitter_instance() -> BaseTransmitter:
    """Instancia dinámicamente el cliente de transmisión configurado.

    Raises:
        ValueError: Si TRANSMITTER_CLASS no está configurado.
    """
    class_path = get_setting("TRANSMITTER_CLASS")
    if not class_path:
        msg = (
            "DTE_SV['TRANSMITTER_CLASS'] no está configurado. "
            "Indica la ruta completa de la clase de transmisión."
        )
        raise ValueError(msg)

    transmitter_class = import_string(class_path)
    return transmitter_class(
        nit=get_setting("NIT"),
        password=get_setting("PASSWORD"),
        ambiente=get_setting("AMBIENTE"),
        base_url=get_setting("API_URL"),
        timeout=float(get_setting("TIMEOUT")),
    )


def get_notifier_instance() -> BaseNotifier | None:
    """Instancia el notificador configurado (None si NOTIFIER_CLASS está vacío)."""
    class_path = get_setting("NOTIFIER_CLASS")
    if not class_path:
        return None
    return import_string(class_path)()


def get_emitter() -> Emitter:
    """Datos del emisor a partir de DTE_SV['EMITTER'].

    ES: El NIT por defecto es el de autenticación; los códigos de
        establecimiento y punto de venta vienen de sus propios parámetros.
    EN: Builds the emitter from the EMITTER dict and the code settings.

    Raises:
        pydantic.ValidationError: Si faltan datos obligatorios del emisor.
    """
    data = dict(get_setting("EMITTER"))
    data.setdefault("nit", get_setting("NIT"))
    data.setdefault("establishment_code", get_setting("ESTABLISHMENT_CODE"))
    data.setdefault("point_of_sale_code", get_setting("POINT_OF_SALE_CODE"))
    return Emitter.model_validate(data)


def get_orchestrator() -> LifecycleOrchestrator:
    """Construye el orquestador con el almacén Django y la configuración."""
    from dte_sv.contrib.django.store import DjangoDocumentStore

    return LifecycleOrchestrator(
        store=DjangoDocumentStore(),
        transmitter=get_transmitter_instance(),
        emitter=get_emitter(),
        ambiente=str(get_setting("AMBIENTE")),
        notifier=get_notifier_instance(),
        mark_invalidated_targets=bool(get_setting("MARK_INVALIDATED_TARGETS")),
    )
