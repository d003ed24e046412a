"""Configuración de la aplicación Django para los documentos tributarios electrónicos."""

from django.apps import AppConfig


class DteSvConfig(AppConfig):
    """Configuración de la app Django dte-sv."""

    name = "dte_sv.contrib.django"
    label = "dte_sv"
    verbose_name = "Documentos tributarios electrónicos"
    default_auto_field = "django.db.models.BigAutoField"
