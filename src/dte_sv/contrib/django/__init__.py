"""Integración Django del motor DTE (aplicación `dte_sv.contrib.django`)."""
