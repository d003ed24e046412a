"""Integraciones opcionales con frameworks."""
