"""Coordinación de documentos en contingencia."""

from dte_sv.contingency.coordinator import ContingencyCoordinator, parse_reported_dtes

__all__ = ["ContingencyCoordinator", "parse_reported_dtes"]
