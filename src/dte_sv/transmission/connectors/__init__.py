"""Conectores concretos de transmisión."""
