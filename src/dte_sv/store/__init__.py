"""Almacenes de documentos fiscales."""

from dte_sv.store.base import BaseDocumentStore
from dte_sv.store.memory import MemoryDocumentStore

__all__ = ["BaseDocumentStore", "MemoryDocumentStore"]
