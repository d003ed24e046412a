"""Contexto de facturación del marketplace (solo lectura).

ES: El motor consulta la venta de origen (monto y datos fiscales de la
    contraparte) para construir las facturas. El dominio de ventas,
    cotizaciones y solicitudes pertenece al marketplace.
EN: Read-only lookup of the originating sale by id.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from decimal import Decimal

from pydantic import BaseModel, Field

from dte_sv.errors import DocumentNotFoundError
from dte_sv.models.party import Counterparty


class SaleRecord(BaseModel):
    """Venta de origen en el marketplace."""

    sale_id: str = Field(..., description="Identificador de la venta / Sale id")
    amount: Decimal = Field(..., gt=0, description="Total de la venta / Sale total")
    counterparty: Counterparty = Field(..., description="Cliente / Customer")
    description: str | None = Field(default=None, max_length=1000)


class BaseBillingSource(metaclass=ABCMeta):
    """Fuente de ventas del marketplace."""

    @abstractmethod
    async def get_sale(self, sale_id: str) -> SaleRecord:
        """Devuelve la venta.

        Raises:
            DocumentNotFoundError: Si la venta no existe.
        """
        ...


class MemoryBillingSource(BaseBillingSource):
    """Fuente de ventas en memoria."""

    def __init__(self, sales: list[SaleRecord] | None = None) -> None:
        self._sales = {sale.sale_id: sale for sale in sales or []}

    def add(self, sale: SaleRecord) -> None:
        self._sales[sale.sale_id] = sale

    async def get_sale(self, sale_id: str) -> SaleRecord:
        sale = self._sales.get(sale_id)
        if sale is None:
            msg = f"Venta no encontrada : {sale_id}"
            raise DocumentNotFoundError(msg)
        return sale.model_copy(deep=True)
