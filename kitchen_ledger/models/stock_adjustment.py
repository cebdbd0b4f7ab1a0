"""
Stock movement audit models.

This module contains:
- StockAdjustment: immutable record of every stock change the engine issues
  (reconciliation splits, order receptions, quick losses)
- StockCount: per-ingredient snapshot captured when a physical count is
  reconciled (theoretical vs counted stock)
"""

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Numeric,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from kitchen_ledger.utils.datetime_utils import local_now

from .base import BaseModel


class StockAdjustment(BaseModel):
    """
    StockAdjustment model for the stock movement audit trail.

    Records are immutable after creation - no updates or deletes.

    Attributes:
        ingrediente_id: Ingredient whose stock moved
        cantidad: Signed quantity (negative = stock leaving)
        motivo: Reason code (AdjustmentReason value or movement origin)
        notas: Optional free-text notes
        origen: Which operation issued the movement
        referencia: Optional reference (e.g., order id)
        fecha: When the movement was applied
    """

    __tablename__ = "ajustes_stock"

    updated_at = None

    ingrediente_id = Column(
        Integer, ForeignKey("ingredientes.id", ondelete="CASCADE"), nullable=False
    )
    cantidad = Column(Numeric(12, 3), nullable=False)
    motivo = Column(String(50), nullable=False)
    notas = Column(Text, nullable=True)
    origen = Column(String(50), nullable=False)
    referencia = Column(String(100), nullable=True)
    fecha = Column(DateTime, nullable=False, default=local_now)

    ingrediente = relationship("Ingredient")

    __table_args__ = (
        Index("idx_ajuste_ingrediente", "ingrediente_id"),
        Index("idx_ajuste_fecha", "fecha"),
    )

    def __repr__(self) -> str:
        """String representation of stock adjustment."""
        return (
            f"StockAdjustment(id={self.id}, ingrediente_id={self.ingrediente_id}, "
            f"cantidad={self.cantidad}, motivo='{self.motivo}')"
        )


class StockCount(BaseModel):
    """
    Reconciliation snapshot history.

    Attributes:
        ingrediente_id: Ingredient counted
        stock_virtual: Theoretical stock at count time
        stock_real: Physically counted stock
        diferencia: stock_real - stock_virtual
        fecha: When the count was committed
    """

    __tablename__ = "conteos_stock"

    updated_at = None

    ingrediente_id = Column(
        Integer, ForeignKey("ingredientes.id", ondelete="CASCADE"), nullable=False
    )
    stock_virtual = Column(Numeric(12, 3), nullable=False)
    stock_real = Column(Numeric(12, 3), nullable=False)
    diferencia = Column(Numeric(12, 3), nullable=False)
    fecha = Column(DateTime, nullable=False, default=local_now)

    __table_args__ = (Index("idx_conteo_ingrediente", "ingrediente_id"),)
