"""
Sale model. Sales are immutable once recorded (they may only be deleted).
"""

from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from kitchen_ledger.utils.datetime_utils import local_now

from .base import BaseModel


class Sale(BaseModel):
    """
    Sale model.

    Attributes:
        receta_id: Recipe sold
        cantidad: Units sold
        total: Amount charged
        fecha: When the sale happened
    """

    __tablename__ = "ventas"

    # Sales are immutable - no updated_at
    updated_at = None

    receta_id = Column(Integer, ForeignKey("recetas.id", ondelete="RESTRICT"), nullable=False)
    cantidad = Column(Numeric(10, 3), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    fecha = Column(DateTime, nullable=False, default=local_now)

    receta = relationship("Recipe")

    __table_args__ = (
        CheckConstraint("cantidad > 0", name="ck_venta_cantidad_positive"),
        Index("idx_venta_fecha", "fecha"),
        Index("idx_venta_receta", "receta_id"),
    )
