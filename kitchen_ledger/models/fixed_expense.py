"""
FixedExpense model for monthly operating costs (rent, staff, utilities...).
"""

from sqlalchemy import Column, String, Numeric

from .base import BaseModel


class FixedExpense(BaseModel):
    """
    Monthly fixed cost.

    Attributes:
        concepto: Label (e.g., "Alquiler", "Personal")
        monto_mensual: Monthly amount
    """

    __tablename__ = "gastos_fijos"

    concepto = Column(String(200), nullable=False)
    monto_mensual = Column(Numeric(12, 2), nullable=False, default=0)
