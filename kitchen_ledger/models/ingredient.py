"""
Ingredient model for the ingredient catalog and its stock level.

Prices are per purchase format (``precio`` for one ``formato_compra`` holding
``cantidad_por_formato`` units). ``precio_medio`` is the running weighted
average unit price maintained by the backend; the engine reads it but never
writes it.
"""

from sqlalchemy import Column, String, Numeric, Index, CheckConstraint

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient model representing a stocked raw material.

    Attributes:
        nombre: Ingredient name (e.g., "Harina", "Tomate pera")
        unidad: Unit of measure stock is counted in (e.g., "kg", "ud")
        precio: Price of one purchase format
        precio_medio: Weighted-average unit price (owned by the backend)
        stock_actual: Current stock in ``unidad``
        stock_minimo: Minimum stock threshold
        formato_compra: Optional purchase format name (e.g., "caja")
        cantidad_por_formato: Units per purchase format
        rendimiento: Default yield percentage for recipe lines
    """

    __tablename__ = "ingredientes"

    nombre = Column(String(200), nullable=False, index=True)
    unidad = Column(String(20), nullable=False, default="ud")
    precio = Column(Numeric(12, 4), nullable=False, default=0)
    precio_medio = Column(Numeric(12, 4), nullable=True)
    stock_actual = Column(Numeric(12, 3), nullable=False, default=0)
    stock_minimo = Column(Numeric(12, 3), nullable=False, default=0)
    formato_compra = Column(String(50), nullable=True)
    cantidad_por_formato = Column(Numeric(12, 3), nullable=True)
    rendimiento = Column(Numeric(5, 2), nullable=True)

    __table_args__ = (
        CheckConstraint("precio >= 0", name="ck_ingrediente_precio_non_negative"),
        Index("idx_ingrediente_nombre", "nombre"),
    )

    def __repr__(self) -> str:
        """String representation of ingredient."""
        return (
            f"Ingredient(id={self.id}, nombre='{self.nombre}', "
            f"stock_actual={self.stock_actual} {self.unidad})"
        )
