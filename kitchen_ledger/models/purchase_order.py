"""
Purchase order models.

This module contains:
- PurchaseOrder: an order placed with a supplier
- OrderLine: one ordered ingredient, with its reception annotations

Orders move PENDING -> RECEIVED exactly once, and only after every stock
delta of the reception has been applied (see reception_service).
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from kitchen_ledger.utils.datetime_utils import local_now

from .base import BaseModel
from .enums import LineStatus, OrderStatus


class PurchaseOrder(BaseModel):
    """
    PurchaseOrder model.

    Attributes:
        proveedor_id: Supplier the order was placed with
        fecha: Order date
        estado: OrderStatus value
        total: Ordered total
        total_recibido: Total actually received (set on reception)
        fecha_recepcion: Reception timestamp (set on reception)

    Relationships:
        lineas: Ordered lines
    """

    __tablename__ = "pedidos"

    proveedor_id = Column(
        Integer, ForeignKey("proveedores.id", ondelete="RESTRICT"), nullable=True
    )
    fecha = Column(DateTime, nullable=False, default=local_now)
    estado = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    total = Column(Numeric(12, 2), nullable=True)
    total_recibido = Column(Numeric(12, 2), nullable=True)
    fecha_recepcion = Column(DateTime, nullable=True)

    lineas = relationship(
        "OrderLine",
        back_populates="pedido",
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )

    __table_args__ = (
        CheckConstraint(
            f"estado IN ('{OrderStatus.PENDING.value}', '{OrderStatus.RECEIVED.value}')",
            name="ck_pedido_estado_valid",
        ),
        Index("idx_pedido_estado", "estado"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """Exchange shape, lines always included under ``ingredientes``."""
        result = super().to_dict(False)
        result["ingredientes"] = [line.to_dict() for line in self.lineas]
        return result


class OrderLine(BaseModel):
    """
    OrderLine model.

    ``ingrediente_id`` is a loose reference: receptions must report lines
    whose ingredient has disappeared instead of failing to load the order.

    Attributes:
        pedido_id: Owning order
        ingrediente_id: Ingredient ordered
        cantidad: Ordered quantity (stock units)
        precio_unitario: Ordered price
        cantidad_por_formato: Units per purchase format the price refers to
        precio_es_unitario: True when precio_unitario is already per unit
        cantidad_recibida: Received quantity (reception)
        precio_real: Price actually charged (reception)
        estado: LineStatus value
        stock_aplicado: Received quantity already added to stock
    """

    __tablename__ = "pedido_lineas"

    pedido_id = Column(Integer, ForeignKey("pedidos.id", ondelete="CASCADE"), nullable=False)
    ingrediente_id = Column(Integer, nullable=False, index=True)
    cantidad = Column(Numeric(12, 3), nullable=False)
    precio_unitario = Column(Numeric(12, 4), nullable=False, default=0)
    cantidad_por_formato = Column(Numeric(12, 3), nullable=True)
    precio_es_unitario = Column(Boolean, nullable=False, default=False)
    cantidad_recibida = Column(Numeric(12, 3), nullable=True)
    precio_real = Column(Numeric(12, 4), nullable=True)
    estado = Column(String(20), nullable=False, default=LineStatus.OK.value)
    stock_aplicado = Column(Boolean, nullable=False, default=False)

    pedido = relationship("PurchaseOrder", back_populates="lineas")

    def to_dict(self, include_relationships: bool = False) -> dict:
        """Exchange shape of an order line."""
        return {
            "id": self.id,
            "ingrediente_id": self.ingrediente_id,
            "cantidad": self.cantidad,
            "precio_unitario": self.precio_unitario,
            "cantidad_por_formato": self.cantidad_por_formato,
            "precioYaEsUnitario": self.precio_es_unitario,
            "cantidadRecibida": self.cantidad_recibida,
            "precioReal": self.precio_real,
            "estado": self.estado,
            "stockAplicado": self.stock_aplicado,
        }
