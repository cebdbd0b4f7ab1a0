"""
Supplier model for vendors that purchase orders are placed with.
"""

from sqlalchemy import Column, String, Boolean, Text

from .base import BaseModel


class Supplier(BaseModel):
    """
    Supplier model representing a vendor.

    Attributes:
        nombre: Supplier name
        telefono: Optional phone number
        email: Optional email address
        notas: Optional notes
        activo: Soft delete flag
    """

    __tablename__ = "proveedores"

    nombre = Column(String(200), nullable=False)
    telefono = Column(String(50), nullable=True)
    email = Column(String(200), nullable=True)
    notas = Column(Text, nullable=True)
    activo = Column(Boolean, nullable=False, default=True)
