"""
Recipe models.

This module contains:
- Recipe: a sellable dish with its selling price and portion count
- RecipeLine: one bill-of-materials line, pointing either at an ingredient
  or at a base recipe (a preparation used inside other recipes)
- RecipeVariant: an extra sales format of a recipe (copa, botella, tapa)
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Numeric,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from kitchen_ledger.utils.constants import SUB_RECIPE_ID_OFFSET

from .base import BaseModel


class Recipe(BaseModel):
    """
    Recipe model.

    Attributes:
        nombre: Recipe name
        categoria: Optional menu category
        precio_venta: Selling price of one portion
        porciones: Portions produced by one batch

    Relationships:
        lineas: Ordered bill-of-materials lines
    """

    __tablename__ = "recetas"

    nombre = Column(String(200), nullable=False, index=True)
    categoria = Column(String(100), nullable=True)
    precio_venta = Column(Numeric(10, 2), nullable=False, default=0)
    porciones = Column(Integer, nullable=True, default=1)

    lineas = relationship(
        "RecipeLine",
        back_populates="receta",
        foreign_keys="RecipeLine.receta_id",
        cascade="all, delete-orphan",
        order_by="RecipeLine.posicion",
    )
    variantes = relationship(
        "RecipeVariant",
        back_populates="receta",
        cascade="all, delete-orphan",
        order_by="RecipeVariant.id",
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert recipe to its exchange shape.

        Lines are always included under ``ingredientes`` and sales variants
        under ``variantes``.
        """
        result = super().to_dict(False)
        result["ingredientes"] = [line.to_dict() for line in self.lineas]
        result["variantes"] = [variant.to_dict() for variant in self.variantes]
        return result


class RecipeLine(BaseModel):
    """
    Bill-of-materials line.

    Exactly one of ``ingrediente_id`` / ``receta_base_id`` is set.

    Attributes:
        receta_id: Owning recipe
        posicion: Order of the line within the recipe
        ingrediente_id: Ingredient consumed
        receta_base_id: Base recipe consumed (portions of it)
        cantidad: Quantity consumed per batch
        rendimiento: Optional yield percentage for this line
    """

    __tablename__ = "receta_lineas"

    receta_id = Column(Integer, ForeignKey("recetas.id", ondelete="CASCADE"), nullable=False)
    posicion = Column(Integer, nullable=False, default=0)
    ingrediente_id = Column(
        Integer, ForeignKey("ingredientes.id", ondelete="RESTRICT"), nullable=True
    )
    receta_base_id = Column(Integer, ForeignKey("recetas.id", ondelete="RESTRICT"), nullable=True)
    cantidad = Column(Numeric(12, 4), nullable=False)
    rendimiento = Column(Numeric(5, 2), nullable=True)

    receta = relationship("Recipe", back_populates="lineas", foreign_keys=[receta_id])

    __table_args__ = (
        CheckConstraint(
            "(ingrediente_id IS NULL) != (receta_base_id IS NULL)",
            name="ck_receta_linea_single_reference",
        ),
        Index("idx_receta_linea_receta", "receta_id"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """Exchange shape: base recipes travel as ``ingrediente_id`` above the offset."""
        reference = self.ingrediente_id
        if reference is None and self.receta_base_id is not None:
            reference = self.receta_base_id + SUB_RECIPE_ID_OFFSET
        return {
            "id": self.id,
            "ingrediente_id": reference,
            "cantidad": self.cantidad,
            "rendimiento": self.rendimiento,
        }


class RecipeVariant(BaseModel):
    """
    Sales format of a recipe.

    Attributes:
        receta_id: Recipe sold in this format
        nombre: Display name ("Copa", "Botella")
        codigo: Optional point-of-sale code
        precio_venta: Selling price of the format
        factor: Portions of the recipe the format uses
    """

    __tablename__ = "receta_variantes"

    receta_id = Column(Integer, ForeignKey("recetas.id", ondelete="CASCADE"), nullable=False)
    nombre = Column(String(100), nullable=False)
    codigo = Column(String(50), nullable=True)
    precio_venta = Column(Numeric(10, 2), nullable=False, default=0)
    factor = Column(Numeric(8, 3), nullable=False, default=1)

    receta = relationship("Recipe", back_populates="variantes")

    __table_args__ = (
        CheckConstraint("factor > 0", name="ck_receta_variante_factor_positive"),
        Index("idx_receta_variante_receta", "receta_id"),
    )
