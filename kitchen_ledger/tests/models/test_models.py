"""Tests for the ORM models and their exchange shapes."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from kitchen_ledger.models import (
    Ingredient,
    OrderLine,
    PurchaseOrder,
    Recipe,
    RecipeLine,
    RecipeVariant,
    StockCount,
)
from kitchen_ledger.services.database import session_scope
from kitchen_ledger.services.record_adapters import recipe_from_dict
from kitchen_ledger.utils.constants import SUB_RECIPE_ID_OFFSET


class TestIngredient:
    def test_to_dict_uses_column_names(self, stocked_ingredients):
        harina_id, _ = stocked_ingredients
        with session_scope() as session:
            data = session.get(Ingredient, harina_id).to_dict()

        assert data["nombre"] == "Harina"
        assert data["stock_actual"] == Decimal("10")
        assert data["cantidad_por_formato"] == Decimal("25")
        assert isinstance(data["created_at"], str)

    def test_update_from_dict_ignores_unknown_and_protected_fields(self, stocked_ingredients):
        harina_id, _ = stocked_ingredients
        with session_scope() as session:
            harina = session.get(Ingredient, harina_id)
            harina.update_from_dict({"id": 999, "stock_minimo": Decimal("4"), "colour": "white"})
            session.flush()
            assert harina.id == harina_id
            assert harina.stock_minimo == Decimal("4")

    def test_negative_price_rejected(self, test_db):
        with pytest.raises(IntegrityError):
            with session_scope() as session:
                session.add(Ingredient(nombre="Sal", precio=Decimal("-1")))


class TestRecipe:
    def test_base_recipe_lines_exported_above_offset(self, stocked_ingredients):
        harina_id, _ = stocked_ingredients
        with session_scope() as session:
            base = Recipe(nombre="Masa", porciones=4)
            base.lineas = [RecipeLine(ingrediente_id=harina_id, cantidad=Decimal("1"))]
            session.add(base)
            session.flush()
            pizza = Recipe(nombre="Pizza", precio_venta=Decimal("11"))
            pizza.lineas = [RecipeLine(receta_base_id=base.id, cantidad=Decimal("2"))]
            session.add(pizza)
            session.flush()

            data = pizza.to_dict()

        assert data["ingredientes"][0]["ingrediente_id"] == base.id + SUB_RECIPE_ID_OFFSET
        assert data["ingredientes"][0]["cantidad"] == Decimal("2")

    def test_line_needs_exactly_one_reference(self, stocked_ingredients):
        with pytest.raises(IntegrityError):
            with session_scope() as session:
                recipe = Recipe(nombre="Vacía")
                recipe.lineas = [RecipeLine(cantidad=Decimal("1"))]
                session.add(recipe)

    def test_variants_exported_and_read_back(self, test_db):
        with session_scope() as session:
            wine = Recipe(nombre="Rioja", precio_venta=Decimal("18"))
            wine.variantes = [
                RecipeVariant(nombre="Copa", codigo="RC-C", precio_venta=Decimal("3.50"),
                              factor=Decimal("0.2")),
                RecipeVariant(nombre="Botella", precio_venta=Decimal("18")),
            ]
            session.add(wine)
            session.flush()
            data = wine.to_dict()

        assert [v["nombre"] for v in data["variantes"]] == ["Copa", "Botella"]
        assert data["variantes"][1]["factor"] == Decimal("1")

        record = recipe_from_dict(data).value
        assert record.variants[0].factor == Decimal("0.2")
        assert record.variants[0].code == "RC-C"

    def test_variant_factor_must_be_positive(self, test_db):
        with pytest.raises(IntegrityError):
            with session_scope() as session:
                wine = Recipe(nombre="Rioja")
                wine.variantes = [RecipeVariant(nombre="Nada", precio_venta=Decimal("1"),
                                                factor=Decimal("0"))]
                session.add(wine)


class TestPurchaseOrder:
    def test_to_dict_includes_reception_fields(self, test_db):
        with session_scope() as session:
            order = PurchaseOrder(fecha=datetime(2026, 2, 10))
            order.lineas = [
                OrderLine(
                    ingrediente_id=1,
                    cantidad=Decimal("24"),
                    precio_unitario=Decimal("33.12"),
                    cantidad_por_formato=Decimal("24"),
                )
            ]
            session.add(order)
            session.flush()
            data = order.to_dict()

        assert data["estado"] == "pendiente"
        line = data["ingredientes"][0]
        assert line["precioYaEsUnitario"] is False
        assert line["cantidadRecibida"] is None
        assert line["estado"] == "consolidado"
        assert line["stockAplicado"] is False

    def test_unknown_status_rejected(self, test_db):
        with pytest.raises(IntegrityError):
            with session_scope() as session:
                session.add(PurchaseOrder(estado="perdido"))


class TestStockCount:
    def test_has_no_updated_at_column(self):
        assert "updated_at" not in StockCount.__table__.columns
