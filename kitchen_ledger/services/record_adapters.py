"""Normalization of raw payloads into canonical records.

Persisted data spells some fields two ways (``ingredienteId`` and
``ingrediente_id``, ``proveedorId`` and ``proveedor_id``...). Each adapter
below accepts every known spelling for its record type and returns
``Ok(record)`` or ``Err(message)``; the rest of the engine only ever sees the
canonical record.

Usage:
    result = ingredient_from_dict({"id": 1, "nombre": "Harina", "precio": "12.5"})
    if result.is_ok:
        ingredient = result.value
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from kitchen_ledger.models.enums import AdjustmentReason
from kitchen_ledger.utils.constants import SUB_RECIPE_ID_OFFSET
from kitchen_ledger.utils.datetime_utils import parse_timestamp

from .defaults import (
    resolve_line_status,
    resolve_order_status,
    resolve_quantity_per_format,
    resolve_real_price,
    resolve_received_quantity,
)
from .logging_utils import get_service_logger
from .records import (
    AdjustmentSplit,
    FixedExpenseRecord,
    IngredientRecord,
    OrderLineRecord,
    PurchaseOrderRecord,
    RecipeLineRecord,
    RecipeRecord,
    RecipeVariantRecord,
    SaleRecord,
    StockSnapshot,
    SupplierRecord,
)
from .result import Err, Ok, Result

logger = get_service_logger(__name__)

# Accepted spellings, canonical first
INGREDIENT_REF = ("ingredienteId", "ingrediente_id")
SUPPLIER_REF = ("proveedorId", "proveedor_id")
RECIPE_REF = ("recetaId", "receta_id")
LINE_LISTS = ("ingredientes", "items")
ORDERED_PRICE = ("precioUnitario", "precio_unitario", "precio")
QUANTITY_PER_FORMAT = ("cantidadPorFormato", "cantidad_por_formato")


def _first(raw: Mapping[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def _decimal(
    raw: Mapping[str, Any], names: Tuple[str, ...], errors: List[str], required: bool = False
) -> Optional[Decimal]:
    value = _first(raw, names)
    if value is None or (isinstance(value, str) and value.strip() == ""):
        if required:
            errors.append(f"{names[0]}: required")
        return None
    if isinstance(value, bool):
        errors.append(f"{names[0]}: not a number ({value!r})")
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        errors.append(f"{names[0]}: not a number ({value!r})")
        return None
    if not result.is_finite():
        errors.append(f"{names[0]}: not a finite number ({value!r})")
        return None
    return result


def _int(
    raw: Mapping[str, Any], names: Tuple[str, ...], errors: List[str], required: bool = False
) -> Optional[int]:
    value = _first(raw, names)
    if value is None or (isinstance(value, str) and value.strip() == ""):
        if required:
            errors.append(f"{names[0]}: required")
        return None
    if isinstance(value, bool):
        errors.append(f"{names[0]}: not an integer ({value!r})")
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        errors.append(f"{names[0]}: not an integer ({value!r})")
        return None
    if not number.is_finite() or number != number.to_integral_value():
        errors.append(f"{names[0]}: not an integer ({value!r})")
        return None
    return int(number)


def _text(raw: Mapping[str, Any], names: Tuple[str, ...], default: str = "") -> str:
    value = _first(raw, names)
    return default if value is None else str(value)


def _finish(record_factory: Callable[[], Any], errors: List[str], kind: str) -> Result:
    if errors:
        return Err(f"{kind}: " + "; ".join(errors))
    return Ok(record_factory())


def ingredient_from_dict(raw: Mapping[str, Any]) -> Result[IngredientRecord, str]:
    """Normalize an ingredient payload."""
    errors: List[str] = []
    ingredient_id = _int(raw, ("id",), errors, required=True)
    price = _decimal(raw, ("precio",), errors)
    stock = _decimal(raw, ("stock_actual", "stockActual"), errors)
    min_stock = _decimal(raw, ("stock_minimo", "stockMinimo"), errors)
    per_format = _decimal(raw, QUANTITY_PER_FORMAT, errors)
    average = _decimal(raw, ("precio_medio", "precioMedio"), errors)
    yield_percent = _decimal(raw, ("rendimiento",), errors)

    return _finish(
        lambda: IngredientRecord(
            id=ingredient_id,
            name=_text(raw, ("nombre",), default=f"#{ingredient_id}"),
            unit=_text(raw, ("unidad",)),
            price=price if price is not None else Decimal("0"),
            stock=stock if stock is not None else Decimal("0"),
            min_stock=min_stock if min_stock is not None else Decimal("0"),
            purchase_format=_first(raw, ("formato_compra", "formatoCompra")),
            quantity_per_format=per_format,
            average_price=average,
            yield_percent=yield_percent,
        ),
        errors,
        "ingredient",
    )


def recipe_line_from_dict(raw: Mapping[str, Any]) -> Result[RecipeLineRecord, str]:
    """
    Normalize a recipe line.

    References above SUB_RECIPE_ID_OFFSET point at base recipes.
    """
    errors: List[str] = []
    reference = _int(raw, INGREDIENT_REF, errors, required=True)
    quantity = _decimal(raw, ("cantidad",), errors, required=True)
    yield_percent = _decimal(raw, ("rendimiento",), errors)

    def build() -> RecipeLineRecord:
        if reference > SUB_RECIPE_ID_OFFSET:
            return RecipeLineRecord(
                quantity=quantity,
                sub_recipe_id=reference - SUB_RECIPE_ID_OFFSET,
                yield_percent=yield_percent,
            )
        return RecipeLineRecord(
            quantity=quantity, ingredient_id=reference, yield_percent=yield_percent
        )

    return _finish(build, errors, "recipe line")


def recipe_variant_from_dict(raw: Mapping[str, Any]) -> Result[RecipeVariantRecord, str]:
    """Normalize a sales variant; a missing or zero factor means one portion."""
    errors: List[str] = []
    price = _decimal(raw, ("precio_venta", "precioVenta"), errors)
    factor = _decimal(raw, ("factor",), errors)
    return _finish(
        lambda: RecipeVariantRecord(
            id=_first(raw, ("id",)),
            name=_text(raw, ("nombre",)),
            code=_first(raw, ("codigo",)),
            selling_price=price if price is not None else Decimal("0"),
            factor=factor if factor is not None and factor > 0 else Decimal("1"),
        ),
        errors,
        "recipe variant",
    )


def recipe_from_dict(raw: Mapping[str, Any]) -> Result[RecipeRecord, str]:
    """
    Normalize a recipe, its lines and its sales variants.

    Lines and variants that cannot be read are skipped and listed in
    ``skipped_lines`` and ``skipped_variants``; only a bad recipe id, price
    or portion count rejects the recipe.
    """
    errors: List[str] = []
    recipe_id = _int(raw, ("id",), errors, required=True)
    selling_price = _decimal(raw, ("precio_venta", "precioVenta"), errors)
    portions = _int(raw, ("porciones",), errors)

    lines: List[RecipeLineRecord] = []
    skipped: List[str] = []
    for index, raw_line in enumerate(_first(raw, LINE_LISTS) or []):
        result = recipe_line_from_dict(raw_line)
        if result.is_ok:
            lines.append(result.value)
        else:
            skipped.append(f"line {index}: {result.error}")

    variants: List[RecipeVariantRecord] = []
    skipped_variants: List[str] = []
    for index, raw_variant in enumerate(_first(raw, ("variantes",)) or []):
        result = recipe_variant_from_dict(raw_variant)
        if result.is_ok:
            variants.append(result.value)
        else:
            skipped_variants.append(f"variant {index}: {result.error}")

    if (skipped or skipped_variants) and not errors:
        logger.warning(
            f"Recipe {recipe_id}: skipping unreadable entries: "
            f"{'; '.join(skipped + skipped_variants)}"
        )

    return _finish(
        lambda: RecipeRecord(
            id=recipe_id,
            name=_text(raw, ("nombre",), default=f"#{recipe_id}"),
            selling_price=selling_price if selling_price is not None else Decimal("0"),
            lines=lines,
            portions=portions,
            category=_first(raw, ("categoria",)),
            variants=variants,
            skipped_lines=skipped,
            skipped_variants=skipped_variants,
        ),
        errors,
        "recipe",
    )


def sale_from_dict(raw: Mapping[str, Any]) -> Result[SaleRecord, str]:
    """Normalize a sale; the timestamp is required."""
    errors: List[str] = []
    recipe_id = _int(raw, RECIPE_REF, errors, required=True)
    quantity = _decimal(raw, ("cantidad",), errors, required=True)
    total = _decimal(raw, ("total",), errors)
    timestamp = parse_timestamp(_first(raw, ("fecha",)))
    if timestamp is None:
        errors.append("fecha: missing or unparseable")

    return _finish(
        lambda: SaleRecord(
            id=_first(raw, ("id",)),
            recipe_id=recipe_id,
            quantity=quantity,
            total=total if total is not None else Decimal("0"),
            timestamp=timestamp,
        ),
        errors,
        "sale",
    )


def order_line_from_dict(raw: Mapping[str, Any]) -> Result[OrderLineRecord, str]:
    """
    Normalize an order line with reception annotations.

    Received quantity and real price fall back to the ordered values (see
    defaults.resolve_received_quantity / resolve_real_price).
    """
    errors: List[str] = []
    ingredient_id = _int(raw, INGREDIENT_REF, errors, required=True)
    ordered = _decimal(raw, ("cantidad",), errors, required=True)
    ordered_price = _decimal(raw, ORDERED_PRICE, errors)
    received = _decimal(raw, ("cantidadRecibida", "cantidad_recibida"), errors)
    real_price = _decimal(raw, ("precioReal", "precio_real"), errors)
    per_format = _decimal(raw, QUANTITY_PER_FORMAT, errors)

    def build() -> OrderLineRecord:
        price = ordered_price if ordered_price is not None else Decimal("0")
        return OrderLineRecord(
            id=_first(raw, ("id",)),
            ingredient_id=ingredient_id,
            ordered_quantity=ordered,
            ordered_unit_price=price,
            received_quantity=resolve_received_quantity(received, ordered),
            real_unit_price=resolve_real_price(real_price, price),
            status=resolve_line_status(_first(raw, ("estado",))),
            quantity_per_format=resolve_quantity_per_format(per_format),
            price_is_per_unit=bool(_first(raw, ("precioYaEsUnitario", "precio_es_unitario"))),
            stock_applied=bool(_first(raw, ("stockAplicado", "stock_aplicado"))),
        )

    return _finish(build, errors, "order line")


def purchase_order_from_dict(raw: Mapping[str, Any]) -> Result[PurchaseOrderRecord, str]:
    """Normalize a purchase order and its lines; any bad line rejects the order."""
    errors: List[str] = []
    order_id = _int(raw, ("id",), errors, required=True)
    supplier_id = _int(raw, SUPPLIER_REF, errors)
    total_received = _decimal(raw, ("totalRecibido", "total_recibido"), errors)

    lines: List[OrderLineRecord] = []
    for index, raw_line in enumerate(_first(raw, LINE_LISTS) or []):
        result = order_line_from_dict(raw_line)
        if result.is_ok:
            lines.append(result.value)
        else:
            errors.append(f"line {index}: {result.error}")

    return _finish(
        lambda: PurchaseOrderRecord(
            id=order_id,
            supplier_id=supplier_id,
            date=parse_timestamp(_first(raw, ("fecha",))),
            status=resolve_order_status(_first(raw, ("estado",))),
            lines=lines,
            received_at=parse_timestamp(_first(raw, ("fecha_recepcion", "fechaRecepcion"))),
            total_received=total_received,
        ),
        errors,
        "purchase order",
    )


def supplier_from_dict(raw: Mapping[str, Any]) -> Result[SupplierRecord, str]:
    errors: List[str] = []
    supplier_id = _int(raw, ("id",), errors, required=True)
    return _finish(
        lambda: SupplierRecord(id=supplier_id, name=_text(raw, ("nombre",))),
        errors,
        "supplier",
    )


def fixed_expense_from_dict(raw: Mapping[str, Any]) -> Result[FixedExpenseRecord, str]:
    errors: List[str] = []
    amount = _decimal(raw, ("monto_mensual", "montoMensual"), errors)
    return _finish(
        lambda: FixedExpenseRecord(
            id=_first(raw, ("id",)),
            concept=_text(raw, ("concepto",)),
            monthly_amount=amount if amount is not None else Decimal("0"),
        ),
        errors,
        "fixed expense",
    )


def snapshot_from_dict(raw: Mapping[str, Any]) -> Result[StockSnapshot, str]:
    """Normalize a ``{id, stock_virtual, stock_real}`` count entry."""
    errors: List[str] = []
    ingredient_id = _int(raw, ("id",) + INGREDIENT_REF, errors, required=True)
    theoretical = _decimal(raw, ("stock_virtual", "stockVirtual"), errors)
    counted = _decimal(raw, ("stock_real", "stockReal"), errors, required=True)
    return _finish(
        lambda: StockSnapshot(
            ingredient_id=ingredient_id,
            theoretical_stock=theoretical if theoretical is not None else Decimal("0"),
            counted_stock=counted,
        ),
        errors,
        "stock snapshot",
    )


def split_from_dict(raw: Mapping[str, Any]) -> Result[AdjustmentSplit, str]:
    """Normalize a ``{cantidad, motivo, notas}`` split entered by the operator."""
    errors: List[str] = []
    magnitude = _decimal(raw, ("cantidad",), errors, required=True)
    reason = AdjustmentReason.parse(_first(raw, ("motivo",)))
    if reason is None:
        errors.append(f"motivo: unknown reason ({_first(raw, ('motivo',))!r})")
    return _finish(
        lambda: AdjustmentSplit(
            magnitude=magnitude, reason=reason, notes=_text(raw, ("notas",))
        ),
        errors,
        "adjustment split",
    )


def adapt_all(
    raws: Optional[Iterable[Mapping[str, Any]]],
    adapter: Callable[[Mapping[str, Any]], Result],
) -> Tuple[List[Any], List[str]]:
    """
    Run an adapter over a collection, keeping what normalizes.

    Returns:
        Tuple of (records, errors); rejected payloads are logged and skipped.
    """
    records: List[Any] = []
    errors: List[str] = []
    for raw in raws or []:
        result = adapter(raw)
        if result.is_ok:
            records.append(result.value)
        else:
            errors.append(result.error)
            logger.warning(f"Skipping record: {result.error}")
    return records, errors


def index_by_id(records: Iterable[Any]) -> Dict[int, Any]:
    """Map records by their ``id`` attribute."""
    return {record.id: record for record in records}
