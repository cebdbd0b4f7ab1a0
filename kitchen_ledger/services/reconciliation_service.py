"""
Reconciliation service - explains stock differences found by a physical count.

A count produces StockSnapshots (theoretical vs counted stock). Every
difference must be fully explained by AdjustmentSplits (expiry, accident,
count error...) before the batch can be committed. Splits are entered as
positive magnitudes; the sign is taken from the snapshot's difference when
adjustment records are built.

The engine half (capture, proposal, validation, commit building) is pure.
``commit_reconciliation`` persists a validated batch: counted stock becomes
the new stock level and every adjustment is written to the audit trail.

Usage:
    snapshots = capture_counts(theoretical, counted)
    entries = propose_entries(snapshots)
    # operator edits entries[i].splits ...
    result = commit_reconciliation(entries)
    if not result.is_ok:
        show(result.error.messages)
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from kitchen_ledger.models import Ingredient, StockAdjustment, StockCount
from kitchen_ledger.models.enums import AdjustmentReason
from kitchen_ledger.utils.constants import (
    COUNT_CHANGE_THRESHOLD,
    ORIGIN_RECONCILIATION,
    RECONCILIATION_EPSILON,
)
from kitchen_ledger.utils.datetime_utils import local_now

from .database import session_scope
from .dto_utils import Number, to_decimal
from .logging_utils import get_service_logger, log_operation
from .records import AdjustmentSplit, StockSnapshot
from .result import Err, Ok, Result

logger = get_service_logger(__name__)

ZERO = Decimal("0")


@dataclass
class ReconciliationEntry:
    """A snapshot together with the splits explaining its difference."""

    snapshot: StockSnapshot
    splits: List[AdjustmentSplit] = field(default_factory=list)

    @property
    def ingredient_id(self) -> int:
        return self.snapshot.ingredient_id

    @property
    def allocated(self) -> Decimal:
        """Sum of split magnitudes entered so far."""
        return sum((split.magnitude for split in self.splits), ZERO)

    @property
    def remaining(self) -> Decimal:
        """Part of the difference not yet explained (negative when over-allocated)."""
        return abs(self.snapshot.difference) - self.allocated

    @property
    def is_balanced(self) -> bool:
        return abs(self.allocated - abs(self.snapshot.difference)) < RECONCILIATION_EPSILON


@dataclass
class UnbalancedEntry:
    """An ingredient whose splits do not add up to its difference."""

    ingredient_id: int
    difference: Decimal
    allocated: Decimal
    remaining: Decimal


@dataclass
class InvalidSplit:
    """A split with a non-positive magnitude."""

    ingredient_id: int
    index: int
    magnitude: Decimal


@dataclass
class ValidationReport:
    """Everything that prevents a reconciliation batch from being committed."""

    unbalanced: List[UnbalancedEntry] = field(default_factory=list)
    invalid_splits: List[InvalidSplit] = field(default_factory=list)
    missing_ingredients: List[int] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not (self.unbalanced or self.invalid_splits or self.missing_ingredients)

    @property
    def messages(self) -> List[str]:
        """One human-readable message per offending entry."""
        messages = [
            f"Ingredient {u.ingredient_id}: {u.remaining} of {abs(u.difference)} unallocated"
            for u in self.unbalanced
        ]
        messages.extend(
            f"Ingredient {s.ingredient_id}: split {s.index} has non-positive quantity {s.magnitude}"
            for s in self.invalid_splits
        )
        messages.extend(
            f"Ingredient {ingredient_id}: not found" for ingredient_id in self.missing_ingredients
        )
        return messages


@dataclass
class AdjustmentRecord:
    """Signed stock adjustment ready to persist (negative = stock leaving)."""

    ingredient_id: int
    quantity: Decimal
    reason: AdjustmentReason
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingrediente_id": self.ingredient_id,
            "cantidad": self.quantity,
            "motivo": self.reason.value,
            "notas": self.notes,
        }


@dataclass
class ReconciliationCommit:
    """Validated reconciliation batch."""

    adjustments: List[AdjustmentRecord]
    snapshots: List[StockSnapshot]

    @property
    def final_stock(self) -> List[Dict[str, Any]]:
        return [
            {"id": snapshot.ingredient_id, "stock_real": snapshot.counted_stock}
            for snapshot in self.snapshots
        ]

    def to_payload(self) -> Dict[str, Any]:
        """Commit payload as exchanged with the backend."""
        return {
            "adjustments": [adjustment.to_dict() for adjustment in self.adjustments],
            "snapshots": [snapshot.to_dict() for snapshot in self.snapshots],
            "finalStock": self.final_stock,
        }


# =============================================================================
# Engine
# =============================================================================


def capture_counts(
    theoretical: Mapping[int, Number], counted: Mapping[int, Number]
) -> List[StockSnapshot]:
    """
    Build snapshots for the ingredients whose count changed.

    Counts within COUNT_CHANGE_THRESHOLD of the theoretical stock are
    treated as unchanged and dropped. Ingredients without a theoretical
    stock are compared against zero.

    Args:
        theoretical: Theoretical stock by ingredient id
        counted: Counted stock by ingredient id

    Returns:
        Snapshots in the order of ``counted``
    """
    snapshots = []
    for ingredient_id, counted_value in counted.items():
        snapshot = StockSnapshot(
            ingredient_id=ingredient_id,
            theoretical_stock=to_decimal(theoretical.get(ingredient_id)),
            counted_stock=to_decimal(counted_value),
        )
        if abs(snapshot.difference) > COUNT_CHANGE_THRESHOLD:
            snapshots.append(snapshot)
    return snapshots


def propose_splits(snapshot: StockSnapshot) -> List[AdjustmentSplit]:
    """
    Default explanation for a difference.

    A shortage is proposed as expiry, a surplus as a count error. These are
    starting points the operator is expected to edit.
    """
    difference = snapshot.difference
    if difference < 0:
        return [AdjustmentSplit(magnitude=abs(difference), reason=AdjustmentReason.EXPIRY)]
    if difference > 0:
        return [AdjustmentSplit(magnitude=difference, reason=AdjustmentReason.COUNT_ERROR)]
    return []


def propose_entries(snapshots: Iterable[StockSnapshot]) -> List[ReconciliationEntry]:
    """Wrap snapshots in entries pre-filled with the default splits."""
    return [
        ReconciliationEntry(snapshot=snapshot, splits=propose_splits(snapshot))
        for snapshot in snapshots
    ]


def validate_reconciliation(entries: Iterable[ReconciliationEntry]) -> ValidationReport:
    """Check every entry; the report lists every offending ingredient, not just the first."""
    report = ValidationReport()
    for entry in entries:
        for index, split in enumerate(entry.splits):
            if split.magnitude <= 0:
                report.invalid_splits.append(
                    InvalidSplit(entry.ingredient_id, index, split.magnitude)
                )
        if not entry.is_balanced:
            report.unbalanced.append(
                UnbalancedEntry(
                    ingredient_id=entry.ingredient_id,
                    difference=entry.snapshot.difference,
                    allocated=entry.allocated,
                    remaining=entry.remaining,
                )
            )
    return report


def build_commit(
    entries: List[ReconciliationEntry],
) -> Result[ReconciliationCommit, ValidationReport]:
    """
    Turn a batch of entries into signed adjustment records.

    Returns:
        Ok(ReconciliationCommit) when every entry is balanced, otherwise
        Err(ValidationReport); a single bad entry rejects the whole batch
    """
    report = validate_reconciliation(entries)
    if not report.is_valid:
        return Err(report)

    adjustments = []
    for entry in entries:
        sign = -1 if entry.snapshot.difference < 0 else 1
        for split in entry.splits:
            adjustments.append(
                AdjustmentRecord(
                    ingredient_id=entry.ingredient_id,
                    quantity=split.magnitude * sign,
                    reason=split.reason,
                    notes=split.notes,
                )
            )

    return Ok(
        ReconciliationCommit(
            adjustments=adjustments, snapshots=[entry.snapshot for entry in entries]
        )
    )


def parse_count_draft(text: Optional[str]) -> Result[Dict[int, Decimal], str]:
    """
    Parse a cached in-progress count (``{"<ingredient id>": <counted>}``).

    A missing or blank draft is an empty count.
    """
    if text is None or text.strip() == "":
        return Ok({})
    try:
        raw = json.loads(text, parse_float=Decimal)
    except json.JSONDecodeError as e:
        return Err(f"Count draft is not valid JSON: {e.msg}")
    if not isinstance(raw, dict):
        return Err("Count draft must be an object of ingredient id to counted stock")

    counts: Dict[int, Decimal] = {}
    for key, value in raw.items():
        try:
            ingredient_id = int(key)
        except ValueError:
            return Err(f"Count draft has a non-numeric ingredient id: {key!r}")
        if value is None or isinstance(value, bool):
            return Err(f"Count draft has an invalid count for ingredient {ingredient_id}")
        try:
            counts[ingredient_id] = to_decimal(value)
        except (ValueError, InvalidOperation):
            return Err(f"Count draft has an invalid count for ingredient {ingredient_id}")
    return Ok(counts)


def dump_count_draft(counts: Mapping[int, Number]) -> str:
    """Serialize an in-progress count for caching; inverse of parse_count_draft."""
    return json.dumps({str(key): str(to_decimal(value)) for key, value in counts.items()})


# =============================================================================
# Persistence
# =============================================================================


def commit_reconciliation(
    entries: List[ReconciliationEntry],
    session: Optional[Session] = None,
) -> Result[ReconciliationCommit, ValidationReport]:
    """
    Validate and persist a reconciliation batch.

    All or nothing: if any entry is unbalanced or any ingredient no longer
    exists, nothing is written. On success each ingredient's stock becomes
    its counted stock, a StockCount row records the snapshot and every
    adjustment is written as a StockAdjustment.

    Args:
        entries: Reconciliation entries
        session: Optional database session

    Returns:
        Ok(ReconciliationCommit) or Err(ValidationReport)
    """
    if session is not None:
        return _commit_reconciliation_impl(entries, session)
    with session_scope() as session:
        return _commit_reconciliation_impl(entries, session)


def _commit_reconciliation_impl(
    entries: List[ReconciliationEntry], session: Session
) -> Result[ReconciliationCommit, ValidationReport]:
    result = build_commit(entries)
    if not result.is_ok:
        log_operation(
            logger,
            "commit_reconciliation",
            "rejected",
            level=logging.WARNING,
            unbalanced=[u.ingredient_id for u in result.error.unbalanced],
        )
        return result

    commit = result.value
    ingredient_ids = [snapshot.ingredient_id for snapshot in commit.snapshots]
    ingredients = {
        ingredient.id: ingredient
        for ingredient in session.query(Ingredient).filter(Ingredient.id.in_(ingredient_ids))
    }
    missing = [i for i in ingredient_ids if i not in ingredients]
    if missing:
        log_operation(
            logger,
            "commit_reconciliation",
            "rejected",
            level=logging.WARNING,
            missing_ingredients=missing,
        )
        return Err(ValidationReport(missing_ingredients=missing))

    now = local_now()
    for snapshot in commit.snapshots:
        ingredients[snapshot.ingredient_id].stock_actual = snapshot.counted_stock
        session.add(
            StockCount(
                ingrediente_id=snapshot.ingredient_id,
                stock_virtual=snapshot.theoretical_stock,
                stock_real=snapshot.counted_stock,
                diferencia=snapshot.difference,
                fecha=now,
            )
        )
    for adjustment in commit.adjustments:
        session.add(
            StockAdjustment(
                ingrediente_id=adjustment.ingredient_id,
                cantidad=adjustment.quantity,
                motivo=adjustment.reason.value,
                notas=adjustment.notes or None,
                origen=ORIGIN_RECONCILIATION,
                fecha=now,
            )
        )
    session.flush()

    log_operation(
        logger,
        "commit_reconciliation",
        "success",
        ingredients=len(commit.snapshots),
        adjustments=len(commit.adjustments),
    )
    return result


def adjustment_history(
    ingredient_id: Optional[int] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Stock adjustments, newest first.

    Args:
        ingredient_id: Restrict to one ingredient
        session: Optional database session

    Returns:
        List of StockAdjustment dictionaries
    """
    if session is not None:
        return _adjustment_history_impl(ingredient_id, session)
    with session_scope() as session:
        return _adjustment_history_impl(ingredient_id, session)


def _adjustment_history_impl(ingredient_id: Optional[int], session: Session) -> List[Dict[str, Any]]:
    query = session.query(StockAdjustment)
    if ingredient_id is not None:
        query = query.filter(StockAdjustment.ingrediente_id == ingredient_id)
    rows = query.order_by(StockAdjustment.fecha.desc(), StockAdjustment.id.desc()).all()
    return [row.to_dict() for row in rows]
