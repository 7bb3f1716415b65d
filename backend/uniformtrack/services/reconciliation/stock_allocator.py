"""Stock Allocator - check and deduct per-size warehouse stock.

Batch items are matched by ``VariantKey``: the uniform id always, variant
type and colour only when given. Stock for a size is the sum over every
matching item in every batch.

``deduct`` is the only mutating operation. It either applies the whole
quantity or raises without touching the item, so stock can never go
negative. The depletion timestamp is set once, when a size first reaches
zero, and is never cleared.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from uniformtrack.core.exceptions import InsufficientStockError, ValidationError
from uniformtrack.schemas.batch import (
    Allocation,
    Batch,
    BatchItem,
    BatchSummary,
    LowStockItem,
    SizeStock,
    StockCheck,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariantKey:
    """Which batch items a distribution can draw from."""

    uniform_id: str
    variant_type: Optional[str] = None
    color: Optional[str] = None

    def matches(self, item: BatchItem) -> bool:
        if item.uniform_id != self.uniform_id:
            return False
        if self.variant_type and item.variant_type != self.variant_type:
            return False
        if self.color and item.color != self.color:
            return False
        return True


def _matching_items(batches: Iterable[Batch], key: VariantKey) -> List[Tuple[Batch, BatchItem]]:
    return [
        (batch, item)
        for batch in batches or ()
        for item in batch.items
        if key.matches(item)
    ]


def check_stock(batches: Iterable[Batch], key: VariantKey, size: str, requested: int) -> StockCheck:
    """Total stock of *size* across matching items, and whether it covers the request."""
    current = 0
    item_ids = []
    for _, item in _matching_items(batches, key):
        entry = item.size_entry(size)
        if entry is None:
            continue
        current += entry.quantity
        if entry.quantity > 0:
            item_ids.append(item.id)
    return StockCheck(
        uniform_id=key.uniform_id,
        size=size,
        requested=requested,
        current_stock=current,
        available=current >= requested,
        item_ids=item_ids,
    )


def deduct(item: BatchItem, size: str, quantity: int, now: Optional[datetime] = None) -> SizeStock:
    """Take *quantity* of *size* from *item* in place and return the size entry."""
    if quantity <= 0:
        raise ValidationError("Quantity to deduct must be positive")

    entry = item.size_entry(size)
    if entry is None:
        raise ValidationError(f"Unknown size {size} for batch item {item.id}")
    if quantity > entry.quantity:
        raise InsufficientStockError(size, quantity, entry.quantity, label=item.variant_type)

    entry.quantity -= quantity
    if entry.quantity == 0 and entry.depleted_at is None:
        entry.depleted_at = now or datetime.now(timezone.utc)
        logger.info("Batch item %s size %s depleted", item.id, size)
    return entry


def batch_order(batch: Batch) -> Tuple[datetime, str]:
    """Sort key for FIFO: oldest batch first, id breaks ties."""
    created = batch.created_at or datetime.min.replace(tzinfo=timezone.utc)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created, batch.id


def plan_allocation(batches: Iterable[Batch], key: VariantKey, size: str, quantity: int) -> List[Allocation]:
    """Split *quantity* across matching items, oldest batch first.

    Nothing is mutated; the caller applies the plan with ``deduct``.
    """
    if quantity <= 0:
        raise ValidationError("Quantity to allocate must be positive")

    batches = sorted(batches or (), key=batch_order)
    plan: List[Allocation] = []
    remaining = quantity
    for batch, item in _matching_items(batches, key):
        entry = item.size_entry(size)
        if entry is None or entry.quantity <= 0:
            continue
        take = min(entry.quantity, remaining)
        plan.append(Allocation(batch_id=batch.id, item_id=item.id, size=size, quantity=take))
        remaining -= take
        if remaining == 0:
            return plan

    available = quantity - remaining
    raise InsufficientStockError(size, quantity, available)


def batch_summary(batch: Batch) -> BatchSummary:
    """Totals shown on the batch details screen.

    An item counts as depleted when none of its sizes has stock left; an item
    without sizes counts as depleted too.
    """
    total_quantity = 0
    total_value = Decimal("0")
    depleted = 0
    for item in batch.items:
        item_quantity = sum(entry.quantity for entry in item.sizes)
        total_quantity += item_quantity
        total_value += item.price * item_quantity
        if all(entry.quantity == 0 for entry in item.sizes):
            depleted += 1
    return BatchSummary(
        batch_id=batch.id,
        total_items=len(batch.items),
        total_quantity=total_quantity,
        total_value=total_value,
        depleted_items=depleted,
    )


def low_stock(batches: Iterable[Batch], threshold: int) -> List[LowStockItem]:
    """Variants whose total stock across batches is above zero but at most *threshold*."""
    totals: Dict[Tuple[str, str, str], int] = {}
    for batch in batches or ():
        for item in batch.items:
            key = (item.uniform_id, item.variant_type, item.color)
            totals[key] = totals.get(key, 0) + sum(entry.quantity for entry in item.sizes)

    return [
        LowStockItem(uniform_id=uniform_id, variant_type=variant_type, color=color, total_stock=total)
        for (uniform_id, variant_type, color), total in totals.items()
        if 0 < total <= threshold
    ]
